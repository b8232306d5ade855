from flask import Blueprint, g, jsonify, request

from dental_clinic.api.auth import login_required, role_required
from dental_clinic.api.helpers import confirmation_required, confirmed, json_errors, payload, serialize
from dental_clinic.domain.user import UserRole
from dental_clinic.services.activity_logger import ActionCategory, ActionType, log_activity
from dental_clinic.services.prescription_service import PrescriptionService

bp = Blueprint('prescriptions', __name__, url_prefix='/prescriptions')


@bp.route('/')
@login_required
def search_prescriptions():
    results = PrescriptionService().search(
        request.args.get('q', ''), patient_id=request.args.get('patient_id', type=int)
    )
    return jsonify({'prescriptions': serialize(results)})


@bp.route('/<int:prescription_id>')
@login_required
@json_errors
def prescription_detail(prescription_id: int):
    return jsonify({'prescription': serialize(PrescriptionService().get(prescription_id))})


@bp.route('/patient/<int:patient_id>', methods=['POST'])
@role_required(*UserRole.CLINICAL)
@json_errors
def create_prescription(patient_id: int):
    prescription = PrescriptionService().create(patient_id, payload(), created_by=g.user['username'])
    log_activity(
        ActionType.PRESCRIPTION_SAVE, ActionCategory.PRESCRIPTION,
        description=f'Prescribed {len(prescription.items)} medication(s)',
        target_type='prescription', target_id=prescription.id, patient_id=patient_id,
    )
    return jsonify({'success': True, 'prescription': serialize(prescription)}), 201


@bp.route('/<int:prescription_id>/edit', methods=['POST'])
@role_required(*UserRole.CLINICAL)
@json_errors
def update_prescription(prescription_id: int):
    prescription = PrescriptionService().update(prescription_id, payload())
    log_activity(
        ActionType.PRESCRIPTION_SAVE, ActionCategory.PRESCRIPTION,
        target_type='prescription', target_id=prescription_id, patient_id=prescription.patient_id,
    )
    return jsonify({'success': True, 'prescription': serialize(prescription)})


@bp.route('/<int:prescription_id>/delete', methods=['POST'])
@role_required(UserRole.ADMIN, UserRole.DOCTOR)
@json_errors
def delete_prescription(prescription_id: int):
    if not confirmed():
        return confirmation_required()
    prescription = PrescriptionService().delete(prescription_id)
    log_activity(
        ActionType.PRESCRIPTION_DELETE, ActionCategory.PRESCRIPTION,
        target_type='prescription', target_id=prescription_id, patient_id=prescription.patient_id,
    )
    return jsonify({'success': True})
