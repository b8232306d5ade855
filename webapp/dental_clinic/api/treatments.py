from flask import Blueprint, jsonify

from dental_clinic.api.auth import login_required, role_required
from dental_clinic.api.helpers import confirmation_required, confirmed, json_errors, payload, serialize
from dental_clinic.domain.user import UserRole
from dental_clinic.services.activity_logger import ActionCategory, ActionType, log_activity
from dental_clinic.services.treatment_service import TreatmentService

bp = Blueprint('treatments', __name__, url_prefix='/treatments')


def _record_json(record):
    data = serialize(record)
    data['material_cost'] = record.material_cost
    return data


# ---- Definitions ----

@bp.route('/definitions')
@login_required
def list_definitions():
    return jsonify({'definitions': serialize(TreatmentService().list_definitions())})


@bp.route('/definitions', methods=['POST'])
@role_required(UserRole.ADMIN, UserRole.DOCTOR)
@json_errors
def create_definition():
    definition = TreatmentService().save_definition(payload())
    log_activity(
        ActionType.DEFINITION_SAVE, ActionCategory.TREATMENT,
        description=f'Added treatment {definition.name}',
        target_type='treatment_definition', target_id=definition.id,
    )
    return jsonify({'success': True, 'definition': serialize(definition)}), 201


@bp.route('/definitions/<int:definition_id>/edit', methods=['POST'])
@role_required(UserRole.ADMIN, UserRole.DOCTOR)
@json_errors
def update_definition(definition_id: int):
    definition = TreatmentService().save_definition(payload(), definition_id)
    log_activity(
        ActionType.DEFINITION_SAVE, ActionCategory.TREATMENT,
        description=f'Edited treatment {definition.name}',
        target_type='treatment_definition', target_id=definition.id,
    )
    return jsonify({'success': True, 'definition': serialize(definition)})


@bp.route('/definitions/<int:definition_id>/delete', methods=['POST'])
@role_required(UserRole.ADMIN)
@json_errors
def delete_definition(definition_id: int):
    if not confirmed():
        return confirmation_required()
    TreatmentService().delete_definition(definition_id)
    log_activity(
        ActionType.DEFINITION_DELETE, ActionCategory.TREATMENT,
        target_type='treatment_definition', target_id=definition_id,
    )
    return jsonify({'success': True})


# ---- Records ----

@bp.route('/patient/<int:patient_id>')
@login_required
def list_records(patient_id: int):
    records = TreatmentService().list_for_patient(patient_id)
    return jsonify({'records': [_record_json(r) for r in records]})


@bp.route('/patient/<int:patient_id>', methods=['POST'])
@login_required
@json_errors
def add_record(patient_id: int):
    record = TreatmentService().add_treatment_record(patient_id, payload())
    log_activity(
        ActionType.TREATMENT_ADD, ActionCategory.TREATMENT,
        target_type='treatment_record', target_id=record.id, patient_id=patient_id,
        amount=record.total_treatment_cost,
    )
    return jsonify({'success': True, 'record': _record_json(record)}), 201


@bp.route('/<int:record_id>/edit', methods=['POST'])
@login_required
@json_errors
def update_record(record_id: int):
    record = TreatmentService().update_treatment_record(record_id, payload())
    log_activity(
        ActionType.TREATMENT_UPDATE, ActionCategory.TREATMENT,
        target_type='treatment_record', target_id=record_id, patient_id=record.patient_id,
        amount=record.total_treatment_cost,
    )
    return jsonify({'success': True, 'record': _record_json(record)})


@bp.route('/<int:record_id>/delete', methods=['POST'])
@role_required(UserRole.ADMIN, UserRole.DOCTOR)
@json_errors
def delete_record(record_id: int):
    if not confirmed():
        return confirmation_required()
    record = TreatmentService().delete_treatment_record(record_id)
    log_activity(
        ActionType.TREATMENT_DELETE, ActionCategory.TREATMENT,
        target_type='treatment_record', target_id=record_id, patient_id=record.patient_id,
        amount=record.total_treatment_cost,
    )
    return jsonify({'success': True})
