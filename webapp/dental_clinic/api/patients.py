import os

from flask import (
    Blueprint, abort, current_app, g, jsonify, render_template, request, send_from_directory
)

from dental_clinic.api.auth import login_required, role_required
from dental_clinic.api.helpers import confirmation_required, confirmed, json_errors, payload, serialize
from dental_clinic.domain.user import UserRole
from dental_clinic.services.activity_logger import ActionCategory, ActionType, log_activity
from dental_clinic.services.dental_chart import chart_summary, chart_to_dict
from dental_clinic.services.patient_service import PatientService

bp = Blueprint('patients', __name__, url_prefix='/patients')
files_bp = Blueprint('files', __name__, url_prefix='/files')


def _patient_json(patient, ledger=None):
    data = serialize(patient)
    data['dental_chart'] = chart_to_dict(patient.dental_chart)
    if ledger is not None:
        data['ledger'] = ledger.to_dict()
        data['is_overpaid'] = ledger.is_overpaid
    return data


@bp.route('/')
@login_required
def index():
    query = request.args.get('q', '')
    rows = PatientService().list_patients(query)
    return render_template('patients/index.html', rows=rows, query=query)


@bp.route('/list')
@login_required
def list_patients():
    rows = PatientService().list_patients(request.args.get('q', ''))
    return jsonify({'patients': [
        {
            'id': p.id,
            'name': p.name,
            'phone': p.phone,
            'last_visit': p.last_visit,
            'outstanding_balance': ledger.outstanding_balance,
        }
        for p, ledger in rows
    ]})


@bp.route('/', methods=['POST'])
@login_required
@json_errors
def create_patient():
    patient = PatientService().create(payload())
    log_activity(
        ActionType.PATIENT_CREATE, ActionCategory.PATIENT,
        description=f'Added patient {patient.name}',
        target_type='patient', target_id=patient.id, patient_id=patient.id,
    )
    return jsonify({'success': True, 'patient': _patient_json(patient)}), 201


@bp.route('/<int:patient_id>')
@login_required
@json_errors
def patient_detail(patient_id: int):
    service = PatientService()
    patient = service.get(patient_id)
    return jsonify({
        'patient': _patient_json(patient, service.ledger(patient_id)),
        'chart_summary': chart_summary(patient.dental_chart),
    })


@bp.route('/<int:patient_id>/edit', methods=['POST'])
@login_required
@json_errors
def update_patient(patient_id: int):
    patient = PatientService().update(patient_id, payload())
    log_activity(
        ActionType.PATIENT_UPDATE, ActionCategory.PATIENT,
        target_type='patient', target_id=patient_id, patient_id=patient_id,
    )
    return jsonify({'success': True, 'patient': _patient_json(patient)})


@bp.route('/<int:patient_id>/delete', methods=['POST'])
@role_required(UserRole.ADMIN, UserRole.DOCTOR)
@json_errors
def delete_patient(patient_id: int):
    if not confirmed():
        return confirmation_required()
    service = PatientService()
    patient = service.get(patient_id)
    service.delete(patient_id)
    log_activity(
        ActionType.PATIENT_DELETE, ActionCategory.PATIENT,
        description=f'Deleted patient {patient.name}',
        target_type='patient', target_id=patient_id,
    )
    return jsonify({'success': True})


@bp.route('/<int:patient_id>/ledger')
@login_required
@json_errors
def patient_ledger(patient_id: int):
    service = PatientService()
    service.get(patient_id)
    ledger = service.ledger(patient_id)
    return jsonify(dict(ledger.to_dict(), is_overpaid=ledger.is_overpaid))


# ---- Dental chart ----

@bp.route('/<int:patient_id>/chart')
@login_required
@json_errors
def get_chart(patient_id: int):
    chart = PatientService().get_chart(patient_id)
    return jsonify({'chart': chart_to_dict(chart)})


@bp.route('/<int:patient_id>/chart/tooth', methods=['POST'])
@login_required
@json_errors
def update_tooth(patient_id: int):
    data = payload()
    chart = PatientService().update_tooth(
        patient_id, data.get('tooth_id'), data.get('status'), data.get('notes', '')
    )
    log_activity(
        ActionType.CHART_UPDATE, ActionCategory.PATIENT,
        description=f"Tooth {data.get('tooth_id')} set to {data.get('status')}",
        target_type='patient', target_id=patient_id, patient_id=patient_id,
    )
    return jsonify({'success': True, 'chart': chart_to_dict(chart)})


@bp.route('/<int:patient_id>/chart/bulk', methods=['POST'])
@login_required
@json_errors
def bulk_update_teeth(patient_id: int):
    data = payload()
    tooth_ids = data.get('tooth_ids')
    if isinstance(tooth_ids, str):
        tooth_ids = [t for t in tooth_ids.split(',') if t.strip()]
    chart = PatientService().bulk_update_teeth(
        patient_id, [t.strip() for t in tooth_ids or []], data.get('status'), data.get('notes', '')
    )
    log_activity(
        ActionType.CHART_UPDATE, ActionCategory.PATIENT,
        description=f"{len(tooth_ids or [])} teeth set to {data.get('status')}",
        target_type='patient', target_id=patient_id, patient_id=patient_id,
    )
    return jsonify({'success': True, 'chart': chart_to_dict(chart)})


# ---- Attachments ----

@bp.route('/<int:patient_id>/attachments')
@login_required
@json_errors
def list_attachments(patient_id: int):
    service = PatientService()
    service.get(patient_id)
    return jsonify({'attachments': serialize(service.list_attachments(patient_id))})


@bp.route('/<int:patient_id>/attachments', methods=['POST'])
@login_required
@json_errors
def upload_attachment(patient_id: int):
    attachment = PatientService().add_attachment(
        patient_id,
        request.files.get('file'),
        description=request.form.get('description'),
        uploaded_by=g.user['username'],
    )
    log_activity(
        ActionType.ATTACHMENT_UPLOAD, ActionCategory.PATIENT,
        description=f'Uploaded {attachment.original_filename}',
        target_type='attachment', target_id=attachment.id, patient_id=patient_id,
    )
    return jsonify({'success': True, 'attachment': serialize(attachment)}), 201


@bp.route('/<int:patient_id>/attachments/<int:attachment_id>/delete', methods=['POST'])
@login_required
@json_errors
def delete_attachment(patient_id: int, attachment_id: int):
    if not confirmed():
        return confirmation_required()
    attachment = PatientService().delete_attachment(patient_id, attachment_id)
    log_activity(
        ActionType.ATTACHMENT_DELETE, ActionCategory.PATIENT,
        description=f'Deleted {attachment.original_filename}',
        target_type='attachment', target_id=attachment_id, patient_id=patient_id,
    )
    return jsonify({'success': True})


# ---- Messaging ----

@bp.route('/<int:patient_id>/whatsapp')
@login_required
@json_errors
def whatsapp_link(patient_id: int):
    return jsonify({'url': PatientService().whatsapp_link(patient_id)})


@files_bp.route('/<path:path>')
@login_required
def serve(path):
    root = current_app.config['UPLOAD_FOLDER']
    if not os.path.isfile(os.path.join(root, path)):
        abort(404)
    return send_from_directory(root, path)
