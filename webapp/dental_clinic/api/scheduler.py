from flask import Blueprint, current_app, g, jsonify, render_template, request

from dental_clinic.adapters.sqlite.dentists_repo import DentistRepository
from dental_clinic.adapters.sqlite.patients_repo import PatientRepository
from dental_clinic.api.auth import login_required
from dental_clinic.api.helpers import confirmation_required, confirmed, json_errors, payload, serialize
from dental_clinic.common.utils import clinic_now, clinic_today, parse_date
from dental_clinic.domain.appointments import AppointmentStatus
from dental_clinic.services.activity_logger import ActionCategory, ActionType, log_activity
from dental_clinic.services.calendar_service import AppointmentService, hourly_slots

bp = Blueprint('scheduler', __name__, url_prefix='/scheduler')


def _selected_day():
    raw = request.args.get('date')
    day = parse_date(raw)
    if raw and day is None:
        raise ValueError('Invalid date')
    return day or clinic_today()


def _filters():
    status = request.args.get('status') or None
    if status:
        try:
            status = AppointmentStatus(status)
        except ValueError:
            raise ValueError('Unknown appointment status')
    return request.args.get('dentist_id', type=int), status


def _appointment_json(appointment, patients, dentists):
    data = serialize(appointment)
    data['patient_name'] = patients.get(appointment.patient_id, '')
    data['dentist_name'] = dentists.get(appointment.dentist_id, '')
    data['duration_minutes'] = appointment.duration_minutes
    return data


def _name_maps():
    patients = {p.id: p.name for p in PatientRepository().list_all()}
    dentists = {d.id: d.name for d in DentistRepository().list_all()}
    return patients, dentists


@bp.route('/')
@login_required
def index():
    day = parse_date(request.args.get('date')) or clinic_today()
    agenda = AppointmentService().agenda_for(day)
    patients, dentists = _name_maps()
    slots = hourly_slots(agenda, current_app.config['WORK_START_HOUR'], current_app.config['WORK_END_HOUR'])
    return render_template(
        'scheduler/index.html',
        day=day, slots=slots, patients=patients, dentists=dentists,
        grid=AppointmentService().month_view(day.year, day.month),
    )


@bp.route('/day')
@login_required
@json_errors
def day_view():
    day = _selected_day()
    dentist_id, status = _filters()
    agenda = AppointmentService().agenda_for(day, dentist_id, status)
    patients, dentists = _name_maps()
    slots = hourly_slots(agenda, current_app.config['WORK_START_HOUR'], current_app.config['WORK_END_HOUR'])
    return jsonify({
        'date': day.isoformat(),
        'appointments': [_appointment_json(a, patients, dentists) for a in agenda],
        'slots': [
            {'hour': hour, 'appointment_ids': [a.id for a in items]}
            for hour, items in slots
        ],
    })


@bp.route('/month')
@login_required
@json_errors
def month_view():
    today = clinic_today()
    year = request.args.get('year', default=today.year, type=int)
    month = request.args.get('month', default=today.month, type=int)
    if not 1 <= month <= 12:
        raise ValueError('Invalid month')
    weeks = AppointmentService().month_view(year, month)
    return jsonify({'year': year, 'month': month, 'weeks': serialize(weeks)})


@bp.route('/patient/<int:patient_id>/upcoming')
@login_required
def upcoming(patient_id: int):
    appointments = AppointmentService().upcoming_for_patient(patient_id, clinic_now())
    patients, dentists = _name_maps()
    return jsonify({'appointments': [_appointment_json(a, patients, dentists) for a in appointments]})


@bp.route('/appointments', methods=['POST'])
@login_required
@json_errors
def create_appointment():
    appointment = AppointmentService().create(payload(), created_by=g.user['username'])
    log_activity(
        ActionType.APPOINTMENT_SAVE, ActionCategory.SCHEDULER,
        description=f'Booked {appointment.start_time:%Y-%m-%d %H:%M}',
        target_type='appointment', target_id=appointment.id, patient_id=appointment.patient_id,
    )
    return jsonify({'success': True, 'appointment': serialize(appointment)}), 201


@bp.route('/appointments/<int:appointment_id>/edit', methods=['POST'])
@login_required
@json_errors
def update_appointment(appointment_id: int):
    appointment = AppointmentService().update(appointment_id, payload())
    log_activity(
        ActionType.APPOINTMENT_SAVE, ActionCategory.SCHEDULER,
        description=f'Moved to {appointment.start_time:%Y-%m-%d %H:%M}',
        target_type='appointment', target_id=appointment_id, patient_id=appointment.patient_id,
    )
    return jsonify({'success': True, 'appointment': serialize(appointment)})


@bp.route('/appointments/<int:appointment_id>/status', methods=['POST'])
@login_required
@json_errors
def set_status(appointment_id: int):
    appointment = AppointmentService().set_status(appointment_id, payload().get('status'))
    log_activity(
        ActionType.APPOINTMENT_SAVE, ActionCategory.SCHEDULER,
        target_type='appointment', target_id=appointment_id, patient_id=appointment.patient_id,
        new_value=appointment.status.value,
    )
    return jsonify({'success': True, 'appointment': serialize(appointment)})


@bp.route('/appointments/<int:appointment_id>/delete', methods=['POST'])
@login_required
@json_errors
def delete_appointment(appointment_id: int):
    if not confirmed():
        return confirmation_required()
    AppointmentService().delete(appointment_id)
    log_activity(
        ActionType.APPOINTMENT_DELETE, ActionCategory.SCHEDULER,
        target_type='appointment', target_id=appointment_id,
    )
    return jsonify({'success': True})
