from flask import Blueprint, g, jsonify

from dental_clinic.api.auth import login_required, role_required
from dental_clinic.api.helpers import (
    confirmation_required, confirmed, flag, json_errors, payload, serialize
)
from dental_clinic.domain.user import UserRole
from dental_clinic.services.activity_logger import ActionCategory, ActionType, log_activity
from dental_clinic.services.billing_service import BillingService
from dental_clinic.services.dentist_service import DentistService

bp = Blueprint('billing', __name__, url_prefix='/billing')


# ---- Patient payments ----

@bp.route('/patient/<int:patient_id>/payments')
@login_required
@json_errors
def list_payments(patient_id: int):
    service = BillingService()
    return jsonify({
        'payments': serialize(service.payment_repo.list_by_patient(patient_id)),
        'outstanding_balance': service.outstanding_balance(patient_id),
    })


@bp.route('/patient/<int:patient_id>/payments', methods=['POST'])
@login_required
@json_errors
def add_payment(patient_id: int):
    data = payload()
    payment = BillingService().add_payment(patient_id, data, confirm_duplicate=flag(data, 'confirm_duplicate'))
    log_activity(
        ActionType.PAYMENT_ADD, ActionCategory.BILLING,
        description=f'Recorded {payment.method.value} payment of {payment.amount:.2f}',
        target_type='payment', target_id=payment.id, patient_id=patient_id, amount=payment.amount,
    )
    return jsonify({'success': True, 'payment': serialize(payment)}), 201


@bp.route('/payments/<int:payment_id>/edit', methods=['POST'])
@login_required
@json_errors
def update_payment(payment_id: int):
    payment = BillingService().update_payment(payment_id, payload())
    log_activity(
        ActionType.PAYMENT_UPDATE, ActionCategory.BILLING,
        target_type='payment', target_id=payment_id, patient_id=payment.patient_id, amount=payment.amount,
    )
    return jsonify({'success': True, 'payment': serialize(payment)})


@bp.route('/payments/<int:payment_id>/delete', methods=['POST'])
@role_required(UserRole.ADMIN, UserRole.DOCTOR)
@json_errors
def delete_payment(payment_id: int):
    if not confirmed():
        return confirmation_required()
    payment = BillingService().delete_payment(payment_id)
    log_activity(
        ActionType.PAYMENT_DELETE, ActionCategory.BILLING,
        target_type='payment', target_id=payment_id, patient_id=payment.patient_id, amount=payment.amount,
    )
    return jsonify({'success': True})


@bp.route('/patient/<int:patient_id>/discount', methods=['POST'])
@login_required
@json_errors
def add_discount(patient_id: int):
    data = payload()
    payment = BillingService().add_discount(
        patient_id,
        data.get('amount'),
        data.get('passcode'),
        notes=data.get('notes'),
        user=g.user,
    )
    return jsonify({'success': True, 'payment': serialize(payment)}), 201


# ---- Dentists and their accounts ----

@bp.route('/dentists')
@login_required
def list_dentists():
    billing = BillingService()
    return jsonify({'dentists': [
        dict(serialize(d), balance=serialize(billing.doctor_balance(d.id)))
        for d in DentistService().list_dentists()
    ]})


@bp.route('/dentists', methods=['POST'])
@role_required(UserRole.ADMIN)
@json_errors
def create_dentist():
    dentist = DentistService().save(payload())
    return jsonify({'success': True, 'dentist': serialize(dentist)}), 201


@bp.route('/dentists/<int:dentist_id>/edit', methods=['POST'])
@role_required(UserRole.ADMIN)
@json_errors
def update_dentist(dentist_id: int):
    dentist = DentistService().save(payload(), dentist_id)
    return jsonify({'success': True, 'dentist': serialize(dentist)})


@bp.route('/dentists/<int:dentist_id>/delete', methods=['POST'])
@role_required(UserRole.ADMIN)
@json_errors
def delete_dentist(dentist_id: int):
    if not confirmed():
        return confirmation_required()
    DentistService().delete(dentist_id)
    return jsonify({'success': True})


@bp.route('/dentists/<int:dentist_id>/payments')
@role_required(UserRole.ADMIN, UserRole.DOCTOR)
@json_errors
def list_doctor_payments(dentist_id: int):
    service = BillingService()
    DentistService().get(dentist_id)
    return jsonify({
        'payments': serialize(service.doctor_payment_repo.list_by_dentist(dentist_id)),
        'balance': serialize(service.doctor_balance(dentist_id)),
    })


@bp.route('/dentists/<int:dentist_id>/payments', methods=['POST'])
@role_required(UserRole.ADMIN)
@json_errors
def add_doctor_payment(dentist_id: int):
    data = payload()
    payment = BillingService().add_doctor_payment(
        dentist_id, data, confirm_duplicate=flag(data, 'confirm_duplicate'))
    log_activity(
        ActionType.DOCTOR_PAYMENT_ADD, ActionCategory.BILLING,
        target_type='dentist', target_id=dentist_id, amount=payment.amount,
    )
    return jsonify({'success': True, 'payment': serialize(payment)}), 201


@bp.route('/doctor-payments/<int:payment_id>/delete', methods=['POST'])
@role_required(UserRole.ADMIN)
@json_errors
def delete_doctor_payment(payment_id: int):
    if not confirmed():
        return confirmation_required()
    BillingService().delete_doctor_payment(payment_id)
    return jsonify({'success': True})
