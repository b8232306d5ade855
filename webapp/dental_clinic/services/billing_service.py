import hmac
import logging

from flask import current_app

from dental_clinic.adapters.sqlite.dentists_repo import DentistRepository
from dental_clinic.adapters.sqlite.patients_repo import PatientRepository
from dental_clinic.adapters.sqlite.payments_repo import DoctorPaymentRepository, PaymentRepository
from dental_clinic.adapters.sqlite.treatments_repo import (
    TreatmentDefinitionRepository, TreatmentRecordRepository,
)
from dental_clinic.common.errors import DuplicatePaymentError, NotFoundError
from dental_clinic.common.utils import clinic_today, to_money
from dental_clinic.common.validators import require_past_or_today, require_positive_amount
from dental_clinic.domain.payments import DoctorPayment, Payment, PaymentMethod
from dental_clinic.services.activity_logger import ActionCategory, ActionType, log_activity
from dental_clinic.services.ledger import (
    doctor_balance, is_duplicate_doctor_payment, is_duplicate_payment, patient_ledger, split_payment,
)

logger = logging.getLogger(__name__)


class BillingService:
    def __init__(self, payment_repo=None, doctor_payment_repo=None, record_repo=None,
                 definition_repo=None, patient_repo=None, dentist_repo=None):
        self.payment_repo = payment_repo or PaymentRepository()
        self.doctor_payment_repo = doctor_payment_repo or DoctorPaymentRepository()
        self.record_repo = record_repo or TreatmentRecordRepository()
        self.definition_repo = definition_repo or TreatmentDefinitionRepository()
        self.patient_repo = patient_repo or PatientRepository()
        self.dentist_repo = dentist_repo or DentistRepository()

    def outstanding_balance(self, patient_id: int, exclude_payment_id=None) -> float:
        payments = [p for p in self.payment_repo.list_by_patient(patient_id) if p.id != exclude_payment_id]
        return patient_ledger(self.record_repo.list_by_patient(patient_id), payments).outstanding_balance

    def _require_patient(self, patient_id):
        if self.patient_repo.get_by_id(patient_id) is None:
            raise NotFoundError('Patient not found')

    def _shares_for(self, patient_id, amount, treatment_record_id):
        """Split a payment by the doctor percentage of the treatment it pays for."""
        if not treatment_record_id:
            return to_money(amount), 0.0
        record = self.record_repo.get_by_id(treatment_record_id)
        if record is None or record.patient_id != patient_id:
            raise ValueError('Linked treatment does not belong to this patient')
        definition = self.definition_repo.get_by_id(record.treatment_definition_id)
        return split_payment(amount, definition.doctor_percentage if definition else 0)

    def _parse_payment_form(self, patient_id, data):
        amount = to_money(require_positive_amount(data.get('amount')))
        date = require_past_or_today(data.get('date') or clinic_today().isoformat(), 'Payment date')
        try:
            method = PaymentMethod(data.get('method') or PaymentMethod.CASH.value)
        except ValueError:
            raise ValueError('Unknown payment method')
        if method == PaymentMethod.DISCOUNT:
            raise ValueError('Discounts must be added through the discount form')
        treatment_record_id = data.get('treatment_record_id') or None
        if treatment_record_id is not None:
            try:
                treatment_record_id = int(treatment_record_id)
            except (TypeError, ValueError):
                raise ValueError('Invalid treatment selection')
        clinic_share, doctor_share = self._shares_for(patient_id, amount, treatment_record_id)
        return Payment(
            id=None,
            patient_id=patient_id,
            date=date,
            amount=amount,
            method=method,
            notes=(data.get('notes') or '').strip() or None,
            treatment_record_id=treatment_record_id,
            clinic_share=clinic_share,
            doctor_share=doctor_share,
        )

    # ---- Patient payments ----
    def add_payment(self, patient_id: int, data, confirm_duplicate=False) -> Payment:
        self._require_patient(patient_id)
        payment = self._parse_payment_form(patient_id, data)

        balance = self.outstanding_balance(patient_id)
        if payment.amount > balance:
            raise ValueError(f'Amount exceeds the outstanding balance of {balance:.2f}')

        if not confirm_duplicate and is_duplicate_payment(
                self.payment_repo.list_by_patient(patient_id), patient_id, payment.date, payment.amount):
            raise DuplicatePaymentError('A payment with the same date and amount already exists')

        payment.id = self.payment_repo.create(payment)
        return payment

    def get_payment(self, payment_id: int) -> Payment:
        payment = self.payment_repo.get_by_id(payment_id)
        if payment is None:
            raise NotFoundError('Payment not found')
        return payment

    def update_payment(self, payment_id: int, data) -> Payment:
        existing = self.get_payment(payment_id)
        if existing.is_discount:
            raise ValueError('Discounts cannot be edited; delete and re-approve instead')
        payment = self._parse_payment_form(existing.patient_id, data)
        payment.id = payment_id

        balance = self.outstanding_balance(existing.patient_id, exclude_payment_id=payment_id)
        if payment.amount > balance:
            raise ValueError(f'Amount exceeds the outstanding balance of {balance:.2f}')

        self.payment_repo.update(payment)
        return payment

    def delete_payment(self, payment_id: int) -> Payment:
        payment = self.get_payment(payment_id)
        self.payment_repo.delete(payment_id)
        return payment

    # ---- Discounts ----
    def add_discount(self, patient_id: int, amount, passcode: str, notes=None, user=None) -> Payment:
        """Write down a patient's balance.

        The checks run in a fixed order and each failure has its own
        message: role, amount, balance, cap, approval code.
        """
        self._require_patient(patient_id)
        config = current_app.config

        role = user['role'] if user else None
        if role not in config['DISCOUNT_APPROVER_ROLES']:
            raise PermissionError('You are not allowed to approve discounts')

        amount = to_money(require_positive_amount(amount, 'Discount amount must be greater than zero'))

        balance = self.outstanding_balance(patient_id)
        if balance <= 0:
            raise ValueError('This patient has no outstanding balance')
        if amount > balance:
            raise ValueError(f'Discount exceeds the outstanding balance of {balance:.2f}')

        if not hmac.compare_digest(str(passcode or '').encode('utf-8'),
                                   str(config['DISCOUNT_APPROVAL_CODE']).encode('utf-8')):
            log_activity(
                ActionType.DISCOUNT_REJECTED, ActionCategory.BILLING,
                target_type='patient', target_id=patient_id, patient_id=patient_id, amount=amount,
            )
            logger.warning('Rejected discount approval code for patient %s', patient_id)
            raise PermissionError('Approval code is incorrect')

        reason = (notes or '').strip() or None
        payment = Payment(
            id=None,
            patient_id=patient_id,
            date=clinic_today().isoformat(),
            amount=amount,
            method=PaymentMethod.DISCOUNT,
            notes=reason,
        )
        payment.id = self.payment_repo.create(payment)
        log_activity(
            ActionType.DISCOUNT_APPROVED, ActionCategory.BILLING,
            description=f'Approved discount of {amount:.2f}' + (f': {reason}' if reason else ''),
            target_type='payment', target_id=payment.id, patient_id=patient_id, amount=amount,
        )
        return payment

    # ---- Doctor payments ----
    def doctor_balance(self, dentist_id: int):
        return doctor_balance(
            dentist_id,
            self.record_repo.list_by_dentist(dentist_id),
            self.doctor_payment_repo.list_by_dentist(dentist_id),
        )

    def add_doctor_payment(self, dentist_id: int, data, confirm_duplicate=False) -> DoctorPayment:
        if self.dentist_repo.get_by_id(dentist_id) is None:
            raise NotFoundError('Dentist not found')
        amount = to_money(require_positive_amount(data.get('amount')))
        date = require_past_or_today(data.get('date'), 'Payment date')

        balance = self.doctor_balance(dentist_id).balance
        if balance <= 0:
            raise ValueError('Nothing is owed to this dentist')
        if amount > balance:
            raise ValueError(f'Amount exceeds the balance owed of {balance:.2f}')

        if not confirm_duplicate and is_duplicate_doctor_payment(
                self.doctor_payment_repo.list_by_dentist(dentist_id), dentist_id, date, amount):
            raise DuplicatePaymentError('A payment to this dentist with the same date and amount already exists')

        payment = DoctorPayment(
            id=None,
            dentist_id=dentist_id,
            amount=amount,
            date=date,
            notes=(data.get('notes') or '').strip() or None,
        )
        payment.id = self.doctor_payment_repo.create(payment)
        return payment

    def delete_doctor_payment(self, payment_id: int) -> DoctorPayment:
        payment = self.doctor_payment_repo.get_by_id(payment_id)
        if payment is None:
            raise NotFoundError('Payment not found')
        self.doctor_payment_repo.delete(payment_id)
        return payment
