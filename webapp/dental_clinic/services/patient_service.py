import logging

from flask import current_app

from dental_clinic.adapters.sqlite.patients_repo import AttachmentRepository, PatientRepository
from dental_clinic.adapters.sqlite.payments_repo import PaymentRepository
from dental_clinic.adapters.sqlite.treatments_repo import TreatmentRecordRepository
from dental_clinic.adapters.storage import LocalFileStorage
from dental_clinic.common.errors import NotFoundError
from dental_clinic.common.messaging import build_whatsapp_link
from dental_clinic.common.utils import parse_date
from dental_clinic.common.validators import validate_email, validate_phone
from dental_clinic.domain.patients import Patient, PatientAttachment, ToothStatus
from dental_clinic.services import dental_chart
from dental_clinic.services.ledger import patient_ledger

logger = logging.getLogger(__name__)

ALLOWED_ATTACHMENT_TYPES = ('image/', 'application/pdf')


class PatientService:
    def __init__(self, patient_repo=None, attachment_repo=None, record_repo=None,
                 payment_repo=None, storage=None):
        self.patient_repo = patient_repo or PatientRepository()
        self.attachment_repo = attachment_repo or AttachmentRepository()
        self.record_repo = record_repo or TreatmentRecordRepository()
        self.payment_repo = payment_repo or PaymentRepository()
        self.storage = storage or LocalFileStorage()

    def get(self, patient_id: int) -> Patient:
        patient = self.patient_repo.get_by_id(patient_id)
        if patient is None:
            raise NotFoundError('Patient not found')
        return patient

    def list_patients(self, query: str = ''):
        """All patients, each paired with their outstanding balance."""
        query = (query or '').strip()
        patients = self.patient_repo.search(query) if query else self.patient_repo.list_all()
        records = self.record_repo.list_all()
        payments = self.payment_repo.list_all()
        result = []
        for patient in patients:
            ledger = patient_ledger(
                [r for r in records if r.patient_id == patient.id],
                [p for p in payments if p.patient_id == patient.id],
            )
            result.append((patient, ledger))
        return result

    def ledger(self, patient_id: int):
        return patient_ledger(
            self.record_repo.list_by_patient(patient_id),
            self.payment_repo.list_by_patient(patient_id),
        )

    def _apply_form(self, patient: Patient, data):
        name = (data.get('name') or '').strip()
        if not name:
            raise ValueError('Patient name is required')
        phone = (data.get('phone') or '').strip()
        if phone and not validate_phone(phone):
            raise ValueError('Phone number is not valid')
        email = (data.get('email') or '').strip()
        if email and not validate_email(email):
            raise ValueError('Email address is not valid')
        dob = (data.get('dob') or '').strip()
        if dob and parse_date(dob) is None:
            raise ValueError('Date of birth is not valid')

        patient.name = name
        patient.phone = phone or None
        patient.email = email or None
        patient.dob = dob or None
        for field_name in ('gender', 'address', 'medical_history', 'treatment_notes', 'allergies',
                           'medications', 'insurance_provider', 'insurance_policy_number',
                           'emergency_contact_name', 'emergency_contact_phone'):
            value = data.get(field_name)
            setattr(patient, field_name, value.strip() if isinstance(value, str) and value.strip() else None)

    def create(self, data) -> Patient:
        patient = Patient(id=None, name='')
        self._apply_form(patient, data)
        patient.dental_chart = dental_chart.merge_with_defaults({})
        patient.id = self.patient_repo.create(patient)
        return patient

    def update(self, patient_id: int, data) -> Patient:
        patient = self.get(patient_id)
        self._apply_form(patient, data)
        self.patient_repo.update(patient)
        return patient

    def delete(self, patient_id: int):
        self.get(patient_id)
        for attachment in self.attachment_repo.list_by_patient(patient_id):
            self.storage.delete(f'patients/{patient_id}', attachment.filename)
        self.patient_repo.delete(patient_id)

    # ---- Dental chart ----
    def get_chart(self, patient_id: int):
        return dental_chart.merge_with_defaults(self.get(patient_id).dental_chart)

    def update_tooth(self, patient_id: int, tooth_id: str, status, notes=''):
        patient = self.get(patient_id)
        chart = dental_chart.update_tooth(patient.dental_chart, tooth_id, _tooth_status(status), notes)
        self.patient_repo.update_dental_chart(patient_id, chart)
        return chart

    def bulk_update_teeth(self, patient_id: int, tooth_ids, status, notes=''):
        patient = self.get(patient_id)
        chart = dental_chart.bulk_update(patient.dental_chart, tooth_ids, _tooth_status(status), notes)
        self.patient_repo.update_dental_chart(patient_id, chart)
        return chart

    # ---- Attachments ----
    def list_attachments(self, patient_id: int):
        return self.attachment_repo.list_by_patient(patient_id)

    def add_attachment(self, patient_id: int, file_storage, description=None, uploaded_by=None) -> PatientAttachment:
        self.get(patient_id)
        if file_storage is None or not file_storage.filename:
            raise ValueError('Choose a file to upload')
        content_type = file_storage.mimetype or ''
        if not content_type.startswith(ALLOWED_ATTACHMENT_TYPES):
            raise ValueError('Only images and PDF files can be attached')

        data = file_storage.read()
        stored_name, url = self.storage.upload(f'patients/{patient_id}', file_storage.filename, data)
        attachment = PatientAttachment(
            id=None,
            patient_id=patient_id,
            filename=stored_name,
            original_filename=file_storage.filename,
            file_type=content_type,
            file_size=len(data),
            file_url=url,
            description=(description or '').strip() or None,
            uploaded_by=uploaded_by,
        )
        try:
            attachment.id = self.attachment_repo.create(attachment)
        except Exception:
            logger.error('Could not record attachment %s; removing stored file', stored_name)
            self.storage.delete(f'patients/{patient_id}', stored_name)
            raise
        return attachment

    def delete_attachment(self, patient_id: int, attachment_id: int):
        attachment = self.attachment_repo.get_by_id(attachment_id)
        if attachment is None or attachment.patient_id != patient_id:
            raise NotFoundError('Attachment not found')
        self.storage.delete(f'patients/{patient_id}', attachment.filename)
        self.attachment_repo.delete(attachment_id)
        return attachment

    # ---- Messaging ----
    def whatsapp_link(self, patient_id: int) -> str:
        patient = self.get(patient_id)
        config = current_app.config
        return build_whatsapp_link(
            patient.phone,
            config['WHATSAPP_MESSAGE_TEMPLATE'],
            patient_name=patient.name,
            clinic_name=config['CLINIC_NAME'],
            clinic_address=config['CLINIC_ADDRESS'],
            clinic_phone=config['CLINIC_PHONE'],
            country_code=config['PHONE_COUNTRY_CODE'],
        )


def _tooth_status(value) -> ToothStatus:
    try:
        return ToothStatus(value)
    except ValueError:
        raise ValueError(f'Unknown tooth status: {value}')
