from dental_clinic.adapters.sqlite.dentists_repo import DentistRepository
from dental_clinic.adapters.sqlite.patients_repo import PatientRepository
from dental_clinic.adapters.sqlite.prescriptions_repo import PrescriptionRepository
from dental_clinic.common.errors import NotFoundError
from dental_clinic.common.validators import require_date
from dental_clinic.domain.prescriptions import Prescription, PrescriptionItem


def _parse_items(raw_items):
    items = []
    for raw in raw_items or []:
        name = (raw.get('medication_name') or '').strip()
        if not name:
            raise ValueError('Medication name is required for every item')
        try:
            quantity = raw.get('quantity')
            quantity = 1 if quantity in (None, '') else int(quantity)
        except (TypeError, ValueError):
            raise ValueError('Quantity must be a whole number')
        if quantity < 1:
            raise ValueError('Quantity must be at least 1')
        items.append(PrescriptionItem(
            medication_name=name,
            quantity=quantity,
            dosage=(raw.get('dosage') or '').strip() or None,
            instructions=(raw.get('instructions') or '').strip() or None,
        ))
    if not items:
        raise ValueError('Add at least one medication')
    return items


class PrescriptionService:
    def __init__(self, prescription_repo=None, patient_repo=None, dentist_repo=None):
        self.prescription_repo = prescription_repo or PrescriptionRepository()
        self.patient_repo = patient_repo or PatientRepository()
        self.dentist_repo = dentist_repo or DentistRepository()

    def get(self, prescription_id: int) -> Prescription:
        prescription = self.prescription_repo.get_by_id(prescription_id)
        if prescription is None:
            raise NotFoundError('Prescription not found')
        return prescription

    def list_for_patient(self, patient_id: int):
        return self.prescription_repo.list_by_patient(patient_id)

    def _build(self, patient_id, data, prescription_id=None, created_by=None) -> Prescription:
        if self.patient_repo.get_by_id(patient_id) is None:
            raise NotFoundError('Patient not found')
        try:
            dentist_id = int(data.get('dentist_id') or 0)
        except (TypeError, ValueError):
            dentist_id = 0
        if not dentist_id or self.dentist_repo.get_by_id(dentist_id) is None:
            raise ValueError('Select a dentist')
        return Prescription(
            id=prescription_id,
            patient_id=patient_id,
            dentist_id=dentist_id,
            prescription_date=require_date(data.get('prescription_date'), 'Prescription date'),
            notes=(data.get('notes') or '').strip() or None,
            items=_parse_items(data.get('items')),
            created_by=created_by,
        )

    def create(self, patient_id: int, data, created_by=None) -> Prescription:
        prescription = self._build(patient_id, data, created_by=created_by)
        prescription.id = self.prescription_repo.create(prescription)
        return prescription

    def update(self, prescription_id: int, data) -> Prescription:
        existing = self.get(prescription_id)
        prescription = self._build(existing.patient_id, data, prescription_id, existing.created_by)
        self.prescription_repo.update(prescription)
        return prescription

    def delete(self, prescription_id: int) -> Prescription:
        prescription = self.get(prescription_id)
        self.prescription_repo.delete(prescription_id)
        return prescription

    def search(self, query: str, patient_id=None):
        """Match against patient name, dentist name, medication names and notes."""
        query = (query or '').strip().lower()
        prescriptions = (self.prescription_repo.list_by_patient(patient_id) if patient_id
                         else self.prescription_repo.list_all())
        if not query:
            return prescriptions
        patients = {p.id: p.name for p in self.patient_repo.list_all()}
        dentists = {d.id: d.name for d in self.dentist_repo.list_all()}

        def matches(p: Prescription):
            haystack = [
                patients.get(p.patient_id, ''),
                dentists.get(p.dentist_id, ''),
                p.notes or '',
            ] + [item.medication_name for item in p.items]
            return any(query in text.lower() for text in haystack)

        return [p for p in prescriptions if matches(p)]
