import logging
import math
from datetime import timedelta

from flask import current_app

from dental_clinic.adapters.sqlite.dentists_repo import DentistRepository
from dental_clinic.adapters.sqlite.inventory_repo import InventoryRepository
from dental_clinic.adapters.sqlite.lab_cases_repo import LabCaseRepository
from dental_clinic.adapters.sqlite.patients_repo import PatientRepository
from dental_clinic.adapters.sqlite.suppliers_repo import SupplierRepository
from dental_clinic.adapters.sqlite.treatments_repo import (
    TreatmentDefinitionRepository, TreatmentRecordRepository,
)
from dental_clinic.common.errors import NotFoundError
from dental_clinic.common.utils import parse_date, to_money
from dental_clinic.common.validators import require_date, require_text
from dental_clinic.domain.lab_cases import LabCase, LabCaseStatus
from dental_clinic.domain.patients import ToothStatus
from dental_clinic.domain.treatments import TreatmentDefinition, TreatmentRecord
from dental_clinic.services.dental_chart import ALL_TOOTH_IDS, apply_treatment_to_chart
from dental_clinic.services.ledger import compute_treatment_split, reprice_treatment

logger = logging.getLogger(__name__)


def _parse_selections(raw):
    """Normalize ``[{'inventory_item_id': .., 'quantity': ..}]`` into id/quantity pairs."""
    selections = []
    for entry in raw or []:
        try:
            item_id = int(entry.get('inventory_item_id'))
            quantity = float(entry.get('quantity') or 0)
        except (TypeError, ValueError, AttributeError):
            raise ValueError('Invalid inventory selection')
        if not math.isfinite(quantity):
            raise ValueError('Material quantity must be a finite number')
        selections.append((item_id, quantity))
    return selections


def _parse_teeth(raw):
    if isinstance(raw, str):
        raw = raw.split(',')
    teeth = [t.strip().upper() for t in (raw or []) if t and t.strip()]
    unknown = [t for t in teeth if t not in ALL_TOOTH_IDS]
    if unknown:
        raise ValueError(f"Unknown tooth id: {', '.join(unknown)}")
    # keep first occurrence order, drop repeats
    return list(dict.fromkeys(teeth))


class TreatmentService:
    def __init__(self, definition_repo=None, record_repo=None, patient_repo=None,
                 dentist_repo=None, inventory_repo=None, supplier_repo=None, lab_case_repo=None):
        self.definition_repo = definition_repo or TreatmentDefinitionRepository()
        self.record_repo = record_repo or TreatmentRecordRepository()
        self.patient_repo = patient_repo or PatientRepository()
        self.dentist_repo = dentist_repo or DentistRepository()
        self.inventory_repo = inventory_repo or InventoryRepository()
        self.supplier_repo = supplier_repo or SupplierRepository()
        self.lab_case_repo = lab_case_repo or LabCaseRepository()

    # ---- Treatment definitions ----
    def list_definitions(self):
        return self.definition_repo.list_all()

    def get_definition(self, definition_id: int) -> TreatmentDefinition:
        definition = self.definition_repo.get_by_id(definition_id)
        if definition is None:
            raise NotFoundError('Treatment definition not found')
        return definition

    def _definition_from_form(self, data, definition_id=None) -> TreatmentDefinition:
        name = require_text(data.get('name'), 'Treatment name is required')
        try:
            base_price = float(data.get('base_price'))
            doctor_pct = float(data.get('doctor_percentage'))
            clinic_pct = float(data.get('clinic_percentage'))
        except (TypeError, ValueError):
            raise ValueError('Price and percentages must be numbers')
        if not math.isfinite(base_price):
            raise ValueError('Base price must be a finite number')
        if base_price < 0:
            raise ValueError('Base price cannot be negative')
        for pct in (doctor_pct, clinic_pct):
            if not 0 <= pct <= 1:
                raise ValueError('Percentages must be between 0 and 1')
        tooth_status = data.get('tooth_status') or None
        if tooth_status:
            try:
                tooth_status = ToothStatus(tooth_status)
            except ValueError:
                raise ValueError(f'Unknown tooth status: {tooth_status}')
        return TreatmentDefinition(
            id=definition_id,
            name=name,
            base_price=to_money(base_price),
            doctor_percentage=doctor_pct,
            clinic_percentage=clinic_pct,
            description=(data.get('description') or '').strip() or None,
            tooth_status=tooth_status,
        )

    def save_definition(self, data, definition_id=None) -> TreatmentDefinition:
        if definition_id is not None:
            self.get_definition(definition_id)
        definition = self._definition_from_form(data, definition_id)
        if definition_id is None:
            definition.id = self.definition_repo.create(definition)
        else:
            self.definition_repo.update(definition)
        return definition

    def delete_definition(self, definition_id: int):
        self.get_definition(definition_id)
        if self.definition_repo.is_in_use(definition_id):
            raise ValueError('This treatment is used by recorded treatments and cannot be deleted')
        self.definition_repo.delete(definition_id)

    # ---- Treatment records ----
    def get_record(self, record_id: int) -> TreatmentRecord:
        record = self.record_repo.get_by_id(record_id)
        if record is None:
            raise NotFoundError('Treatment record not found')
        return record

    def list_for_patient(self, patient_id: int):
        return self.record_repo.list_by_patient(patient_id)

    def add_treatment_record(self, patient_id: int, data) -> TreatmentRecord:
        """Price, persist and apply the side effects of a performed treatment.

        Stock is consumed in the same transaction as the insert. Afterwards
        the patient's last visit moves forward, the chart is updated for
        the affected teeth and, when a lab is chosen, a draft lab case is
        opened.
        """
        patient = self.patient_repo.get_by_id(patient_id)
        if patient is None:
            raise NotFoundError('Patient not found')
        dentist_id, definition = self._require_dentist_and_definition(data)
        treatment_date = require_date(data.get('treatment_date'), 'Treatment date')
        affected_teeth = _parse_teeth(data.get('affected_teeth'))
        lab = self._require_lab(data.get('lab_id'))

        split = compute_treatment_split(
            definition,
            _parse_selections(data.get('inventory_items')),
            self.inventory_repo.list_all(),
        )
        record = TreatmentRecord(
            id=None,
            patient_id=patient_id,
            dentist_id=dentist_id,
            treatment_date=treatment_date,
            treatment_definition_id=definition.id,
            doctor_share=split.doctor_share,
            clinic_share=split.clinic_share,
            total_treatment_cost=split.total_treatment_cost,
            notes=(data.get('notes') or '').strip() or None,
            inventory_items_used=split.items_used,
            affected_teeth=affected_teeth,
        )
        record.id = self.record_repo.create_with_consumption(record)

        self.patient_repo.set_last_visit(patient_id, treatment_date)
        chart = apply_treatment_to_chart(
            patient.dental_chart, definition, affected_teeth, treatment_date,
            current_app.config['TOOTH_STATUS_KEYWORDS'],
        )
        if chart is not None:
            self.patient_repo.update_dental_chart(patient_id, chart)

        if lab is not None:
            self._open_lab_case(patient_id, lab.id, definition, treatment_date, record.notes)

        logger.info('Treatment %s recorded for patient %s (total %.2f)',
                    record.id, patient_id, record.total_treatment_cost)
        return record

    def update_treatment_record(self, record_id: int, data) -> TreatmentRecord:
        record = self.get_record(record_id)
        dentist_id, definition = self._require_dentist_and_definition(
            dict(data, treatment_definition_id=record.treatment_definition_id)
        )
        try:
            custom_price = float(data.get('custom_price'))
        except (TypeError, ValueError):
            raise ValueError('Price must be a number')
        split = reprice_treatment(definition, custom_price, record.inventory_items_used)

        record.dentist_id = dentist_id
        record.treatment_date = require_date(data.get('treatment_date') or record.treatment_date,
                                             'Treatment date')
        record.notes = (data.get('notes') or '').strip() or None
        if 'affected_teeth' in data:
            record.affected_teeth = _parse_teeth(data.get('affected_teeth'))
        record.doctor_share = split.doctor_share
        record.clinic_share = split.clinic_share
        record.total_treatment_cost = split.total_treatment_cost
        self.record_repo.update(record)
        return record

    def delete_treatment_record(self, record_id: int) -> TreatmentRecord:
        record = self.get_record(record_id)
        self.record_repo.delete(record_id)
        return record

    # ---- Helpers ----
    def _require_dentist_and_definition(self, data):
        try:
            dentist_id = int(data.get('dentist_id') or 0)
            definition_id = int(data.get('treatment_definition_id') or 0)
        except (TypeError, ValueError):
            raise ValueError('Select a dentist and a treatment')
        if not dentist_id or self.dentist_repo.get_by_id(dentist_id) is None:
            raise ValueError('Select a dentist and a treatment')
        definition = self.definition_repo.get_by_id(definition_id) if definition_id else None
        if definition is None:
            raise ValueError('Select a dentist and a treatment')
        return dentist_id, definition

    def _require_lab(self, lab_id):
        if not lab_id:
            return None
        try:
            lab = self.supplier_repo.get_by_id(int(lab_id))
        except (TypeError, ValueError):
            lab = None
        if lab is None or not lab.is_lab:
            raise ValueError('Selected lab is not a dental lab')
        return lab

    def _open_lab_case(self, patient_id, lab_id, definition, treatment_date, notes):
        sent = parse_date(treatment_date)
        due = sent + timedelta(days=current_app.config['LAB_CASE_TURNAROUND_DAYS'])
        case = LabCase(
            id=None,
            patient_id=patient_id,
            lab_id=lab_id,
            case_type=definition.name,
            sent_date=sent.isoformat(),
            due_date=due.isoformat(),
            status=LabCaseStatus.DRAFT,
            lab_cost=0.0,
            notes=notes,
        )
        case.id = self.lab_case_repo.create(case)
        return case
