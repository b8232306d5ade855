"""Assemble the data behind the printable views.

Each method returns a plain dict that the templates render as-is; nothing
is computed inside the templates themselves.
"""
from dental_clinic.adapters.sqlite.appointments_repo import AppointmentRepository
from dental_clinic.adapters.sqlite.dentists_repo import DentistRepository
from dental_clinic.adapters.sqlite.expenses_repo import ExpenseRepository
from dental_clinic.adapters.sqlite.lab_cases_repo import LabCaseRepository
from dental_clinic.adapters.sqlite.patients_repo import AttachmentRepository, PatientRepository
from dental_clinic.adapters.sqlite.payments_repo import DoctorPaymentRepository, PaymentRepository
from dental_clinic.adapters.sqlite.prescriptions_repo import PrescriptionRepository
from dental_clinic.adapters.sqlite.suppliers_repo import SupplierInvoiceRepository, SupplierRepository
from dental_clinic.adapters.sqlite.treatments_repo import (
    TreatmentDefinitionRepository, TreatmentRecordRepository,
)
from dental_clinic.common.errors import NotFoundError
from dental_clinic.common.utils import in_date_range
from dental_clinic.services.dental_chart import chart_summary, merge_with_defaults
from dental_clinic.services.ledger import doctor_balance, financial_summary, patient_ledger


class ReportService:
    def __init__(self, patient_repo=None, record_repo=None, definition_repo=None, payment_repo=None,
                 dentist_repo=None, doctor_payment_repo=None, expense_repo=None, invoice_repo=None,
                 supplier_repo=None, appointment_repo=None, prescription_repo=None,
                 lab_case_repo=None, attachment_repo=None):
        self.patient_repo = patient_repo or PatientRepository()
        self.record_repo = record_repo or TreatmentRecordRepository()
        self.definition_repo = definition_repo or TreatmentDefinitionRepository()
        self.payment_repo = payment_repo or PaymentRepository()
        self.dentist_repo = dentist_repo or DentistRepository()
        self.doctor_payment_repo = doctor_payment_repo or DoctorPaymentRepository()
        self.expense_repo = expense_repo or ExpenseRepository()
        self.invoice_repo = invoice_repo or SupplierInvoiceRepository()
        self.supplier_repo = supplier_repo or SupplierRepository()
        self.appointment_repo = appointment_repo or AppointmentRepository()
        self.prescription_repo = prescription_repo or PrescriptionRepository()
        self.lab_case_repo = lab_case_repo or LabCaseRepository()
        self.attachment_repo = attachment_repo or AttachmentRepository()

    def _names(self):
        definitions = {d.id: d.name for d in self.definition_repo.list_all()}
        dentists = {d.id: d.name for d in self.dentist_repo.list_all()}
        return definitions, dentists

    def patient_invoice(self, patient_id: int):
        patient = self.patient_repo.get_by_id(patient_id)
        if patient is None:
            raise NotFoundError('Patient not found')
        definitions, dentists = self._names()
        records = self.record_repo.list_by_patient(patient_id)
        payments = self.payment_repo.list_by_patient(patient_id)
        return {
            'patient': patient,
            'treatments': [
                {
                    'record': r,
                    'treatment_name': definitions.get(r.treatment_definition_id, 'Unknown treatment'),
                    'dentist_name': dentists.get(r.dentist_id, ''),
                    'charge': r.doctor_share + r.clinic_share,
                }
                for r in records
            ],
            'payments': sorted(payments, key=lambda p: (p.date, p.id)),
            'ledger': patient_ledger(records, payments),
        }

    def patient_full_report(self, patient_id: int):
        context = self.patient_invoice(patient_id)
        patient = context['patient']
        _, dentists = self._names()
        suppliers = {s.id: s.name for s in self.supplier_repo.list_all()}
        context.update({
            'chart': merge_with_defaults(patient.dental_chart),
            'chart_summary': chart_summary(patient.dental_chart),
            'appointments': [
                (a, dentists.get(a.dentist_id, '')) for a in self.appointment_repo.list_by_patient(patient_id)
            ],
            'prescriptions': [
                (p, dentists.get(p.dentist_id, '')) for p in self.prescription_repo.list_by_patient(patient_id)
            ],
            'lab_cases': [
                (c, suppliers.get(c.lab_id, '')) for c in self.lab_case_repo.list_by_patient(patient_id)
            ],
            'attachments': self.attachment_repo.list_by_patient(patient_id),
        })
        return context

    def prescription(self, prescription_id: int):
        prescription = self.prescription_repo.get_by_id(prescription_id)
        if prescription is None:
            raise NotFoundError('Prescription not found')
        dentist = self.dentist_repo.get_by_id(prescription.dentist_id)
        return {
            'prescription': prescription,
            'patient': self.patient_repo.get_by_id(prescription.patient_id),
            'dentist_name': dentist.name if dentist else '',
        }

    def doctor_accounts(self, start_date=None, end_date=None):
        records = [r for r in self.record_repo.list_all()
                   if in_date_range(r.treatment_date, start_date, end_date)]
        disbursements = [p for p in self.doctor_payment_repo.list_all()
                         if in_date_range(p.date, start_date, end_date)]
        return [
            (dentist, doctor_balance(dentist.id, records, disbursements))
            for dentist in self.dentist_repo.list_all()
        ]

    def financial_summary(self, start_date=None, end_date=None):
        summary = financial_summary(
            self.payment_repo.list_all(),
            self.expense_repo.list_all(),
            self.record_repo.list_all(),
            self.doctor_payment_repo.list_all(),
            self.invoice_repo.list_all(),
            start_date=start_date,
            end_date=end_date,
        )
        return {
            'summary': summary,
            'doctor_accounts': self.doctor_accounts(start_date, end_date),
            'start_date': start_date,
            'end_date': end_date,
        }

    # ---- Data export ----
    def payments_export(self, start_date=None, end_date=None):
        """Header and rows for the payments CSV (discounts included)."""
        patients = {p.id: p.name for p in self.patient_repo.list_all()}
        rows = [
            [p.id, p.date, patients.get(p.patient_id, ''), p.method.value, p.amount,
             p.doctor_share, p.clinic_share, p.treatment_record_id or '', p.notes or '']
            for p in self.payment_repo.list_all()
            if in_date_range(p.date, start_date, end_date)
        ]
        header = ['Payment', 'Date', 'Patient', 'Method', 'Amount', 'Doctor share',
                  'Clinic share', 'Treatment', 'Notes']
        return header, rows

    def expenses_export(self, start_date=None, end_date=None):
        suppliers = {s.id: s.name for s in self.supplier_repo.list_all()}
        expenses = sorted(
            (e for e in self.expense_repo.list_all() if in_date_range(e.date, start_date, end_date)),
            key=lambda e: (e.date or '', e.id or 0),
        )
        rows = [
            [e.id, e.date, e.category.value, e.description, e.amount,
             suppliers.get(e.supplier_id, ''), e.supplier_invoice_id or '']
            for e in expenses
        ]
        return ['Expense', 'Date', 'Category', 'Description', 'Amount', 'Supplier', 'Invoice'], rows

    def financial_export(self, start_date=None, end_date=None):
        summary = self.financial_summary(start_date, end_date)['summary']
        rows = [[name.replace('_', ' ').capitalize(), value] for name, value in summary.to_dict().items()]
        return ['Figure', 'Amount'], rows
