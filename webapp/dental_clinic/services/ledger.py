"""Money derivations over plain record lists.

Nothing here touches the database: callers pass the records in, so every
function is order independent and safe to call on any snapshot.
"""
import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from dental_clinic.common.utils import in_date_range, to_money
from dental_clinic.domain.lab_cases import LabCase, LabCaseStatus
from dental_clinic.domain.payments import DoctorPayment, Payment
from dental_clinic.domain.suppliers import (
    Expense, InventoryItem, Supplier, SupplierInvoice, SupplierInvoiceStatus,
)
from dental_clinic.domain.treatments import InventoryUsage, TreatmentDefinition, TreatmentRecord


# ---- Patient ledger ----

@dataclass
class LedgerSummary:
    total_charges: float
    total_paid: float
    outstanding_balance: float

    @property
    def is_overpaid(self) -> bool:
        return self.outstanding_balance < 0

    def to_dict(self):
        return {
            'total_charges': self.total_charges,
            'total_paid': self.total_paid,
            'outstanding_balance': self.outstanding_balance,
        }


def patient_ledger(treatment_records: Iterable[TreatmentRecord],
                   payments: Iterable[Payment]) -> LedgerSummary:
    """Charges, payments and balance for the records given.

    Charges are doctor share plus clinic share per treatment. Discounts are
    payments too, so they reduce the balance like cash does.
    """
    charges = sum(r.doctor_share + r.clinic_share for r in treatment_records)
    paid = sum(p.amount for p in payments)
    return LedgerSummary(
        total_charges=to_money(charges),
        total_paid=to_money(paid),
        outstanding_balance=to_money(charges - paid),
    )


def outstanding_for_patient(patient_id: int, treatment_records, payments) -> float:
    return patient_ledger(
        [r for r in treatment_records if r.patient_id == patient_id],
        [p for p in payments if p.patient_id == patient_id],
    ).outstanding_balance


# ---- Treatment cost split ----

@dataclass
class TreatmentSplit:
    doctor_share: float
    clinic_share: float
    material_cost: float
    total_treatment_cost: float
    items_used: List[InventoryUsage] = field(default_factory=list)


def compute_treatment_split(definition: TreatmentDefinition, selections, inventory) -> TreatmentSplit:
    """Price a new treatment.

    ``selections`` is an iterable of ``(inventory_item_id, quantity)``;
    ``inventory`` maps item id to :class:`InventoryItem` (or is a list of
    them). Unknown items and non-positive quantities are skipped. Material
    cost comes out of the clinic share, which may go negative.
    """
    if not isinstance(inventory, dict):
        inventory = {item.id: item for item in inventory}

    items_used = []
    for item_id, quantity in selections:
        item: Optional[InventoryItem] = inventory.get(item_id)
        if item is None or not quantity or quantity <= 0:
            continue
        items_used.append(InventoryUsage(
            inventory_item_id=item.id,
            quantity=quantity,
            cost=to_money(item.unit_cost * quantity),
        ))

    material_cost = to_money(sum(u.cost for u in items_used))
    doctor_share = to_money(definition.base_price * definition.doctor_percentage)
    clinic_share = to_money(definition.base_price * definition.clinic_percentage - material_cost)
    return TreatmentSplit(
        doctor_share=doctor_share,
        clinic_share=clinic_share,
        material_cost=material_cost,
        total_treatment_cost=to_money(doctor_share + clinic_share),
        items_used=items_used,
    )


def reprice_treatment(definition: TreatmentDefinition, custom_price: float,
                      items_used: Iterable[InventoryUsage] = ()) -> TreatmentSplit:
    """Recompute shares for an edited treatment at ``custom_price``.

    Materials already consumed are not re-consumed, but their cost is still
    taken out of the clinic share so that edits price the same way as
    creation.
    """
    if custom_price is None or not math.isfinite(custom_price) or custom_price <= 0:
        raise ValueError('Price must be greater than zero')
    items_used = list(items_used)
    material_cost = to_money(sum(u.cost for u in items_used))
    doctor_share = to_money(custom_price * definition.doctor_percentage)
    clinic_share = to_money(custom_price * definition.clinic_percentage - material_cost)
    return TreatmentSplit(
        doctor_share=doctor_share,
        clinic_share=clinic_share,
        material_cost=material_cost,
        total_treatment_cost=to_money(doctor_share + clinic_share),
        items_used=items_used,
    )


def split_payment(amount: float, doctor_percentage: float | None):
    """Return ``(clinic_share, doctor_share)`` of a received payment."""
    doctor = to_money(amount * (doctor_percentage or 0))
    return to_money(amount - doctor), doctor


# ---- Duplicate heuristics ----

def is_duplicate_payment(payments: Iterable[Payment], patient_id, date, amount, exclude_id=None) -> bool:
    return any(
        p.patient_id == patient_id and p.date == date
        and to_money(p.amount) == to_money(amount) and p.id != exclude_id
        for p in payments
    )


def is_duplicate_doctor_payment(doctor_payments: Iterable[DoctorPayment], dentist_id, date, amount) -> bool:
    return any(
        p.dentist_id == dentist_id and p.date == date and to_money(p.amount) == to_money(amount)
        for p in doctor_payments
    )


# ---- Doctor balance ----

@dataclass
class DoctorBalance:
    earned: float
    paid: float
    balance: float


def doctor_balance(dentist_id: int, treatment_records, doctor_payments) -> DoctorBalance:
    earned = sum(r.doctor_share for r in treatment_records if r.dentist_id == dentist_id)
    paid = sum(p.amount for p in doctor_payments if p.dentist_id == dentist_id)
    return DoctorBalance(to_money(earned), to_money(paid), to_money(earned - paid))


# ---- Suppliers and labs ----

def invoice_balance(invoice: SupplierInvoice) -> float:
    return to_money(invoice.amount - sum(p.amount for p in invoice.payments))


@dataclass
class SupplierBalance:
    total_billed: float
    total_paid: float
    outstanding: float


def supplier_balance(supplier_id: int, invoices: Iterable[SupplierInvoice],
                     expenses: Iterable[Expense]) -> SupplierBalance:
    """Billed vs paid for one supplier.

    An expense counts as paid to the supplier when it is tagged with the
    supplier or is referenced by one of the supplier's invoice payments.
    Each expense is counted once even when both apply.
    """
    own_invoices = [inv for inv in invoices if inv.supplier_id == supplier_id]
    billed = sum(inv.amount for inv in own_invoices)
    referenced = {p.expense_id for inv in own_invoices for p in inv.payments}
    paid = sum(
        e.amount for e in expenses
        if e.supplier_id == supplier_id or e.id in referenced
    )
    return SupplierBalance(to_money(billed), to_money(paid), to_money(billed - paid))


@dataclass
class LabStatement:
    lab: Supplier
    cases: List[LabCase]
    total_cost: float


def lab_statement(lab: Supplier, lab_cases: Iterable[LabCase], start_date=None, end_date=None) -> LabStatement:
    if not lab.is_lab:
        raise ValueError(f'{lab.name} is not a dental lab')
    cases = sorted(
        (c for c in lab_cases
         if c.lab_id == lab.id and c.status != LabCaseStatus.CANCELLED
         and in_date_range(c.sent_date, start_date, end_date)),
        key=lambda c: (c.sent_date or '', c.id or 0),
    )
    return LabStatement(lab=lab, cases=cases, total_cost=to_money(sum(c.lab_cost for c in cases)))


# ---- Clinic financial summary ----

@dataclass
class FinancialSummary:
    total_revenue: float
    doctor_revenue: float
    clinic_revenue: float
    total_discounts: float
    operating_expenses: float
    doctor_payments: float
    supplier_invoices_paid: float
    supplier_invoices_unpaid: float
    total_treatment_charges: float
    accounts_receivable: float
    net_profit: float
    cash_flow: float
    total_assets: float
    total_liabilities: float
    equity: float

    def to_dict(self):
        return dict(self.__dict__)


def financial_summary(payments, expenses, treatment_records, doctor_payments=(),
                      supplier_invoices=(), start_date=None, end_date=None) -> FinancialSummary:
    """Clinic-wide figures for an inclusive date range.

    Records without a date are kept whatever the range.
    """
    payments = [p for p in payments if in_date_range(p.date, start_date, end_date)]
    expenses = [e for e in expenses if in_date_range(e.date, start_date, end_date)]
    records = [r for r in treatment_records if in_date_range(r.treatment_date, start_date, end_date)]
    doctor_payments = [d for d in doctor_payments if in_date_range(d.date, start_date, end_date)]
    invoices = [i for i in supplier_invoices if in_date_range(i.invoice_date, start_date, end_date)]

    total_revenue = sum(p.amount for p in payments)
    doctor_revenue = sum(p.doctor_share for p in payments)
    clinic_revenue = total_revenue - doctor_revenue
    discounts = sum(p.amount for p in payments if p.is_discount)
    operating = sum(e.amount for e in expenses)
    paid_invoices = sum(i.amount for i in invoices if i.status == SupplierInvoiceStatus.PAID)
    unpaid_invoices = sum(invoice_balance(i) for i in invoices if i.status == SupplierInvoiceStatus.UNPAID)
    charges = sum(r.total_treatment_cost for r in records)
    receivable = charges - total_revenue
    net_profit = total_revenue - doctor_revenue - operating
    cash_flow = total_revenue - operating

    return FinancialSummary(
        total_revenue=to_money(total_revenue),
        doctor_revenue=to_money(doctor_revenue),
        clinic_revenue=to_money(clinic_revenue),
        total_discounts=to_money(discounts),
        operating_expenses=to_money(operating),
        doctor_payments=to_money(sum(d.amount for d in doctor_payments)),
        supplier_invoices_paid=to_money(paid_invoices),
        supplier_invoices_unpaid=to_money(unpaid_invoices),
        total_treatment_charges=to_money(charges),
        accounts_receivable=to_money(receivable),
        net_profit=to_money(net_profit),
        cash_flow=to_money(cash_flow),
        total_assets=to_money(cash_flow + receivable),
        total_liabilities=to_money(unpaid_invoices),
        equity=to_money(net_profit),
    )
