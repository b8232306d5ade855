import pytest

from dental_clinic.domain.lab_cases import LabCase, LabCaseStatus
from dental_clinic.domain.payments import DoctorPayment, Payment, PaymentMethod
from dental_clinic.domain.suppliers import (
    Expense, InventoryItem, InvoicePayment, Supplier, SupplierInvoice, SupplierInvoiceStatus,
    SupplierType,
)
from dental_clinic.domain.treatments import InventoryUsage, TreatmentDefinition, TreatmentRecord
from dental_clinic.services import ledger


def _record(record_id=1, patient_id=1, dentist_id=1, doctor=600, clinic=300, date="2024-01-05"):
    return TreatmentRecord(
        id=record_id, patient_id=patient_id, dentist_id=dentist_id, treatment_date=date,
        treatment_definition_id=1, doctor_share=doctor, clinic_share=clinic,
        total_treatment_cost=doctor + clinic,
    )


def _payment(payment_id, amount, date="2024-01-10", patient_id=1, method=PaymentMethod.CASH, doctor_share=0):
    return Payment(id=payment_id, patient_id=patient_id, date=date, amount=amount, method=method,
                   doctor_share=doctor_share, clinic_share=amount - doctor_share)


FILLING = TreatmentDefinition(id=1, name="Composite filling", base_price=1000,
                              doctor_percentage=0.6, clinic_percentage=0.4)


def test_patient_ledger_counts_discounts_as_payments():
    summary = ledger.patient_ledger(
        [_record()],
        [_payment(1, 500), _payment(2, 100, method=PaymentMethod.DISCOUNT)],
    )
    assert summary.total_charges == 900
    assert summary.total_paid == 600
    assert summary.outstanding_balance == 300
    assert not summary.is_overpaid


def test_patient_ledger_overpaid_balance_is_negative():
    summary = ledger.patient_ledger([_record(doctor=60, clinic=40)], [_payment(1, 150)])
    assert summary.outstanding_balance == -50
    assert summary.is_overpaid


def test_outstanding_for_patient_ignores_other_patients():
    records = [_record(patient_id=1), _record(record_id=2, patient_id=2)]
    payments = [_payment(1, 100, patient_id=2)]
    assert ledger.outstanding_for_patient(1, records, payments) == 900
    assert ledger.outstanding_for_patient(2, records, payments) == 800


def test_treatment_split_takes_materials_from_clinic_share():
    inventory = [InventoryItem(id=7, name="Composite", unit_cost=50, current_stock=10)]
    split = ledger.compute_treatment_split(FILLING, [(7, 2)], inventory)
    assert split.doctor_share == 600
    assert split.clinic_share == 300
    assert split.material_cost == 100
    assert split.total_treatment_cost == 900
    assert split.items_used == [InventoryUsage(inventory_item_id=7, quantity=2, cost=100)]


def test_treatment_split_skips_unknown_items_and_empty_quantities():
    inventory = {7: InventoryItem(id=7, name="Composite", unit_cost=50)}
    split = ledger.compute_treatment_split(FILLING, [(7, 0), (99, 3)], inventory)
    assert split.items_used == []
    assert split.clinic_share == 400


def test_treatment_split_clinic_share_can_go_negative():
    inventory = [InventoryItem(id=7, name="Implant", unit_cost=500)]
    split = ledger.compute_treatment_split(FILLING, [(7, 1)], inventory)
    assert split.clinic_share == -100
    assert split.total_treatment_cost == 500


def test_reprice_keeps_material_cost():
    used = [InventoryUsage(inventory_item_id=7, quantity=2, cost=100)]
    split = ledger.reprice_treatment(FILLING, 1500, used)
    assert split.doctor_share == 900
    assert split.clinic_share == 500
    assert split.total_treatment_cost == 1400


@pytest.mark.parametrize("price", [0, -10, None])
def test_reprice_rejects_non_positive_price(price):
    with pytest.raises(ValueError):
        ledger.reprice_treatment(FILLING, price)


def test_split_payment():
    assert ledger.split_payment(500, 0.6) == (200, 300)
    assert ledger.split_payment(500, None) == (500, 0)


def test_duplicate_payment_detection():
    payments = [_payment(1, 200.0, date="2024-02-01")]
    assert ledger.is_duplicate_payment(payments, 1, "2024-02-01", 200)
    assert not ledger.is_duplicate_payment(payments, 1, "2024-02-02", 200)
    assert not ledger.is_duplicate_payment(payments, 2, "2024-02-01", 200)
    assert not ledger.is_duplicate_payment(payments, 1, "2024-02-01", 200, exclude_id=1)


def test_doctor_balance():
    records = [_record(dentist_id=1), _record(record_id=2, dentist_id=2, doctor=100)]
    paid = [DoctorPayment(id=1, dentist_id=1, amount=250, date="2024-01-20")]
    assert ledger.doctor_balance(1, records, paid) == ledger.DoctorBalance(600, 250, 350)
    assert ledger.is_duplicate_doctor_payment(paid, 1, "2024-01-20", 250)


def test_supplier_balance_counts_each_expense_once():
    invoice = SupplierInvoice(id=1, supplier_id=3, invoice_date="2024-01-01", amount=1000,
                              payments=[InvoicePayment(expense_id=10, amount=300, date="2024-01-02")])
    expenses = [
        Expense(id=10, date="2024-01-02", description="Invoice payment", amount=300,
                supplier_id=3, supplier_invoice_id=1),
        Expense(id=11, date="2024-01-03", description="Loose payment", amount=100, supplier_id=3),
        Expense(id=12, date="2024-01-03", description="Rent", amount=5000),
    ]
    assert ledger.invoice_balance(invoice) == 700
    assert ledger.supplier_balance(3, [invoice], expenses) == ledger.SupplierBalance(1000, 400, 600)


def test_lab_statement_skips_cancelled_and_out_of_range_cases():
    lab = Supplier(id=5, name="Smile Lab", type=SupplierType.DENTAL_LAB)
    cases = [
        LabCase(id=1, patient_id=1, lab_id=5, case_type="Crown", sent_date="2024-01-10", lab_cost=400),
        LabCase(id=2, patient_id=1, lab_id=5, case_type="Bridge", sent_date="2024-01-12",
                lab_cost=900, status=LabCaseStatus.CANCELLED),
        LabCase(id=3, patient_id=2, lab_id=5, case_type="Veneer", sent_date="2024-03-01", lab_cost=250),
    ]
    statement = ledger.lab_statement(lab, cases, "2024-01-01", "2024-01-31")
    assert [c.id for c in statement.cases] == [1]
    assert statement.total_cost == 400


def test_lab_statement_rejects_material_suppliers():
    supplier = Supplier(id=6, name="Cairo Supplies")
    with pytest.raises(ValueError):
        ledger.lab_statement(supplier, [])


def test_financial_summary():
    payments = [
        _payment(1, 500, date="2024-01-10", doctor_share=300),
        _payment(2, 100, date="2024-01-12", method=PaymentMethod.DISCOUNT),
    ]
    expenses = [Expense(id=1, date="2024-01-11", description="Gloves", amount=200)]
    doctor_payments = [DoctorPayment(id=1, dentist_id=1, amount=250, date="2024-01-15")]
    invoices = [
        SupplierInvoice(id=1, supplier_id=1, invoice_date="2024-01-03", amount=1000,
                        payments=[InvoicePayment(expense_id=9, amount=300, date="2024-01-04")]),
        SupplierInvoice(id=2, supplier_id=1, invoice_date="2024-01-03", amount=400,
                        status=SupplierInvoiceStatus.PAID),
    ]

    summary = ledger.financial_summary(payments, expenses, [_record()], doctor_payments, invoices)

    assert summary.total_revenue == 600
    assert summary.doctor_revenue == 300
    assert summary.clinic_revenue == 300
    assert summary.total_discounts == 100
    assert summary.operating_expenses == 200
    assert summary.doctor_payments == 250
    assert summary.supplier_invoices_paid == 400
    assert summary.supplier_invoices_unpaid == 700
    assert summary.total_treatment_charges == 900
    assert summary.accounts_receivable == 300
    assert summary.net_profit == 100
    assert summary.cash_flow == 400
    assert summary.total_assets == 700
    assert summary.total_liabilities == 700
    assert summary.equity == 100


def test_financial_summary_date_range_is_inclusive():
    payments = [_payment(1, 500, date="2024-01-10"), _payment(2, 100, date="2024-01-12")]
    summary = ledger.financial_summary(payments, [], [], start_date="2024-01-11", end_date="2024-01-12")
    assert summary.total_revenue == 100
