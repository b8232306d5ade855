import io

import pytest

from dental_clinic.common.errors import NotFoundError
from dental_clinic.domain.lab_cases import LabCaseStatus
from dental_clinic.domain.suppliers import ExpenseCategory, SupplierInvoiceStatus
from dental_clinic.services.ledger import invoice_balance
from dental_clinic.services.supplier_service import SupplierService


@pytest.fixture
def invoice(clinic):
    return SupplierService().save_invoice({
        "supplier_id": clinic.supplier.id,
        "invoice_number": "INV-7",
        "invoice_date": "2024-02-01",
        "due_date": "2024-03-01",
        "items": [
            {"description": "Composite kit", "amount": 1500},
            {"description": "Bonding agent", "amount": 500},
        ],
    })


def test_invoice_amount_defaults_to_line_total(invoice):
    assert invoice.amount == 2000
    assert invoice.status == SupplierInvoiceStatus.UNPAID


def test_due_date_cannot_precede_invoice_date(clinic):
    with pytest.raises(ValueError):
        SupplierService().save_invoice({
            "supplier_id": clinic.supplier.id, "invoice_date": "2024-02-01",
            "due_date": "2024-01-01", "amount": 100,
        })


@pytest.mark.parametrize("amount", ["nan", "inf"])
def test_invoice_amount_must_be_finite(clinic, amount):
    with pytest.raises(ValueError, match="finite"):
        SupplierService().save_invoice({
            "supplier_id": clinic.supplier.id, "invoice_date": "2024-02-01", "amount": amount,
        })


def test_pay_remaining_settles_invoice_once(invoice):
    service = SupplierService()
    expense = service.pay_remaining(invoice.id, "2024-02-10")

    assert expense.amount == 2000
    assert expense.category == ExpenseCategory.SUPPLIES
    assert expense.supplier_invoice_id == invoice.id
    settled = service.get_invoice(invoice.id)
    assert settled.status == SupplierInvoiceStatus.PAID
    assert invoice_balance(settled) == 0

    assert service.pay_remaining(invoice.id) is None
    assert len(service.list_expenses()) == 1


def test_lab_invoice_payments_are_lab_fees(clinic):
    service = SupplierService()
    lab_invoice = service.save_invoice({"supplier_id": clinic.lab.id, "invoice_date": "2024-02-01",
                                        "amount": 800})
    assert service.pay_remaining(lab_invoice.id, "2024-02-02").category == ExpenseCategory.LAB_FEES


def test_partial_payment_then_delete_reopens_invoice(invoice, clinic):
    service = SupplierService()
    expense = service.save_expense({
        "description": "Part payment", "amount": 500, "date": "2024-02-05",
        "category": "SUPPLIES", "supplier_invoice_id": invoice.id,
    })
    assert invoice_balance(service.get_invoice(invoice.id)) == 1500
    assert service.balance(clinic.supplier.id).outstanding == 1500

    with pytest.raises(ValueError):
        service.save_expense({
            "description": "Too much", "amount": 1600, "date": "2024-02-06",
            "supplier_invoice_id": invoice.id,
        })

    service.delete_expense(expense.id)
    reopened = service.get_invoice(invoice.id)
    assert reopened.payments == []
    assert reopened.status == SupplierInvoiceStatus.UNPAID


def test_invoice_payment_amount_is_locked(invoice):
    service = SupplierService()
    expense = service.save_expense({
        "description": "Part payment", "amount": 500, "date": "2024-02-05",
        "supplier_invoice_id": invoice.id,
    })
    with pytest.raises(ValueError):
        service.save_expense({"description": "Part payment", "amount": 600, "date": "2024-02-05"},
                             expense.id)


def test_invoice_with_payments_cannot_be_deleted(invoice):
    service = SupplierService()
    service.pay_remaining(invoice.id, "2024-02-10")
    with pytest.raises(ValueError):
        service.delete_invoice(invoice.id)


def test_low_stock_listing(clinic):
    service = SupplierService()
    service.save_item({"name": "Gloves", "unit_cost": 1, "current_stock": 2, "min_stock_level": 5})
    assert [i.name for i in service.list_inventory(low_stock_only=True)] == ["Gloves"]


def test_inventory_numbers_must_be_finite(clinic):
    service = SupplierService()
    with pytest.raises(ValueError, match="finite"):
        service.save_item({"name": "Gloves", "unit_cost": "inf", "current_stock": 2})
    with pytest.raises(ValueError, match="finite"):
        service.save_item({"name": "Gloves", "unit_cost": 1, "current_stock": "nan"})


def test_lab_case_workflow(clinic):
    service = SupplierService()
    case = service.save_lab_case({
        "patient_id": clinic.patient.id, "lab_id": clinic.lab.id, "case_type": "Crown",
        "sent_date": "2024-02-01", "lab_cost": 400,
    })
    assert case.status == LabCaseStatus.DRAFT

    with pytest.raises(ValueError):
        service.move_lab_case(case.id, "RECEIVED_FROM_LAB")

    service.move_lab_case(case.id, "SENT_TO_LAB")
    received = service.move_lab_case(case.id, "RECEIVED_FROM_LAB")
    assert received.return_date is not None

    fitted = service.move_lab_case(case.id, "FITTED_TO_PATIENT")
    with pytest.raises(ValueError):
        service.move_lab_case(fitted.id, "CANCELLED")


def test_lab_cases_need_a_lab(clinic):
    with pytest.raises(ValueError):
        SupplierService().save_lab_case({
            "patient_id": clinic.patient.id, "lab_id": clinic.supplier.id,
            "case_type": "Crown", "sent_date": "2024-02-01",
        })


def test_lab_with_cases_cannot_be_deleted(clinic):
    service = SupplierService()
    service.save_lab_case({"patient_id": clinic.patient.id, "lab_id": clinic.lab.id,
                           "case_type": "Bridge", "sent_date": "2024-02-01"})
    with pytest.raises(ValueError):
        service.delete_supplier(clinic.lab.id)


def test_missing_supplier(ctx):
    with pytest.raises(NotFoundError):
        SupplierService().get_supplier(404)


def test_invoice_endpoints_with_scan(admin_client):
    supplier = admin_client.post("/suppliers/", json={"name": "Cairo Supplies"}).get_json()["supplier"]
    response = admin_client.post("/suppliers/invoices", data={
        "supplier_id": str(supplier["id"]),
        "invoice_date": "2024-02-01",
        "items": '[{"description": "Burs", "amount": 250}]',
        "scan": (io.BytesIO(b"%PDF-1.4 scan"), "invoice.pdf"),
    }, content_type="multipart/form-data")
    assert response.status_code == 201
    invoice = response.get_json()["invoice"]
    assert invoice["amount"] == 250
    assert invoice["balance"] == 250
    assert invoice["invoice_image_url"].startswith("/files/invoices/")

    scan = admin_client.get(invoice["invoice_image_url"])
    assert scan.status_code == 200
    assert scan.data == b"%PDF-1.4 scan"

    paid = admin_client.post(f"/suppliers/invoices/{invoice['id']}/pay-remaining", json={"date": "2024-02-02"})
    assert paid.get_json()["paid"] is True
    assert paid.get_json()["invoice"]["status"] == "PAID"

    again = admin_client.post(f"/suppliers/invoices/{invoice['id']}/pay-remaining", json={})
    assert again.status_code == 200
    assert again.get_json()["paid"] is False
