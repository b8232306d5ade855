import logging
import math

from dental_clinic.adapters.sqlite.expenses_repo import ExpenseRepository
from dental_clinic.adapters.sqlite.inventory_repo import InventoryRepository
from dental_clinic.adapters.sqlite.lab_cases_repo import LabCaseRepository
from dental_clinic.adapters.sqlite.patients_repo import PatientRepository
from dental_clinic.adapters.sqlite.suppliers_repo import SupplierInvoiceRepository, SupplierRepository
from dental_clinic.adapters.storage import LocalFileStorage
from dental_clinic.common.errors import NotFoundError
from dental_clinic.common.utils import clinic_today, in_date_range, parse_date, to_money
from dental_clinic.common.validators import (
    require_date, require_past_or_today, require_positive_amount, require_text,
    validate_email, validate_phone,
)
from dental_clinic.domain.lab_cases import LabCase, LabCaseStatus
from dental_clinic.domain.suppliers import (
    Expense, ExpenseCategory, InventoryItem, InvoiceLine, Supplier, SupplierInvoice,
    SupplierInvoiceStatus, SupplierType,
)
from dental_clinic.services.ledger import invoice_balance, lab_statement, supplier_balance

logger = logging.getLogger(__name__)


def _optional_float(value, message, default=0.0):
    if value in (None, ''):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(message)
    if not math.isfinite(number):
        raise ValueError(f'{message} (finite values only)')
    return number


class SupplierService:
    """Suppliers and labs, their invoices, clinic expenses and inventory."""

    def __init__(self, supplier_repo=None, invoice_repo=None, expense_repo=None,
                 inventory_repo=None, lab_case_repo=None, patient_repo=None, storage=None):
        self.supplier_repo = supplier_repo or SupplierRepository()
        self.invoice_repo = invoice_repo or SupplierInvoiceRepository()
        self.expense_repo = expense_repo or ExpenseRepository()
        self.inventory_repo = inventory_repo or InventoryRepository()
        self.lab_case_repo = lab_case_repo or LabCaseRepository()
        self.patient_repo = patient_repo or PatientRepository()
        self.storage = storage or LocalFileStorage()

    # ---- Suppliers ----
    def list_suppliers(self, supplier_type=None):
        return self.supplier_repo.list_all(supplier_type)

    def get_supplier(self, supplier_id: int) -> Supplier:
        supplier = self.supplier_repo.get_by_id(supplier_id)
        if supplier is None:
            raise NotFoundError('Supplier not found')
        return supplier

    def save_supplier(self, data, supplier_id=None) -> Supplier:
        if supplier_id is not None:
            self.get_supplier(supplier_id)
        name = require_text(data.get('name'), 'Supplier name is required')
        phone = (data.get('phone') or '').strip()
        if phone and not validate_phone(phone):
            raise ValueError('Phone number is not valid')
        email = (data.get('email') or '').strip()
        if email and not validate_email(email):
            raise ValueError('Email address is not valid')
        try:
            supplier_type = SupplierType(data.get('type') or SupplierType.MATERIAL_SUPPLIER.value)
        except ValueError:
            raise ValueError('Unknown supplier type')

        supplier = Supplier(
            id=supplier_id,
            name=name,
            contact_person=(data.get('contact_person') or '').strip() or None,
            phone=phone or None,
            email=email or None,
            type=supplier_type,
        )
        if supplier_id is None:
            supplier.id = self.supplier_repo.create(supplier)
        else:
            self.supplier_repo.update(supplier)
        return supplier

    def delete_supplier(self, supplier_id: int) -> Supplier:
        supplier = self.get_supplier(supplier_id)
        if self.lab_case_repo.list_by_lab(supplier_id):
            raise ValueError('This lab has lab cases and cannot be deleted')
        self.supplier_repo.delete(supplier_id)
        return supplier

    def balance(self, supplier_id: int):
        self.get_supplier(supplier_id)
        return supplier_balance(supplier_id, self.invoice_repo.list_by_supplier(supplier_id),
                                self.expense_repo.list_all())

    def statement(self, supplier_id: int, start_date=None, end_date=None):
        """Invoices and payments for one supplier, as shown on the printed statement."""
        supplier = self.get_supplier(supplier_id)
        invoices = self.invoice_repo.list_by_supplier(supplier_id)
        expenses = self.expense_repo.list_all()
        referenced = {p.expense_id for inv in invoices for p in inv.payments}
        payments = [e for e in expenses if e.supplier_id == supplier_id or e.id in referenced]
        return {
            'supplier': supplier,
            'invoices': [(inv, invoice_balance(inv)) for inv in invoices
                         if in_date_range(inv.invoice_date, start_date, end_date)],
            'payments': [e for e in payments if in_date_range(e.date, start_date, end_date)],
            'balance': supplier_balance(supplier_id, invoices, expenses),
        }

    # ---- Supplier invoices ----
    def get_invoice(self, invoice_id: int) -> SupplierInvoice:
        invoice = self.invoice_repo.get_by_id(invoice_id)
        if invoice is None:
            raise NotFoundError('Invoice not found')
        return invoice

    def list_invoices(self, supplier_id=None):
        if supplier_id:
            return self.invoice_repo.list_by_supplier(supplier_id)
        return self.invoice_repo.list_all()

    def save_invoice(self, data, invoice_id=None, scan=None) -> SupplierInvoice:
        """Create or edit a supplier invoice.

        The amount defaults to the sum of the line items when not given.
        An optional scan (a werkzeug ``FileStorage``) is stored alongside.
        """
        existing = self.get_invoice(invoice_id) if invoice_id is not None else None
        supplier_id = int(data.get('supplier_id') or (existing.supplier_id if existing else 0))
        self.get_supplier(supplier_id)

        lines = []
        for raw in data.get('items') or []:
            description = (raw.get('description') or '').strip()
            if not description:
                raise ValueError('Each invoice line needs a description')
            lines.append(InvoiceLine(description, to_money(_optional_float(
                raw.get('amount'), 'Invoice line amounts must be numbers'))))

        amount = _optional_float(data.get('amount'), 'Invoice amount must be a number', default=None)
        if amount is None:
            amount = sum(line.amount for line in lines)
        amount = to_money(require_positive_amount(amount, 'Invoice amount must be greater than zero'))

        invoice_date = require_date(data.get('invoice_date'), 'Invoice date')
        due_date = (data.get('due_date') or '').strip() or None
        if due_date:
            due_date = require_date(due_date, 'Due date')
            if parse_date(due_date) < parse_date(invoice_date):
                raise ValueError('Due date cannot be before the invoice date')

        invoice = SupplierInvoice(
            id=invoice_id,
            supplier_id=supplier_id,
            invoice_date=invoice_date,
            amount=amount,
            invoice_number=(data.get('invoice_number') or '').strip() or None,
            due_date=due_date,
            items=lines,
            invoice_image_url=existing.invoice_image_url if existing else None,
            payments=existing.payments if existing else [],
        )
        invoice.status = (SupplierInvoiceStatus.PAID if invoice.payments and invoice_balance(invoice) <= 0
                          else SupplierInvoiceStatus.UNPAID)

        if scan is not None and scan.filename:
            _, invoice.invoice_image_url = self.storage.upload(
                f'invoices/{supplier_id}', scan.filename, scan.read())

        if invoice_id is None:
            invoice.id = self.invoice_repo.create(invoice)
        else:
            self.invoice_repo.update(invoice)
        return invoice

    def delete_invoice(self, invoice_id: int) -> SupplierInvoice:
        invoice = self.get_invoice(invoice_id)
        if invoice.payments:
            raise ValueError('This invoice has payments and cannot be deleted')
        self.invoice_repo.delete(invoice_id)
        return invoice

    def pay_remaining(self, invoice_id: int, payment_date=None):
        """Settle the whole remaining balance of an invoice with one expense.

        A fully paid invoice is left untouched and ``None`` is returned.
        """
        invoice = self.get_invoice(invoice_id)
        remaining = invoice_balance(invoice)
        if remaining <= 0:
            return None
        supplier = self.get_supplier(invoice.supplier_id)
        label = invoice.invoice_number or f'#{invoice.id}'
        expense = Expense(
            id=None,
            date=require_past_or_today(payment_date or clinic_today().isoformat(), 'Payment date'),
            description=f'Payment for invoice {label} ({supplier.name})',
            amount=remaining,
            category=ExpenseCategory.LAB_FEES if supplier.is_lab else ExpenseCategory.SUPPLIES,
            supplier_id=supplier.id,
            supplier_invoice_id=invoice.id,
        )
        expense.id = self.expense_repo.create(expense)
        logger.info('Invoice %s settled with expense %s (%.2f)', invoice.id, expense.id, remaining)
        return expense

    # ---- Expenses ----
    def list_expenses(self, start_date=None, end_date=None):
        return [e for e in self.expense_repo.list_all() if in_date_range(e.date, start_date, end_date)]

    def get_expense(self, expense_id: int) -> Expense:
        expense = self.expense_repo.get_by_id(expense_id)
        if expense is None:
            raise NotFoundError('Expense not found')
        return expense

    def save_expense(self, data, expense_id=None) -> Expense:
        existing = self.get_expense(expense_id) if expense_id is not None else None
        description = require_text(data.get('description'), 'Description is required')
        amount = to_money(require_positive_amount(data.get('amount')))
        date = require_past_or_today(data.get('date'), 'Expense date')
        try:
            category = ExpenseCategory(data.get('category') or ExpenseCategory.MISC.value)
        except ValueError:
            raise ValueError('Unknown expense category')

        supplier_id = data.get('supplier_id') or None
        if supplier_id:
            supplier_id = self.get_supplier(int(supplier_id)).id

        invoice_id = None
        if existing is not None:
            if existing.supplier_invoice_id and amount != existing.amount:
                raise ValueError('Amounts of invoice payments cannot be changed')
            invoice_id = existing.supplier_invoice_id
        elif data.get('supplier_invoice_id'):
            invoice = self.get_invoice(int(data.get('supplier_invoice_id')))
            remaining = invoice_balance(invoice)
            if amount > remaining:
                raise ValueError(f'Amount exceeds the invoice balance of {remaining:.2f}')
            invoice_id = invoice.id
            supplier_id = invoice.supplier_id

        expense = Expense(
            id=expense_id,
            date=date,
            description=description,
            amount=amount,
            category=category,
            supplier_id=supplier_id,
            supplier_invoice_id=invoice_id,
        )
        if expense_id is None:
            expense.id = self.expense_repo.create(expense)
        else:
            self.expense_repo.update(expense)
        return expense

    def delete_expense(self, expense_id: int) -> Expense:
        expense = self.get_expense(expense_id)
        if expense.supplier_invoice_id:
            invoice = self.invoice_repo.get_by_id(expense.supplier_invoice_id)
            if invoice is not None:
                invoice.payments = [p for p in invoice.payments if p.expense_id != expense_id]
                invoice.status = (SupplierInvoiceStatus.PAID
                                  if invoice.payments and invoice_balance(invoice) <= 0
                                  else SupplierInvoiceStatus.UNPAID)
                self.invoice_repo.update(invoice)
        self.expense_repo.delete(expense_id)
        return expense

    # ---- Inventory ----
    def list_inventory(self, low_stock_only=False):
        if low_stock_only:
            return self.inventory_repo.list_low_stock()
        return self.inventory_repo.list_all()

    def get_item(self, item_id: int) -> InventoryItem:
        item = self.inventory_repo.get_by_id(item_id)
        if item is None:
            raise NotFoundError('Inventory item not found')
        return item

    def save_item(self, data, item_id=None) -> InventoryItem:
        if item_id is not None:
            self.get_item(item_id)
        name = require_text(data.get('name'), 'Item name is required')
        unit_cost = _optional_float(data.get('unit_cost'), 'Unit cost must be a number')
        current_stock = _optional_float(data.get('current_stock'), 'Stock must be a number')
        min_stock = _optional_float(data.get('min_stock_level'), 'Minimum stock must be a number')
        if unit_cost < 0 or current_stock < 0 or min_stock < 0:
            raise ValueError('Cost and stock levels cannot be negative')
        supplier_id = data.get('supplier_id') or None
        if supplier_id:
            supplier_id = self.get_supplier(int(supplier_id)).id
        expiry = (data.get('expiry_date') or '').strip() or None
        if expiry:
            expiry = require_date(expiry, 'Expiry date')

        item = InventoryItem(
            id=item_id,
            name=name,
            unit_cost=to_money(unit_cost),
            current_stock=current_stock,
            min_stock_level=min_stock,
            description=(data.get('description') or '').strip() or None,
            supplier_id=supplier_id,
            expiry_date=expiry,
        )
        if item_id is None:
            item.id = self.inventory_repo.create(item)
        else:
            self.inventory_repo.update(item)
        return item

    def delete_item(self, item_id: int) -> InventoryItem:
        item = self.get_item(item_id)
        self.inventory_repo.delete(item_id)
        return item

    # ---- Lab cases ----
    def list_lab_cases(self, lab_id=None, patient_id=None):
        if lab_id:
            return self.lab_case_repo.list_by_lab(lab_id)
        if patient_id:
            return self.lab_case_repo.list_by_patient(patient_id)
        return self.lab_case_repo.list_all()

    def get_lab_case(self, case_id: int) -> LabCase:
        case = self.lab_case_repo.get_by_id(case_id)
        if case is None:
            raise NotFoundError('Lab case not found')
        return case

    def save_lab_case(self, data, case_id=None) -> LabCase:
        existing = self.get_lab_case(case_id) if case_id is not None else None
        patient_id = int(data.get('patient_id') or (existing.patient_id if existing else 0))
        if self.patient_repo.get_by_id(patient_id) is None:
            raise ValueError('Select a patient')
        lab = self.get_supplier(int(data.get('lab_id') or 0)) if data.get('lab_id') else None
        if lab is None or not lab.is_lab:
            raise ValueError('Select a dental lab')
        case_type = require_text(data.get('case_type'), 'Case type is required')
        sent_date = require_date(data.get('sent_date'), 'Sent date')
        due_date = (data.get('due_date') or '').strip() or None
        if due_date:
            due_date = require_date(due_date, 'Due date')
        return_date = (data.get('return_date') or '').strip() or None
        if return_date:
            return_date = require_date(return_date, 'Return date')
        lab_cost = _optional_float(data.get('lab_cost'), 'Lab cost must be a number')
        if lab_cost < 0:
            raise ValueError('Lab cost cannot be negative')

        try:
            status = LabCaseStatus(data.get('status') or
                                   (existing.status.value if existing else LabCaseStatus.DRAFT.value))
        except ValueError:
            raise ValueError('Unknown lab case status')
        if existing is not None and not existing.can_move_to(status):
            raise ValueError(f'A lab case cannot move from {existing.status.value} to {status.value}')
        if status == LabCaseStatus.RECEIVED_FROM_LAB and not return_date:
            return_date = clinic_today().isoformat()

        case = LabCase(
            id=case_id,
            patient_id=patient_id,
            lab_id=lab.id,
            case_type=case_type,
            sent_date=sent_date,
            due_date=due_date,
            return_date=return_date,
            status=status,
            lab_cost=to_money(lab_cost),
            notes=(data.get('notes') or '').strip() or None,
        )
        if case_id is None:
            case.id = self.lab_case_repo.create(case)
        else:
            self.lab_case_repo.update(case)
        return case

    def move_lab_case(self, case_id: int, new_status) -> LabCase:
        case = self.get_lab_case(case_id)
        try:
            new_status = LabCaseStatus(new_status)
        except ValueError:
            raise ValueError('Unknown lab case status')
        if not case.can_move_to(new_status):
            raise ValueError(f'A lab case cannot move from {case.status.value} to {new_status.value}')
        if new_status == LabCaseStatus.RECEIVED_FROM_LAB and not case.return_date:
            case.return_date = clinic_today().isoformat()
        case.status = new_status
        self.lab_case_repo.update(case)
        return case

    def delete_lab_case(self, case_id: int) -> LabCase:
        case = self.get_lab_case(case_id)
        self.lab_case_repo.delete(case_id)
        return case

    def lab_statement(self, lab_id: int, start_date=None, end_date=None):
        lab = self.get_supplier(lab_id)
        return lab_statement(lab, self.lab_case_repo.list_by_lab(lab_id), start_date, end_date)
