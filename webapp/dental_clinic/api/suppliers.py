import json

from flask import Blueprint, jsonify, request

from dental_clinic.api.auth import login_required, role_required
from dental_clinic.api.helpers import confirmation_required, confirmed, json_errors, payload, serialize
from dental_clinic.domain.suppliers import SupplierType
from dental_clinic.domain.user import UserRole
from dental_clinic.services.activity_logger import ActionCategory, ActionType, log_activity
from dental_clinic.services.ledger import invoice_balance
from dental_clinic.services.supplier_service import SupplierService

bp = Blueprint('suppliers', __name__, url_prefix='/suppliers')

MANAGERS = (UserRole.ADMIN, UserRole.DOCTOR)


def _invoice_json(invoice):
    return dict(serialize(invoice), balance=invoice_balance(invoice))


# ---- Suppliers ----

@bp.route('/')
@login_required
@json_errors
def list_suppliers():
    supplier_type = request.args.get('type')
    service = SupplierService()
    suppliers = service.list_suppliers(SupplierType(supplier_type) if supplier_type else None)
    return jsonify({'suppliers': [
        dict(serialize(s), balance=serialize(service.balance(s.id))) for s in suppliers
    ]})


@bp.route('/', methods=['POST'])
@role_required(*MANAGERS)
@json_errors
def create_supplier():
    supplier = SupplierService().save_supplier(payload())
    log_activity(
        ActionType.SUPPLIER_SAVE, ActionCategory.SUPPLIER,
        description=f'Added supplier {supplier.name}',
        target_type='supplier', target_id=supplier.id,
    )
    return jsonify({'success': True, 'supplier': serialize(supplier)}), 201


@bp.route('/<int:supplier_id>/edit', methods=['POST'])
@role_required(*MANAGERS)
@json_errors
def update_supplier(supplier_id: int):
    supplier = SupplierService().save_supplier(payload(), supplier_id)
    log_activity(
        ActionType.SUPPLIER_SAVE, ActionCategory.SUPPLIER,
        target_type='supplier', target_id=supplier_id,
    )
    return jsonify({'success': True, 'supplier': serialize(supplier)})


@bp.route('/<int:supplier_id>/delete', methods=['POST'])
@role_required(UserRole.ADMIN)
@json_errors
def delete_supplier(supplier_id: int):
    if not confirmed():
        return confirmation_required()
    supplier = SupplierService().delete_supplier(supplier_id)
    log_activity(
        ActionType.SUPPLIER_DELETE, ActionCategory.SUPPLIER,
        description=f'Deleted supplier {supplier.name}',
        target_type='supplier', target_id=supplier_id,
    )
    return jsonify({'success': True})


@bp.route('/<int:supplier_id>/balance')
@login_required
@json_errors
def supplier_balance(supplier_id: int):
    return jsonify(serialize(SupplierService().balance(supplier_id)))


# ---- Invoices ----

def _invoice_payload():
    data = payload()
    items = data.get('items')
    if isinstance(items, str):
        try:
            data['items'] = json.loads(items) if items.strip() else []
        except ValueError:
            raise ValueError('Invoice lines could not be read')
    return data


@bp.route('/invoices')
@login_required
def list_invoices():
    invoices = SupplierService().list_invoices(request.args.get('supplier_id', type=int))
    return jsonify({'invoices': [_invoice_json(i) for i in invoices]})


@bp.route('/invoices', methods=['POST'])
@role_required(*MANAGERS)
@json_errors
def create_invoice():
    invoice = SupplierService().save_invoice(_invoice_payload(), scan=request.files.get('scan'))
    log_activity(
        ActionType.INVOICE_SAVE, ActionCategory.SUPPLIER,
        target_type='supplier_invoice', target_id=invoice.id, amount=invoice.amount,
    )
    return jsonify({'success': True, 'invoice': _invoice_json(invoice)}), 201


@bp.route('/invoices/<int:invoice_id>/edit', methods=['POST'])
@role_required(*MANAGERS)
@json_errors
def update_invoice(invoice_id: int):
    invoice = SupplierService().save_invoice(_invoice_payload(), invoice_id, scan=request.files.get('scan'))
    log_activity(
        ActionType.INVOICE_SAVE, ActionCategory.SUPPLIER,
        target_type='supplier_invoice', target_id=invoice_id, amount=invoice.amount,
    )
    return jsonify({'success': True, 'invoice': _invoice_json(invoice)})


@bp.route('/invoices/<int:invoice_id>/delete', methods=['POST'])
@role_required(UserRole.ADMIN)
@json_errors
def delete_invoice(invoice_id: int):
    if not confirmed():
        return confirmation_required()
    SupplierService().delete_invoice(invoice_id)
    return jsonify({'success': True})


@bp.route('/invoices/<int:invoice_id>/pay-remaining', methods=['POST'])
@role_required(*MANAGERS)
@json_errors
def pay_remaining(invoice_id: int):
    service = SupplierService()
    expense = service.pay_remaining(invoice_id, payload().get('date'))
    if expense is None:
        return jsonify({'success': True, 'paid': False, 'message': 'Invoice is already paid'})
    log_activity(
        ActionType.INVOICE_PAY, ActionCategory.SUPPLIER,
        target_type='supplier_invoice', target_id=invoice_id, amount=expense.amount,
    )
    return jsonify({
        'success': True,
        'paid': True,
        'expense': serialize(expense),
        'invoice': _invoice_json(service.get_invoice(invoice_id)),
    })


# ---- Expenses ----

@bp.route('/expenses')
@login_required
def list_expenses():
    expenses = SupplierService().list_expenses(request.args.get('start_date'), request.args.get('end_date'))
    return jsonify({'expenses': serialize(expenses)})


@bp.route('/expenses', methods=['POST'])
@role_required(*MANAGERS)
@json_errors
def create_expense():
    expense = SupplierService().save_expense(payload())
    log_activity(
        ActionType.EXPENSE_SAVE, ActionCategory.SUPPLIER,
        description=expense.description, target_type='expense', target_id=expense.id, amount=expense.amount,
    )
    return jsonify({'success': True, 'expense': serialize(expense)}), 201


@bp.route('/expenses/<int:expense_id>/edit', methods=['POST'])
@role_required(*MANAGERS)
@json_errors
def update_expense(expense_id: int):
    expense = SupplierService().save_expense(payload(), expense_id)
    log_activity(
        ActionType.EXPENSE_SAVE, ActionCategory.SUPPLIER,
        description=expense.description, target_type='expense', target_id=expense_id, amount=expense.amount,
    )
    return jsonify({'success': True, 'expense': serialize(expense)})


@bp.route('/expenses/<int:expense_id>/delete', methods=['POST'])
@role_required(UserRole.ADMIN)
@json_errors
def delete_expense(expense_id: int):
    if not confirmed():
        return confirmation_required()
    expense = SupplierService().delete_expense(expense_id)
    log_activity(
        ActionType.EXPENSE_DELETE, ActionCategory.SUPPLIER,
        description=expense.description, target_type='expense', target_id=expense_id, amount=expense.amount,
    )
    return jsonify({'success': True})


# ---- Inventory ----

@bp.route('/inventory')
@login_required
def list_inventory():
    low_only = request.args.get('low_stock') == '1'
    items = SupplierService().list_inventory(low_stock_only=low_only)
    return jsonify({'items': [dict(serialize(i), is_low_stock=i.is_low_stock) for i in items]})


@bp.route('/inventory', methods=['POST'])
@role_required(*MANAGERS)
@json_errors
def create_item():
    item = SupplierService().save_item(payload())
    log_activity(
        ActionType.INVENTORY_SAVE, ActionCategory.INVENTORY,
        description=f'Added {item.name}', target_type='inventory_item', target_id=item.id,
    )
    return jsonify({'success': True, 'item': serialize(item)}), 201


@bp.route('/inventory/<int:item_id>/edit', methods=['POST'])
@role_required(*MANAGERS)
@json_errors
def update_item(item_id: int):
    item = SupplierService().save_item(payload(), item_id)
    log_activity(
        ActionType.INVENTORY_SAVE, ActionCategory.INVENTORY,
        description=f'Edited {item.name}', target_type='inventory_item', target_id=item_id,
    )
    return jsonify({'success': True, 'item': serialize(item)})


@bp.route('/inventory/<int:item_id>/delete', methods=['POST'])
@role_required(UserRole.ADMIN)
@json_errors
def delete_item(item_id: int):
    if not confirmed():
        return confirmation_required()
    item = SupplierService().delete_item(item_id)
    log_activity(
        ActionType.INVENTORY_DELETE, ActionCategory.INVENTORY,
        description=f'Deleted {item.name}', target_type='inventory_item', target_id=item_id,
    )
    return jsonify({'success': True})


# ---- Lab cases ----

@bp.route('/lab-cases')
@login_required
def list_lab_cases():
    cases = SupplierService().list_lab_cases(
        lab_id=request.args.get('lab_id', type=int),
        patient_id=request.args.get('patient_id', type=int),
    )
    return jsonify({'lab_cases': serialize(cases)})


@bp.route('/lab-cases', methods=['POST'])
@login_required
@json_errors
def create_lab_case():
    case = SupplierService().save_lab_case(payload())
    log_activity(
        ActionType.LAB_CASE_SAVE, ActionCategory.LAB,
        description=f'Opened {case.case_type} lab case', target_type='lab_case', target_id=case.id,
        patient_id=case.patient_id, amount=case.lab_cost,
    )
    return jsonify({'success': True, 'lab_case': serialize(case)}), 201


@bp.route('/lab-cases/<int:case_id>/edit', methods=['POST'])
@login_required
@json_errors
def update_lab_case(case_id: int):
    case = SupplierService().save_lab_case(payload(), case_id)
    log_activity(
        ActionType.LAB_CASE_SAVE, ActionCategory.LAB,
        target_type='lab_case', target_id=case_id, patient_id=case.patient_id,
        new_value=case.status.value, amount=case.lab_cost,
    )
    return jsonify({'success': True, 'lab_case': serialize(case)})


@bp.route('/lab-cases/<int:case_id>/status', methods=['POST'])
@login_required
@json_errors
def move_lab_case(case_id: int):
    service = SupplierService()
    old_status = service.get_lab_case(case_id).status
    case = service.move_lab_case(case_id, payload().get('status'))
    log_activity(
        ActionType.LAB_CASE_SAVE, ActionCategory.LAB,
        target_type='lab_case', target_id=case_id, patient_id=case.patient_id,
        old_value=old_status.value, new_value=case.status.value,
    )
    return jsonify({'success': True, 'lab_case': serialize(case)})


@bp.route('/lab-cases/<int:case_id>/delete', methods=['POST'])
@role_required(*MANAGERS)
@json_errors
def delete_lab_case(case_id: int):
    if not confirmed():
        return confirmation_required()
    case = SupplierService().delete_lab_case(case_id)
    log_activity(
        ActionType.LAB_CASE_DELETE, ActionCategory.LAB,
        target_type='lab_case', target_id=case_id, patient_id=case.patient_id,
    )
    return jsonify({'success': True})
