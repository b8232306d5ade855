"""
Activity Logger Service
Audit trail of user actions: who did what, to which record, and when.
"""
import logging

from flask import g, has_request_context, request

from dental_clinic.adapters.sqlite.core import get_db
from dental_clinic.common.utils import clinic_now

logger = logging.getLogger(__name__)


class ActionType:
    # auth
    LOGIN = 'login'
    LOGOUT = 'logout'

    # patients
    PATIENT_CREATE = 'patient_create'
    PATIENT_UPDATE = 'patient_update'
    PATIENT_DELETE = 'patient_delete'
    CHART_UPDATE = 'chart_update'
    ATTACHMENT_UPLOAD = 'attachment_upload'
    ATTACHMENT_DELETE = 'attachment_delete'

    # treatments
    TREATMENT_ADD = 'treatment_add'
    TREATMENT_UPDATE = 'treatment_update'
    TREATMENT_DELETE = 'treatment_delete'
    DEFINITION_SAVE = 'definition_save'
    DEFINITION_DELETE = 'definition_delete'

    # billing
    PAYMENT_ADD = 'payment_add'
    PAYMENT_UPDATE = 'payment_update'
    PAYMENT_DELETE = 'payment_delete'
    DISCOUNT_APPROVED = 'discount_approved'
    DISCOUNT_REJECTED = 'discount_rejected'
    DOCTOR_PAYMENT_ADD = 'doctor_payment_add'

    # suppliers, inventory, labs
    SUPPLIER_SAVE = 'supplier_save'
    SUPPLIER_DELETE = 'supplier_delete'
    INVOICE_SAVE = 'invoice_save'
    INVOICE_PAY = 'invoice_pay'
    EXPENSE_SAVE = 'expense_save'
    EXPENSE_DELETE = 'expense_delete'
    INVENTORY_SAVE = 'inventory_save'
    INVENTORY_DELETE = 'inventory_delete'
    LAB_CASE_SAVE = 'lab_case_save'
    LAB_CASE_DELETE = 'lab_case_delete'

    # scheduler
    APPOINTMENT_SAVE = 'appointment_save'
    APPOINTMENT_DELETE = 'appointment_delete'

    # prescriptions
    PRESCRIPTION_SAVE = 'prescription_save'
    PRESCRIPTION_DELETE = 'prescription_delete'

    # printing and export
    PRINT_REPORT = 'print_report'
    EXPORT_CSV = 'export_csv'


class ActionCategory:
    AUTH = 'auth'
    PATIENT = 'patient'
    TREATMENT = 'treatment'
    BILLING = 'billing'
    SUPPLIER = 'supplier'
    INVENTORY = 'inventory'
    LAB = 'lab'
    SCHEDULER = 'scheduler'
    PRESCRIPTION = 'prescription'
    PRINT = 'print'


ACTION_DESCRIPTIONS = {
    ActionType.LOGIN: 'Signed in',
    ActionType.LOGOUT: 'Signed out',
    ActionType.PATIENT_CREATE: 'Added patient',
    ActionType.PATIENT_UPDATE: 'Edited patient',
    ActionType.PATIENT_DELETE: 'Deleted patient',
    ActionType.CHART_UPDATE: 'Updated dental chart',
    ActionType.TREATMENT_ADD: 'Recorded treatment',
    ActionType.PAYMENT_ADD: 'Recorded payment',
    ActionType.DISCOUNT_APPROVED: 'Approved discount',
    ActionType.DISCOUNT_REJECTED: 'Rejected discount (wrong approval code)',
    ActionType.INVOICE_PAY: 'Paid supplier invoice',
    ActionType.EXPORT_CSV: 'Exported data',
}


def log_activity(
    action_type: str,
    action_category: str,
    description: str = None,
    target_type: str = None,
    target_id: int = None,
    patient_id: int = None,
    amount: float = 0,
    old_value: str = None,
    new_value: str = None,
    user_id: int = None,
    username: str = None
):
    """Write one row to ``activity_logs``.

    The acting user defaults to ``g.user``. Failures are logged and never
    propagate: auditing must not break the action being audited.
    """
    try:
        db = get_db()

        if user_id is None and g.get('user'):
            user_id = g.user['id']
            username = g.user['username']

        if user_id is None:
            user_id = 0
            username = 'system'

        if description is None:
            description = ACTION_DESCRIPTIONS.get(action_type, action_type)

        ip_address = None
        user_agent = None
        if has_request_context():
            ip_address = request.remote_addr
            user_agent = request.headers.get('User-Agent', '')[:200]

        created_at = clinic_now().strftime('%Y-%m-%d %H:%M:%S')

        db.execute("""
            INSERT INTO activity_logs (
                user_id, username, action_type, action_category, description,
                target_type, target_id, patient_id, amount, old_value, new_value,
                ip_address, user_agent, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            user_id, username, action_type, action_category, description,
            target_type, target_id, patient_id, amount, old_value, new_value,
            ip_address, user_agent, created_at
        ))
        db.commit()

    except Exception:
        logger.exception('Error logging activity %s', action_type)


def get_activity_logs(
    user_id: int = None,
    action_type: str = None,
    action_category: str = None,
    patient_id: int = None,
    date_from: str = None,
    date_to: str = None,
    limit: int = 100,
    offset: int = 0
) -> list:
    """List audit entries, newest first. Dates are inclusive 'YYYY-MM-DD'."""
    db = get_db()

    query = "SELECT * FROM activity_logs WHERE 1=1"
    params = []

    if user_id:
        query += " AND user_id = ?"
        params.append(user_id)

    if action_type:
        query += " AND action_type = ?"
        params.append(action_type)

    if action_category:
        query += " AND action_category = ?"
        params.append(action_category)

    if patient_id:
        query += " AND patient_id = ?"
        params.append(patient_id)

    if date_from:
        query += " AND created_at >= ?"
        params.append(f"{date_from} 00:00:00")

    if date_to:
        query += " AND created_at <= ?"
        params.append(f"{date_to} 23:59:59")

    query += " ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?"
    params.extend([limit, offset])

    rows = db.execute(query, params).fetchall()
    return [dict(row) for row in rows]
