"""Printable documents, CSV exports and the financial overview."""
import csv
import io

from flask import Blueprint, abort, jsonify, make_response, render_template, request

from dental_clinic.adapters.sqlite.patients_repo import PatientRepository
from dental_clinic.api.auth import login_required, role_required
from dental_clinic.api.helpers import serialize
from dental_clinic.common.errors import NotFoundError
from dental_clinic.common.utils import clinic_now, parse_date
from dental_clinic.domain.user import UserRole
from dental_clinic.services.activity_logger import (
    ActionCategory, ActionType, get_activity_logs, log_activity,
)
from dental_clinic.services.report_service import ReportService
from dental_clinic.services.supplier_service import SupplierService

bp = Blueprint('reports', __name__, url_prefix='/reports')


def _period():
    start, end = request.args.get('start_date') or None, request.args.get('end_date') or None
    for value in (start, end):
        if value and parse_date(value) is None:
            abort(400, 'Invalid date')
    if start and end and parse_date(start) > parse_date(end):
        abort(400, 'Start date must be before end date')
    return start, end


def _render_print(template, document, patient_id=None, **context):
    log_activity(
        ActionType.PRINT_REPORT, ActionCategory.PRINT,
        description=f'Printed {document}', patient_id=patient_id,
    )
    return render_template(template, printed_at=clinic_now(), **context)


@bp.route('/patient/<int:patient_id>/invoice')
@login_required
def patient_invoice(patient_id: int):
    try:
        context = ReportService().patient_invoice(patient_id)
    except NotFoundError:
        abort(404)
    return _render_print('reports/patient_invoice.html', 'patient invoice', patient_id, **context)


@bp.route('/patient/<int:patient_id>/full')
@login_required
def patient_report(patient_id: int):
    try:
        context = ReportService().patient_full_report(patient_id)
    except NotFoundError:
        abort(404)
    return _render_print('reports/patient_report.html', 'patient report', patient_id, **context)


@bp.route('/prescription/<int:prescription_id>')
@login_required
def prescription(prescription_id: int):
    try:
        context = ReportService().prescription(prescription_id)
    except NotFoundError:
        abort(404)
    return _render_print(
        'reports/prescription.html', 'prescription', context['prescription'].patient_id, **context
    )


@bp.route('/supplier/<int:supplier_id>/statement')
@role_required(UserRole.ADMIN, UserRole.DOCTOR)
def supplier_statement(supplier_id: int):
    start, end = _period()
    try:
        context = SupplierService().statement(supplier_id, start, end)
    except NotFoundError:
        abort(404)
    return _render_print(
        'reports/supplier_statement.html', 'supplier statement',
        start_date=start, end_date=end, **context
    )


@bp.route('/lab/<int:lab_id>/statement')
@role_required(UserRole.ADMIN, UserRole.DOCTOR)
def lab_statement(lab_id: int):
    start, end = _period()
    try:
        statement = SupplierService().lab_statement(lab_id, start, end)
    except NotFoundError:
        abort(404)
    except ValueError as e:
        abort(400, str(e))
    return _render_print(
        'reports/lab_statement.html', 'lab statement',
        statement=statement, start_date=start, end_date=end,
        patients={p.id: p.name for p in PatientRepository().list_all()},
    )


@bp.route('/lab/<int:lab_id>/statement.json')
@role_required(UserRole.ADMIN, UserRole.DOCTOR)
def lab_statement_json(lab_id: int):
    start, end = _period()
    try:
        statement = SupplierService().lab_statement(lab_id, start, end)
    except NotFoundError as e:
        return jsonify({'error': str(e)}), 404
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    return jsonify(serialize(statement))


@bp.route('/financial')
@role_required(UserRole.ADMIN, UserRole.DOCTOR)
def financial():
    start, end = _period()
    context = ReportService().financial_summary(start, end)
    return _render_print('reports/financial_summary.html', 'financial summary', **context)


@bp.route('/financial.json')
@role_required(UserRole.ADMIN, UserRole.DOCTOR)
def financial_json():
    start, end = _period()
    context = ReportService().financial_summary(start, end)
    return jsonify({
        'summary': context['summary'].to_dict(),
        'doctor_accounts': [
            {'dentist': serialize(dentist), 'balance': serialize(balance)}
            for dentist, balance in context['doctor_accounts']
        ],
        'start_date': start,
        'end_date': end,
    })


# ---- CSV export ----

def _csv_response(filename, header, rows):
    output = io.StringIO()
    output.write('\ufeff')
    writer = csv.writer(output)
    writer.writerow(header)
    writer.writerows(rows)
    log_activity(
        ActionType.EXPORT_CSV, ActionCategory.PRINT,
        description=f'Exported {filename} ({len(rows)} rows)',
    )
    resp = make_response(output.getvalue())
    resp.headers['Content-Type'] = 'text/csv; charset=utf-8'
    resp.headers['Content-Disposition'] = f'attachment; filename="{filename}"'
    return resp


@bp.route('/export/payments.csv')
@role_required(UserRole.ADMIN, UserRole.DOCTOR)
def export_payments():
    start, end = _period()
    header, rows = ReportService().payments_export(start, end)
    return _csv_response('payments.csv', header, rows)


@bp.route('/export/expenses.csv')
@role_required(UserRole.ADMIN, UserRole.DOCTOR)
def export_expenses():
    start, end = _period()
    header, rows = ReportService().expenses_export(start, end)
    return _csv_response('expenses.csv', header, rows)


@bp.route('/export/financial.csv')
@role_required(UserRole.ADMIN, UserRole.DOCTOR)
def export_financial():
    start, end = _period()
    header, rows = ReportService().financial_export(start, end)
    return _csv_response('financial_summary.csv', header, rows)


@bp.route('/activity')
@role_required(UserRole.ADMIN)
def activity():
    logs = get_activity_logs(
        user_id=request.args.get('user_id', type=int),
        action_type=request.args.get('action_type'),
        action_category=request.args.get('action_category'),
        patient_id=request.args.get('patient_id', type=int),
        date_from=request.args.get('date_from'),
        date_to=request.args.get('date_to'),
        limit=min(request.args.get('limit', default=100, type=int), 500),
        offset=request.args.get('offset', default=0, type=int),
    )
    return jsonify({'logs': logs})
