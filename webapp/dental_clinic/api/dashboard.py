from flask import Blueprint, current_app, g, render_template

from dental_clinic.adapters.sqlite.dentists_repo import DentistRepository
from dental_clinic.adapters.sqlite.patients_repo import PatientRepository
from dental_clinic.api.auth import login_required
from dental_clinic.common.utils import clinic_today
from dental_clinic.domain.user import UserRole
from dental_clinic.services.calendar_service import AppointmentService, hourly_slots
from dental_clinic.services.report_service import ReportService
from dental_clinic.services.supplier_service import SupplierService

bp = Blueprint('dashboard', __name__, url_prefix='/dashboard')


@bp.route('/')
@login_required
def index():
    """Today's agenda for everyone; money figures only for admins and doctors."""
    today = clinic_today()
    agenda = AppointmentService().agenda_for(today)
    summary = None
    if g.user['role'] in (UserRole.ADMIN, UserRole.DOCTOR):
        summary = ReportService().financial_summary()['summary']
    return render_template(
        'dashboard/index.html',
        today=today,
        slots=hourly_slots(agenda, current_app.config['WORK_START_HOUR'], current_app.config['WORK_END_HOUR']),
        patients={p.id: p.name for p in PatientRepository().list_all()},
        dentists={d.id: d.name for d in DentistRepository().list_all()},
        summary=summary,
        low_stock=SupplierService().list_inventory(low_stock_only=True),
    )
