import calendar
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional

from dental_clinic.adapters.sqlite.appointments_repo import AppointmentRepository
from dental_clinic.adapters.sqlite.dentists_repo import DentistRepository
from dental_clinic.adapters.sqlite.patients_repo import PatientRepository
from dental_clinic.common.errors import NotFoundError
from dental_clinic.common.utils import parse_datetime
from dental_clinic.domain.appointments import REMINDER_CHOICES, Appointment, AppointmentStatus


def day_agenda(appointments, day: date, dentist_id: Optional[int] = None,
               status: Optional[AppointmentStatus] = None) -> List[Appointment]:
    """Appointments starting on ``day``, optionally for one dentist/status, by start time."""
    agenda = [
        a for a in appointments
        if a.start_time.date() == day
        and (dentist_id is None or a.dentist_id == dentist_id)
        and (status is None or a.status == status)
    ]
    return sorted(agenda, key=lambda a: (a.start_time, a.id or 0))


def hourly_slots(agenda, work_start_hour: int, work_end_hour: int):
    """``[(hour, [appointments starting in that hour]), ...]`` over working hours."""
    if work_end_hour <= work_start_hour:
        return []
    by_hour = defaultdict(list)
    for appointment in agenda:
        by_hour[appointment.start_time.hour].append(appointment)
    return [(hour, by_hour.get(hour, [])) for hour in range(work_start_hour, work_end_hour)]


def appointments_by_day(appointments) -> Dict[date, List[Appointment]]:
    grouped = defaultdict(list)
    for appointment in sorted(appointments, key=lambda a: a.start_time):
        grouped[appointment.start_time.date()].append(appointment)
    return dict(grouped)


def month_grid(year: int, month: int, appointments):
    """Weeks (Sunday first) of ``{'date', 'in_month', 'count'}`` cells."""
    counts = {d: len(items) for d, items in appointments_by_day(appointments).items()}
    cal = calendar.Calendar(firstweekday=calendar.SUNDAY)
    return [
        [
            {'date': d, 'in_month': d.month == month, 'count': counts.get(d, 0)}
            for d in week
        ]
        for week in cal.monthdatescalendar(year, month)
    ]


class AppointmentService:
    def __init__(self, appointment_repo=None, patient_repo=None, dentist_repo=None):
        self.appointment_repo = appointment_repo or AppointmentRepository()
        self.patient_repo = patient_repo or PatientRepository()
        self.dentist_repo = dentist_repo or DentistRepository()

    def _build(self, data, appointment_id=None, created_by=None) -> Appointment:
        try:
            patient_id = int(data.get('patient_id') or 0)
            dentist_id = int(data.get('dentist_id') or 0)
        except (TypeError, ValueError):
            raise ValueError('Patient and dentist are required')
        if not patient_id or self.patient_repo.get_by_id(patient_id) is None:
            raise ValueError('Select a patient')
        if not dentist_id or self.dentist_repo.get_by_id(dentist_id) is None:
            raise ValueError('Select a dentist')

        start = parse_datetime(data.get('start_time'))
        if start is None:
            raise ValueError('Start time is missing or invalid')
        end = parse_datetime(data.get('end_time'))
        if end is None:
            end = start + timedelta(minutes=int(data.get('duration_minutes') or 30))
        if end <= start:
            raise ValueError('End time must be after start time')

        try:
            status = AppointmentStatus(data.get('status') or AppointmentStatus.SCHEDULED.value)
        except ValueError:
            raise ValueError('Unknown appointment status')

        reminder = data.get('reminder_time') or 'none'
        if reminder not in REMINDER_CHOICES:
            raise ValueError('Unknown reminder option')

        return Appointment(
            id=appointment_id,
            patient_id=patient_id,
            dentist_id=dentist_id,
            start_time=start,
            end_time=end,
            reason=(data.get('reason') or '').strip() or None,
            status=status,
            reminder_time=reminder,
            created_by=created_by,
        )

    def create(self, data, created_by=None) -> Appointment:
        appointment = self._build(data, created_by=created_by)
        appointment.id = self.appointment_repo.create(appointment)
        return appointment

    def update(self, appointment_id: int, data) -> Appointment:
        existing = self.appointment_repo.get_by_id(appointment_id)
        if existing is None:
            raise NotFoundError('Appointment not found')
        appointment = self._build(data, appointment_id, existing.created_by)
        # A rescheduled appointment needs a fresh reminder
        appointment.reminder_sent = existing.reminder_sent and existing.start_time == appointment.start_time
        self.appointment_repo.update(appointment)
        return appointment

    def set_status(self, appointment_id: int, status) -> Appointment:
        appointment = self.appointment_repo.get_by_id(appointment_id)
        if appointment is None:
            raise NotFoundError('Appointment not found')
        try:
            appointment.status = AppointmentStatus(status)
        except ValueError:
            raise ValueError('Unknown appointment status')
        self.appointment_repo.update(appointment)
        return appointment

    def delete(self, appointment_id: int):
        if self.appointment_repo.get_by_id(appointment_id) is None:
            raise NotFoundError('Appointment not found')
        self.appointment_repo.delete(appointment_id)

    def agenda_for(self, day: date, dentist_id=None, status=None):
        return day_agenda(self.appointment_repo.list_between(day, day), day, dentist_id, status)

    def month_view(self, year: int, month: int):
        first = date(year, month, 1)
        last = date(year, month, calendar.monthrange(year, month)[1])
        # include the leading/trailing days shown in the grid
        appointments = self.appointment_repo.list_between(first - timedelta(days=7), last + timedelta(days=7))
        return month_grid(year, month, appointments)

    def upcoming_for_patient(self, patient_id: int, now: datetime):
        return sorted(
            (a for a in self.appointment_repo.list_by_patient(patient_id)
             if a.start_time >= now and a.status != AppointmentStatus.CANCELLED),
            key=lambda a: a.start_time,
        )
