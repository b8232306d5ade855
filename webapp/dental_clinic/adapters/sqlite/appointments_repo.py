from datetime import date, timedelta
from typing import List, Optional

from dental_clinic.adapters.sqlite.core import get_db
from dental_clinic.common.utils import parse_datetime
from dental_clinic.domain.appointments import Appointment, AppointmentStatus

DATETIME_FMT = '%Y-%m-%d %H:%M:%S'


class AppointmentRepository:
    def list_all(self) -> List[Appointment]:
        db = get_db()
        rows = db.execute('SELECT * FROM appointments ORDER BY start_time').fetchall()
        return [self._map_row(row) for row in rows]

    def list_between(self, start: date, end: date) -> List[Appointment]:
        """Appointments starting on any day in [start, end]."""
        db = get_db()
        rows = db.execute(
            'SELECT * FROM appointments WHERE start_time >= ? AND start_time < ? ORDER BY start_time',
            (start.isoformat(), (end + timedelta(days=1)).isoformat())
        ).fetchall()
        return [self._map_row(row) for row in rows]

    def list_by_patient(self, patient_id: int) -> List[Appointment]:
        db = get_db()
        rows = db.execute(
            'SELECT * FROM appointments WHERE patient_id = ? ORDER BY start_time DESC',
            (patient_id,)
        ).fetchall()
        return [self._map_row(row) for row in rows]

    def get_by_id(self, appointment_id: int) -> Optional[Appointment]:
        db = get_db()
        row = db.execute('SELECT * FROM appointments WHERE id = ?', (appointment_id,)).fetchone()
        return self._map_row(row) if row else None

    def create(self, appointment: Appointment) -> int:
        db = get_db()
        cursor = db.execute(
            '''INSERT INTO appointments (
                patient_id, dentist_id, start_time, end_time, reason, status,
                reminder_time, reminder_sent, created_by
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)''',
            (appointment.patient_id, appointment.dentist_id,
             appointment.start_time.strftime(DATETIME_FMT),
             appointment.end_time.strftime(DATETIME_FMT),
             appointment.reason, appointment.status.value,
             appointment.reminder_time, 1 if appointment.reminder_sent else 0,
             appointment.created_by)
        )
        db.commit()
        return cursor.lastrowid

    def update(self, appointment: Appointment):
        db = get_db()
        db.execute(
            '''UPDATE appointments SET
                patient_id=?, dentist_id=?, start_time=?, end_time=?, reason=?,
                status=?, reminder_time=?, reminder_sent=?, updated_at=CURRENT_TIMESTAMP
               WHERE id=?''',
            (appointment.patient_id, appointment.dentist_id,
             appointment.start_time.strftime(DATETIME_FMT),
             appointment.end_time.strftime(DATETIME_FMT),
             appointment.reason, appointment.status.value,
             appointment.reminder_time, 1 if appointment.reminder_sent else 0,
             appointment.id)
        )
        db.commit()

    def delete(self, appointment_id: int):
        db = get_db()
        db.execute('DELETE FROM appointments WHERE id = ?', (appointment_id,))
        db.commit()

    def _map_row(self, row) -> Appointment:
        return Appointment(
            id=row['id'],
            patient_id=row['patient_id'],
            dentist_id=row['dentist_id'],
            start_time=parse_datetime(row['start_time']),
            end_time=parse_datetime(row['end_time']),
            reason=row['reason'],
            status=AppointmentStatus(row['status']),
            reminder_time=row['reminder_time'],
            reminder_sent=bool(row['reminder_sent']),
            created_by=row['created_by'],
        )
