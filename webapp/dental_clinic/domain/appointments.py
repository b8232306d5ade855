from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class AppointmentStatus(str, Enum):
    SCHEDULED = 'SCHEDULED'
    CONFIRMED = 'CONFIRMED'
    COMPLETED = 'COMPLETED'
    CANCELLED = 'CANCELLED'


REMINDER_CHOICES = ('none', '1_hour_before', '2_hours_before', '1_day_before')


@dataclass
class Appointment:
    id: Optional[int]
    patient_id: int
    dentist_id: int
    start_time: datetime
    end_time: datetime
    reason: Optional[str] = None
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    reminder_time: str = 'none'
    reminder_sent: bool = False
    created_by: Optional[str] = None

    @property
    def duration_minutes(self):
        return int((self.end_time - self.start_time).total_seconds() // 60)
