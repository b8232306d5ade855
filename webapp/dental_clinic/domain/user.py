from dataclasses import dataclass
from datetime import datetime
from typing import Optional


class UserRole:
    ADMIN = 'admin'
    DOCTOR = 'doctor'
    ASSISTANT = 'assistant'
    RECEPTIONIST = 'receptionist'

    ALL = (ADMIN, DOCTOR, ASSISTANT, RECEPTIONIST)
    CLINICAL = (ADMIN, DOCTOR, ASSISTANT)


@dataclass
class User:
    id: Optional[int]
    username: str
    role: str
    password_hash: bytes = b''
    full_name: Optional[str] = None
    is_active: bool = True
    failed_attempts: int = 0
    locked_until: Optional[str] = None
    last_login: Optional[str] = None
    created_at: Optional[str] = None

    @property
    def is_admin(self):
        return self.role == UserRole.ADMIN

    def is_locked(self, now: datetime) -> bool:
        if not self.locked_until:
            return False
        try:
            return now < datetime.fromisoformat(self.locked_until)
        except ValueError:
            return False
