from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional


class ToothStatus(str, Enum):
    HEALTHY = 'HEALTHY'
    FILLING = 'FILLING'
    CROWN = 'CROWN'
    MISSING = 'MISSING'
    IMPLANT = 'IMPLANT'
    ROOT_CANAL = 'ROOT_CANAL'
    CAVITY = 'CAVITY'


@dataclass
class Tooth:
    status: ToothStatus = ToothStatus.HEALTHY
    notes: str = ''

    def to_dict(self):
        return {'status': self.status.value, 'notes': self.notes}

    @classmethod
    def from_dict(cls, data) -> 'Tooth':
        data = data or {}
        try:
            status = ToothStatus(data.get('status') or ToothStatus.HEALTHY.value)
        except ValueError:
            status = ToothStatus.HEALTHY
        return cls(status=status, notes=data.get('notes') or '')


# Keyed by tooth position id, e.g. 'UR1', 'LL8'
DentalChartData = Dict[str, Tooth]


@dataclass
class Patient:
    id: Optional[int]
    name: str
    dob: Optional[str] = None
    gender: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    medical_history: Optional[str] = None
    treatment_notes: Optional[str] = None
    last_visit: Optional[str] = None
    allergies: Optional[str] = None
    medications: Optional[str] = None
    insurance_provider: Optional[str] = None
    insurance_policy_number: Optional[str] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None
    dental_chart: DentalChartData = field(default_factory=dict)
    created_at: Optional[str] = None


@dataclass
class PatientAttachment:
    id: Optional[int]
    patient_id: int
    filename: str
    original_filename: str
    file_type: Optional[str]
    file_size: int
    file_url: str
    description: Optional[str] = None
    uploaded_by: Optional[str] = None
    created_at: Optional[str] = None


@dataclass
class Dentist:
    id: Optional[int]
    name: str
    specialty: Optional[str] = None
    color: Optional[str] = None
