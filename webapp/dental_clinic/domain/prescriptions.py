from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class PrescriptionItem:
    medication_name: str
    quantity: int = 1
    dosage: Optional[str] = None
    instructions: Optional[str] = None
    id: Optional[int] = None
    prescription_id: Optional[int] = None


@dataclass
class Prescription:
    id: Optional[int]
    patient_id: int
    dentist_id: int
    prescription_date: str
    notes: Optional[str] = None
    items: List[PrescriptionItem] = field(default_factory=list)
    created_by: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
