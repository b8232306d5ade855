from dataclasses import dataclass
from enum import Enum
from typing import Optional


class LabCaseStatus(str, Enum):
    DRAFT = 'DRAFT'
    SENT_TO_LAB = 'SENT_TO_LAB'
    RECEIVED_FROM_LAB = 'RECEIVED_FROM_LAB'
    FITTED_TO_PATIENT = 'FITTED_TO_PATIENT'
    CANCELLED = 'CANCELLED'


# Allowed forward moves; any non-final status may also be cancelled.
LAB_CASE_TRANSITIONS = {
    LabCaseStatus.DRAFT: {LabCaseStatus.SENT_TO_LAB},
    LabCaseStatus.SENT_TO_LAB: {LabCaseStatus.RECEIVED_FROM_LAB},
    LabCaseStatus.RECEIVED_FROM_LAB: {LabCaseStatus.FITTED_TO_PATIENT},
    LabCaseStatus.FITTED_TO_PATIENT: set(),
    LabCaseStatus.CANCELLED: set(),
}


@dataclass
class LabCase:
    id: Optional[int]
    patient_id: int
    lab_id: int
    case_type: str
    sent_date: str
    due_date: Optional[str] = None
    return_date: Optional[str] = None
    status: LabCaseStatus = LabCaseStatus.DRAFT
    lab_cost: float = 0.0
    notes: Optional[str] = None

    def can_move_to(self, new_status: LabCaseStatus) -> bool:
        if new_status == self.status:
            return True
        if new_status == LabCaseStatus.CANCELLED:
            return self.status not in (LabCaseStatus.FITTED_TO_PATIENT, LabCaseStatus.CANCELLED)
        return new_status in LAB_CASE_TRANSITIONS[self.status]
