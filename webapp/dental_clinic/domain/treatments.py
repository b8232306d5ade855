from dataclasses import dataclass, field
from typing import List, Optional

from dental_clinic.domain.patients import ToothStatus


@dataclass
class TreatmentDefinition:
    """A priced service template.

    The two percentages are fractions of ``base_price``; they need not sum to 1
    because material costs come out of the clinic share.
    """
    id: Optional[int]
    name: str
    base_price: float
    doctor_percentage: float
    clinic_percentage: float
    description: Optional[str] = None
    # Chart status applied to affected teeth when this treatment is recorded
    tooth_status: Optional[ToothStatus] = None


@dataclass
class InventoryUsage:
    inventory_item_id: int
    quantity: float
    cost: float

    def to_dict(self):
        return {
            'inventory_item_id': self.inventory_item_id,
            'quantity': self.quantity,
            'cost': self.cost,
        }


@dataclass
class TreatmentRecord:
    id: Optional[int]
    patient_id: int
    dentist_id: int
    treatment_date: str
    treatment_definition_id: int
    doctor_share: float
    clinic_share: float
    total_treatment_cost: float
    notes: Optional[str] = None
    inventory_items_used: List[InventoryUsage] = field(default_factory=list)
    affected_teeth: List[str] = field(default_factory=list)

    @property
    def material_cost(self) -> float:
        return sum(item.cost for item in self.inventory_items_used)
