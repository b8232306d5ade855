from dataclasses import dataclass
from enum import Enum
from typing import Optional


class PaymentMethod(str, Enum):
    CASH = 'Cash'
    CREDIT_CARD = 'Credit Card'
    BANK_TRANSFER = 'Bank Transfer'
    OTHER = 'Other'
    # A balance write-down, not cash received
    DISCOUNT = 'Discount'


@dataclass
class Payment:
    id: Optional[int]
    patient_id: int
    date: str
    amount: float
    method: PaymentMethod = PaymentMethod.CASH
    notes: Optional[str] = None
    treatment_record_id: Optional[int] = None
    clinic_share: float = 0.0
    doctor_share: float = 0.0

    @property
    def is_discount(self):
        return self.method == PaymentMethod.DISCOUNT


@dataclass
class DoctorPayment:
    id: Optional[int]
    dentist_id: int
    amount: float
    date: str
    notes: Optional[str] = None
