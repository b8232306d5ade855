from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class SupplierType(str, Enum):
    MATERIAL_SUPPLIER = 'Material Supplier'
    DENTAL_LAB = 'Dental Lab'


@dataclass
class Supplier:
    id: Optional[int]
    name: str
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    type: SupplierType = SupplierType.MATERIAL_SUPPLIER

    @property
    def is_lab(self):
        return self.type == SupplierType.DENTAL_LAB


@dataclass
class InventoryItem:
    id: Optional[int]
    name: str
    unit_cost: float
    current_stock: float = 0
    min_stock_level: float = 0
    description: Optional[str] = None
    supplier_id: Optional[int] = None
    expiry_date: Optional[str] = None

    @property
    def is_low_stock(self):
        return self.current_stock <= self.min_stock_level


class ExpenseCategory(str, Enum):
    RENT = 'RENT'
    SALARIES = 'SALARIES'
    UTILITIES = 'UTILITIES'
    LAB_FEES = 'LAB_FEES'
    SUPPLIES = 'SUPPLIES'
    MARKETING = 'MARKETING'
    MISC = 'MISC'


@dataclass
class Expense:
    id: Optional[int]
    date: str
    description: str
    amount: float
    category: ExpenseCategory = ExpenseCategory.MISC
    supplier_id: Optional[int] = None
    supplier_invoice_id: Optional[int] = None


class SupplierInvoiceStatus(str, Enum):
    UNPAID = 'UNPAID'
    PAID = 'PAID'


@dataclass
class InvoiceLine:
    description: str
    amount: float

    def to_dict(self):
        return {'description': self.description, 'amount': self.amount}


@dataclass
class InvoicePayment:
    expense_id: int
    amount: float
    date: str

    def to_dict(self):
        return {'expense_id': self.expense_id, 'amount': self.amount, 'date': self.date}


@dataclass
class SupplierInvoice:
    id: Optional[int]
    supplier_id: int
    invoice_date: str
    amount: float
    invoice_number: Optional[str] = None
    due_date: Optional[str] = None
    status: SupplierInvoiceStatus = SupplierInvoiceStatus.UNPAID
    items: List[InvoiceLine] = field(default_factory=list)
    invoice_image_url: Optional[str] = None
    payments: List[InvoicePayment] = field(default_factory=list)
