from typing import List, Optional

from dental_clinic.adapters.sqlite.core import from_json, get_db, to_json
from dental_clinic.domain.suppliers import (
    InvoiceLine, InvoicePayment, Supplier, SupplierInvoice, SupplierInvoiceStatus, SupplierType,
)


class SupplierRepository:
    def list_all(self, supplier_type: Optional[SupplierType] = None) -> List[Supplier]:
        db = get_db()
        if supplier_type is None:
            rows = db.execute('SELECT * FROM suppliers ORDER BY name').fetchall()
        else:
            rows = db.execute(
                'SELECT * FROM suppliers WHERE type = ? ORDER BY name', (supplier_type.value,)
            ).fetchall()
        return [self._map_row(row) for row in rows]

    def get_by_id(self, supplier_id: int) -> Optional[Supplier]:
        db = get_db()
        row = db.execute('SELECT * FROM suppliers WHERE id = ?', (supplier_id,)).fetchone()
        return self._map_row(row) if row else None

    def create(self, supplier: Supplier) -> int:
        db = get_db()
        cursor = db.execute(
            'INSERT INTO suppliers (name, contact_person, phone, email, type) VALUES (?, ?, ?, ?, ?)',
            (supplier.name, supplier.contact_person, supplier.phone, supplier.email,
             supplier.type.value)
        )
        db.commit()
        return cursor.lastrowid

    def update(self, supplier: Supplier):
        db = get_db()
        db.execute(
            'UPDATE suppliers SET name=?, contact_person=?, phone=?, email=?, type=? WHERE id=?',
            (supplier.name, supplier.contact_person, supplier.phone, supplier.email,
             supplier.type.value, supplier.id)
        )
        db.commit()

    def delete(self, supplier_id: int):
        db = get_db()
        db.execute('DELETE FROM suppliers WHERE id = ?', (supplier_id,))
        db.commit()

    def _map_row(self, row) -> Supplier:
        return Supplier(
            id=row['id'],
            name=row['name'],
            contact_person=row['contact_person'],
            phone=row['phone'],
            email=row['email'],
            type=SupplierType(row['type']),
        )


class SupplierInvoiceRepository:
    def list_all(self) -> List[SupplierInvoice]:
        db = get_db()
        rows = db.execute('SELECT * FROM supplier_invoices ORDER BY invoice_date DESC, id DESC').fetchall()
        return [self._map_row(row) for row in rows]

    def list_by_supplier(self, supplier_id: int) -> List[SupplierInvoice]:
        db = get_db()
        rows = db.execute(
            'SELECT * FROM supplier_invoices WHERE supplier_id = ? ORDER BY invoice_date DESC, id DESC',
            (supplier_id,)
        ).fetchall()
        return [self._map_row(row) for row in rows]

    def get_by_id(self, invoice_id: int) -> Optional[SupplierInvoice]:
        db = get_db()
        row = db.execute('SELECT * FROM supplier_invoices WHERE id = ?', (invoice_id,)).fetchone()
        return self._map_row(row) if row else None

    def create(self, invoice: SupplierInvoice) -> int:
        db = get_db()
        cursor = db.execute(
            '''INSERT INTO supplier_invoices (
                supplier_id, invoice_number, invoice_date, due_date, amount, status,
                items, invoice_image_url, payments
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)''',
            (invoice.supplier_id, invoice.invoice_number, invoice.invoice_date,
             invoice.due_date, invoice.amount, invoice.status.value,
             to_json([line.to_dict() for line in invoice.items]),
             invoice.invoice_image_url,
             to_json([p.to_dict() for p in invoice.payments]))
        )
        db.commit()
        return cursor.lastrowid

    def update(self, invoice: SupplierInvoice):
        db = get_db()
        db.execute(
            '''UPDATE supplier_invoices SET
                invoice_number=?, invoice_date=?, due_date=?, amount=?, status=?,
                items=?, invoice_image_url=?, payments=?
               WHERE id=?''',
            (invoice.invoice_number, invoice.invoice_date, invoice.due_date,
             invoice.amount, invoice.status.value,
             to_json([line.to_dict() for line in invoice.items]),
             invoice.invoice_image_url,
             to_json([p.to_dict() for p in invoice.payments]),
             invoice.id)
        )
        db.commit()

    def delete(self, invoice_id: int):
        db = get_db()
        db.execute('DELETE FROM supplier_invoices WHERE id = ?', (invoice_id,))
        db.commit()

    def _map_row(self, row) -> SupplierInvoice:
        return SupplierInvoice(
            id=row['id'],
            supplier_id=row['supplier_id'],
            invoice_number=row['invoice_number'],
            invoice_date=row['invoice_date'],
            due_date=row['due_date'],
            amount=row['amount'],
            status=SupplierInvoiceStatus(row['status']),
            items=[
                InvoiceLine(description=i.get('description', ''), amount=i.get('amount', 0.0))
                for i in from_json(row['items'], [])
            ],
            invoice_image_url=row['invoice_image_url'],
            payments=[
                InvoicePayment(expense_id=p.get('expense_id'), amount=p.get('amount', 0.0),
                               date=p.get('date'))
                for p in from_json(row['payments'], [])
            ],
        )
