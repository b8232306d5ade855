from typing import List, Optional

from dental_clinic.adapters.sqlite.core import get_db
from dental_clinic.domain.prescriptions import Prescription, PrescriptionItem


class PrescriptionRepository:
    """Prescriptions with their medication lines."""

    def list_all(self) -> List[Prescription]:
        db = get_db()
        rows = db.execute(
            'SELECT * FROM prescriptions ORDER BY prescription_date DESC, id DESC'
        ).fetchall()
        return [self._map_row(row) for row in rows]

    def list_by_patient(self, patient_id: int) -> List[Prescription]:
        db = get_db()
        rows = db.execute(
            'SELECT * FROM prescriptions WHERE patient_id = ? ORDER BY prescription_date DESC, id DESC',
            (patient_id,)
        ).fetchall()
        return [self._map_row(row) for row in rows]

    def get_by_id(self, prescription_id: int) -> Optional[Prescription]:
        db = get_db()
        row = db.execute('SELECT * FROM prescriptions WHERE id = ?', (prescription_id,)).fetchone()
        return self._map_row(row) if row else None

    def create(self, prescription: Prescription) -> int:
        db = get_db()
        with db:
            cursor = db.execute(
                '''INSERT INTO prescriptions (patient_id, dentist_id, prescription_date, notes, created_by)
                   VALUES (?, ?, ?, ?, ?)''',
                (prescription.patient_id, prescription.dentist_id,
                 prescription.prescription_date, prescription.notes, prescription.created_by)
            )
            prescription_id = cursor.lastrowid
            self._insert_items(db, prescription_id, prescription.items)
        return prescription_id

    def update(self, prescription: Prescription):
        """Replace the header fields and the full list of items."""
        db = get_db()
        with db:
            db.execute(
                '''UPDATE prescriptions SET
                    dentist_id=?, prescription_date=?, notes=?, updated_at=CURRENT_TIMESTAMP
                   WHERE id=?''',
                (prescription.dentist_id, prescription.prescription_date, prescription.notes,
                 prescription.id)
            )
            db.execute('DELETE FROM prescription_items WHERE prescription_id = ?', (prescription.id,))
            self._insert_items(db, prescription.id, prescription.items)

    def delete(self, prescription_id: int):
        db = get_db()
        with db:
            db.execute('DELETE FROM prescription_items WHERE prescription_id = ?', (prescription_id,))
            db.execute('DELETE FROM prescriptions WHERE id = ?', (prescription_id,))

    def _insert_items(self, db, prescription_id, items):
        for item in items:
            db.execute(
                '''INSERT INTO prescription_items (
                    prescription_id, medication_name, dosage, quantity, instructions
                ) VALUES (?, ?, ?, ?, ?)''',
                (prescription_id, item.medication_name, item.dosage, item.quantity,
                 item.instructions)
            )

    def _items_for(self, prescription_id) -> List[PrescriptionItem]:
        db = get_db()
        rows = db.execute(
            'SELECT * FROM prescription_items WHERE prescription_id = ? ORDER BY id',
            (prescription_id,)
        ).fetchall()
        return [
            PrescriptionItem(
                id=r['id'],
                prescription_id=r['prescription_id'],
                medication_name=r['medication_name'],
                dosage=r['dosage'],
                quantity=r['quantity'],
                instructions=r['instructions'],
            )
            for r in rows
        ]

    def _map_row(self, row) -> Prescription:
        return Prescription(
            id=row['id'],
            patient_id=row['patient_id'],
            dentist_id=row['dentist_id'],
            prescription_date=row['prescription_date'],
            notes=row['notes'],
            items=self._items_for(row['id']),
            created_by=row['created_by'],
            created_at=row['created_at'],
            updated_at=row['updated_at'],
        )
