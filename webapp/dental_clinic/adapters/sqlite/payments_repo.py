from typing import List, Optional

from dental_clinic.adapters.sqlite.core import get_db
from dental_clinic.domain.payments import DoctorPayment, Payment, PaymentMethod


class PaymentRepository:
    """Patient payments, discounts included."""

    def list_all(self) -> List[Payment]:
        db = get_db()
        rows = db.execute('SELECT * FROM payments ORDER BY date, id').fetchall()
        return [self._map_row(row) for row in rows]

    def list_by_patient(self, patient_id: int) -> List[Payment]:
        db = get_db()
        rows = db.execute(
            'SELECT * FROM payments WHERE patient_id = ? ORDER BY date, id', (patient_id,)
        ).fetchall()
        return [self._map_row(row) for row in rows]

    def get_by_id(self, payment_id: int) -> Optional[Payment]:
        db = get_db()
        row = db.execute('SELECT * FROM payments WHERE id = ?', (payment_id,)).fetchone()
        return self._map_row(row) if row else None

    def create(self, payment: Payment) -> int:
        db = get_db()
        cursor = db.execute(
            '''INSERT INTO payments (
                patient_id, date, amount, method, notes, treatment_record_id,
                clinic_share, doctor_share
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)''',
            (payment.patient_id, payment.date, payment.amount, payment.method.value,
             payment.notes, payment.treatment_record_id, payment.clinic_share,
             payment.doctor_share)
        )
        db.commit()
        return cursor.lastrowid

    def update(self, payment: Payment):
        db = get_db()
        db.execute(
            '''UPDATE payments SET
                date=?, amount=?, method=?, notes=?, treatment_record_id=?,
                clinic_share=?, doctor_share=?
               WHERE id=?''',
            (payment.date, payment.amount, payment.method.value, payment.notes,
             payment.treatment_record_id, payment.clinic_share, payment.doctor_share,
             payment.id)
        )
        db.commit()

    def delete(self, payment_id: int):
        db = get_db()
        db.execute('DELETE FROM payments WHERE id = ?', (payment_id,))
        db.commit()

    def _map_row(self, row) -> Payment:
        return Payment(
            id=row['id'],
            patient_id=row['patient_id'],
            date=row['date'],
            amount=row['amount'],
            method=PaymentMethod(row['method']),
            notes=row['notes'],
            treatment_record_id=row['treatment_record_id'],
            clinic_share=row['clinic_share'],
            doctor_share=row['doctor_share'],
        )


class DoctorPaymentRepository:
    """Disbursements to dentists against their accrued share."""

    def list_all(self) -> List[DoctorPayment]:
        db = get_db()
        rows = db.execute('SELECT * FROM doctor_payments ORDER BY date, id').fetchall()
        return [self._map_row(row) for row in rows]

    def list_by_dentist(self, dentist_id: int) -> List[DoctorPayment]:
        db = get_db()
        rows = db.execute(
            'SELECT * FROM doctor_payments WHERE dentist_id = ? ORDER BY date, id', (dentist_id,)
        ).fetchall()
        return [self._map_row(row) for row in rows]

    def get_by_id(self, payment_id: int) -> Optional[DoctorPayment]:
        db = get_db()
        row = db.execute('SELECT * FROM doctor_payments WHERE id = ?', (payment_id,)).fetchone()
        return self._map_row(row) if row else None

    def create(self, payment: DoctorPayment) -> int:
        db = get_db()
        cursor = db.execute(
            'INSERT INTO doctor_payments (dentist_id, amount, date, notes) VALUES (?, ?, ?, ?)',
            (payment.dentist_id, payment.amount, payment.date, payment.notes)
        )
        db.commit()
        return cursor.lastrowid

    def delete(self, payment_id: int):
        db = get_db()
        db.execute('DELETE FROM doctor_payments WHERE id = ?', (payment_id,))
        db.commit()

    def _map_row(self, row) -> DoctorPayment:
        return DoctorPayment(
            id=row['id'],
            dentist_id=row['dentist_id'],
            amount=row['amount'],
            date=row['date'],
            notes=row['notes'],
        )
