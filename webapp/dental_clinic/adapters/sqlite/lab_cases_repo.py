from typing import List, Optional

from dental_clinic.adapters.sqlite.core import get_db
from dental_clinic.domain.lab_cases import LabCase, LabCaseStatus


class LabCaseRepository:
    def list_all(self) -> List[LabCase]:
        db = get_db()
        rows = db.execute('SELECT * FROM lab_cases ORDER BY sent_date DESC, id DESC').fetchall()
        return [self._map_row(row) for row in rows]

    def list_by_lab(self, lab_id: int) -> List[LabCase]:
        db = get_db()
        rows = db.execute(
            'SELECT * FROM lab_cases WHERE lab_id = ? ORDER BY sent_date, id', (lab_id,)
        ).fetchall()
        return [self._map_row(row) for row in rows]

    def list_by_patient(self, patient_id: int) -> List[LabCase]:
        db = get_db()
        rows = db.execute(
            'SELECT * FROM lab_cases WHERE patient_id = ? ORDER BY sent_date, id', (patient_id,)
        ).fetchall()
        return [self._map_row(row) for row in rows]

    def get_by_id(self, case_id: int) -> Optional[LabCase]:
        db = get_db()
        row = db.execute('SELECT * FROM lab_cases WHERE id = ?', (case_id,)).fetchone()
        return self._map_row(row) if row else None

    def create(self, case: LabCase) -> int:
        db = get_db()
        cursor = db.execute(
            '''INSERT INTO lab_cases (
                patient_id, lab_id, case_type, sent_date, due_date, return_date,
                status, lab_cost, notes
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)''',
            (case.patient_id, case.lab_id, case.case_type, case.sent_date, case.due_date,
             case.return_date, case.status.value, case.lab_cost, case.notes)
        )
        db.commit()
        return cursor.lastrowid

    def update(self, case: LabCase):
        db = get_db()
        db.execute(
            '''UPDATE lab_cases SET
                lab_id=?, case_type=?, sent_date=?, due_date=?, return_date=?,
                status=?, lab_cost=?, notes=?
               WHERE id=?''',
            (case.lab_id, case.case_type, case.sent_date, case.due_date, case.return_date,
             case.status.value, case.lab_cost, case.notes, case.id)
        )
        db.commit()

    def delete(self, case_id: int):
        db = get_db()
        db.execute('DELETE FROM lab_cases WHERE id = ?', (case_id,))
        db.commit()

    def _map_row(self, row) -> LabCase:
        return LabCase(
            id=row['id'],
            patient_id=row['patient_id'],
            lab_id=row['lab_id'],
            case_type=row['case_type'],
            sent_date=row['sent_date'],
            due_date=row['due_date'],
            return_date=row['return_date'],
            status=LabCaseStatus(row['status']),
            lab_cost=row['lab_cost'],
            notes=row['notes'],
        )
