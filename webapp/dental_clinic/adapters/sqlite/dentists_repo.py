import sqlite3
from typing import List, Optional

from dental_clinic.adapters.sqlite.core import get_db
from dental_clinic.domain.patients import Dentist


class DentistRepository:
    def list_all(self) -> List[Dentist]:
        db = get_db()
        rows = db.execute('SELECT * FROM dentists ORDER BY name').fetchall()
        return [self._map_row(row) for row in rows]

    def get_by_id(self, dentist_id: int) -> Optional[Dentist]:
        db = get_db()
        row = db.execute('SELECT * FROM dentists WHERE id = ?', (dentist_id,)).fetchone()
        return self._map_row(row) if row else None

    def create(self, dentist: Dentist) -> int:
        db = get_db()
        cursor = db.execute(
            'INSERT INTO dentists (name, specialty, color) VALUES (?, ?, ?)',
            (dentist.name, dentist.specialty, dentist.color)
        )
        db.commit()
        return cursor.lastrowid

    def update(self, dentist: Dentist):
        db = get_db()
        db.execute(
            'UPDATE dentists SET name=?, specialty=?, color=? WHERE id=?',
            (dentist.name, dentist.specialty, dentist.color, dentist.id)
        )
        db.commit()

    def delete(self, dentist_id: int):
        db = get_db()
        try:
            db.execute('DELETE FROM dentists WHERE id = ?', (dentist_id,))
            db.commit()
        except sqlite3.IntegrityError:
            db.rollback()
            raise ValueError('This dentist has recorded work and cannot be deleted')

    def _map_row(self, row) -> Dentist:
        return Dentist(
            id=row['id'],
            name=row['name'],
            specialty=row['specialty'],
            color=row['color'],
        )
