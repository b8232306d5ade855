from typing import List, Optional

from dental_clinic.adapters.sqlite.core import from_json, get_db, to_json
from dental_clinic.domain.patients import Patient, PatientAttachment, Tooth

PATIENT_FIELDS = (
    'name', 'dob', 'gender', 'phone', 'email', 'address', 'medical_history',
    'treatment_notes', 'last_visit', 'allergies', 'medications',
    'insurance_provider', 'insurance_policy_number', 'emergency_contact_name',
    'emergency_contact_phone',
)


def chart_to_json(chart) -> str:
    return to_json({tooth_id: tooth.to_dict() for tooth_id, tooth in (chart or {}).items()})


class PatientRepository:
    def list_all(self) -> List[Patient]:
        db = get_db()
        rows = db.execute('SELECT * FROM patients ORDER BY name COLLATE NOCASE').fetchall()
        return [self._map_row(row) for row in rows]

    def get_by_id(self, patient_id: int) -> Optional[Patient]:
        db = get_db()
        row = db.execute(
            'SELECT * FROM patients WHERE id = ?', (patient_id,)
        ).fetchone()
        return self._map_row(row) if row else None

    def search(self, query: str) -> List[Patient]:
        db = get_db()
        rows = db.execute(
            'SELECT * FROM patients WHERE name LIKE ? OR phone LIKE ? OR email LIKE ? '
            'ORDER BY name COLLATE NOCASE',
            (f'%{query}%', f'%{query}%', f'%{query}%')
        ).fetchall()
        return [self._map_row(row) for row in rows]

    def create(self, patient: Patient) -> int:
        db = get_db()
        columns = ', '.join(PATIENT_FIELDS + ('dental_chart',))
        placeholders = ', '.join('?' for _ in range(len(PATIENT_FIELDS) + 1))
        cursor = db.execute(
            f'INSERT INTO patients ({columns}) VALUES ({placeholders})',
            tuple(getattr(patient, f) for f in PATIENT_FIELDS) + (chart_to_json(patient.dental_chart),)
        )
        db.commit()
        return cursor.lastrowid

    def update(self, patient: Patient):
        db = get_db()
        assignments = ', '.join(f'{f}=?' for f in PATIENT_FIELDS)
        db.execute(
            f'UPDATE patients SET {assignments}, dental_chart=?, updated_at=CURRENT_TIMESTAMP WHERE id=?',
            tuple(getattr(patient, f) for f in PATIENT_FIELDS)
            + (chart_to_json(patient.dental_chart), patient.id)
        )
        db.commit()

    def update_dental_chart(self, patient_id: int, chart):
        db = get_db()
        db.execute(
            'UPDATE patients SET dental_chart=?, updated_at=CURRENT_TIMESTAMP WHERE id=?',
            (chart_to_json(chart), patient_id)
        )
        db.commit()

    def set_last_visit(self, patient_id: int, visit_date: str):
        db = get_db()
        # Only move forward: back-dated treatments do not rewind the last visit
        db.execute(
            'UPDATE patients SET last_visit=? WHERE id=? AND (last_visit IS NULL OR last_visit < ?)',
            (visit_date, patient_id, visit_date)
        )
        db.commit()

    def delete(self, patient_id: int):
        db = get_db()
        db.execute('DELETE FROM patients WHERE id = ?', (patient_id,))
        db.commit()

    def _map_row(self, row) -> Patient:
        chart = {
            tooth_id: Tooth.from_dict(data)
            for tooth_id, data in from_json(row['dental_chart'], {}).items()
        }
        return Patient(
            id=row['id'],
            dental_chart=chart,
            created_at=row['created_at'],
            **{f: row[f] for f in PATIENT_FIELDS}
        )


class AttachmentRepository:
    def list_by_patient(self, patient_id: int) -> List[PatientAttachment]:
        db = get_db()
        rows = db.execute(
            'SELECT * FROM patient_attachments WHERE patient_id = ? ORDER BY created_at DESC, id DESC',
            (patient_id,)
        ).fetchall()
        return [self._map_row(row) for row in rows]

    def get_by_id(self, attachment_id: int) -> Optional[PatientAttachment]:
        db = get_db()
        row = db.execute(
            'SELECT * FROM patient_attachments WHERE id = ?', (attachment_id,)
        ).fetchone()
        return self._map_row(row) if row else None

    def create(self, attachment: PatientAttachment) -> int:
        db = get_db()
        cursor = db.execute(
            '''INSERT INTO patient_attachments (
                patient_id, filename, original_filename, file_type, file_size,
                file_url, description, uploaded_by
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)''',
            (attachment.patient_id, attachment.filename, attachment.original_filename,
             attachment.file_type, attachment.file_size, attachment.file_url,
             attachment.description, attachment.uploaded_by)
        )
        db.commit()
        return cursor.lastrowid

    def delete(self, attachment_id: int):
        db = get_db()
        db.execute('DELETE FROM patient_attachments WHERE id = ?', (attachment_id,))
        db.commit()

    def _map_row(self, row) -> PatientAttachment:
        return PatientAttachment(
            id=row['id'],
            patient_id=row['patient_id'],
            filename=row['filename'],
            original_filename=row['original_filename'],
            file_type=row['file_type'],
            file_size=row['file_size'],
            file_url=row['file_url'],
            description=row['description'],
            uploaded_by=row['uploaded_by'],
            created_at=row['created_at'],
        )
