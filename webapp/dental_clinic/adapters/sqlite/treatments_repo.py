from typing import List, Optional

from dental_clinic.adapters.sqlite.core import from_json, get_db, to_json
from dental_clinic.domain.patients import ToothStatus
from dental_clinic.domain.treatments import InventoryUsage, TreatmentDefinition, TreatmentRecord


class TreatmentDefinitionRepository:
    def list_all(self) -> List[TreatmentDefinition]:
        db = get_db()
        rows = db.execute('SELECT * FROM treatment_definitions ORDER BY name').fetchall()
        return [self._map_row(row) for row in rows]

    def get_by_id(self, definition_id: int) -> Optional[TreatmentDefinition]:
        db = get_db()
        row = db.execute(
            'SELECT * FROM treatment_definitions WHERE id = ?', (definition_id,)
        ).fetchone()
        return self._map_row(row) if row else None

    def create(self, definition: TreatmentDefinition) -> int:
        db = get_db()
        cursor = db.execute(
            '''INSERT INTO treatment_definitions (
                name, description, base_price, doctor_percentage, clinic_percentage, tooth_status
            ) VALUES (?, ?, ?, ?, ?, ?)''',
            (definition.name, definition.description, definition.base_price,
             definition.doctor_percentage, definition.clinic_percentage,
             definition.tooth_status.value if definition.tooth_status else None)
        )
        db.commit()
        return cursor.lastrowid

    def update(self, definition: TreatmentDefinition):
        db = get_db()
        db.execute(
            '''UPDATE treatment_definitions SET
                name=?, description=?, base_price=?, doctor_percentage=?,
                clinic_percentage=?, tooth_status=?
               WHERE id=?''',
            (definition.name, definition.description, definition.base_price,
             definition.doctor_percentage, definition.clinic_percentage,
             definition.tooth_status.value if definition.tooth_status else None,
             definition.id)
        )
        db.commit()

    def delete(self, definition_id: int):
        db = get_db()
        db.execute('DELETE FROM treatment_definitions WHERE id = ?', (definition_id,))
        db.commit()

    def is_in_use(self, definition_id: int) -> bool:
        db = get_db()
        row = db.execute(
            'SELECT 1 FROM treatment_records WHERE treatment_definition_id = ? LIMIT 1',
            (definition_id,)
        ).fetchone()
        return row is not None

    def _map_row(self, row) -> TreatmentDefinition:
        return TreatmentDefinition(
            id=row['id'],
            name=row['name'],
            description=row['description'],
            base_price=row['base_price'],
            doctor_percentage=row['doctor_percentage'],
            clinic_percentage=row['clinic_percentage'],
            tooth_status=ToothStatus(row['tooth_status']) if row['tooth_status'] else None,
        )


class TreatmentRecordRepository:
    def list_all(self) -> List[TreatmentRecord]:
        db = get_db()
        rows = db.execute('SELECT * FROM treatment_records ORDER BY treatment_date, id').fetchall()
        return [self._map_row(row) for row in rows]

    def list_by_patient(self, patient_id: int) -> List[TreatmentRecord]:
        db = get_db()
        rows = db.execute(
            'SELECT * FROM treatment_records WHERE patient_id = ? ORDER BY treatment_date, id',
            (patient_id,)
        ).fetchall()
        return [self._map_row(row) for row in rows]

    def list_by_dentist(self, dentist_id: int) -> List[TreatmentRecord]:
        db = get_db()
        rows = db.execute(
            'SELECT * FROM treatment_records WHERE dentist_id = ? ORDER BY treatment_date, id',
            (dentist_id,)
        ).fetchall()
        return [self._map_row(row) for row in rows]

    def get_by_id(self, record_id: int) -> Optional[TreatmentRecord]:
        db = get_db()
        row = db.execute('SELECT * FROM treatment_records WHERE id = ?', (record_id,)).fetchone()
        return self._map_row(row) if row else None

    def create_with_consumption(self, record: TreatmentRecord) -> int:
        """Insert the record and decrement stock of every consumed item in one transaction."""
        db = get_db()
        with db:
            cursor = db.execute(
                '''INSERT INTO treatment_records (
                    patient_id, dentist_id, treatment_date, treatment_definition_id, notes,
                    inventory_items_used, doctor_share, clinic_share, total_treatment_cost,
                    affected_teeth
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)''',
                (record.patient_id, record.dentist_id, record.treatment_date,
                 record.treatment_definition_id, record.notes,
                 to_json([u.to_dict() for u in record.inventory_items_used]),
                 record.doctor_share, record.clinic_share, record.total_treatment_cost,
                 to_json(record.affected_teeth))
            )
            for usage in record.inventory_items_used:
                db.execute(
                    'UPDATE inventory_items SET current_stock = current_stock - ? WHERE id = ?',
                    (usage.quantity, usage.inventory_item_id)
                )
        return cursor.lastrowid

    def update(self, record: TreatmentRecord):
        db = get_db()
        db.execute(
            '''UPDATE treatment_records SET
                dentist_id=?, treatment_date=?, notes=?, doctor_share=?, clinic_share=?,
                total_treatment_cost=?, affected_teeth=?
               WHERE id=?''',
            (record.dentist_id, record.treatment_date, record.notes, record.doctor_share,
             record.clinic_share, record.total_treatment_cost,
             to_json(record.affected_teeth), record.id)
        )
        db.commit()

    def delete(self, record_id: int):
        db = get_db()
        db.execute('DELETE FROM treatment_records WHERE id = ?', (record_id,))
        db.commit()

    def _map_row(self, row) -> TreatmentRecord:
        usages = [
            InventoryUsage(
                inventory_item_id=u.get('inventory_item_id'),
                quantity=u.get('quantity', 0),
                cost=u.get('cost', 0.0),
            )
            for u in from_json(row['inventory_items_used'], [])
        ]
        return TreatmentRecord(
            id=row['id'],
            patient_id=row['patient_id'],
            dentist_id=row['dentist_id'],
            treatment_date=row['treatment_date'],
            treatment_definition_id=row['treatment_definition_id'],
            notes=row['notes'],
            inventory_items_used=usages,
            doctor_share=row['doctor_share'],
            clinic_share=row['clinic_share'],
            total_treatment_cost=row['total_treatment_cost'],
            affected_teeth=from_json(row['affected_teeth'], []),
        )
