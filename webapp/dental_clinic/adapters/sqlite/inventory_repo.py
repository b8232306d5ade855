from typing import List, Optional

from dental_clinic.adapters.sqlite.core import get_db
from dental_clinic.domain.suppliers import InventoryItem


class InventoryRepository:
    def list_all(self) -> List[InventoryItem]:
        db = get_db()
        rows = db.execute('SELECT * FROM inventory_items ORDER BY name').fetchall()
        return [self._map_row(row) for row in rows]

    def list_low_stock(self) -> List[InventoryItem]:
        db = get_db()
        rows = db.execute(
            'SELECT * FROM inventory_items WHERE current_stock <= min_stock_level ORDER BY name'
        ).fetchall()
        return [self._map_row(row) for row in rows]

    def get_by_id(self, item_id: int) -> Optional[InventoryItem]:
        db = get_db()
        row = db.execute('SELECT * FROM inventory_items WHERE id = ?', (item_id,)).fetchone()
        return self._map_row(row) if row else None

    def create(self, item: InventoryItem) -> int:
        db = get_db()
        cursor = db.execute(
            '''INSERT INTO inventory_items (
                name, description, supplier_id, current_stock, unit_cost, min_stock_level, expiry_date
            ) VALUES (?, ?, ?, ?, ?, ?, ?)''',
            (item.name, item.description, item.supplier_id, item.current_stock,
             item.unit_cost, item.min_stock_level, item.expiry_date)
        )
        db.commit()
        return cursor.lastrowid

    def update(self, item: InventoryItem):
        db = get_db()
        db.execute(
            '''UPDATE inventory_items SET
                name=?, description=?, supplier_id=?, current_stock=?, unit_cost=?,
                min_stock_level=?, expiry_date=?
               WHERE id=?''',
            (item.name, item.description, item.supplier_id, item.current_stock,
             item.unit_cost, item.min_stock_level, item.expiry_date, item.id)
        )
        db.commit()

    def delete(self, item_id: int):
        db = get_db()
        db.execute('DELETE FROM inventory_items WHERE id = ?', (item_id,))
        db.commit()

    def _map_row(self, row) -> InventoryItem:
        return InventoryItem(
            id=row['id'],
            name=row['name'],
            description=row['description'],
            supplier_id=row['supplier_id'],
            current_stock=row['current_stock'],
            unit_cost=row['unit_cost'],
            min_stock_level=row['min_stock_level'],
            expiry_date=row['expiry_date'],
        )
