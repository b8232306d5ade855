from typing import List, Optional

from dental_clinic.adapters.sqlite.core import from_json, get_db, to_json
from dental_clinic.domain.suppliers import Expense, ExpenseCategory


class ExpenseRepository:
    def list_all(self) -> List[Expense]:
        db = get_db()
        rows = db.execute('SELECT * FROM expenses ORDER BY date DESC, id DESC').fetchall()
        return [self._map_row(row) for row in rows]

    def get_by_id(self, expense_id: int) -> Optional[Expense]:
        db = get_db()
        row = db.execute('SELECT * FROM expenses WHERE id = ?', (expense_id,)).fetchone()
        return self._map_row(row) if row else None

    def create(self, expense: Expense) -> int:
        """Insert an expense.

        When the expense settles a supplier invoice, the payment entry is
        appended to that invoice in the same transaction, and the invoice is
        marked PAID once nothing remains.
        """
        db = get_db()
        with db:
            cursor = db.execute(
                '''INSERT INTO expenses (
                    date, description, amount, category, supplier_id, supplier_invoice_id
                ) VALUES (?, ?, ?, ?, ?, ?)''',
                (expense.date, expense.description, expense.amount, expense.category.value,
                 expense.supplier_id, expense.supplier_invoice_id)
            )
            expense_id = cursor.lastrowid
            if expense.supplier_invoice_id:
                row = db.execute(
                    'SELECT amount, payments FROM supplier_invoices WHERE id = ?',
                    (expense.supplier_invoice_id,)
                ).fetchone()
                if row is not None:
                    payments = from_json(row['payments'], [])
                    payments.append({'expense_id': expense_id, 'amount': expense.amount,
                                     'date': expense.date})
                    paid = sum(p.get('amount', 0) for p in payments)
                    status = 'PAID' if round(row['amount'] - paid, 2) <= 0 else 'UNPAID'
                    db.execute(
                        'UPDATE supplier_invoices SET payments = ?, status = ? WHERE id = ?',
                        (to_json(payments), status, expense.supplier_invoice_id)
                    )
        return expense_id

    def update(self, expense: Expense):
        db = get_db()
        db.execute(
            '''UPDATE expenses SET
                date=?, description=?, amount=?, category=?, supplier_id=?
               WHERE id=?''',
            (expense.date, expense.description, expense.amount, expense.category.value,
             expense.supplier_id, expense.id)
        )
        db.commit()

    def delete(self, expense_id: int):
        db = get_db()
        db.execute('DELETE FROM expenses WHERE id = ?', (expense_id,))
        db.commit()

    def _map_row(self, row) -> Expense:
        return Expense(
            id=row['id'],
            date=row['date'],
            description=row['description'],
            amount=row['amount'],
            category=ExpenseCategory(row['category']),
            supplier_id=row['supplier_id'],
            supplier_invoice_id=row['supplier_invoice_id'],
        )
