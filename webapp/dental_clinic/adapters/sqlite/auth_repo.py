import logging
import sqlite3
from typing import List, Optional

from dental_clinic.adapters.sqlite.core import get_db
from dental_clinic.domain.user import User

logger = logging.getLogger(__name__)


def _as_bytes(value) -> bytes:
    if isinstance(value, str):
        return value.encode('utf-8')
    return value or b''


class AuthRepository:
    """Staff accounts and their login bookkeeping."""

    def _map_row(self, row) -> User:
        return User(
            id=row['id'],
            username=row['username'],
            role=row['role'],
            password_hash=_as_bytes(row['password_hash']),
            full_name=row['full_name'],
            is_active=bool(row['is_active']),
            failed_attempts=row['failed_attempts'] or 0,
            locked_until=row['locked_until'],
            last_login=row['last_login'],
            created_at=row['created_at'],
        )

    def get_by_username(self, username: str) -> Optional[User]:
        row = get_db().execute("SELECT * FROM users WHERE username = ?", (username,)).fetchone()
        return self._map_row(row) if row else None

    def list_all(self) -> List[User]:
        rows = get_db().execute("SELECT * FROM users ORDER BY username").fetchall()
        return [self._map_row(r) for r in rows]

    def create(self, user: User) -> Optional[int]:
        """Insert ``user``; returns the new id, or None when the username is taken."""
        db = get_db()
        try:
            with db:
                cur = db.execute(
                    "INSERT INTO users (username, password_hash, role, full_name, is_active) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (user.username, user.password_hash, user.role, user.full_name, int(user.is_active)),
                )
        except sqlite3.IntegrityError:
            logger.warning("Username %s is already taken", user.username)
            return None
        return cur.lastrowid

    def save_login_state(self, user: User):
        db = get_db()
        with db:
            db.execute(
                "UPDATE users SET failed_attempts = ?, locked_until = ?, last_login = ? WHERE id = ?",
                (user.failed_attempts, user.locked_until, user.last_login, user.id),
            )

    def set_password(self, user_id: int, password_hash: bytes):
        db = get_db()
        with db:
            db.execute(
                "UPDATE users SET password_hash = ?, failed_attempts = 0, locked_until = NULL WHERE id = ?",
                (password_hash, user_id),
            )

    def set_active(self, user_id: int, active: bool):
        db = get_db()
        with db:
            db.execute("UPDATE users SET is_active = ? WHERE id = ?", (int(active), user_id))
