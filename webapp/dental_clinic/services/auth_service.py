import logging
from datetime import timedelta
from typing import List, Optional

import bcrypt
from werkzeug.security import check_password_hash

from dental_clinic.adapters.sqlite.auth_repo import AuthRepository
from dental_clinic.common.errors import NotFoundError
from dental_clinic.common.utils import clinic_now
from dental_clinic.domain.user import User, UserRole

logger = logging.getLogger(__name__)

MAX_FAILED_ATTEMPTS = 5
LOCKOUT_MINUTES = 15


def hash_password(password: str) -> bytes:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())


class AuthService:
    """Staff login with lockout, plus the account management used by the CLI."""

    def __init__(self, repo: AuthRepository | None = None):
        self.repo = repo or AuthRepository()

    def _password_matches(self, user: User, password: str) -> bool:
        stored = user.password_hash
        if not stored:
            return False
        if stored.startswith(b"$2"):
            try:
                return bcrypt.checkpw(password.encode("utf-8"), stored)
            except ValueError:
                return False

        # werkzeug hashes (pbkdf2/scrypt) are accepted once and migrated to bcrypt
        try:
            ok = check_password_hash(stored.decode("utf-8"), password)
        except ValueError:
            return False
        if ok:
            self.repo.set_password(user.id, hash_password(password))
            logger.info("Password hash for %s migrated to bcrypt", user.username)
        return ok

    def _record_failure(self, user: User, now):
        user.failed_attempts += 1
        if user.failed_attempts >= MAX_FAILED_ATTEMPTS:
            user.locked_until = (now + timedelta(minutes=LOCKOUT_MINUTES)).isoformat(timespec="seconds")
            user.failed_attempts = 0
            logger.warning("Account %s locked for %s minutes", user.username, LOCKOUT_MINUTES)
        self.repo.save_login_state(user)

    def authenticate(self, username: str, password: str) -> Optional[User]:
        """Return the signed-in user, or None.

        Unknown users, disabled accounts, locked accounts and wrong passwords
        all look the same to the caller.
        """
        user = self.repo.get_by_username((username or "").strip())
        if user is None or not user.is_active:
            return None

        now = clinic_now()
        if user.is_locked(now):
            return None
        if not self._password_matches(user, password or ""):
            self._record_failure(user, now)
            return None

        user.failed_attempts = 0
        user.locked_until = None
        user.last_login = now.strftime("%Y-%m-%d %H:%M:%S")
        self.repo.save_login_state(user)
        return user

    def list_users(self) -> List[User]:
        return self.repo.list_all()

    def register_user(self, username: str, password: str, role: str = UserRole.RECEPTIONIST,
                      full_name: str | None = None) -> bool:
        username = (username or "").strip()
        if role not in UserRole.ALL:
            raise ValueError(f"Unknown role '{role}'. Choose one of: {', '.join(UserRole.ALL)}")
        if not username or not password:
            raise ValueError("Username and password are required")
        if self.repo.get_by_username(username):
            return False
        user = User(id=None, username=username, role=role,
                    password_hash=hash_password(password), full_name=full_name)
        return self.repo.create(user) is not None

    def _require(self, username: str) -> User:
        user = self.repo.get_by_username((username or "").strip())
        if user is None:
            raise NotFoundError(f"No user named '{username}'")
        return user

    def reset_password(self, username: str, password: str):
        """Set a new password and lift any lockout."""
        if not password:
            raise ValueError("Password is required")
        user = self._require(username)
        self.repo.set_password(user.id, hash_password(password))

    def set_active(self, username: str, active: bool):
        user = self._require(username)
        self.repo.set_active(user.id, active)
        return user
