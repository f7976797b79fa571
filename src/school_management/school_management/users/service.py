from __future__ import annotations

from dataclasses import dataclass

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.validators import require_min_length, require_non_empty
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError, NotFoundError, ValidationError
from .repository import UserRepository


@dataclass(frozen=True)
class SessionUser:
    """What we store into Flask session after login."""

    user_id: int
    full_name: str
    role: Role


class AuthService:
    """Use case: authenticate user (login)."""

    def __init__(self, users: UserRepository):
        self._users = users

    def authenticate(self, username: str, password: str) -> SessionUser:
        user = self._users.get_by_username((username or "").strip())
        if not user or not user.is_active:
            raise AuthenticationError("Invalid username or password")

        try:
            ok = check_password_hash(user.password_hash, password or "")
        except ValueError:
            # placeholder or corrupted hashes
            ok = False

        if not ok:
            raise AuthenticationError("Invalid username or password")

        return SessionUser(user_id=user.id, full_name=user.full_name, role=user.role)


class UserService:
    """Use case: manage login accounts (admin)."""

    def __init__(self, users: UserRepository):
        self._users = users

    def create_account(self, *, full_name: str, username: str, password: str, role: Role) -> int:
        full_name = require_non_empty(full_name, "full_name")
        username = require_non_empty(username, "username")
        require_min_length(password, "password", 6)

        if self._users.get_by_username(username):
            raise ValidationError("Username already exists", {"username": ["The username has already been taken."]})

        if role == Role.ADMIN:
            raise AuthorizationError("Admin accounts cannot be created from this screen")

        return self._users.create_user(
            full_name=full_name,
            username=username,
            password_hash=generate_password_hash(password),
            role=role,
        )

    def set_active(self, user_id: int, *, is_active: bool, acting_user_id: int) -> None:
        if int(user_id) == int(acting_user_id) and not is_active:
            raise ValidationError("You cannot deactivate your own account")
        if not self._users.set_active(int(user_id), is_active=is_active):
            raise NotFoundError("User not found")

    def list_accounts(self) -> list[dict]:
        return [
            {
                "id": u.id,
                "full_name": u.full_name,
                "username": u.username,
                "role": u.role.value,
                "is_active": u.is_active,
            }
            for u in self._users.list_all()
        ]
