from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Login account. Teachers, students and parents link to it through ``user_id``."""

    id: int
    full_name: str
    username: str
    password_hash: str
    role: Role
    is_active: bool = True
