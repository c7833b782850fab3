from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: a student, teacher or admin account.

    Note: plain data object, no DB access here.
    """

    user_id: int
    username: str
    email: str
    full_name: str
    password_hash: str
    role: Role
    is_active: bool = True

    def to_dict(self) -> dict:
        return {
            "id": self.user_id,
            "username": self.username,
            "email": self.email,
            "fullName": self.full_name,
            "role": self.role.value,
            "isActive": self.is_active,
        }
