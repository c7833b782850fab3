from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.validators import require_min_length, require_non_empty
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError, ValidationError
from .model import User
from .repository import UserRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionUser:
    """What we store into the Flask session after login."""

    user_id: int
    username: str
    email: str
    full_name: str
    role: Role

    def to_public_dict(self) -> dict:
        return {
            "id": self.user_id,
            "username": self.username,
            "email": self.email,
            "fullName": self.full_name,
            "role": self.role.value,
        }


class AuthService:
    """Use case: authenticate a user by email or username."""

    def __init__(self, users: UserRepository):
        self._users = users

    def authenticate(self, identifier: str, password: str, *, role: Optional[Role] = None) -> SessionUser:
        identifier = require_non_empty(identifier, "Email or username")

        user = self._users.get_by_identifier(identifier)
        if not user or not user.is_active:
            raise AuthenticationError("Invalid username or password")

        try:
            ok = check_password_hash(user.password_hash, password or "")
        except ValueError:
            # placeholder or corrupted hashes
            ok = False

        if not ok:
            raise AuthenticationError("Invalid username or password")

        if role is not None and user.role != role:
            logger.info("Login for %s rejected: role %s requested, account is %s", identifier, role.value, user.role.value)
            raise AuthenticationError(f"This account is not a {role.value} account")

        return SessionUser(
            user_id=user.user_id,
            username=user.username,
            email=user.email,
            full_name=user.full_name,
            role=user.role,
        )

    def get_session_user(self, user_id: int) -> Optional[SessionUser]:
        user = self._users.get_by_id(user_id)
        if not user or not user.is_active:
            return None
        return SessionUser(
            user_id=user.user_id,
            username=user.username,
            email=user.email,
            full_name=user.full_name,
            role=user.role,
        )


class UserService:
    """Use case: manage accounts (admin)."""

    def __init__(self, users: UserRepository):
        self._users = users

    def list_users(self, *, role: Optional[Role] = None) -> Sequence[User]:
        return self._users.list_all(role=role)

    def create_account(
        self,
        *,
        username: str,
        email: str,
        full_name: str,
        password: str,
        role: Role,
    ) -> User:
        username = require_non_empty(username, "Username")
        email = require_non_empty(email, "Email").lower()
        full_name = require_non_empty(full_name, "Full name")
        require_min_length(password, "Password", 6)

        if role == Role.ADMIN:
            raise ValidationError("Admin accounts cannot be created here")
        if self._users.get_by_identifier(username):
            raise ValidationError("Username already exists")
        if self._users.get_by_identifier(email):
            raise ValidationError("Email already exists")

        user_id = self._users.create_user(
            username=username,
            email=email,
            full_name=full_name,
            password_hash=generate_password_hash(password),
            role=role,
        )
        logger.info("Created %s account %s (%s)", role.value, user_id, username)
        return self._users.get_by_id(user_id)

    def delete_user(self, *, current_user_id: int, user_id: int) -> None:
        user = self._users.get_by_id(user_id)
        if not user:
            raise ValidationError("User not found")
        if user.user_id == current_user_id:
            raise AuthorizationError("You cannot delete your own account")
        if user.role == Role.ADMIN:
            raise AuthorizationError("Admin accounts cannot be deleted")

        if not self._users.delete_by_id(user_id):
            raise ValidationError("Failed to delete user")
        logger.info("Deleted %s account %s", user.role.value, user_id)
