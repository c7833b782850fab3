from __future__ import annotations

import pytest

from src.qr_attendance.qr_attendance.core.enums import Role
from src.qr_attendance.qr_attendance.core.exceptions import AuthenticationError, ValidationError


def test_login_by_email_or_username(world):
    auth = world.container.auth_service

    by_email = auth.authenticate("teacher@school.local", "password")
    by_username = auth.authenticate("teacher", "password")

    assert by_email.user_id == by_username.user_id == world.teacher_id
    assert by_email.to_public_dict()["fullName"] == "Dr. Jose Rizal"


def test_wrong_password_raises(world):
    with pytest.raises(AuthenticationError):
        world.container.auth_service.authenticate("student", "wrong")


def test_blank_identifier_raises(world):
    with pytest.raises(ValidationError):
        world.container.auth_service.authenticate("  ", "password")


def test_expected_role_must_match(world):
    with pytest.raises(AuthenticationError):
        world.container.auth_service.authenticate("student", "password", role=Role.TEACHER)

    user = world.container.auth_service.authenticate("student", "password", role=Role.STUDENT)
    assert user.role == Role.STUDENT
