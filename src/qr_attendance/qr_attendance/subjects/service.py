from __future__ import annotations

import logging
from typing import Optional, Sequence

from ..common.validators import require_non_empty
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, ValidationError
from ..users.repository import UserRepository
from .model import EnrolledStudent, Subject
from .repository import SubjectRepository

logger = logging.getLogger(__name__)


class SubjectService:
    def __init__(self, subjects: SubjectRepository):
        self._subjects = subjects

    def list_for_user(self, *, role: Role, user_id: int) -> Sequence[Subject]:
        if role == Role.STUDENT:
            return self._subjects.list_for_student(user_id)
        if role == Role.TEACHER:
            return self._subjects.list_for_teacher(user_id)
        return self._subjects.list_all()

    def require_owned(self, *, role: Role, user_id: int, subject_id: int) -> Subject:
        """Return the subject if the caller may run attendance for it."""

        subject = self._subjects.get_by_id(subject_id)
        if not subject:
            raise ValidationError("Subject not found")
        if role == Role.ADMIN:
            return subject
        if role == Role.TEACHER and subject.teacher_id == user_id:
            return subject
        raise AuthorizationError("You do not teach this subject")

    def roster(self, *, role: Role, user_id: int, subject_id: int) -> Sequence[EnrolledStudent]:
        self.require_owned(role=role, user_id=user_id, subject_id=subject_id)
        return self._subjects.get_enrolled_students(subject_id)


class SubjectManagementService:
    """Use case: create and remove subjects, enroll students (teacher/admin).

    Business rules:
    - A teacher always owns the subjects they create; an admin may assign
      any teacher or leave the subject unassigned.
    - Subject codes are unique.
    - Only student accounts can be enrolled, once per subject.
    """

    def __init__(self, subjects: SubjectRepository, users: UserRepository):
        self._subjects = subjects
        self._users = users
        self._access = SubjectService(subjects)

    def create_subject(
        self,
        *,
        role: Role,
        user_id: int,
        name: str,
        code: str,
        description: Optional[str] = None,
        teacher_id: Optional[int] = None,
    ) -> Subject:
        name = require_non_empty(name, "Subject name")
        code = require_non_empty(code, "Subject code").upper()

        if role == Role.TEACHER:
            teacher_id = user_id
        elif teacher_id is not None:
            teacher = self._users.get_by_id(teacher_id)
            if not teacher or teacher.role != Role.TEACHER:
                raise ValidationError("Assigned teacher not found")

        if self._subjects.get_by_code(code):
            raise ValidationError(f"Subject code {code} already exists")

        subject_id = self._subjects.create(
            name=name,
            code=code,
            teacher_id=teacher_id,
            description=(description or "").strip() or None,
        )
        logger.info("Subject %s (%s) created by user %s", subject_id, code, user_id)
        return self._subjects.get_by_id(subject_id)

    def delete_subject(self, *, role: Role, user_id: int, subject_id: int) -> None:
        self._access.require_owned(role=role, user_id=user_id, subject_id=subject_id)
        if not self._subjects.delete(subject_id):
            raise ValidationError("Subject not found")
        logger.info("Subject %s deleted by user %s", subject_id, user_id)

    def enroll(self, *, role: Role, user_id: int, subject_id: int, student_id: int) -> EnrolledStudent:
        self._access.require_owned(role=role, user_id=user_id, subject_id=subject_id)

        student = self._users.get_by_id(student_id)
        if not student or student.role != Role.STUDENT:
            raise ValidationError("Student not found")

        if not self._subjects.enroll(subject_id=subject_id, student_id=student_id):
            raise ValidationError("Student is already enrolled in this subject")
        logger.info("Student %s enrolled in subject %s", student_id, subject_id)
        return EnrolledStudent(student_id=student.user_id, full_name=student.full_name)

    def teacher_stats(self, teacher_id: int) -> dict:
        return {
            "totalStudents": self._subjects.count_students_for_teacher(teacher_id),
            "totalSubjects": len(self._subjects.list_for_teacher(teacher_id)),
        }
