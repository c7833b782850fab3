from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import EnrolledStudent, Subject


class SubjectRepository(Protocol):
    def get_by_id(self, subject_id: int) -> Optional[Subject]:
        raise NotImplementedError

    def list_all(self) -> Sequence[Subject]:
        raise NotImplementedError

    def list_for_teacher(self, teacher_id: int) -> Sequence[Subject]:
        raise NotImplementedError

    def list_for_student(self, student_id: int) -> Sequence[Subject]:
        raise NotImplementedError

    def get_enrolled_students(self, subject_id: int) -> Sequence[EnrolledStudent]:
        """Roster of the subject, ordered by name."""

        raise NotImplementedError

    def is_enrolled(self, *, subject_id: int, student_id: int) -> bool:
        raise NotImplementedError

    def get_by_code(self, code: str) -> Optional[Subject]:
        raise NotImplementedError

    def create(self, *, name: str, code: str, teacher_id: Optional[int], description: Optional[str]) -> int:
        raise NotImplementedError

    def delete(self, subject_id: int) -> bool:
        """Remove the subject; its schedules, enrollments and ledger rows go with it."""

        raise NotImplementedError

    def enroll(self, *, subject_id: int, student_id: int) -> bool:
        """False when the student is already enrolled."""

        raise NotImplementedError

    def count_students_for_teacher(self, teacher_id: int) -> int:
        """Distinct students enrolled in any subject the teacher owns."""

        raise NotImplementedError
