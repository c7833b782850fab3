from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Subject:
    subject_id: int
    name: str
    code: str
    teacher_id: Optional[int]
    description: Optional[str] = None
    student_count: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.subject_id,
            "name": self.name,
            "code": self.code,
            "teacherId": self.teacher_id,
            "description": self.description,
            "studentCount": self.student_count,
        }


@dataclass(frozen=True)
class EnrolledStudent:
    """Roster entry for a subject (read-model)."""

    student_id: int
    full_name: str

    def to_dict(self) -> dict:
        return {"id": self.student_id, "fullName": self.full_name}
