from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.constants import LATE_TOKEN_SUFFIX


@dataclass(frozen=True)
class QrToken:
    qr_id: int
    subject_id: int
    code: str
    active: bool
    created_at: Optional[datetime] = None

    @property
    def late_mode(self) -> bool:
        return is_late_code(self.code)


@dataclass(frozen=True)
class ConsumedToken:
    """What a successful consumption tells the scanner."""

    subject_id: int
    late_mode: bool


def is_late_code(code: str) -> bool:
    return code.endswith(LATE_TOKEN_SUFFIX)
