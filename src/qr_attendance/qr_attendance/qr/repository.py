from __future__ import annotations

from typing import Optional, Protocol

from .model import QrToken


class TokenRepository(Protocol):
    def insert(self, *, subject_id: int, code: str, active: bool = True) -> QrToken:
        raise NotImplementedError

    def deactivate_for_subject(self, subject_id: int) -> int:
        raise NotImplementedError

    def find_active(self, code: str) -> Optional[QrToken]:
        raise NotImplementedError

    def consume(self, qr_id: int) -> bool:
        """Flip the token inactive only if it is still active.

        Returns True for the one caller whose update changed the row.
        """

        raise NotImplementedError
