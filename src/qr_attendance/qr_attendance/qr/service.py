from __future__ import annotations

import logging
import uuid
from typing import Optional

from ..core.constants import LATE_TOKEN_SUFFIX
from .model import ConsumedToken
from .repository import TokenRepository

logger = logging.getLogger(__name__)


class QrTokenIssuer:
    """Mints single-use QR tokens bound to a subject.

    Business rules:
    - At most one active token per subject: minting deactivates the previous one.
    - A token is valid for exactly one successful consumption.
    - Late mode travels inside the code as a `_LATE` suffix.
    """

    def __init__(self, tokens: TokenRepository):
        self._tokens = tokens

    def mint(self, subject_id: int, *, late_mode: bool = False) -> str:
        self._tokens.deactivate_for_subject(subject_id)

        code = uuid.uuid4().hex
        if late_mode:
            code = f"{code}{LATE_TOKEN_SUFFIX}"

        self._tokens.insert(subject_id=subject_id, code=code, active=True)
        logger.info("Minted %s token for subject %s", "late" if late_mode else "on-time", subject_id)
        return code

    def validate_and_consume(self, code: str) -> Optional[ConsumedToken]:
        """Consume `code` if it is the active token of some subject.

        Unknown, inactive and lost-race codes all come back as None.
        """

        code = (code or "").strip()
        if not code:
            return None
        token = self._tokens.find_active(code)
        if not token:
            return None
        if not self._tokens.consume(token.qr_id):
            logger.info("Token %s was consumed concurrently", token.qr_id)
            return None

        logger.info("Consumed token %s for subject %s", token.qr_id, token.subject_id)
        return ConsumedToken(subject_id=token.subject_id, late_mode=token.late_mode)

    def deactivate(self, subject_id: int) -> None:
        count = self._tokens.deactivate_for_subject(subject_id)
        if count:
            logger.info("Deactivated %d token(s) for subject %s", count, subject_id)
