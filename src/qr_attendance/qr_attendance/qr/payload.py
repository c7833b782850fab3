"""QR payload wire format.

The teacher screen shows a URL such as

    https://school.example/login?token=<code>&subjectId=12&ts=1718000000000&scan=attendance

Older scanners may also submit a JSON object `{token, subjectId, timestamp, sessionId}`
or just the bare token string. All three decode to the same `ScanPayload`.
"""

from __future__ import annotations

import io
import json
from dataclasses import dataclass
from datetime import datetime
from typing import IO, Optional
from urllib.parse import parse_qs, urlencode, urlparse

import qrcode
from PIL import Image
from pyzbar.pyzbar import decode as pyzbar_decode

from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class ScanPayload:
    token: str
    subject_id: Optional[int] = None


def build_payload_url(base_url: str, *, token: str, subject_id: int, now: datetime) -> str:
    params = urlencode(
        {
            "token": token,
            "subjectId": str(subject_id),
            "ts": str(int(now.timestamp() * 1000)),
            "scan": "attendance",
        }
    )
    return f"{base_url.rstrip('/')}/login?{params}"


def _to_int(value) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_payload(raw: str) -> ScanPayload:
    """Extract the token from a URL, JSON or bare-token payload."""

    text = (raw or "").strip()
    if not text:
        raise ValidationError("QR code is required")

    if text.startswith("{"):
        try:
            data = json.loads(text)
        except ValueError:
            raise ValidationError("QR code is not valid JSON")
        token = str(data.get("token") or "").strip() if isinstance(data, dict) else ""
        if not token:
            raise ValidationError("QR code does not carry a token")
        return ScanPayload(token=token, subject_id=_to_int(data.get("subjectId")))

    if "://" in text or text.startswith("/") or "?" in text:
        query = parse_qs(urlparse(text).query)
        token = (query.get("token") or [""])[0].strip()
        if not token:
            raise ValidationError("QR code does not carry a token")
        return ScanPayload(token=token, subject_id=_to_int((query.get("subjectId") or [None])[0]))

    return ScanPayload(token=text)


def render_png(data: str) -> io.BytesIO:
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_L,
        box_size=10,
        border=2,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    buf = io.BytesIO()
    img.save(buf, format="PNG")
    buf.seek(0)
    return buf


def decode_image(stream: IO[bytes]) -> str:
    """Return the text of the first QR code found in an uploaded image."""

    try:
        img = Image.open(stream).convert("RGB")
    except OSError:
        raise ValidationError("Uploaded file is not an image")

    decoded = pyzbar_decode(img)
    if not decoded:
        raise ValidationError("No QR code found in the image")
    return decoded[0].data.decode("utf-8").strip()
