from __future__ import annotations

import base64
import hashlib
import math
import ssl
from datetime import datetime, timezone

from .config import MILLISECONDS_PER_DAY


def b64_der(der: bytes) -> str:
    return base64.b64encode(der).decode("ascii")


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def fingerprint(data: bytes) -> str:
    # AA:BB:CC... form, as printed by openssl x509 -fingerprint
    digest = sha256_hex(data).upper()
    return ":".join(digest[i:i + 2] for i in range(0, len(digest), 2))


def as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_cert_time(value: datetime | str) -> datetime:
    """
    Accept a datetime, an OpenSSL "Jun  1 12:00:00 2024 GMT" string
    or an ISO-8601 string and return an aware UTC datetime.
    """
    if isinstance(value, datetime):
        return as_utc(value)
    text = value.strip()
    try:
        return datetime.fromtimestamp(ssl.cert_time_to_seconds(text), tz=timezone.utc)
    except ValueError:
        pass
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return as_utc(datetime.fromisoformat(text))


def days_between(start: datetime, end: datetime) -> int:
    """Ceiling of (end - start) in days, signed."""
    return math.ceil((end - start).total_seconds() * 1000 / MILLISECONDS_PER_DAY)
