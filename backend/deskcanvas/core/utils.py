from __future__ import annotations
import uuid
from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def generate_id(prefix: str) -> str:
    """Short random id such as ``sub_1a2b3c4d5e6f``; used for submissions and requests."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def parse_timestamp(value: object) -> datetime | None:
    """Accepts epoch seconds or ISO-8601 strings; always returns an aware UTC datetime."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(float(value), tz=timezone.utc)
    if not isinstance(value, str) or not value.strip():
        return None
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_prefixed_int(value: object, prefix: str) -> int | None:
    """Turns dropdown values like ``status_2`` (or plain ``2``) into ints."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if not isinstance(value, str):
        return None
    raw = value.strip()
    if raw.startswith(prefix):
        raw = raw[len(prefix):]
    try:
        return int(raw)
    except ValueError:
        return None
