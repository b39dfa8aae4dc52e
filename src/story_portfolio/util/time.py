from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Optional

# Fractional seconds of any length; fromisoformat before 3.11 only takes 3 or 6 digits.
_FRACTION_RE = re.compile(r"(T\d{2}:\d{2}:\d{2})\.(\d+)")


def utc_now_iso(seconds: bool = True) -> str:
    """
    Return current UTC time in ISO-8601 format.
    - If seconds is True, use seconds precision (stable strings).
    - Else, use milliseconds precision.
    """
    if seconds:
        return datetime.now(timezone.utc).isoformat(timespec="seconds")
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


def _normalize_fraction(match: re.Match) -> str:
    return f"{match.group(1)}.{match.group(2)[:6].ljust(6, '0')}"


def parse_iso_utc(value: str) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp (accepting a trailing "Z") into an aware UTC datetime.
    Returns None when the value cannot be parsed.
    """
    raw = (value or "").strip()
    if not raw:
        return None
    if raw.endswith("Z") or raw.endswith("z"):
        raw = raw[:-1] + "+00:00"
    raw = _FRACTION_RE.sub(_normalize_fraction, raw, count=1)
    try:
        dt = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
