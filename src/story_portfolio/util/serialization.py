from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any


def sanitize_for_json(value: Any) -> Any:
    """
    Convert common non-JSON types (datetimes, paths, enums, dataclasses, tuples)
    to serializable forms.
    """
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return sanitize_for_json(value.value)
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, bytes):
        return value.decode("utf-8", "replace")
    if isinstance(value, dict):
        return {str(k): sanitize_for_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [sanitize_for_json(v) for v in value]
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return sanitize_for_json(to_dict())
    if is_dataclass(value) and not isinstance(value, type):
        return sanitize_for_json(asdict(value))
    return value


def stable_json_dumps(obj: Any, *, indent: int | None = None) -> str:
    """
    Dump JSON with sort_keys=True to ensure stable output.
    Compact separators are used unless an indent is requested.
    """
    if indent is None:
        return json.dumps(sanitize_for_json(obj), sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return json.dumps(sanitize_for_json(obj), sort_keys=True, indent=indent, ensure_ascii=False)
