from __future__ import annotations

from typing import Any

# Order matters: "&" first so later entities are not double-escaped.
_HTML_ESCAPES = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&#39;"),
)


def escape_html(value: Any) -> str:
    """
    Escape text for safe embedding in HTML element content and quoted attributes.
    """
    if value is None:
        return ""
    text = str(value)
    for raw, entity in _HTML_ESCAPES:
        text = text.replace(raw, entity)
    return text
