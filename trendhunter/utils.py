"""
utils.py

Small helpers shared across the client modules.
"""

import re
from typing import Any

_HEX_ESCAPE = re.compile(r"\\x([0-9A-Fa-f]{2})")
_UNICODE_ESCAPE = re.compile(r"\\u([0-9A-Fa-f]{4})")
_ANY_ESCAPE = re.compile(r"\\(.)")


def ensure_list(item: Any) -> list[Any]:
    """Return lists and tuples as a new list, wrap anything else in one."""
    if isinstance(item, (list, tuple)):
        return list(item)
    return [item]


def decode_escape_text(text: str) -> str:
    """
    Decode backslash escapes found in JS string literals.

    Hex-byte escapes (\\xHH) are decoded first, then unicode escapes
    (\\uHHHH), then any remaining backslash simply drops out (\\" -> ").
    """
    text = _HEX_ESCAPE.sub(lambda m: chr(int(m.group(1), 16)), text)
    text = _UNICODE_ESCAPE.sub(lambda m: chr(int(m.group(1), 16)), text)
    return _ANY_ESCAPE.sub(r"\1", text)


def truncate_string(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."
