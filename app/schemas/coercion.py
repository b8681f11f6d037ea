"""
Shared "before" coercions for form and JSON payloads.

Multipart forms send everything as strings: empty strings mean "not supplied",
nested structures arrive JSON-encoded and repeated keys may hold one value or many.
"""
import json
from typing import Any, List, Optional

_BLANKS = ("", "null", "undefined")


def blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and value.strip() in _BLANKS:
        return None
    return value


def parse_json_string(value: Any) -> Any:
    """Decode a JSON-encoded string; anything else is returned untouched."""
    value = blank_to_none(value)
    if isinstance(value, str):
        try:
            return json.loads(value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"invalid JSON: {e}")
    return value


def as_id_list(value: Any) -> Optional[List[Any]]:
    """Accept `5`, `"5"`, `"[2, 5]"`, `"2,5"` or `[2, "5"]` and return a list."""
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        if text.startswith("["):
            value = parse_json_string(text)
        elif text in _BLANKS:
            return []
        else:
            value = [part for part in text.split(",") if part.strip()]
    if not isinstance(value, (list, tuple, set)):
        value = [value]
    return [item.strip() if isinstance(item, str) else item for item in value]
