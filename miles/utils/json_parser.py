# miles/utils/json_parser.py
"""
Helpers for reading loosely-typed Meraki webhook JSON.
Every accessor returns a default instead of raising on missing keys.
"""

import json
from typing import Optional, Any


def safe_parse_json(raw_body: bytes) -> Optional[Any]:
    """Parse JSON bytes safely. Returns None on error."""
    try:
        return json.loads(raw_body.decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None


def get_nested(data: dict, *keys: str, default: Any = None) -> Any:
    """Safely navigate nested dict keys. Returns default if any key is missing."""
    current = data
    for key in keys:
        if not isinstance(current, dict):
            return default
        current = current.get(key, default)
        if current is default:
            return default
    return current


def first_truthy(*values: Any) -> Any:
    """First truthy value, or None. Empty strings and zero count as absent."""
    for value in values:
        if value:
            return value
    return None


def is_json_content_type(content_type: str) -> bool:
    """Webhook senders may append a charset, so only containment is checked."""
    return "application/json" in (content_type or "").lower()
