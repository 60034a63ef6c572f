"""
Direct key-value extraction from raw JSON text.

Used when structured parsing dropped a field, e.g. an avatar URL delivered as
an array or under an unexpected shape.
"""

import json
import re
from typing import Optional

_STRING = r'"((?:[^"\\]|\\.)*)"'


def extract_json_string(text: str, key: str) -> Optional[str]:
    """
    Find the first ``"key": "value"`` or ``"key": ["value", ...]`` in ``text``.

    Returns:
        Optional[str]: The unescaped value, or None when absent or not a string
    """
    pattern = re.compile(
        r'"' + re.escape(key) + r'"\s*:\s*(?:' + _STRING + r'|\[\s*' + _STRING + r')'
    )
    match = pattern.search(text)
    if match is None:
        return None
    raw = match.group(1) if match.group(1) is not None else match.group(2)
    try:
        return json.loads(f'"{raw}"')
    except json.JSONDecodeError:
        return raw
