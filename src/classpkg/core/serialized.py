"""Codec for ``serialized-*`` fields of class definitions.

Older exports store these fields in the CMS's native serialization format,
newer ones as JSON. Both are accepted on read; writes always produce JSON.
"""

import json
from typing import Any

import phpserialize


def _normalize(value: Any) -> Any:
    """Turn decoded legacy values into JSON-friendly ones.

    Arrays with keys ``0..n-1`` in order become lists, other arrays become
    mappings with string keys and bytes are decoded as UTF-8.
    """
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, dict):
        keys = list(value.keys())
        if keys == list(range(len(keys))):
            return [_normalize(v) for v in value.values()]
        return {str(k): _normalize(v) for k, v in value.items()}
    return value


def legacy_loads(text: str) -> Any:
    """Decode a legacy-serialized string. Raises ``ValueError`` when *text* is not one."""
    if not text:
        raise ValueError("empty input")
    return _normalize(phpserialize.loads(text.encode("utf-8"), decode_strings=True))


def to_json(value: Any) -> str:
    """Compact JSON matching the legacy exporter: ASCII only, ``/`` escaped."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=True).replace("/", "\\/")


def reserialize(text: str) -> str:
    """Re-encode a legacy-serialized string as JSON, leaving anything else unchanged."""
    try:
        value = legacy_loads(text)
    except ValueError:
        return text
    if value is False:
        return text
    return to_json(value)


def decode_serialized(text: str | None) -> Any:
    """Decode a serialized field for installation.

    JSON wins over the legacy format; content that is neither decodes to an
    empty mapping.
    """
    if not text:
        return {}
    try:
        return json.loads(text)
    except ValueError:
        pass
    try:
        return legacy_loads(text)
    except ValueError:
        return {}


def decode_name_list(text: str | None) -> dict[str, str]:
    value = decode_serialized(text)
    if not isinstance(value, dict):
        return {}
    return {str(k): "" if v is None else str(v) for k, v in value.items()}
