"""
Document Codec

Encodes documents to JSON-safe structures without losing value types.
Timestamps travel as ``{"$date": "<ISO-8601>"}`` and decimals as
``{"$decimal": "<str>"}``; plain strings are left alone, so a timestamp
sent as a bare string is still a string after decoding.
"""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

DATE_TAG = "$date"
DECIMAL_TAG = "$decimal"


def encode(value: Any) -> Any:
    """Convert a document into JSON-compatible values."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return {DATE_TAG: value.isoformat()}
    if isinstance(value, Decimal):
        return {DECIMAL_TAG: str(value)}
    if isinstance(value, dict):
        return {key: encode(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode(item) for item in value]
    return value


def decode(value: Any) -> Any:
    """
    Inverse of ``encode``.

    Tagged values that fail to parse are kept as they are and will fail
    structural validation downstream.
    """
    if isinstance(value, dict):
        if len(value) == 1 and DATE_TAG in value:
            return _decode_date(value)
        if len(value) == 1 and DECIMAL_TAG in value:
            return _decode_decimal(value)
        return {key: decode(item) for key, item in value.items()}
    if isinstance(value, list):
        return [decode(item) for item in value]
    return value


def _decode_date(value: dict) -> Any:
    raw = value[DATE_TAG]
    if not isinstance(raw, str):
        return value
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return value
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _decode_decimal(value: dict) -> Any:
    raw = value[DECIMAL_TAG]
    if not isinstance(raw, (str, int)) or isinstance(raw, bool):
        return value
    try:
        return Decimal(raw)
    except InvalidOperation:
        return value
