"""
Transaction Write Validation

Structural checks for money-moving documents.
"""

import math
from datetime import datetime
from decimal import Decimal
from typing import Any, Mapping, Optional

from walletguard.core.config import settings


def _is_amount(value: Any) -> bool:
    # bool is an int subclass
    if isinstance(value, bool):
        return False
    if isinstance(value, Decimal):
        return value.is_finite()
    if isinstance(value, float):
        return math.isfinite(value)
    return isinstance(value, int)


def first_validation_failure(
    proposed: Mapping[str, Any],
    hash_length: Optional[int] = None,
) -> Optional[str]:
    """
    Name the first field that fails structural validation.

    Checks run in order: ``amount`` is a positive number, ``timestamp`` is a
    datetime, ``hash`` is a string of exactly ``hash_length`` characters.

    Returns:
        Failing field name, or None when the write is structurally valid
    """
    length = hash_length if hash_length is not None else settings.TRANSACTION_HASH_LENGTH

    amount = proposed.get("amount")
    if not _is_amount(amount) or not amount > 0:
        return "amount"

    if not isinstance(proposed.get("timestamp"), datetime):
        return "timestamp"

    digest = proposed.get("hash")
    if not isinstance(digest, str) or len(digest) != length:
        return "hash"

    return None


def validate_transaction_write(proposed: Mapping[str, Any], hash_length: Optional[int] = None) -> bool:
    """Return True only if every structural check passes."""
    return first_validation_failure(proposed, hash_length) is None
