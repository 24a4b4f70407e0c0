"""
Integrity Hashes

HMAC-SHA256 transaction hashes and the SHA-256 hash chain that links
audit log entries into a tamper-evident sequence.
"""

import hashlib
import hmac
import json
import secrets
from datetime import datetime
from decimal import Decimal
from typing import Any, Mapping, Optional, Union

from walletguard.core.config import settings

HEX_DIGITS = frozenset("0123456789abcdef")


def _canonical_json(payload: Mapping[str, Any]) -> str:
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)


def generate_transaction_hash(
    wallet_id: str,
    amount: Union[Decimal, int, float],
    timestamp: datetime,
    user_id: str,
    secret_key: Optional[str] = None,
) -> str:
    """
    Create the integrity hash attached to a transaction.

    A random nonce makes two otherwise identical transactions hash
    differently.

    Returns:
        64-character lowercase hex digest
    """
    key = secret_key if secret_key is not None else settings.TRANSACTION_SECRET_KEY
    payload = {
        "wallet_id": wallet_id,
        "amount": str(amount),
        "timestamp": timestamp.isoformat(),
        "user_id": user_id,
        "nonce": secrets.token_hex(16),
    }
    return hmac.new(key.encode(), _canonical_json(payload).encode(), hashlib.sha256).hexdigest()


def is_well_formed_hash(value: Any) -> bool:
    """Check shape only: 64 lowercase hex characters."""
    return isinstance(value, str) and len(value) == 64 and set(value) <= HEX_DIGITS


def calculate_chain_hash(entry: Mapping[str, Any], previous_hash: Optional[str]) -> str:
    """
    Hash an audit entry together with its predecessor's hash.

    Args:
        entry: Audit fields (excluding the hash fields themselves)
        previous_hash: ``current_hash`` of the previous entry, None for the first

    Returns:
        SHA-256 hex digest
    """
    hash_data = {key: value for key, value in entry.items() if key not in ("previous_hash", "current_hash")}
    hash_data["previous_hash"] = previous_hash
    return hashlib.sha256(_canonical_json(hash_data).encode()).hexdigest()
