"""
Field-Diff Guard

Restricts which document fields an update may touch, per resource type.
"""

from typing import Any, Dict, FrozenSet, Mapping, Set

from walletguard.core.security.types import ResourceType

# Fields the transaction pipeline may change on a wallet
WALLET_MUTABLE_FIELDS: FrozenSet[str] = frozenset(
    {"balance", "transactions", "last_modified", "transaction_hash"}
)

MUTABLE_FIELDS: Dict[ResourceType, FrozenSet[str]] = {
    ResourceType.WALLET: WALLET_MUTABLE_FIELDS,
    ResourceType.TRANSACTION: frozenset(),
    ResourceType.AUDIT_LOG: frozenset(),
}

_MISSING = object()


def changed_fields(before: Mapping[str, Any], after: Mapping[str, Any]) -> Set[str]:
    """Keys added, removed or whose values differ between two documents."""
    changed = set()
    for key in set(before) | set(after):
        if before.get(key, _MISSING) != after.get(key, _MISSING):
            changed.add(key)
    return changed


def is_permitted_diff(
    resource_type: ResourceType,
    before: Mapping[str, Any],
    after: Mapping[str, Any],
) -> bool:
    """
    Check an update only touches fields allowed for its resource type.

    Transactions and audit logs are immutable: no diff is ever permitted,
    not even an empty one.
    """
    allowed = MUTABLE_FIELDS.get(ResourceType(resource_type), frozenset())
    if not allowed:
        return False
    return changed_fields(before, after) <= allowed
