"""
Transaction Limits

Per-role caps on money movement: a per-transaction maximum, plus rolling
daily (24h) and monthly (30 day) totals. Totals are kept per transaction
type and summed from the principal's committed Transaction documents.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, Iterable, Mapping, Optional

from walletguard.core.config import Settings, settings
from walletguard.core.security.types import Principal, ResourceType, Role
from walletguard.stores.base import ResourceStore

DAY = timedelta(days=1)
MONTH = timedelta(days=30)


@dataclass(frozen=True)
class RoleLimits:
    per_transaction: Decimal
    daily: Decimal
    monthly: Decimal


def limits_from_settings(config: Optional[Settings] = None) -> Dict[Role, RoleLimits]:
    config = config or settings
    return {
        Role.USER: RoleLimits(
            per_transaction=Decimal(config.USER_LIMIT_PER_TRANSACTION),
            daily=Decimal(config.USER_LIMIT_DAILY),
            monthly=Decimal(config.USER_LIMIT_MONTHLY),
        ),
        Role.ADMIN: RoleLimits(
            per_transaction=Decimal(config.ADMIN_LIMIT_PER_TRANSACTION),
            daily=Decimal(config.ADMIN_LIMIT_DAILY),
            monthly=Decimal(config.ADMIN_LIMIT_MONTHLY),
        ),
    }


class TransactionLimiter:
    """
    Checks an amount against the principal's role limits.

    A limit is breached when the amount (or the rolling total including
    it) is strictly greater than the cap; hitting the cap exactly is allowed.
    """

    def __init__(self, store: ResourceStore, limits: Optional[Mapping[Role, RoleLimits]] = None) -> None:
        self._store = store
        self._limits = dict(limits) if limits is not None else limits_from_settings()

    def first_breach(
        self,
        principal: Principal,
        amount: Decimal,
        transaction_type: str,
        now: datetime,
    ) -> Optional[str]:
        """
        Describe the first limit the amount would breach.

        Returns:
            Human readable reason, or None when within all limits
        """
        limits = self._limits[principal.role]

        if amount > limits.per_transaction:
            return f"Amount exceeds per-transaction limit of {limits.per_transaction}"

        history = list(self._history(principal.id, transaction_type, now - MONTH))

        daily_total = sum((tx["amount"] for tx in history if tx["timestamp"] > now - DAY), Decimal(0))
        if daily_total + amount > limits.daily:
            return f"Amount exceeds daily limit of {limits.daily}"

        monthly_total = sum((tx["amount"] for tx in history), Decimal(0))
        if monthly_total + amount > limits.monthly:
            return f"Amount exceeds monthly limit of {limits.monthly}"

        return None

    def _history(self, principal_id: str, transaction_type: str, since: datetime) -> Iterable[Dict[str, Any]]:
        for snapshot in self._store.list(ResourceType.TRANSACTION):
            tx = snapshot.data
            if (
                tx.get("user_id") == principal_id
                and tx.get("type") == transaction_type
                and isinstance(tx.get("timestamp"), datetime)
                and tx["timestamp"] > since
            ):
                yield {"amount": Decimal(str(tx.get("amount", 0))), "timestamp": tx["timestamp"]}
