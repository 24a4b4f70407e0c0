"""
Transaction Rate Limiting

Sliding-window limiter over a principal's recent transaction timestamps.
A transaction counts when ``window_start < timestamp <= now``; one stamped
exactly at ``window_start`` has already left the window.
"""

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Optional

from walletguard.core.config import settings
from walletguard.core.logging import get_logger

if TYPE_CHECKING:
    from walletguard.stores.base import UserDirectory

logger = get_logger(__name__)


class RateLimiter:
    """
    Rejects bursts of transactions inside a rolling window.

    Filter-and-count is linear in the history the directory returns, so
    directories should only hand back entries since the window start.
    """

    def __init__(
        self,
        directory: "UserDirectory",
        window: Optional[timedelta] = None,
        max_transactions: Optional[int] = None,
    ) -> None:
        self._directory = directory
        self.window = window if window is not None else timedelta(seconds=settings.RATE_LIMIT_WINDOW_SECONDS)
        self.max_transactions = (
            max_transactions if max_transactions is not None else settings.RATE_LIMIT_MAX_TRANSACTIONS
        )

    def window_start(self, now: datetime) -> datetime:
        return now - self.window

    def recent_count(self, principal_id: str, now: datetime) -> int:
        """
        Count the principal's transactions inside the window ending at ``now``.

        Raises:
            PrincipalNotFoundError: No user record exists
        """
        start = self.window_start(now)
        timestamps = self._directory.get_recent_transactions(principal_id, start)
        return sum(1 for ts in timestamps if start < ts <= now)

    def check_rate_limit(self, principal_id: str, now: datetime) -> bool:
        """
        Check whether the principal may record another transaction.

        Args:
            principal_id: Principal to check
            now: Evaluation instant

        Returns:
            True while fewer than ``max_transactions`` fall in the window
        """
        count = self.recent_count(principal_id, now)
        if count >= self.max_transactions:
            logger.info(
                "Transaction rate limit reached",
                principal_id=principal_id,
                recent_count=count,
                limit=self.max_transactions,
            )
            return False
        return True

    def reserve(self, principal_id: str, now: datetime) -> bool:
        """
        Atomically re-check the window and claim a slot in it.

        Used by writers right before they commit, so two postings that both
        passed ``check_rate_limit`` cannot both land in a full window.

        Returns:
            True if the slot was recorded
        """
        reserved = self._directory.reserve_transaction(
            principal_id, now, self.window_start(now), self.max_transactions
        )
        if not reserved:
            logger.info("Transaction rate limit reached on reservation", principal_id=principal_id)
        return reserved

    def release(self, principal_id: str, now: datetime) -> None:
        """Give back a slot whose write did not commit."""
        self._directory.release_transaction(principal_id, now)
