"""
Store Contracts

Narrow read/write interfaces the policy service depends on. The policy
evaluator only ever reads through ``UserDirectory``; writes go through a
``ResourceStore`` after an allowed verdict.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Protocol, Sequence

from walletguard.core.security.types import ResourceType, Role


@dataclass(frozen=True)
class Snapshot:
    """
    Point-in-time copy of a stored document.

    ``version`` increases by one on every committed write and is the
    key for optimistic concurrency.
    """
    resource_type: ResourceType
    resource_id: str
    data: Dict[str, Any]
    version: int


@dataclass(frozen=True)
class Write:
    """
    A conditional write.

    ``expected_version`` must equal the stored version at commit time;
    ``None`` means the document must not exist yet.
    """
    resource_type: ResourceType
    resource_id: str
    data: Dict[str, Any]
    expected_version: Optional[int] = None

    @classmethod
    def create(cls, resource_type: ResourceType, resource_id: str, data: Dict[str, Any]) -> "Write":
        return cls(resource_type, resource_id, data, None)

    @classmethod
    def replace(cls, snapshot: Snapshot, data: Dict[str, Any]) -> "Write":
        return cls(snapshot.resource_type, snapshot.resource_id, data, snapshot.version)


class UserDirectory(Protocol):
    """User records: roles and recent transaction history."""

    def get_user_role(self, principal_id: str) -> Role:
        """Raises ``PrincipalNotFoundError`` for unknown principals."""
        ...

    def get_recent_transactions(self, principal_id: str, since: datetime) -> Sequence[datetime]:
        """Timestamps of the principal's transactions at or after ``since``, oldest first."""
        ...

    def record_transaction(self, principal_id: str, at: datetime) -> None:
        ...

    def reserve_transaction(self, principal_id: str, at: datetime, since: datetime, limit: int) -> bool:
        """
        Record ``at`` only if fewer than ``limit`` entries fall in ``(since, at]``.

        Count and append happen atomically, so concurrent reservations by
        one principal cannot overshoot the limit.
        """
        ...

    def release_transaction(self, principal_id: str, at: datetime) -> None:
        """Drop one entry recorded at ``at`` (a reservation whose write failed)."""
        ...

    def add_user(self, principal_id: str, role: Role = Role.USER) -> None:
        ...


class ResourceStore(Protocol):
    """Versioned document store with atomic conditional commits."""

    def get(self, resource_type: ResourceType, resource_id: str) -> Optional[Snapshot]:
        ...

    def list(self, resource_type: ResourceType) -> Sequence[Snapshot]:
        ...

    def commit(self, writes: Iterable[Write]) -> None:
        """
        Apply all writes or none.

        Raises:
            ConflictError: Any write's expected version does not match
        """
        ...
