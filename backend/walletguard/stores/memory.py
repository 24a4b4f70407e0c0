"""
In-Memory Stores

Thread-safe process-local implementations of the store contracts, used
in development and tests.
"""

import bisect
import copy
import threading
from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from walletguard.core.exceptions import ConflictError, PrincipalNotFoundError
from walletguard.core.logging import get_logger
from walletguard.core.security.types import ResourceType, Role
from walletguard.db.base_class import as_utc
from walletguard.stores.base import Snapshot, Write

logger = get_logger(__name__)


class InMemoryUserDirectory:
    """User roles and per-user transaction timestamps kept in sorted order."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._roles: Dict[str, Role] = {}
        self._history: Dict[str, List[datetime]] = defaultdict(list)

    def add_user(self, principal_id: str, role: Role = Role.USER) -> None:
        with self._lock:
            self._roles[principal_id] = Role(role)

    def get_user_role(self, principal_id: str) -> Role:
        with self._lock:
            try:
                return self._roles[principal_id]
            except KeyError:
                raise PrincipalNotFoundError(principal_id) from None

    def get_recent_transactions(self, principal_id: str, since: datetime) -> Sequence[datetime]:
        with self._lock:
            history = self._known_history(principal_id)
            start = bisect.bisect_left(history, as_utc(since))
            return list(history[start:])

    def record_transaction(self, principal_id: str, at: datetime) -> None:
        with self._lock:
            bisect.insort(self._known_history(principal_id), as_utc(at))

    def reserve_transaction(self, principal_id: str, at: datetime, since: datetime, limit: int) -> bool:
        at, since = as_utc(at), as_utc(since)
        with self._lock:
            history = self._known_history(principal_id)
            in_window = bisect.bisect_right(history, at) - bisect.bisect_right(history, since)
            if in_window >= limit:
                return False
            bisect.insort(history, at)
            return True

    def release_transaction(self, principal_id: str, at: datetime) -> None:
        at = as_utc(at)
        with self._lock:
            history = self._known_history(principal_id)
            index = bisect.bisect_left(history, at)
            if index < len(history) and history[index] == at:
                del history[index]

    def _known_history(self, principal_id: str) -> List[datetime]:
        if principal_id not in self._roles:
            raise PrincipalNotFoundError(principal_id)
        return self._history[principal_id]


class InMemoryResourceStore:
    """Versioned documents keyed by (resource type, id)."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._documents: Dict[Tuple[ResourceType, str], Snapshot] = {}

    def get(self, resource_type: ResourceType, resource_id: str) -> Optional[Snapshot]:
        with self._lock:
            snapshot = self._documents.get((ResourceType(resource_type), resource_id))
            return copy.deepcopy(snapshot) if snapshot else None

    def list(self, resource_type: ResourceType) -> Sequence[Snapshot]:
        resource_type = ResourceType(resource_type)
        with self._lock:
            return [
                copy.deepcopy(snapshot)
                for (kind, _), snapshot in self._documents.items()
                if kind == resource_type
            ]

    def commit(self, writes: Iterable[Write]) -> None:
        writes = list(writes)
        with self._lock:
            for write in writes:
                current = self._documents.get((ResourceType(write.resource_type), write.resource_id))
                current_version = current.version if current else None
                if current_version != write.expected_version:
                    logger.warning(
                        "Optimistic concurrency conflict",
                        resource_type=ResourceType(write.resource_type).value,
                        resource_id=write.resource_id,
                        expected_version=write.expected_version,
                        current_version=current_version,
                    )
                    raise ConflictError(
                        f"{ResourceType(write.resource_type).value} '{write.resource_id}' changed "
                        f"(expected version {write.expected_version}, found {current_version})"
                    )

            for write in writes:
                key = (ResourceType(write.resource_type), write.resource_id)
                version = (write.expected_version or 0) + 1
                self._documents[key] = Snapshot(
                    resource_type=key[0],
                    resource_id=write.resource_id,
                    data=copy.deepcopy(write.data),
                    version=version,
                )
