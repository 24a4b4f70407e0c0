"""
Audit Trail

The trusted backend writer for audit log documents. Entries bypass the
policy evaluator (which denies every direct audit write) and are linked
into a SHA-256 hash chain so tampering with any entry is detectable.
"""

import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from walletguard.core.exceptions import ConflictError, WalletGuardError
from walletguard.core.logging import get_logger
from walletguard.core.security.integrity import calculate_chain_hash
from walletguard.core.security.types import ResourceType
from walletguard.stores.base import ResourceStore, Write

logger = get_logger(__name__)

MAX_APPEND_ATTEMPTS = 5


class Severity:
    INFO = "INFO"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


def entry_id(sequence: int) -> str:
    return f"audit_{sequence:012d}"


class AuditRecorder:
    """
    Appends tamper-evident audit entries to the resource store.

    Recording never breaks the calling flow: store failures are logged
    and ``record`` returns None.
    """

    def __init__(self, store: ResourceStore, clock: Optional[Callable[[], datetime]] = None) -> None:
        self._store = store
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = threading.Lock()
        self._last_hash: Optional[str] = None
        self._sequence: Optional[int] = None

    def record(
        self,
        action: str,
        user_id: Optional[str] = None,
        target_id: Optional[str] = None,
        details: Optional[str] = None,
        severity: str = Severity.INFO,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Create an audit log entry.

        The entry id is derived from its sequence number, so two recorders
        appending to the same store cannot both claim one position: the
        loser gets ``ConflictError``, reloads the chain head and retries.

        Args:
            action: Action name (e.g. ``rate_limit_exceeded``)
            user_id: Principal the event concerns
            target_id: Resource the event concerns
            details: Human readable description
            severity: One of the ``Severity`` levels
            metadata: Additional structured context

        Returns:
            The stored entry, or None if it could not be written
        """
        if not action:
            raise ValueError("Action is required for audit logging")

        with self._lock:
            entry = None
            for attempt in range(1, MAX_APPEND_ATTEMPTS + 1):
                try:
                    self._load_chain_head()
                    sequence = self._sequence + 1
                    entry = {
                        "id": entry_id(sequence),
                        "sequence": sequence,
                        "action": action,
                        "user_id": user_id,
                        "target_id": target_id,
                        "details": details,
                        "severity": severity,
                        "metadata": dict(metadata or {}),
                        "timestamp": self._clock(),
                    }
                    entry["previous_hash"] = self._last_hash
                    entry["current_hash"] = calculate_chain_hash(entry, self._last_hash)

                    self._store.commit([Write.create(ResourceType.AUDIT_LOG, entry["id"], entry)])
                except ConflictError:
                    # Another writer took this position
                    self._sequence = None
                    entry = None
                    logger.debug("Audit chain head moved, retrying", action=action, attempt=attempt)
                    continue
                except (WalletGuardError, SQLAlchemyError) as e:
                    self._sequence = None
                    logger.error("Failed to record audit event", action=action, error=str(e))
                    return None
                break

            if entry is None:
                logger.error(
                    "Failed to record audit event",
                    action=action,
                    error=f"chain head still moving after {MAX_APPEND_ATTEMPTS} attempts",
                )
                return None

            self._sequence = entry["sequence"]
            self._last_hash = entry["current_hash"]

        log = logger.warning if severity in (Severity.HIGH, Severity.CRITICAL) else logger.info
        log("Audit event recorded", action=action, user_id=user_id, target_id=target_id, severity=severity)
        return entry

    def entries(self) -> List[Dict[str, Any]]:
        """All audit entries in chain order."""
        snapshots = self._store.list(ResourceType.AUDIT_LOG)
        return sorted((snapshot.data for snapshot in snapshots), key=lambda entry: entry["sequence"])

    def _load_chain_head(self) -> None:
        if self._sequence is not None:
            return
        existing = self.entries()
        if existing:
            self._sequence = existing[-1]["sequence"]
            self._last_hash = existing[-1]["current_hash"]
        else:
            self._sequence = 0
            self._last_hash = None


def verify_chain(entries: Sequence[Mapping[str, Any]]) -> bool:
    """
    Verify links and hashes of audit entries given in chain order.

    Returns:
        True if every entry links to its predecessor and its hash matches
    """
    previous_hash: Optional[str] = None
    for entry in entries:
        if entry.get("previous_hash") != previous_hash:
            logger.error(
                "Audit log chain broken",
                entry_id=entry.get("id"),
                expected=previous_hash,
                actual=entry.get("previous_hash"),
            )
            return False

        calculated = calculate_chain_hash(entry, previous_hash)
        if calculated != entry.get("current_hash"):
            logger.error(
                "Audit log hash mismatch",
                entry_id=entry.get("id"),
                expected=entry.get("current_hash"),
                actual=calculated,
            )
            return False
        previous_hash = entry["current_hash"]
    return True
