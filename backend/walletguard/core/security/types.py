"""
Policy Types

Principals, operations and verdicts exchanged with the policy evaluator.
Resources themselves are plain document mappings, exactly as the
document store holds them.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional

from walletguard.core.exceptions import MalformedOperationError


class Role(str, Enum):
    """Principal role. ``admin`` only widens read visibility."""
    USER = "user"
    ADMIN = "admin"


class OperationKind(str, Enum):
    """Kind of data access being authorized."""
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class ResourceType(str, Enum):
    """Resource collections guarded by the policy."""
    WALLET = "wallet"
    TRANSACTION = "transaction"
    AUDIT_LOG = "audit_log"


class Check(str, Enum):
    """Name of the check that produced a denial."""
    OWNERSHIP = "ownership"
    VALIDATION = "validation"
    RATE_LIMIT = "rate_limit"
    FIELD_DIFF = "field_diff"
    ROLE = "role"
    IMMUTABLE = "immutable"
    LOCKED = "locked"
    # Transaction guard checks
    RISK = "risk"
    LIMITS = "limits"
    FUNDS = "funds"


@dataclass(frozen=True)
class Principal:
    """Authenticated actor resolved for one request."""
    id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


@dataclass(frozen=True)
class Verdict:
    """
    Allow/deny outcome of evaluating one operation.

    Attributes:
        allowed: Whether the operation may proceed
        reason: Human readable reason, set on denial
        check: Name of the first failing check, set on denial
    """
    allowed: bool
    reason: Optional[str] = None
    check: Optional[Check] = None

    @classmethod
    def allow(cls) -> "Verdict":
        return cls(allowed=True)

    @classmethod
    def deny(cls, check: Check, reason: str) -> "Verdict":
        return cls(allowed=False, reason=reason, check=check)

    def to_dict(self) -> dict:
        return {
            "allowed": self.allowed,
            "reason": self.reason,
            "check": self.check.value if self.check else None,
        }


@dataclass(frozen=True)
class Operation:
    """
    A read or write request submitted to the policy evaluator.

    ``existing`` is the stored snapshot the caller read (required for
    read, update and delete); ``proposed`` is the document the caller
    wants to write (required for create and update).
    """
    kind: OperationKind
    resource_type: ResourceType
    principal: Principal
    resource_id: Optional[str] = None
    existing: Optional[Mapping[str, Any]] = None
    proposed: Optional[Mapping[str, Any]] = None
    requested_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], principal: Principal) -> "Operation":
        """
        Build an operation from a loosely typed mapping.

        Raises:
            MalformedOperationError: Unknown kind or resource type, or a
                snapshot that is not a mapping
        """
        kind = _parse_enum(OperationKind, data.get("kind"), "kind")
        resource_type = _parse_enum(ResourceType, data.get("resource_type"), "resource_type")

        for field_name in ("existing", "proposed"):
            value = data.get(field_name)
            if value is not None and not isinstance(value, Mapping):
                raise MalformedOperationError(f"'{field_name}' must be a document mapping")

        requested_at = data.get("requested_at")
        if requested_at is not None:
            requested_at = as_utc_instant(requested_at, "requested_at")

        return cls(
            kind=kind,
            resource_type=resource_type,
            principal=principal,
            resource_id=data.get("resource_id"),
            existing=data.get("existing"),
            proposed=data.get("proposed"),
            requested_at=requested_at,
        )


def _parse_enum(enum_cls, value, field_name):
    if value is None:
        raise MalformedOperationError(f"Operation is missing '{field_name}'")
    try:
        return enum_cls(value)
    except ValueError:
        raise MalformedOperationError(f"Unknown {field_name}: {value!r}") from None


def as_utc_instant(value: Any, field_name: str) -> datetime:
    """
    Coerce an evaluation instant to an aware datetime.

    Naive values are taken to be UTC, matching every stored timestamp.

    Raises:
        MalformedOperationError: ``value`` is not a datetime
    """
    if not isinstance(value, datetime):
        raise MalformedOperationError(f"'{field_name}' must be a timestamp")
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
