"""
Policy Evaluator

Per-resource-type allow/deny decisions for read, create, update and
delete operations on wallets, transactions and audit logs.

Decision table (``admin`` widens reads only, it never bypasses writes):

    =============  ==================  =====================  ==========================  ======
    resource       read                create                 update                      delete
    =============  ==================  =====================  ==========================  ======
    wallet         owner               owner of proposed      owner, valid, rate, diff    deny
    transaction    owner or admin      owner, valid, rate     deny                        deny
    audit_log      admin               deny                   deny                        deny
    =============  ==================  =====================  ==========================  ======

Composite checks run ownership, structural validation, rate limit and
field diff in that order and stop at the first failure, which the
verdict reason names.
"""

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional

from walletguard.core.exceptions import MalformedOperationError
from walletguard.core.logging import get_logger
from walletguard.core.security.field_diff import (
    WALLET_MUTABLE_FIELDS,
    changed_fields,
    is_permitted_diff,
)
from walletguard.core.security.rate_limit import RateLimiter
from walletguard.core.security.types import (
    Check,
    Operation,
    OperationKind,
    Principal,
    ResourceType,
    Verdict,
    as_utc_instant,
)
from walletguard.core.security.validation import first_validation_failure

if TYPE_CHECKING:
    from walletguard.stores.base import UserDirectory

logger = get_logger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PolicyEvaluator:
    """
    Stateless policy decision point.

    Holds no mutable state; every call is a function of the operation,
    the snapshots it carries and read-only directory lookups, so one
    instance can serve concurrent requests.
    """

    def __init__(
        self,
        directory: "UserDirectory",
        rate_limiter: Optional[RateLimiter] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._rate_limiter = rate_limiter or RateLimiter(directory)
        self._clock = clock or utcnow
        self._handlers = {
            ResourceType.WALLET: self._evaluate_wallet,
            ResourceType.TRANSACTION: self._evaluate_transaction,
            ResourceType.AUDIT_LOG: self._evaluate_audit_log,
        }

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    def evaluate(self, operation: Operation) -> Verdict:
        """
        Decide whether an operation may proceed.

        Args:
            operation: The request to authorize

        Returns:
            Verdict, denied with a reason naming the first failing check

        Raises:
            MalformedOperationError: Unknown kind or resource type, missing
                principal, or a snapshot the applicable rule needs is absent
            PrincipalNotFoundError: Rate-limit lookup for an unknown principal
        """
        if not isinstance(operation, Operation):
            raise MalformedOperationError("Expected an Operation")
        if not isinstance(operation.principal, Principal) or not operation.principal.id:
            raise MalformedOperationError("Operation has no principal")

        try:
            kind = OperationKind(operation.kind)
            resource_type = ResourceType(operation.resource_type)
        except ValueError as e:
            raise MalformedOperationError(str(e)) from None

        verdict = self._handlers[resource_type](kind, operation)

        log = logger.debug if verdict.allowed else logger.info
        log(
            "Policy verdict",
            kind=kind.value,
            resource_type=resource_type.value,
            resource_id=operation.resource_id,
            principal_id=operation.principal.id,
            allowed=verdict.allowed,
            check=verdict.check.value if verdict.check else None,
        )
        return verdict

    # -----------------------------------------------------------------
    # Per resource type
    # -----------------------------------------------------------------

    def _evaluate_wallet(self, kind: OperationKind, operation: Operation) -> Verdict:
        principal = operation.principal

        if kind == OperationKind.READ:
            existing = _require(operation.existing, "existing")
            return self._check_owner(principal, existing, "owner_id")

        if kind == OperationKind.CREATE:
            proposed = _require(operation.proposed, "proposed")
            return self._check_owner(principal, proposed, "owner_id")

        if kind == OperationKind.UPDATE:
            existing = _require(operation.existing, "existing")
            proposed = _require(operation.proposed, "proposed")
            verdict = self._check_owner(principal, existing, "owner_id")
            if not verdict.allowed:
                return verdict
            verdict = self._check_money_movement(operation, proposed)
            if not verdict.allowed:
                return verdict
            if not is_permitted_diff(ResourceType.WALLET, existing, proposed):
                disallowed = sorted(changed_fields(existing, proposed) - WALLET_MUTABLE_FIELDS)
                return Verdict.deny(
                    Check.FIELD_DIFF,
                    f"Update touches fields outside the wallet allowlist: {', '.join(disallowed)}",
                )
            return Verdict.allow()

        return Verdict.deny(Check.LOCKED, "Wallets cannot be deleted")

    def _evaluate_transaction(self, kind: OperationKind, operation: Operation) -> Verdict:
        principal = operation.principal

        if kind == OperationKind.READ:
            existing = _require(operation.existing, "existing")
            if existing.get("user_id") == principal.id or principal.is_admin:
                return Verdict.allow()
            return Verdict.deny(Check.OWNERSHIP, "Transaction belongs to another principal")

        if kind == OperationKind.CREATE:
            proposed = _require(operation.proposed, "proposed")
            verdict = self._check_owner(principal, proposed, "user_id")
            if not verdict.allowed:
                return verdict
            return self._check_money_movement(operation, proposed)

        return Verdict.deny(Check.IMMUTABLE, "Transactions are immutable")

    def _evaluate_audit_log(self, kind: OperationKind, operation: Operation) -> Verdict:
        if kind == OperationKind.READ:
            if operation.principal.is_admin:
                return Verdict.allow()
            return Verdict.deny(Check.ROLE, "Audit logs are readable by admins only")
        return Verdict.deny(Check.LOCKED, "Audit logs are written by the backend only")

    # -----------------------------------------------------------------
    # Shared checks
    # -----------------------------------------------------------------

    def _check_owner(self, principal: Principal, document: Mapping[str, Any], field: str) -> Verdict:
        if document.get(field) == principal.id:
            return Verdict.allow()
        return Verdict.deny(Check.OWNERSHIP, f"Principal does not own this resource ({field} mismatch)")

    def _check_money_movement(self, operation: Operation, proposed: Mapping[str, Any]) -> Verdict:
        failure = first_validation_failure(proposed)
        if failure:
            return Verdict.deny(Check.VALIDATION, f"Structural validation failed on '{failure}'")

        now = as_utc_instant(
            operation.requested_at if operation.requested_at is not None else self._clock(),
            "requested_at",
        )
        if not self._rate_limiter.check_rate_limit(operation.principal.id, now):
            return Verdict.deny(
                Check.RATE_LIMIT,
                f"Rate limit exceeded: {self._rate_limiter.max_transactions} transactions "
                f"per {int(self._rate_limiter.window.total_seconds())} seconds",
            )
        return Verdict.allow()


def _require(document: Optional[Mapping[str, Any]], name: str) -> Mapping[str, Any]:
    if document is None:
        raise MalformedOperationError(f"Operation is missing the '{name}' snapshot this rule needs")
    if not isinstance(document, Mapping):
        raise MalformedOperationError(f"'{name}' must be a document mapping")
    return document
