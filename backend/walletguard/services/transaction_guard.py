"""
Transaction Guard

Backend transaction pipeline: authorizes a money movement through the
policy evaluator, posts it to the owner's wallet and records the
transaction, all in one optimistic-concurrency commit.

The guard is the trusted writer for wallet balance changes. It only ever
touches the wallet fields the field-diff guard allows, and it commits
against the exact wallet snapshot it authorized, so a concurrent posting
surfaces as ``ConflictError`` instead of a lost update.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Union

from walletguard.core.config import settings
from walletguard.core.exceptions import MalformedOperationError, ResourceNotFoundError
from walletguard.core.logging import LogContext, get_logger
from walletguard.core.security.field_diff import is_permitted_diff
from walletguard.core.security.integrity import generate_transaction_hash
from walletguard.core.security.policy import PolicyEvaluator, utcnow
from walletguard.core.security.principal import PrincipalResolver
from walletguard.core.security.types import (
    Check,
    Operation,
    OperationKind,
    ResourceType,
    Role,
    Verdict,
)
from walletguard.services.audit import AuditRecorder, Severity
from walletguard.services.limits import RoleLimits, TransactionLimiter
from walletguard.stores.base import ResourceStore, UserDirectory, Write

logger = get_logger(__name__)


class TransactionType(str, Enum):
    """Money movement kinds."""
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    TRANSFER = "transfer"


@dataclass(frozen=True)
class TransactionReceipt:
    """Outcome of ``TransactionGuard.process``."""
    verdict: Verdict
    transaction: Optional[Dict[str, Any]] = None
    balance: Optional[Decimal] = None

    @property
    def allowed(self) -> bool:
        return self.verdict.allowed


def _to_decimal(value: Any, field: str) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal, str)):
        raise MalformedOperationError(f"'{field}' must be a number")
    try:
        result = Decimal(str(value))
    except ArithmeticError:
        raise MalformedOperationError(f"'{field}' must be a number") from None
    if not result.is_finite():
        raise MalformedOperationError(f"'{field}' must be finite")
    return result


class TransactionGuard:
    """
    Processes deposits, withdrawals and transfers against a wallet.

    Order of checks: wallet access, transaction creation policy
    (ownership, structure, rate limit), suspicious amount, role limits,
    funds. The rate-limit slot is then claimed atomically and given back
    if the commit fails, so history and postings stay in step.
    """

    def __init__(
        self,
        directory: UserDirectory,
        store: ResourceStore,
        evaluator: Optional[PolicyEvaluator] = None,
        audit: Optional[AuditRecorder] = None,
        clock: Optional[Callable[[], datetime]] = None,
        suspicious_amount: Optional[Union[int, Decimal]] = None,
        limits: Optional[Mapping[Role, RoleLimits]] = None,
    ) -> None:
        self._directory = directory
        self._store = store
        self._clock = clock or utcnow
        self._evaluator = evaluator or PolicyEvaluator(directory, clock=self._clock)
        self._audit = audit or AuditRecorder(store, clock=self._clock)
        self._resolver = PrincipalResolver(directory)
        self._suspicious_amount = Decimal(
            suspicious_amount if suspicious_amount is not None else settings.SUSPICIOUS_AMOUNT_THRESHOLD
        )
        self._limiter = TransactionLimiter(store, limits)

    def process(
        self,
        principal_id: str,
        wallet_id: str,
        amount: Union[Decimal, int, float, str],
        transaction_type: Union[TransactionType, str],
        description: Optional[str] = None,
    ) -> TransactionReceipt:
        """
        Authorize and post one transaction.

        Args:
            principal_id: Authenticated principal
            wallet_id: Wallet to post to
            amount: Positive amount
            transaction_type: deposit, withdrawal or transfer
            description: Optional free text

        Returns:
            Receipt with the verdict; on success also the created
            transaction document and the new wallet balance

        Raises:
            PrincipalNotFoundError: Unknown principal
            ResourceNotFoundError: Unknown wallet
            MalformedOperationError: Non-numeric amount or unknown type
            ConflictError: Wallet changed between authorization and commit
        """
        principal = self._resolver.resolve(principal_id)
        amount = _to_decimal(amount, "amount")
        try:
            transaction_type = TransactionType(transaction_type)
        except ValueError:
            raise MalformedOperationError(f"Unknown transaction type: {transaction_type!r}") from None

        snapshot = self._store.get(ResourceType.WALLET, wallet_id)
        if snapshot is None:
            raise ResourceNotFoundError(ResourceType.WALLET.value, wallet_id)
        wallet = snapshot.data
        now = self._clock()

        with LogContext(principal_id=principal.id, wallet_id=wallet_id):
            verdict = self._evaluator.evaluate(Operation(
                kind=OperationKind.READ,
                resource_type=ResourceType.WALLET,
                principal=principal,
                resource_id=wallet_id,
                existing=wallet,
                requested_at=now,
            ))
            if not verdict.allowed:
                self._audit.record(
                    "unauthorized_access_attempt",
                    user_id=principal.id,
                    target_id=wallet_id,
                    details="Attempted unauthorized wallet access",
                    severity=Severity.HIGH,
                )
                return TransactionReceipt(verdict)

            transaction_id = f"tx_{uuid.uuid4().hex}"
            transaction = {
                "id": transaction_id,
                "user_id": principal.id,
                "wallet_id": wallet_id,
                "type": transaction_type.value,
                "amount": amount,
                "description": description,
                "timestamp": now,
                "hash": generate_transaction_hash(wallet_id, amount, now, principal.id),
                "status": "completed",
            }

            verdict = self._evaluator.evaluate(Operation(
                kind=OperationKind.CREATE,
                resource_type=ResourceType.TRANSACTION,
                principal=principal,
                resource_id=transaction_id,
                proposed=transaction,
                requested_at=now,
            ))
            if not verdict.allowed:
                if verdict.check == Check.RATE_LIMIT:
                    self._audit_rate_limited(principal.id)
                return TransactionReceipt(verdict)

            if amount > self._suspicious_amount:
                self._audit.record(
                    "suspicious_amount_detected",
                    user_id=principal.id,
                    target_id=principal.id,
                    details="Large transaction amount detected",
                    severity=Severity.HIGH,
                    metadata={"amount": amount, "type": transaction_type.value},
                )
                return TransactionReceipt(Verdict.deny(
                    Check.RISK, "Transaction amount requires additional verification",
                ))

            breach = self._limiter.first_breach(principal, amount, transaction_type.value, now)
            if breach:
                logger.info("Transaction limit reached", reason=breach, amount=str(amount))
                return TransactionReceipt(Verdict.deny(Check.LIMITS, breach))

            balance = _to_decimal(wallet.get("balance", 0), "balance")
            if transaction_type == TransactionType.DEPOSIT:
                new_balance = balance + amount
            elif balance < amount:
                return TransactionReceipt(Verdict.deny(Check.FUNDS, "Insufficient funds"))
            else:
                new_balance = balance - amount

            updated = dict(wallet)
            updated["balance"] = new_balance
            updated["last_modified"] = now
            updated["transaction_hash"] = transaction["hash"]
            updated["transactions"] = list(wallet.get("transactions") or []) + [{
                "id": transaction_id,
                "type": transaction_type.value,
                "amount": amount,
                "description": description,
                "timestamp": now,
                "hash": transaction["hash"],
                "status": "completed",
            }]
            if not is_permitted_diff(ResourceType.WALLET, wallet, updated):
                return TransactionReceipt(Verdict.deny(
                    Check.FIELD_DIFF, "Posting would touch fields outside the wallet allowlist",
                ))

            rate_limiter = self._evaluator.rate_limiter
            if not rate_limiter.reserve(principal.id, now):
                self._audit_rate_limited(principal.id)
                return TransactionReceipt(Verdict.deny(
                    Check.RATE_LIMIT, "Rate limit exceeded by a concurrent transaction",
                ))
            try:
                self._store.commit([
                    Write.replace(snapshot, updated),
                    Write.create(ResourceType.TRANSACTION, transaction_id, transaction),
                ])
            except Exception:
                rate_limiter.release(principal.id, now)
                raise

            self._audit.record(
                f"transaction_{transaction_type.value}",
                user_id=principal.id,
                target_id=wallet_id,
                details=f"{transaction_type.value} transaction processed",
                metadata={
                    "amount": amount,
                    "new_balance": new_balance,
                    "transaction_hash": transaction["hash"],
                },
            )
            logger.info(
                "Transaction posted",
                transaction_id=transaction_id,
                type=transaction_type.value,
                amount=str(amount),
                new_balance=str(new_balance),
            )

        return TransactionReceipt(Verdict.allow(), transaction=transaction, balance=new_balance)

    def _audit_rate_limited(self, principal_id: str) -> None:
        self._audit.record(
            "rate_limit_exceeded",
            user_id=principal_id,
            target_id=principal_id,
            details="Transaction rate limit exceeded",
            severity=Severity.MEDIUM,
        )
