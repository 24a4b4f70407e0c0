"""Security package."""

from walletguard.core.security.types import (
    Check,
    Operation,
    OperationKind,
    Principal,
    ResourceType,
    Role,
    Verdict,
)
from walletguard.core.security.field_diff import is_permitted_diff
from walletguard.core.security.validation import validate_transaction_write
from walletguard.core.security.principal import PrincipalResolver
from walletguard.core.security.rate_limit import RateLimiter
from walletguard.core.security.policy import PolicyEvaluator

__all__ = [
    "Check",
    "Operation",
    "OperationKind",
    "PolicyEvaluator",
    "Principal",
    "PrincipalResolver",
    "RateLimiter",
    "ResourceType",
    "Role",
    "Verdict",
    "is_permitted_diff",
    "validate_transaction_write",
]
