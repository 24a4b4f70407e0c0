"""Services package."""

from walletguard.services.audit import AuditRecorder, verify_chain
from walletguard.services.limits import RoleLimits, TransactionLimiter, limits_from_settings
from walletguard.services.transaction_guard import (
    TransactionGuard,
    TransactionReceipt,
    TransactionType,
)

__all__ = [
    "AuditRecorder",
    "RoleLimits",
    "TransactionGuard",
    "TransactionLimiter",
    "TransactionReceipt",
    "TransactionType",
    "limits_from_settings",
    "verify_chain",
]
