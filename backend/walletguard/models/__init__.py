"""Persistence models."""

from walletguard.models.resource import ResourceRecord
from walletguard.models.user import TransactionEvent, UserRecord

__all__ = [
    "ResourceRecord",
    "TransactionEvent",
    "UserRecord",
]
