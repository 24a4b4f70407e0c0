"""Database package."""

from walletguard.db.base_class import Base, TimestampMixin
from walletguard.db.session import DatabaseManager, db_manager

__all__ = [
    "Base",
    "DatabaseManager",
    "TimestampMixin",
    "db_manager",
]
