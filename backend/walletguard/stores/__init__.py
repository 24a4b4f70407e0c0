"""Store contracts and implementations."""

from typing import Optional, Tuple

from walletguard.core.config import Settings, StoreBackend, settings
from walletguard.db.session import DatabaseManager, db_manager
from walletguard.stores.base import ResourceStore, Snapshot, UserDirectory, Write
from walletguard.stores.memory import InMemoryResourceStore, InMemoryUserDirectory
from walletguard.stores.sql import SqlResourceStore, SqlUserDirectory


def build_stores(
    config: Optional[Settings] = None,
    db: Optional[DatabaseManager] = None,
) -> Tuple[UserDirectory, ResourceStore]:
    """Create the user directory and resource store selected by configuration."""
    config = config or settings
    if config.STORE_BACKEND == StoreBackend.SQL:
        db = db or db_manager
        db.initialize(config.DATABASE_URL)
        return SqlUserDirectory(db), SqlResourceStore(db)
    return InMemoryUserDirectory(), InMemoryResourceStore()


__all__ = [
    "InMemoryResourceStore",
    "InMemoryUserDirectory",
    "ResourceStore",
    "Snapshot",
    "SqlResourceStore",
    "SqlUserDirectory",
    "UserDirectory",
    "Write",
    "build_stores",
]
