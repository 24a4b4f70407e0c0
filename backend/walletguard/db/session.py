"""
Database Session Management

SQLAlchemy engine and session lifecycle for the SQL-backed stores.
"""

from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from walletguard.core.config import settings
from walletguard.core.logging import get_logger
from walletguard.db.base_class import Base

logger = get_logger(__name__)


class DatabaseManager:
    """
    Manages the database engine and session factory.

    ``initialize`` must be called before sessions are requested.
    """

    def __init__(self) -> None:
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    def initialize(self, database_url: Optional[str] = None, create_tables: bool = True) -> None:
        """
        Initialize engine and session factory.

        Args:
            database_url: Optional database URL override
            create_tables: Create missing tables for all models
        """
        db_url = database_url or settings.DATABASE_URL
        if not db_url:
            raise ValueError("Database URL not configured")

        engine_options = {"echo": settings.DEBUG, "future": True}
        if db_url.startswith("sqlite"):
            engine_options["connect_args"] = {"check_same_thread": False}
            if ":memory:" in db_url or db_url == "sqlite://":
                # One shared connection, otherwise each session sees an empty database
                engine_options["poolclass"] = StaticPool
        else:
            engine_options.update(pool_size=20, max_overflow=0, pool_recycle=3600, pool_pre_ping=True)

        logger.info("Initializing database engine", backend=db_url.split(":", 1)[0])
        self._engine = create_engine(db_url, **engine_options)
        self._session_factory = sessionmaker(
            self._engine,
            expire_on_commit=False,
            autoflush=False,
        )

        if create_tables:
            # Registers every model on Base.metadata
            import walletguard.models  # noqa: F401

            Base.metadata.create_all(self._engine)

        logger.info("Database initialized successfully")

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Database not initialized. Call initialize() first.")
        return self._engine

    @property
    def session_factory(self) -> sessionmaker:
        if self._session_factory is None:
            raise RuntimeError("Database not initialized. Call initialize() first.")
        return self._session_factory

    def close(self) -> None:
        """Dispose of all pooled connections."""
        if self._engine:
            logger.info("Closing database engine")
            self._engine.dispose()
            self._engine = None
            self._session_factory = None

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Transactional session scope: commit on success, rollback on error.

        Example:
            with db_manager.session_scope() as db:
                db.add(record)
        """
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


db_manager = DatabaseManager()
