"""
SQL Stores

SQLAlchemy-backed implementations of the store contracts. Conditional
writes use ``UPDATE ... WHERE version = :expected`` so two writers that
evaluated the same snapshot cannot both commit.
"""

from datetime import datetime
from typing import Iterable, Optional, Sequence

from sqlalchemy import exc as sa_exc
from sqlalchemy import func, select, update

from walletguard.core import codec
from walletguard.core.exceptions import ConflictError, PrincipalNotFoundError
from walletguard.core.logging import get_logger
from walletguard.core.security.types import ResourceType, Role
from walletguard.db.base_class import as_utc
from walletguard.db.session import DatabaseManager
from walletguard.models import ResourceRecord, TransactionEvent, UserRecord
from walletguard.stores.base import Snapshot, Write

logger = get_logger(__name__)


class SqlUserDirectory:
    """User directory over the ``users`` and ``transaction_events`` tables."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    def add_user(self, principal_id: str, role: Role = Role.USER) -> None:
        with self._db.session_scope() as session:
            record = session.get(UserRecord, principal_id)
            if record is None:
                session.add(UserRecord(id=principal_id, role=Role(role).value))
            else:
                record.role = Role(role).value

    def get_user_role(self, principal_id: str) -> Role:
        with self._db.session_scope() as session:
            record = session.get(UserRecord, principal_id)
            if record is None:
                raise PrincipalNotFoundError(principal_id)
            return record.role

    def get_recent_transactions(self, principal_id: str, since: datetime) -> Sequence[datetime]:
        with self._db.session_scope() as session:
            if session.get(UserRecord, principal_id) is None:
                raise PrincipalNotFoundError(principal_id)
            rows = session.execute(
                select(TransactionEvent.occurred_at)
                .where(
                    TransactionEvent.user_id == principal_id,
                    TransactionEvent.occurred_at >= as_utc(since),
                )
                .order_by(TransactionEvent.occurred_at)
            ).scalars().all()
            return [as_utc(value) for value in rows]

    def record_transaction(self, principal_id: str, at: datetime) -> None:
        with self._db.session_scope() as session:
            if session.get(UserRecord, principal_id) is None:
                raise PrincipalNotFoundError(principal_id)
            session.add(TransactionEvent(user_id=principal_id, occurred_at=as_utc(at)))

    def reserve_transaction(self, principal_id: str, at: datetime, since: datetime, limit: int) -> bool:
        at, since = as_utc(at), as_utc(since)
        with self._db.session_scope() as session:
            # Row lock serialises reservations for one principal
            user = session.get(UserRecord, principal_id, with_for_update=True)
            if user is None:
                raise PrincipalNotFoundError(principal_id)
            in_window = session.execute(
                select(func.count(TransactionEvent.id)).where(
                    TransactionEvent.user_id == principal_id,
                    TransactionEvent.occurred_at > since,
                    TransactionEvent.occurred_at <= at,
                )
            ).scalar_one()
            if in_window >= limit:
                return False
            session.add(TransactionEvent(user_id=principal_id, occurred_at=at))
            return True

    def release_transaction(self, principal_id: str, at: datetime) -> None:
        with self._db.session_scope() as session:
            event = session.execute(
                select(TransactionEvent)
                .where(
                    TransactionEvent.user_id == principal_id,
                    TransactionEvent.occurred_at == as_utc(at),
                )
                .order_by(TransactionEvent.id.desc())
                .limit(1)
            ).scalar_one_or_none()
            if event is not None:
                session.delete(event)


class SqlResourceStore:
    """Versioned JSON documents in the ``resources`` table."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    def get(self, resource_type: ResourceType, resource_id: str) -> Optional[Snapshot]:
        resource_type = ResourceType(resource_type)
        with self._db.session_scope() as session:
            record = session.get(ResourceRecord, (resource_type.value, resource_id))
            if record is None:
                return None
            return self._to_snapshot(record)

    def list(self, resource_type: ResourceType) -> Sequence[Snapshot]:
        resource_type = ResourceType(resource_type)
        with self._db.session_scope() as session:
            records = session.execute(
                select(ResourceRecord)
                .where(ResourceRecord.resource_type == resource_type.value)
                .order_by(ResourceRecord.created_at)
            ).scalars().all()
            return [self._to_snapshot(record) for record in records]

    def commit(self, writes: Iterable[Write]) -> None:
        with self._db.session_scope() as session:
            for write in writes:
                resource_type = ResourceType(write.resource_type)
                payload = codec.encode(dict(write.data))

                if write.expected_version is None:
                    session.add(ResourceRecord(
                        resource_type=resource_type.value,
                        resource_id=write.resource_id,
                        data=payload,
                        version=1,
                    ))
                    try:
                        session.flush()
                    except sa_exc.IntegrityError as e:
                        raise ConflictError(
                            f"{resource_type.value} '{write.resource_id}' already exists"
                        ) from e
                    continue

                result = session.execute(
                    update(ResourceRecord)
                    .where(
                        ResourceRecord.resource_type == resource_type.value,
                        ResourceRecord.resource_id == write.resource_id,
                        ResourceRecord.version == write.expected_version,
                    )
                    .values(data=payload, version=write.expected_version + 1)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    logger.warning(
                        "Optimistic concurrency conflict",
                        resource_type=resource_type.value,
                        resource_id=write.resource_id,
                        expected_version=write.expected_version,
                    )
                    raise ConflictError(
                        f"{resource_type.value} '{write.resource_id}' changed since version "
                        f"{write.expected_version}"
                    )

    @staticmethod
    def _to_snapshot(record: ResourceRecord) -> Snapshot:
        return Snapshot(
            resource_type=ResourceType(record.resource_type),
            resource_id=record.resource_id,
            data=codec.decode(record.data),
            version=record.version,
        )
