"""
User Models

User records carrying the principal role, and the transaction events
that feed the sliding-window rate limit.
"""

from datetime import datetime
from typing import List

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from walletguard.db.base_class import Base, TimestampMixin


class UserRecord(Base, TimestampMixin):
    """User record as seen by the policy service."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="user")

    transaction_events: Mapped[List["TransactionEvent"]] = relationship(
        "TransactionEvent",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<UserRecord(id={self.id}, role={self.role})>"


class TransactionEvent(Base):
    """One recorded transaction instant for a user."""

    __tablename__ = "transaction_events"
    __table_args__ = (
        Index("ix_transaction_events_user_time", "user_id", "occurred_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    user: Mapped[UserRecord] = relationship("UserRecord", back_populates="transaction_events")
