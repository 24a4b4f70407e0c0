"""
Resource Document Model

Wallets, transactions and audit log entries stored as versioned JSON
documents. ``version`` drives optimistic concurrency.
"""

from typing import Any, Dict

from sqlalchemy import JSON, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from walletguard.db.base_class import Base, TimestampMixin


class ResourceRecord(Base, TimestampMixin):
    """A stored document of one resource type."""

    __tablename__ = "resources"

    resource_type: Mapped[str] = mapped_column(String(32), primary_key=True)
    resource_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    data: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    def __repr__(self) -> str:
        return (
            f"<ResourceRecord(resource_type={self.resource_type}, "
            f"resource_id={self.resource_id}, version={self.version})>"
        )
