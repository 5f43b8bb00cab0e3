"""CommunityEvent ORM - append-only log of emitted notifications.

Invariants:
    - Rows are written in the same transaction as the mutation that emitted them
    - kind is an EventKind value; payload is the event dict as produced by the core
    - sequence orders events within a community

Design Decisions:
    - JSON payload: GenerationChanged, Transfer and Approval share one table
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime, JSON, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from posterity.db.base import Base


class CommunityEvent(Base):
    __tablename__ = "community_events"
    __table_args__ = (
        Index(
            "ix_community_events_community_sequence",
            "community_id", "sequence", unique=True,
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    community_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("communities.id"), nullable=False,
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    kind: Mapped[str] = mapped_column(String(30), nullable=False)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
