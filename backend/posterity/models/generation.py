"""Generation ORM - one epoch's configuration, bit-packed.

Invariants:
    - (community_id, epoch) is the primary key; rows are never updated or deleted
    - packed_config holds capacity | decay_rate << 32 | base_loss_rate << 64
      as 12 big-endian bytes (see core/generation_registry.py)
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, LargeBinary, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from posterity.db.base import Base


class Generation(Base):
    """Generation entity - superseded, never deleted."""
    __tablename__ = "generations"

    community_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("communities.id"), primary_key=True,
    )
    epoch: Mapped[int] = mapped_column(Integer, primary_key=True)
    packed_config: Mapped[bytes] = mapped_column(
        LargeBinary(12), nullable=False,
    )
    proof_root: Mapped[str] = mapped_column(String(66), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    community: Mapped["Community"] = relationship(
        "Community", back_populates="generations",
    )
