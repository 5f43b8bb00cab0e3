"""Community ORM - persists one community instance: metadata, auction clock, epoch pointer.

Invariants:
    - id is UUID primary key
    - initial_price, decay_constant, emission_rate never change after insert
    - latest_birth only moves forward; current_epoch only increases
    - Wad values are stored as base-10 strings (they exceed 64-bit columns)

Design Decisions:
    - Auction clock and epoch pointer denormalized onto the community row:
      every mutating operation reads them, one row lock covers them all
    - generations loaded eagerly (selectin): every operation needs the registry;
      member, balance and allowance rows are fetched per address by the repository
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, BigInteger, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from posterity.db.base import Base


class Community(Base):
    """Community aggregate root - owns generations, members and the ledger."""
    __tablename__ = "communities"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    symbol: Mapped[str] = mapped_column(String(20), nullable=False)
    owner: Mapped[str] = mapped_column(String(42), nullable=False)

    # Auction clock (wad, base-10 strings)
    initial_price: Mapped[str] = mapped_column(String(80), nullable=False)
    decay_constant: Mapped[str] = mapped_column(String(80), nullable=False)
    emission_rate: Mapped[str] = mapped_column(String(80), nullable=False)
    latest_birth: Mapped[str] = mapped_column(String(80), nullable=False)

    # Generation pointer
    current_epoch: Mapped[int] = mapped_column(Integer, nullable=False)
    proof_root: Mapped[str] = mapped_column(String(66), nullable=False)

    total_supply: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    generations: Mapped[list["Generation"]] = relationship(
        "Generation", back_populates="community",
        cascade="all, delete-orphan", lazy="selectin",
    )
