"""Allowance ORM - knowledge an owner lets a spender move on their behalf.

Invariants:
    - (community_id, owner, spender) is the primary key
    - amount is never negative
"""

import uuid

from sqlalchemy import String, BigInteger, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from posterity.db.base import Base


class Allowance(Base):
    __tablename__ = "allowances"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_allowances_non_negative"),
    )

    community_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("communities.id"), primary_key=True,
    )
    owner: Mapped[str] = mapped_column(String(42), primary_key=True)
    spender: Mapped[str] = mapped_column(String(42), primary_key=True)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
