"""Balance ORM - knowledge held per address.

Invariants:
    - (community_id, address) is the primary key
    - amount is never negative
"""

import uuid

from sqlalchemy import String, BigInteger, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from posterity.db.base import Base


class Balance(Base):
    __tablename__ = "balances"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_balances_non_negative"),
    )

    community_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("communities.id"), primary_key=True,
    )
    address: Mapped[str] = mapped_column(String(42), primary_key=True)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
