"""MemberRecord ORM - packed lifecycle state and last-settlement time per (epoch, address).

Invariants:
    - (community_id, epoch, address) is the primary key
    - packed = last_settled << 2 | state (see core/member_ledger.py)
    - Absent row means (UNSEEN, 0)

Design Decisions:
    - Class named MemberRecordRow: core.member_ledger.MemberRecord is the domain record
"""

import uuid

from sqlalchemy import String, Integer, BigInteger, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from posterity.db.base import Base


class MemberRecordRow(Base):
    __tablename__ = "member_records"

    community_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("communities.id"), primary_key=True,
    )
    epoch: Mapped[int] = mapped_column(Integer, primary_key=True)
    address: Mapped[str] = mapped_column(String(42), primary_key=True)
    packed: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
