"""Initial schema - communities, generations, member records, ledger, events.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "communities",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("symbol", sa.String(20), nullable=False),
        sa.Column("owner", sa.String(42), nullable=False),
        sa.Column("initial_price", sa.String(80), nullable=False),
        sa.Column("decay_constant", sa.String(80), nullable=False),
        sa.Column("emission_rate", sa.String(80), nullable=False),
        sa.Column("latest_birth", sa.String(80), nullable=False),
        sa.Column("current_epoch", sa.Integer, nullable=False),
        sa.Column("proof_root", sa.String(66), nullable=False),
        sa.Column("total_supply", sa.BigInteger, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "generations",
        sa.Column("community_id", UUID(as_uuid=True), sa.ForeignKey("communities.id"), primary_key=True),
        sa.Column("epoch", sa.Integer, primary_key=True),
        sa.Column("packed_config", sa.LargeBinary(12), nullable=False),
        sa.Column("proof_root", sa.String(66), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "member_records",
        sa.Column("community_id", UUID(as_uuid=True), sa.ForeignKey("communities.id"), primary_key=True),
        sa.Column("epoch", sa.Integer, primary_key=True),
        sa.Column("address", sa.String(42), primary_key=True),
        sa.Column("packed", sa.BigInteger, nullable=False, server_default="0"),
    )

    op.create_table(
        "balances",
        sa.Column("community_id", UUID(as_uuid=True), sa.ForeignKey("communities.id"), primary_key=True),
        sa.Column("address", sa.String(42), primary_key=True),
        sa.Column("amount", sa.BigInteger, nullable=False, server_default="0"),
        sa.CheckConstraint("amount >= 0", name="ck_balances_non_negative"),
    )

    op.create_table(
        "allowances",
        sa.Column("community_id", UUID(as_uuid=True), sa.ForeignKey("communities.id"), primary_key=True),
        sa.Column("owner", sa.String(42), primary_key=True),
        sa.Column("spender", sa.String(42), primary_key=True),
        sa.Column("amount", sa.BigInteger, nullable=False, server_default="0"),
        sa.CheckConstraint("amount >= 0", name="ck_allowances_non_negative"),
    )

    op.create_table(
        "community_events",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("community_id", UUID(as_uuid=True), sa.ForeignKey("communities.id"), nullable=False),
        sa.Column("sequence", sa.Integer, nullable=False),
        sa.Column("kind", sa.String(30), nullable=False),
        sa.Column("payload", sa.JSON, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index(
        "ix_community_events_community_sequence", "community_events",
        ["community_id", "sequence"], unique=True,
    )


def downgrade() -> None:
    op.drop_index("ix_community_events_community_sequence", table_name="community_events")
    op.drop_table("community_events")
    op.drop_table("allowances")
    op.drop_table("balances")
    op.drop_table("member_records")
    op.drop_table("generations")
    op.drop_table("communities")
