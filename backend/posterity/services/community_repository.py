"""Community Repository - hydrates CommunityState from rows and writes it back.

Invariants:
    - load() reads only the member, balance and allowance rows an operation names
    - Packed encodings (generation config, member record) are decoded here and
      nowhere else
    - save() writes only dirty records, new generations and pending events
    - Nothing is committed here; the engine owns the transaction

Design Decisions:
    - load(for_update=True) takes a row lock on the community (SELECT ... FOR UPDATE)
      so concurrent writers in other processes queue behind each other
    - Wad columns parsed with int(): stored as base-10 strings
    - populate_existing on every community read: a rolled-back session may hold
      expired rows, and the generations collection must be reloaded eagerly
"""

import logging
import uuid

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from posterity.core.birth_pricing import AuctionClock
from posterity.core.community_state import CommunityState
from posterity.core.errors import ResourceNotFoundError
from posterity.core.generation_registry import (
    GenerationConfig, GenerationRegistry, pack_generation, unpack_generation,
    packed_to_bytes, packed_from_bytes,
)
from posterity.core.knowledge_ledger import KnowledgeLedger
from posterity.core.member_ledger import MemberLedger, encode_member, decode_member
from posterity.models.allowance import Allowance
from posterity.models.balance import Balance
from posterity.models.community import Community
from posterity.models.community_event import CommunityEvent
from posterity.models.generation import Generation
from posterity.models.member_record import MemberRecordRow

logger = logging.getLogger(__name__)


def _config_from_row(row: Generation) -> GenerationConfig:
    capacity, decay_rate, base_loss_rate = unpack_generation(
        packed_from_bytes(row.packed_config),
    )
    return GenerationConfig(
        epoch=row.epoch, capacity=capacity, decay_rate=decay_rate,
        base_loss_rate=base_loss_rate, proof_root=row.proof_root,
    )


def _row_from_config(community_id: uuid.UUID, config: GenerationConfig) -> Generation:
    packed = pack_generation(
        config.capacity, config.decay_rate, config.base_loss_rate,
    )
    return Generation(
        community_id=community_id, epoch=config.epoch,
        packed_config=packed_to_bytes(packed), proof_root=config.proof_root,
    )


class SqlCommunityRepository:
    """CommunityRepository backed by the SQLAlchemy async session."""

    def __init__(self, db: AsyncSession):
        self._db = db
        self._rows: dict[str, Community] = {}

    async def get_community(
        self, community_id: uuid.UUID, for_update: bool = False,
    ) -> Community:
        query = (
            select(Community)
            .where(Community.id == community_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()
        result = await self._db.execute(query)
        community = result.scalar_one_or_none()
        if community is None:
            raise ResourceNotFoundError("Community", str(community_id))
        self._rows[str(community.id)] = community
        return community

    async def load(
        self, community_id: uuid.UUID, addresses: list[str],
        allowance_pairs: list[tuple[str, str]] | None = None,
        for_update: bool = False, member_epoch: int | None = None,
    ) -> CommunityState:
        community = await self.get_community(community_id, for_update)
        epoch = community.current_epoch if member_epoch is None else member_epoch
        registry = GenerationRegistry(
            current_epoch=community.current_epoch,
            proof_root=community.proof_root,
            generations={g.epoch: _config_from_row(g) for g in community.generations},
        )
        clock = AuctionClock(
            initial_price=int(community.initial_price),
            decay_constant=int(community.decay_constant),
            emission_rate=int(community.emission_rate),
            latest_birth=int(community.latest_birth),
        )
        state = CommunityState(
            community_id=str(community.id), registry=registry, clock=clock,
            members=await self._load_members(community, epoch, addresses),
            ledger=await self._load_ledger(community, addresses, allowance_pairs or []),
        )
        return state

    async def _load_members(
        self, community: Community, epoch: int, addresses: list[str],
    ) -> MemberLedger:
        members = MemberLedger()
        if not addresses:
            return members
        result = await self._db.execute(
            select(MemberRecordRow).where(
                MemberRecordRow.community_id == community.id,
                MemberRecordRow.epoch == epoch,
                MemberRecordRow.address.in_(addresses),
            ),
        )
        for row in result.scalars().all():
            members.records[(row.epoch, row.address)] = decode_member(row.packed)
        return members

    async def _load_ledger(
        self, community: Community, addresses: list[str],
        allowance_pairs: list[tuple[str, str]],
    ) -> KnowledgeLedger:
        ledger = KnowledgeLedger(total_supply=community.total_supply)
        if addresses:
            result = await self._db.execute(
                select(Balance).where(
                    Balance.community_id == community.id,
                    Balance.address.in_(addresses),
                ),
            )
            for row in result.scalars().all():
                ledger.balances[row.address] = row.amount
        for owner, spender in allowance_pairs:
            row = await self._db.get(Allowance, (community.id, owner, spender))
            if row is not None:
                ledger.allowances[(owner, spender)] = row.amount
        return ledger

    async def insert(
        self, state: CommunityState, name: str, symbol: str, owner: str,
    ) -> Community:
        """Create the community row for a freshly built state, then save() it."""
        community = Community(
            id=uuid.UUID(state.community_id), name=name, symbol=symbol,
            owner=owner,
            initial_price=str(state.clock.initial_price),
            decay_constant=str(state.clock.decay_constant),
            emission_rate=str(state.clock.emission_rate),
            latest_birth=str(state.clock.latest_birth),
            current_epoch=state.registry.current_epoch,
            proof_root=state.registry.proof_root,
            total_supply=state.ledger.total_supply,
            generations=[],
        )
        self._db.add(community)
        await self._db.flush()
        self._rows[state.community_id] = community
        await self.save(state)
        return community

    async def save(self, state: CommunityState) -> None:
        community = self._rows[state.community_id]
        community.latest_birth = str(state.clock.latest_birth)
        community.current_epoch = state.registry.current_epoch
        community.proof_root = state.registry.proof_root
        community.total_supply = state.ledger.total_supply

        stored_epochs = {g.epoch for g in community.generations}
        for epoch, config in sorted(state.registry.generations.items()):
            if epoch not in stored_epochs:
                community.generations.append(_row_from_config(community.id, config))

        await self._save_members(community, state.members)
        await self._save_ledger(community, state.ledger)
        await self._append_events(community, state.pending_events())
        await self._db.flush()

    async def _save_members(self, community: Community, members: MemberLedger) -> None:
        for epoch, address in sorted(members.dirty):
            packed = encode_member(members.record(epoch, address))
            row = await self._db.get(MemberRecordRow, (community.id, epoch, address))
            if row is None:
                self._db.add(MemberRecordRow(
                    community_id=community.id, epoch=epoch,
                    address=address, packed=packed,
                ))
            else:
                row.packed = packed

    async def _save_ledger(self, community: Community, ledger: KnowledgeLedger) -> None:
        for address in sorted(ledger.dirty_balances):
            amount = ledger.balance_of(address)
            row = await self._db.get(Balance, (community.id, address))
            if row is None:
                self._db.add(Balance(
                    community_id=community.id, address=address, amount=amount,
                ))
            else:
                row.amount = amount
        for owner, spender in sorted(ledger.dirty_allowances):
            amount = ledger.allowance(owner, spender)
            row = await self._db.get(Allowance, (community.id, owner, spender))
            if row is None:
                self._db.add(Allowance(
                    community_id=community.id, owner=owner, spender=spender,
                    amount=amount,
                ))
            else:
                row.amount = amount

    async def _append_events(self, community: Community, events: list[dict]) -> None:
        if not events:
            return
        result = await self._db.execute(
            select(func.coalesce(func.max(CommunityEvent.sequence), 0)).where(
                CommunityEvent.community_id == community.id,
            ),
        )
        sequence = result.scalar_one()
        for event in events:
            sequence += 1
            self._db.add(CommunityEvent(
                community_id=community.id, sequence=sequence,
                kind=event["kind"], payload=event,
            ))
        logger.debug(
            f"Appended {len(events)} event(s)",
            extra={"community_id": str(community.id)},
        )

    async def list_events(self, community_id: uuid.UUID) -> list[dict]:
        result = await self._db.execute(
            select(CommunityEvent)
            .where(CommunityEvent.community_id == community_id)
            .order_by(CommunityEvent.sequence),
        )
        return [row.payload for row in result.scalars().all()]
