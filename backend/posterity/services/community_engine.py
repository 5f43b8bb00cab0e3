"""Community Engine - serialized, transactional entry point for every community operation.

Invariants:
    - Every mutation runs under the community's asyncio.Lock AND one DB transaction
    - now is sampled once per operation, after the lock is taken
    - A rejected operation rolls back and leaves no observable change
    - Reads never take the write lock and never commit

Design Decisions:
    - _write_locks as module-level WeakValueDictionary keyed by community id:
      one writer per community inside the process, and a lock lives only while
      some operation holds or awaits it. The community row lock covers other
      processes
    - Core operations passed as closures to _mutate so the lock/load/save/commit
      sequence exists exactly once
"""

import asyncio
import logging
import uuid
import weakref
from dataclasses import dataclass
from typing import Callable, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from posterity.core.birth_pricing import AuctionClock, check_auction_constants
from posterity.core.community_state import CommunityState
from posterity.core.domain_types import GENESIS_EPOCH, GuardedAction, MemberState
from posterity.core.errors import PosterityError, UnauthorizedError, ErrorContext
from posterity.core.fixed_point import to_wad
from posterity.core.generation_registry import GenerationConfig, GenerationRegistry
from posterity.core.repository_protocols import Authority, ChainClock
from posterity.core.transfer_protocol import (
    BurnReceipt, TransferReceipt, execute_burn, execute_claim,
    execute_delegated_transfer, execute_set_generation, execute_transfer,
    quote_decay, quote_erosion,
)
from posterity.services.community_repository import SqlCommunityRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")

_write_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
    weakref.WeakValueDictionary()
)


def _write_lock(community_id: uuid.UUID) -> asyncio.Lock:
    key = str(community_id)
    lock = _write_locks.get(key)
    if lock is None:
        lock = asyncio.Lock()
        _write_locks[key] = lock
    return lock


@dataclass(frozen=True)
class CommunityParams:
    """Instantiation parameters. Wad fields already scaled."""
    name: str
    symbol: str
    owner: str
    initial_price: int
    decay_constant: int
    emission_rate: int
    capacity: int
    decay_rate: int
    base_loss_rate: int
    proof_root: str


@dataclass(frozen=True)
class MemberView:
    epoch: int
    address: str
    state: MemberState
    last_settled: int
    balance: int
    decay: int


class CommunityEngine:
    """Routes public operations through the core under single-writer discipline."""

    def __init__(self, db: AsyncSession, clock: ChainClock, authority: Authority):
        self._db = db
        self._clock = clock
        self._authority = authority
        self._repo = SqlCommunityRepository(db)

    # --- Mutations ----------------------------------------------------

    async def create_community(self, params: CommunityParams) -> CommunityState:
        """Instantiate a community with its genesis generation."""
        now = self._clock.now()
        state = CommunityState(
            community_id=str(uuid.uuid4()),
            registry=GenerationRegistry(),
            clock=AuctionClock(
                initial_price=params.initial_price,
                decay_constant=params.decay_constant,
                emission_rate=params.emission_rate,
                latest_birth=to_wad(now),
            ),
        )
        try:
            check_auction_constants(state.clock)
            execute_set_generation(
                state, GENESIS_EPOCH, params.capacity, params.decay_rate,
                params.base_loss_rate, params.proof_root,
            )
            await self._repo.insert(
                state, params.name, params.symbol, params.owner,
            )
            await self._db.commit()
        except PosterityError as e:
            await self._db.rollback()
            logger.warning(
                f"Community creation rejected: {e.message}",
                extra={"error_code": e.code},
            )
            raise
        except Exception:
            await self._db.rollback()
            raise
        logger.info(
            f"Community '{params.name}' created",
            extra={"community_id": state.community_id, "epoch": GENESIS_EPOCH},
        )
        return state

    async def set_generation(
        self, community_id: uuid.UUID, caller: str, epoch: int, capacity: int,
        decay_rate: int, base_loss_rate: int, proof_root: str,
    ) -> GenerationConfig:
        community = await self._repo.get_community(community_id)
        if not self._authority.is_authorized(
            community.owner, caller, GuardedAction.SET_GENERATION,
        ):
            raise UnauthorizedError(
                GuardedAction.SET_GENERATION.value,
                ErrorContext(community_id=str(community_id), address=caller),
            )

        def operation(state: CommunityState, now: int) -> GenerationConfig:
            return execute_set_generation(
                state, epoch, capacity, decay_rate, base_loss_rate, proof_root,
            )

        config = await self._mutate(community_id, [], operation)
        logger.info(
            f"Generation {epoch} is now current",
            extra={"community_id": str(community_id), "epoch": epoch,
                   "event": "generation_changed"},
        )
        return config

    async def claim(
        self, community_id: uuid.UUID, address: str, proof: list[str],
    ) -> int:
        endowment = await self._mutate(
            community_id, [address],
            lambda state, now: execute_claim(state, address, proof, now),
        )
        logger.info(
            "Settler admitted",
            extra={"community_id": str(community_id), "address": address,
                   "amount": endowment},
        )
        return endowment

    async def transfer(
        self, community_id: uuid.UUID, sender: str, recipient: str, amount: int,
    ) -> TransferReceipt:
        receipt = await self._mutate(
            community_id, [sender, recipient],
            lambda state, now: execute_transfer(state, sender, recipient, amount, now),
        )
        self._log_receipt(community_id, receipt)
        return receipt

    async def transfer_from(
        self, community_id: uuid.UUID, spender: str, owner: str,
        recipient: str, amount: int,
    ) -> TransferReceipt:
        receipt = await self._mutate(
            community_id, [owner, recipient],
            lambda state, now: execute_delegated_transfer(
                state, spender, owner, recipient, amount, now,
            ),
            allowance_pairs=[(owner, spender)],
        )
        self._log_receipt(community_id, receipt)
        return receipt

    async def approve(
        self, community_id: uuid.UUID, owner: str, spender: str, amount: int,
    ) -> None:
        await self._mutate(
            community_id, [],
            lambda state, now: state.ledger.approve(owner, spender, amount),
            allowance_pairs=[(owner, spender)],
        )
        logger.info(
            "Allowance set",
            extra={"community_id": str(community_id), "address": owner,
                   "amount": amount, "event": "approval"},
        )

    async def burn(
        self, community_id: uuid.UUID, holder: str, amount: int,
    ) -> BurnReceipt:
        receipt = await self._mutate(
            community_id, [holder],
            lambda state, now: execute_burn(state, holder, amount),
        )
        logger.info(
            "Knowledge burned",
            extra={"community_id": str(community_id), "address": holder,
                   "amount": amount, "event": "burn"},
        )
        return receipt

    # --- Reads --------------------------------------------------------

    async def describe(self, community_id: uuid.UUID) -> dict:
        community = await self._repo.get_community(community_id)
        return {
            "id": community.id,
            "name": community.name,
            "symbol": community.symbol,
            "owner": community.owner,
            "current_epoch": community.current_epoch,
            "proof_root": community.proof_root,
            "total_supply": community.total_supply,
            "initial_price": int(community.initial_price),
            "decay_constant": int(community.decay_constant),
            "emission_rate": int(community.emission_rate),
            "latest_birth": int(community.latest_birth),
        }

    async def generation(self, community_id: uuid.UUID, epoch: int) -> GenerationConfig:
        state = await self._repo.load(community_id, [])
        return state.registry.get(epoch)

    async def member(
        self, community_id: uuid.UUID, address: str, epoch: int | None = None,
    ) -> MemberView:
        state = await self._repo.load(community_id, [address], member_epoch=epoch)
        target_epoch = state.epoch if epoch is None else epoch
        record = state.members.record(target_epoch, address)
        return MemberView(
            epoch=target_epoch,
            address=address,
            state=record.state,
            last_settled=record.last_settled,
            balance=state.ledger.balance_of(address),
            decay=quote_decay(state, address, self._clock.now())
            if target_epoch == state.epoch else 0,
        )

    async def knowledge_decay(self, community_id: uuid.UUID, address: str) -> int:
        state = await self._repo.load(community_id, [address])
        return quote_decay(state, address, self._clock.now())

    async def knowledge_erosion(self, community_id: uuid.UUID, amount: int) -> int:
        state = await self._repo.load(community_id, [])
        return quote_erosion(state, amount, self._clock.now())

    async def allowance(
        self, community_id: uuid.UUID, owner: str, spender: str,
    ) -> int:
        state = await self._repo.load(
            community_id, [], allowance_pairs=[(owner, spender)],
        )
        return state.ledger.allowance(owner, spender)

    async def events(self, community_id: uuid.UUID) -> list[dict]:
        await self._repo.get_community(community_id)
        return await self._repo.list_events(community_id)

    # --- Internals ----------------------------------------------------

    async def _mutate(
        self, community_id: uuid.UUID, addresses: list[str],
        operation: Callable[[CommunityState, int], T],
        allowance_pairs: list[tuple[str, str]] | None = None,
    ) -> T:
        async with _write_lock(community_id):
            now = self._clock.now()
            try:
                state = await self._repo.load(
                    community_id, addresses, allowance_pairs, for_update=True,
                )
                result = operation(state, now)
                await self._repo.save(state)
                await self._db.commit()
            except PosterityError as e:
                await self._db.rollback()
                logger.warning(
                    f"Operation rejected: {e.message}",
                    extra={"error_code": e.code, "community_id": str(community_id)},
                )
                raise
            except Exception:
                await self._db.rollback()
                raise
            return result

    def _log_receipt(self, community_id: uuid.UUID, receipt: TransferReceipt) -> None:
        kind = "admission" if receipt.admission else "exit"
        logger.info(
            f"Transfer committed ({kind})",
            extra={"community_id": str(community_id), "address": receipt.sender,
                   "amount": receipt.amount, "cost": receipt.cost,
                   "decay": receipt.decay},
        )
