"""Transfer Protocol - the single orchestration path for every balance change.

Invariants:
    - Every precondition is checked before the first mutation; once mutation
      starts nothing can fail short of an internal invariant breach
    - Shard-or-all: an amount is exactly 1 (admission shard) or exactly the
      sender's remaining balance (full exit); anything else is rejected
    - A full exit is free and kills the sender; a shard pays the auction price
      and mints the epoch's capacity to the recipient
    - Dead members never receive knowledge and never come back
    - Claims bypass decay and pricing: proof, Unseen check, capacity mint
    - The zero address never receives knowledge through a transfer
    - A holder burning its last unit is Dead, exactly as after a full exit

Design Decisions:
    - One explicit function per public operation instead of ledger hooks
      (ADR: ordering of decay, pricing, ledger and state writes is readable top to bottom)
    - When remaining == 1 the transfer is a full exit, never a shard: exit
      takes precedence so leaving cannot mint a free endowment
    - Recipients receiving their first balance start their decay clock at now
"""

from dataclasses import dataclass

from posterity.core.birth_pricing import (
    check_emission_capacity, consume_emission, knowledge_erosion,
)
from posterity.core.community_state import CommunityState
from posterity.core.decay import knowledge_decay
from posterity.core.domain_types import MemberState, ZERO_ADDRESS
from posterity.core.errors import (
    AlreadyAdmittedError, ErrorContext, InsufficientAllowanceError,
    InsufficientRemainingBalanceError, InvalidAdmissionProofError,
    InvalidBurnAmountError, InvalidTransferAmountError, RecipientIsDeadError,
    SelfTransferError, SenderPerishedError, ZeroAddressError,
)
from posterity.core.generation_registry import GenerationConfig
from posterity.core.merkle_proof import verify_proof


SHARD: int = 1
MIN_LIVING_BALANCE: int = 1


@dataclass(frozen=True)
class TransferReceipt:
    """What a committed transfer did, for logging and API responses."""
    sender: str
    recipient: str
    amount: int
    decay: int
    cost: int
    endowment: int
    admission: bool
    sender_state: MemberState
    recipient_state: MemberState


@dataclass(frozen=True)
class BurnReceipt:
    holder: str
    amount: int
    balance: int
    state: MemberState


def _context(state: CommunityState, address: str) -> ErrorContext:
    return ErrorContext(
        community_id=state.community_id, epoch=state.epoch, address=address,
    )


def execute_set_generation(
    state: CommunityState, epoch: int, capacity: int, decay_rate: int,
    base_loss_rate: int, proof_root: str,
) -> GenerationConfig:
    """Append a generation. Caller authorization is checked by the shell."""
    event = state.registry.set_generation(
        epoch, capacity, decay_rate, base_loss_rate, proof_root,
    )
    state.events.append(event)
    return state.registry.current


def execute_claim(
    state: CommunityState, address: str, proof: list[str], now: int,
) -> int:
    """Genesis admission against the current proof root. Returns the endowment."""
    epoch = state.epoch
    if not verify_proof(proof, state.registry.proof_root, address):
        raise InvalidAdmissionProofError(_context(state, address))
    if state.members.get_state(epoch, address) != MemberState.UNSEEN:
        raise AlreadyAdmittedError(_context(state, address))

    capacity = state.registry.get_capacity(epoch)
    state.members.set_state(epoch, address, MemberState.ALIVE)
    state.members.set_last_settled(epoch, address, now)
    state.ledger.mint(address, capacity)
    return capacity


def execute_transfer(
    state: CommunityState, sender: str, recipient: str, amount: int, now: int,
) -> TransferReceipt:
    """Move `amount` from sender to recipient under the decay and auction rules."""
    epoch = state.epoch
    registry, members, ledger = state.registry, state.members, state.ledger

    if recipient == ZERO_ADDRESS:
        raise ZeroAddressError("recipient", _context(state, sender))
    if sender == recipient:
        raise SelfTransferError(_context(state, sender))

    # 1. carcasses hold nothing, including holders whose decay outran their balance
    recipient_balance = ledger.balance_of(recipient)
    recipient_decay = knowledge_decay(registry, members, recipient, now)
    recipient_state = members.get_state(
        epoch, recipient, recipient_balance, recipient_decay,
    )
    if recipient_state == MemberState.DEAD:
        raise RecipientIsDeadError(_context(state, recipient))

    # 2. settle-able sender
    sender_balance = ledger.balance_of(sender)
    decay = knowledge_decay(registry, members, sender, now)
    if sender_balance < decay:
        raise SenderPerishedError(sender_balance, decay, _context(state, sender))
    remaining = sender_balance - decay

    # 3. shard-or-all
    full_exit = amount == remaining
    admission = amount == SHARD and not full_exit
    if amount <= 0 or not (full_exit or admission):
        raise InvalidTransferAmountError(amount, remaining, _context(state, sender))

    # 4. exiting is free, spawning pays the auction
    cost = 0
    seconds_requested = 0
    if admission:
        seconds_requested = check_emission_capacity(state.clock, amount, now)
        cost = knowledge_erosion(
            state.clock, amount, now, registry.get_base_loss_rate(epoch),
        )

    # 5. affordability
    if remaining < amount + cost:
        raise InsufficientRemainingBalanceError(
            remaining, amount + cost, _context(state, sender),
        )

    # --- all checks passed: mutate ---
    if decay + cost > 0:
        ledger.burn(sender, decay + cost)
        members.set_last_settled(epoch, sender, now)
    if admission:
        consume_emission(state.clock, seconds_requested)
    ledger.transfer(sender, recipient, amount)

    # 6. sender lifecycle
    if full_exit:
        new_sender_state = MemberState.DEAD
    else:
        new_sender_state = members.get_state(
            epoch, sender, ledger.balance_of(sender), MIN_LIVING_BALANCE,
        )
    members.set_state(epoch, sender, new_sender_state)

    # 7. recipient lifecycle
    if recipient_balance == 0:
        new_recipient_state = MemberState.ALIVE
        members.set_last_settled(epoch, recipient, now)
    else:
        new_recipient_state = members.get_state(
            epoch, recipient, ledger.balance_of(recipient), recipient_decay,
        )
    members.set_state(epoch, recipient, new_recipient_state)

    # 8. birth endowment
    endowment = 0
    if admission:
        endowment = registry.get_capacity(epoch)
        ledger.mint(recipient, endowment)

    return TransferReceipt(
        sender=sender, recipient=recipient, amount=amount, decay=decay,
        cost=cost, endowment=endowment, admission=admission,
        sender_state=new_sender_state,
        recipient_state=new_recipient_state,
    )


def execute_delegated_transfer(
    state: CommunityState, spender: str, owner: str, recipient: str,
    amount: int, now: int,
) -> TransferReceipt:
    """transferFrom: same protocol with owner as sender, paid from spender's allowance."""
    allowance = state.ledger.allowance(owner, spender)
    if amount > allowance:
        raise InsufficientAllowanceError(allowance, amount, _context(state, owner))
    receipt = execute_transfer(state, owner, recipient, amount, now)
    state.ledger.spend_allowance(owner, spender, amount)
    return receipt


def execute_burn(state: CommunityState, holder: str, amount: int) -> BurnReceipt:
    """Destroy `amount` of holder's stored balance. Decay is not settled here."""
    epoch = state.epoch
    if amount <= 0:
        raise InvalidBurnAmountError(amount, _context(state, holder))

    state.ledger.burn(holder, amount)
    balance = state.ledger.balance_of(holder)
    if balance == 0:
        state.members.set_state(epoch, holder, MemberState.DEAD)
    return BurnReceipt(
        holder=holder, amount=amount, balance=balance,
        state=state.members.get_state(epoch, holder),
    )


def quote_erosion(state: CommunityState, amount: int, now: int) -> int:
    """Read-only admission cost for `amount` units at `now`."""
    return knowledge_erosion(
        state.clock, amount, now,
        state.registry.get_base_loss_rate(state.epoch),
    )


def quote_decay(state: CommunityState, address: str, now: int) -> int:
    return knowledge_decay(state.registry, state.members, address, now)
