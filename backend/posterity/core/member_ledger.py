"""Member Ledger - per (epoch, address) lifecycle state and last-settlement time.

Invariants:
    - Unreferenced records read as (UNSEEN, 0)
    - State only advances: UNSEEN -> ALIVE -> DEAD, DEAD is terminal
    - set_state preserves last_settled; set_last_settled preserves state
    - Packed form: state in bits 0-1 (3 reserved), last_settled in bits 2 and up

Design Decisions:
    - Records held structured (MemberRecord); encode_member/decode_member are
      used only by the persistence layer
    - dirty set tracks which records the shell must write back
"""

from dataclasses import dataclass, field, replace

from posterity.core.domain_types import MemberState
from posterity.core.errors import InvalidStateTransitionError, ErrorContext


STATE_BITS: int = 2
STATE_MASK: int = (1 << STATE_BITS) - 1


@dataclass(frozen=True)
class MemberRecord:
    state: MemberState = MemberState.UNSEEN
    last_settled: int = 0


def encode_member(record: MemberRecord) -> int:
    if record.last_settled < 0:
        raise ValueError("last_settled cannot be negative")
    return (record.last_settled << STATE_BITS) | int(record.state)


def decode_member(packed: int) -> MemberRecord:
    # MemberState(3) raises ValueError: the reserved pattern never decodes
    return MemberRecord(
        state=MemberState(packed & STATE_MASK),
        last_settled=packed >> STATE_BITS,
    )


@dataclass
class MemberLedger:
    """Working set of member records for one operation."""
    records: dict[tuple[int, str], MemberRecord] = field(default_factory=dict)
    dirty: set[tuple[int, str]] = field(default_factory=set)

    def record(self, epoch: int, address: str) -> MemberRecord:
        return self.records.get((epoch, address), MemberRecord())

    def get_state(
        self, epoch: int, address: str,
        balance: int | None = None, required_balance: int | None = None,
    ) -> MemberState:
        """Stored state; with a balance, an ALIVE holder below required_balance reads as DEAD."""
        state = self.record(epoch, address).state
        if (
            balance is not None
            and required_balance is not None
            and state == MemberState.ALIVE
            and balance < required_balance
        ):
            return MemberState.DEAD
        return state

    def set_state(self, epoch: int, address: str, state: MemberState) -> None:
        current = self.record(epoch, address)
        if state < current.state:
            raise InvalidStateTransitionError(
                current.state.name, state.name,
                ErrorContext(epoch=epoch, address=address),
            )
        self._write(epoch, address, replace(current, state=state))

    def get_last_settled(self, epoch: int, address: str) -> int:
        return self.record(epoch, address).last_settled

    def set_last_settled(self, epoch: int, address: str, timestamp: int) -> None:
        current = self.record(epoch, address)
        self._write(epoch, address, replace(current, last_settled=timestamp))

    def _write(self, epoch: int, address: str, record: MemberRecord) -> None:
        self.records[(epoch, address)] = record
        self.dirty.add((epoch, address))
