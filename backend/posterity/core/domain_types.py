"""Domain Types - rich types that replace bare primitives across the engine.

Invariants:
    - Address is a lowercase 0x-prefixed 20-byte hex string
    - Wad values are signed integers scaled by WAD (18 decimals)
    - MemberState values match the 2-bit packed encoding (3 is reserved)

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - IntEnum for MemberState: the enum value IS the packed bit pattern
"""

import re
from enum import Enum, IntEnum
from typing import NewType


# --- Identity Types ---------------------------------------------------

Address = NewType("Address", str)
Epoch = NewType("Epoch", int)


# --- Value Types ------------------------------------------------------

Wad = NewType("Wad", int)  # 18-decimal signed fixed point


ZERO_ADDRESS = Address("0x" + "00" * 20)
GENESIS_EPOCH = Epoch(1)
U32_MAX: int = 2**32 - 1
_ADDRESS_RE = re.compile(r"0x[0-9a-f]{40}")


def normalize_address(value: str) -> Address:
    """Lowercase an address and check its shape."""
    v = value.strip().lower()
    if not _ADDRESS_RE.fullmatch(v):
        raise ValueError(f"malformed address: {value!r}")
    return Address(v)


# --- Enums ------------------------------------------------------------

class MemberState(IntEnum):
    """Member lifecycle. Only ever advances UNSEEN -> ALIVE -> DEAD."""
    UNSEEN = 0
    ALIVE = 1
    DEAD = 2


class GuardedAction(str, Enum):
    """Actions routed through the authorization delegate."""
    SET_GENERATION = "set_generation"


class EventKind(str, Enum):
    """Notifications emitted by the engine and the ledger."""
    GENERATION_CHANGED = "generation_changed"
    TRANSFER = "transfer"
    APPROVAL = "approval"
