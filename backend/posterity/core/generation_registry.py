"""Generation Registry - per-epoch admission capacity, decay rate and base loss rate.

Invariants:
    - Epochs are append-only: a new epoch must be strictly greater than the current one
    - decay_rate is never zero (it is a divisor in every decay computation)
    - Superseded generations are kept, never deleted
    - capacity, decay_rate and base_loss_rate are u32 and pack into 96 bits:
      capacity bits 0-31, decay_rate bits 32-63, base_loss_rate bits 64-95

Design Decisions:
    - GenerationConfig is the structured record; pack/unpack live at the
      persistence boundary only (ADR: business logic never touches packed ints)
    - set_generation returns the GenerationChanged payload; the caller records it
"""

from dataclasses import dataclass, field

from posterity.core.domain_types import EventKind, U32_MAX
from posterity.core.errors import (
    EpochNotAdvancingError, InvalidDecayRateError, GenerationNotFoundError,
    ErrorContext,
)


_FIELD_BITS: int = 32
_FIELD_MASK: int = (1 << _FIELD_BITS) - 1
PACKED_GENERATION_BYTES: int = 12


@dataclass(frozen=True)
class GenerationConfig:
    """One epoch's economic parameters."""
    epoch: int
    capacity: int
    decay_rate: int
    base_loss_rate: int
    proof_root: str

    def to_payload(self) -> dict:
        return {
            "epoch": self.epoch,
            "capacity": self.capacity,
            "decay_rate": self.decay_rate,
            "base_loss_rate": self.base_loss_rate,
        }


def pack_generation(capacity: int, decay_rate: int, base_loss_rate: int) -> int:
    """Pack the three u32 fields into one 96-bit integer."""
    for name, value in (
        ("capacity", capacity), ("decay_rate", decay_rate),
        ("base_loss_rate", base_loss_rate),
    ):
        if not 0 <= value <= U32_MAX:
            raise ValueError(f"{name} out of u32 range: {value}")
    return (
        capacity
        | (decay_rate << _FIELD_BITS)
        | (base_loss_rate << (2 * _FIELD_BITS))
    )


def unpack_generation(packed: int) -> tuple[int, int, int]:
    """Inverse of pack_generation: (capacity, decay_rate, base_loss_rate)."""
    return (
        packed & _FIELD_MASK,
        (packed >> _FIELD_BITS) & _FIELD_MASK,
        (packed >> (2 * _FIELD_BITS)) & _FIELD_MASK,
    )


def packed_to_bytes(packed: int) -> bytes:
    return packed.to_bytes(PACKED_GENERATION_BYTES, "big")


def packed_from_bytes(raw: bytes) -> int:
    return int.from_bytes(raw, "big")


@dataclass
class GenerationRegistry:
    """All configured generations plus the current epoch pointer."""
    current_epoch: int = 0
    proof_root: str = ""
    generations: dict[int, GenerationConfig] = field(default_factory=dict)

    @property
    def current(self) -> GenerationConfig:
        return self.get(self.current_epoch)

    def get(self, epoch: int) -> GenerationConfig:
        config = self.generations.get(epoch)
        if config is None:
            raise GenerationNotFoundError(epoch, ErrorContext(epoch=epoch))
        return config

    def get_capacity(self, epoch: int) -> int:
        return self.get(epoch).capacity

    def get_decay_rate(self, epoch: int) -> int:
        return self.get(epoch).decay_rate

    def get_base_loss_rate(self, epoch: int) -> int:
        return self.get(epoch).base_loss_rate

    def set_generation(
        self, epoch: int, capacity: int, decay_rate: int,
        base_loss_rate: int, proof_root: str,
    ) -> dict:
        """Append a generation and make it current. Returns the GenerationChanged event."""
        if epoch <= self.current_epoch:
            raise EpochNotAdvancingError(
                self.current_epoch, epoch, ErrorContext(epoch=epoch),
            )
        if decay_rate == 0:
            raise InvalidDecayRateError(ErrorContext(epoch=epoch))
        # Round-trip through the packed form so out-of-range fields fail here
        capacity, decay_rate, base_loss_rate = unpack_generation(
            pack_generation(capacity, decay_rate, base_loss_rate),
        )

        config = GenerationConfig(
            epoch=epoch, capacity=capacity, decay_rate=decay_rate,
            base_loss_rate=base_loss_rate, proof_root=proof_root,
        )
        self.generations[epoch] = config
        self.current_epoch = epoch
        self.proof_root = proof_root
        return {
            "kind": EventKind.GENERATION_CHANGED.value,
            "epoch": epoch,
            "config": config.to_payload(),
            "proof_root": proof_root,
        }
