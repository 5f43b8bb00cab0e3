"""Decay Calculator - knowledge lost since a member's last settlement.

Invariants:
    - decay = floor(elapsed / decay_rate), elapsed clamped at zero
    - decay == 0 iff elapsed < decay_rate
    - The CURRENT epoch's decay rate applies, whatever epoch the member joined in
"""

from posterity.core.generation_registry import GenerationRegistry
from posterity.core.member_ledger import MemberLedger


def compute_decay(now: int, last_settled: int, decay_rate: int) -> int:
    """Whole decay periods elapsed between last_settled and now."""
    return max(now - last_settled, 0) // decay_rate


def knowledge_decay(
    registry: GenerationRegistry, members: MemberLedger, address: str, now: int,
) -> int:
    """Decay owed by address in the current epoch's namespace."""
    epoch = registry.current_epoch
    return compute_decay(
        now,
        members.get_last_settled(epoch, address),
        registry.get_decay_rate(epoch),
    )
