"""Community State - the aggregate every engine operation reads and mutates.

Invariants:
    - One CommunityState per operation, hydrated by the shell, discarded on failure
    - registry and clock are owned by exactly one community
    - pending_events() lists notifications in the order they were produced

Design Decisions:
    - Explicit aggregate passed by reference instead of ambient globals
      (ADR: single-writer discipline is visible in every signature)
"""

from dataclasses import dataclass, field

from posterity.core.birth_pricing import AuctionClock
from posterity.core.generation_registry import GenerationRegistry
from posterity.core.knowledge_ledger import KnowledgeLedger
from posterity.core.member_ledger import MemberLedger


@dataclass
class CommunityState:
    community_id: str
    registry: GenerationRegistry
    clock: AuctionClock
    members: MemberLedger = field(default_factory=MemberLedger)
    ledger: KnowledgeLedger = field(default_factory=KnowledgeLedger)
    events: list[dict] = field(default_factory=list)

    @property
    def epoch(self) -> int:
        return self.registry.current_epoch

    def pending_events(self) -> list[dict]:
        return self.events + self.ledger.events
