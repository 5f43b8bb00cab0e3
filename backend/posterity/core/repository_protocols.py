"""Boundary Protocols - contracts between core and shell.

Invariants:
    - Core NEVER imports from shell; dependency arrows point inward only
    - Chain time and authorization are reached through Protocol types
    - Implementations provided by shell via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - Both protocols are synchronous: a clock read and a capability check
      never need IO in the implementations shipped here
"""

from typing import Protocol

from posterity.core.domain_types import GuardedAction


class ChainClock(Protocol):
    """Monotonic chain-time source, integer UNIX seconds."""
    def now(self) -> int: ...


class Authority(Protocol):
    """Delegated capability check for guarded configuration changes."""
    def is_authorized(
        self, owner: str, caller: str, action: GuardedAction,
    ) -> bool: ...
