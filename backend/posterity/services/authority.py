"""Authorization Delegate - decides who may change a community's generation.

Invariants:
    - Only actions listed in GuardedAction are checked here
    - Addresses compared in normalized (lowercase) form

Design Decisions:
    - Ownership is the default capability; other policies implement the same
      Authority protocol and are injected into CommunityEngine
"""

from posterity.core.domain_types import GuardedAction


class OwnerAuthority:
    """The community owner may perform every guarded action."""

    def is_authorized(
        self, owner: str, caller: str, action: GuardedAction,
    ) -> bool:
        return owner.lower() == caller.lower()
