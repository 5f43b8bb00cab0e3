"""ORM Models - SQLAlchemy declarative models for persisted community state.

Invariants:
    - All models inherit from Base (db/base.py)
    - Community is the aggregate root; all rows scoped by community_id

Design Decisions:
    - One file per entity for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from posterity.models.community import Community  # noqa: F401
from posterity.models.generation import Generation  # noqa: F401
from posterity.models.member_record import MemberRecordRow  # noqa: F401
from posterity.models.balance import Balance  # noqa: F401
from posterity.models.allowance import Allowance  # noqa: F401
from posterity.models.community_event import CommunityEvent  # noqa: F401
