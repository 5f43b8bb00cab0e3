"""Route Dependencies - engine construction and caller identity for every route.

Invariants:
    - One CommunityEngine per request, bound to the request's DB session
    - The chain clock is process-wide (get_clock), so its monotonic clamp holds
      across requests
    - X-Caller-Address is validated and lowercased before any engine call

Design Decisions:
    - Clock and authority exposed as dependencies: tests override them through
      app.dependency_overrides instead of monkeypatching
"""

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from posterity.core.domain_types import Address, normalize_address
from posterity.core.repository_protocols import Authority, ChainClock
from posterity.infrastructure.chain_clock import SystemClock
from posterity.infrastructure.database import get_db
from posterity.services.authority import OwnerAuthority
from posterity.services.community_engine import CommunityEngine

_system_clock = SystemClock()


def get_clock() -> ChainClock:
    return _system_clock


def get_authority() -> Authority:
    return OwnerAuthority()


def get_engine(
    db: AsyncSession = Depends(get_db),
    clock: ChainClock = Depends(get_clock),
    authority: Authority = Depends(get_authority),
) -> CommunityEngine:
    return CommunityEngine(db, clock, authority)


def get_caller(x_caller_address: str = Header(...)) -> Address:
    """The acting address, as the transaction sender would be."""
    try:
        return normalize_address(x_caller_address)
    except ValueError:
        raise HTTPException(
            status.HTTP_400_BAD_REQUEST,
            detail="X-Caller-Address must be a 0x-prefixed 20-byte hex address",
        )


def parse_address(address: str) -> Address:
    """Path-parameter variant of get_caller."""
    try:
        return normalize_address(address)
    except ValueError:
        raise HTTPException(
            status.HTTP_400_BAD_REQUEST, detail=f"Malformed address: {address}",
        )
