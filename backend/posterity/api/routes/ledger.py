"""Ledger Routes - claims, transfers, approvals and the read-only ledger queries.

Invariants:
    - The acting address always comes from X-Caller-Address (except claims,
      which name their own beneficiary like a whitelist mint)
    - Every rejected operation surfaces the engine's error code unchanged

Design Decisions:
    - Member lifecycle state rendered as lowercase enum name ("alive")
    - Erosion quotes are bounded to u32 amounts at the boundary
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from posterity.core.domain_types import Address, U32_MAX
from posterity.core.transfer_protocol import TransferReceipt
from posterity.schemas.community import (
    ApprovalRequest, ApprovalResponse, BurnRequest, BurnResponse, ClaimRequest,
    ClaimResponse, DecayResponse, DelegatedTransferRequest, ErosionResponse,
    MemberResponse, TransferRequest, TransferResponse,
)
from posterity.services.community_engine import CommunityEngine
from posterity.api.dependencies import get_caller, get_engine, parse_address

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/communities", tags=["ledger"])


def _transfer_response(receipt: TransferReceipt) -> TransferResponse:
    return TransferResponse(
        sender=receipt.sender,
        recipient=receipt.recipient,
        amount=receipt.amount,
        decay=receipt.decay,
        cost=receipt.cost,
        endowment=receipt.endowment,
        admission=receipt.admission,
        sender_state=receipt.sender_state.name.lower(),
        recipient_state=receipt.recipient_state.name.lower(),
    )


@router.post(
    "/{community_id}/claims", response_model=ClaimResponse,
    status_code=status.HTTP_201_CREATED,
)
async def claim(
    community_id: UUID, body: ClaimRequest,
    engine: CommunityEngine = Depends(get_engine),
):
    """Genesis admission with a whitelist proof."""
    endowment = await engine.claim(community_id, body.address, body.proof)
    return ClaimResponse(address=body.address, endowment=endowment)


@router.post("/{community_id}/transfers", response_model=TransferResponse)
async def transfer(
    community_id: UUID, body: TransferRequest,
    caller: Address = Depends(get_caller),
    engine: CommunityEngine = Depends(get_engine),
):
    """Shard (amount 1) or full exit (entire remaining balance)."""
    receipt = await engine.transfer(community_id, caller, body.to, body.amount)
    return _transfer_response(receipt)


@router.post(
    "/{community_id}/transfers/delegated", response_model=TransferResponse,
)
async def transfer_from(
    community_id: UUID, body: DelegatedTransferRequest,
    caller: Address = Depends(get_caller),
    engine: CommunityEngine = Depends(get_engine),
):
    """Transfer on the owner's behalf, spending the caller's allowance."""
    receipt = await engine.transfer_from(
        community_id, caller, body.owner, body.to, body.amount,
    )
    return _transfer_response(receipt)


@router.post("/{community_id}/approvals", response_model=ApprovalResponse)
async def approve(
    community_id: UUID, body: ApprovalRequest,
    caller: Address = Depends(get_caller),
    engine: CommunityEngine = Depends(get_engine),
):
    await engine.approve(community_id, caller, body.spender, body.amount)
    return ApprovalResponse(owner=caller, spender=body.spender, amount=body.amount)


@router.post("/{community_id}/burns", response_model=BurnResponse)
async def burn(
    community_id: UUID, body: BurnRequest,
    caller: Address = Depends(get_caller),
    engine: CommunityEngine = Depends(get_engine),
):
    """Destroy part of the caller's balance. Burning the last unit kills the holder."""
    receipt = await engine.burn(community_id, caller, body.amount)
    return BurnResponse(
        holder=receipt.holder,
        amount=receipt.amount,
        balance=receipt.balance,
        state=receipt.state.name.lower(),
    )


@router.get(
    "/{community_id}/members/{address}", response_model=MemberResponse,
)
async def get_member(
    community_id: UUID, address: str,
    epoch: int | None = Query(None, ge=0),
    engine: CommunityEngine = Depends(get_engine),
):
    """Lifecycle state, last settlement and balance (current epoch by default)."""
    view = await engine.member(community_id, parse_address(address), epoch)
    return MemberResponse(
        epoch=view.epoch,
        address=view.address,
        state=view.state.name.lower(),
        last_settled=view.last_settled,
        balance=view.balance,
        decay=view.decay,
    )


@router.get(
    "/{community_id}/members/{address}/decay", response_model=DecayResponse,
)
async def get_knowledge_decay(
    community_id: UUID, address: str,
    engine: CommunityEngine = Depends(get_engine),
):
    member = parse_address(address)
    return DecayResponse(
        address=member,
        decay=await engine.knowledge_decay(community_id, member),
    )


@router.get("/{community_id}/erosion", response_model=ErosionResponse)
async def get_knowledge_erosion(
    community_id: UUID,
    amount: int = Query(1, ge=1, le=U32_MAX),
    engine: CommunityEngine = Depends(get_engine),
):
    """Current admission cost for `amount` units."""
    return ErosionResponse(
        amount=amount,
        erosion=await engine.knowledge_erosion(community_id, amount),
    )


@router.get(
    "/{community_id}/allowances/{owner}/{spender}",
    response_model=ApprovalResponse,
)
async def get_allowance(
    community_id: UUID, owner: str, spender: str,
    engine: CommunityEngine = Depends(get_engine),
):
    owner_address, spender_address = parse_address(owner), parse_address(spender)
    return ApprovalResponse(
        owner=owner_address, spender=spender_address,
        amount=await engine.allowance(community_id, owner_address, spender_address),
    )
