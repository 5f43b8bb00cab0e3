"""Community Routes - instantiation, description and generation management.

Invariants:
    - Economic constants are converted to wad here, before the engine sees them
    - setGeneration requires the X-Caller-Address header; authorization is the
      engine's Authority delegate
    - Generation lookups for unknown epochs return 404

Design Decisions:
    - Instantiation lives here rather than in a separate factory service: one
      engine call builds the genesis generation and auction clock atomically
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status

from posterity.core.fixed_point import format_wad, parse_wad
from posterity.core.generation_registry import GenerationConfig
from posterity.core.domain_types import Address
from posterity.schemas.community import (
    CommunityCreate, CommunityResponse, GenerationCreate, GenerationResponse,
)
from posterity.services.community_engine import CommunityEngine, CommunityParams
from posterity.api.dependencies import get_caller, get_engine

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/communities", tags=["communities"])


def _generation_response(config: GenerationConfig) -> GenerationResponse:
    return GenerationResponse(
        epoch=config.epoch,
        capacity=config.capacity,
        decay_rate=config.decay_rate,
        base_loss_rate=config.base_loss_rate,
        proof_root=config.proof_root,
    )


def _community_response(data: dict) -> CommunityResponse:
    return CommunityResponse(
        id=data["id"],
        name=data["name"],
        symbol=data["symbol"],
        owner=data["owner"],
        current_epoch=data["current_epoch"],
        proof_root=data["proof_root"],
        total_supply=data["total_supply"],
        initial_price=format_wad(data["initial_price"]),
        decay_constant=format_wad(data["decay_constant"]),
        emission_rate=format_wad(data["emission_rate"]),
        latest_birth=format_wad(data["latest_birth"]),
    )


@router.post(
    "", response_model=CommunityResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_community(
    body: CommunityCreate, engine: CommunityEngine = Depends(get_engine),
):
    """Instantiate a community with its genesis generation."""
    state = await engine.create_community(CommunityParams(
        name=body.name,
        symbol=body.symbol,
        owner=body.owner,
        initial_price=parse_wad(body.initial_price),
        decay_constant=parse_wad(body.decay_constant),
        emission_rate=parse_wad(body.emission_rate),
        capacity=body.capacity,
        decay_rate=body.decay_rate,
        base_loss_rate=body.base_loss_rate,
        proof_root=body.proof_root.lower(),
    ))
    return _community_response(
        await engine.describe(UUID(state.community_id)),
    )


@router.get("/{community_id}", response_model=CommunityResponse)
async def get_community(
    community_id: UUID, engine: CommunityEngine = Depends(get_engine),
):
    return _community_response(await engine.describe(community_id))


@router.post(
    "/{community_id}/generations", response_model=GenerationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def set_generation(
    community_id: UUID,
    body: GenerationCreate,
    caller: Address = Depends(get_caller),
    engine: CommunityEngine = Depends(get_engine),
):
    """Advance to a new generation. Owner only."""
    config = await engine.set_generation(
        community_id, caller, body.epoch, body.capacity, body.decay_rate,
        body.base_loss_rate, body.proof_root.lower(),
    )
    return _generation_response(config)


@router.get(
    "/{community_id}/generations/{epoch}", response_model=GenerationResponse,
)
async def get_generation(
    community_id: UUID, epoch: int,
    engine: CommunityEngine = Depends(get_engine),
):
    """Capacity, decay rate and base loss rate of one epoch."""
    return _generation_response(await engine.generation(community_id, epoch))


@router.get("/{community_id}/events")
async def list_events(
    community_id: UUID, engine: CommunityEngine = Depends(get_engine),
):
    """Emitted notifications in emission order."""
    return {"events": await engine.events(community_id)}
