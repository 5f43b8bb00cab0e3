"""Community schema validation - API-boundary checks on addresses, hashes and u32 fields.

Invariants:
    - Addresses are lowercased on the way in
    - Generation fields outside u32 never reach the engine
    - Proof elements must be 0x-prefixed 32-byte hashes
"""

import pytest
from pydantic import ValidationError

from posterity.core.domain_types import U32_MAX
from posterity.schemas.community import (
    ClaimRequest, CommunityCreate, GenerationCreate, TransferRequest,
)

ROOT = "0x" + "ab" * 32
MIXED_CASE = "0x" + "aB" * 20


def _community(**overrides) -> dict:
    body = {
        "name": "Founders", "symbol": "FND", "owner": "0x" + "0f" * 20,
        "initial_price": "0.03", "decay_constant": "0.001",
        "emission_rate": "0.01", "capacity": 100, "decay_rate": 604800,
        "proof_root": ROOT,
    }
    body.update(overrides)
    return body


# --- CommunityCreate ----------------------------------------------------------

def test_community_create_defaults_base_loss_rate_to_zero():
    assert CommunityCreate(**_community()).base_loss_rate == 0


def test_community_create_lowercases_owner():
    assert CommunityCreate(**_community(owner=MIXED_CASE)).owner == MIXED_CASE.lower()


def test_community_create_strips_name():
    assert CommunityCreate(**_community(name="  Founders ")).name == "Founders"


def test_community_create_rejects_blank_symbol():
    with pytest.raises(ValidationError):
        CommunityCreate(**_community(symbol="   "))


def test_community_create_zero_decay_rate_passes_through():
    assert CommunityCreate(**_community(decay_rate=0)).decay_rate == 0


def test_community_create_rejects_capacity_above_u32():
    with pytest.raises(ValidationError):
        CommunityCreate(**_community(capacity=U32_MAX + 1))


def test_community_create_rejects_short_root():
    with pytest.raises(ValidationError):
        CommunityCreate(**_community(proof_root="0x1234"))


# --- GenerationCreate ---------------------------------------------------------

def test_generation_create_rejects_negative_epoch():
    with pytest.raises(ValidationError):
        GenerationCreate(epoch=-1, capacity=1, decay_rate=1, proof_root=ROOT)


# --- Ledger requests --------------------------------------------------------

def test_claim_request_rejects_malformed_proof_element():
    with pytest.raises(ValidationError):
        ClaimRequest(address="0x" + "a1" * 20, proof=["0x1234"])


def test_claim_request_proof_defaults_to_empty():
    assert ClaimRequest(address="0x" + "a1" * 20).proof == []


def test_transfer_request_lowercases_recipient():
    assert TransferRequest(to=MIXED_CASE, amount=1).to == MIXED_CASE.lower()


def test_transfer_request_rejects_negative_amount():
    with pytest.raises(ValidationError):
        TransferRequest(to=MIXED_CASE, amount=-1)
