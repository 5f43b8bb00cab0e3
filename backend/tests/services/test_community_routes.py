"""Community route tests - REST surface over the engine, through the ASGI app.

Tests cover:
    - Health and readiness probes
    - Instantiation validation and error envelopes
    - X-Caller-Address identity and owner-only generation changes
    - Claim, shard, exit and delegated transfer flows with their HTTP codes
    - Read-only member, decay, erosion, allowance and event queries
    - Burns, zero-address recipients and out-of-range quotes
"""

import uuid

from posterity.core.merkle_proof import build_proof

from tests.services.community_fixtures import (
    ALICE, BOB, CAROL, DAVE, OWNER, ROOT, SETTLERS, T0, WEEK,
)

BASE = "/api/v1/communities"
ZERO = "0x" + "00" * 20


def _create_body(**overrides) -> dict:
    body = {
        "name": "Founders",
        "symbol": "FND",
        "owner": OWNER,
        "initial_price": "0.03",
        "decay_constant": "0.001",
        "emission_rate": "0.01",
        "capacity": 100,
        "decay_rate": WEEK,
        "base_loss_rate": 0,
        "proof_root": ROOT,
    }
    body.update(overrides)
    return body


def _as(address: str) -> dict:
    return {"X-Caller-Address": address}


async def _create(client) -> str:
    response = await client.post(BASE, json=_create_body())
    assert response.status_code == 201
    return response.json()["id"]


async def _claim(client, community_id: str, address: str):
    return await client.post(
        f"{BASE}/{community_id}/claims",
        json={"address": address, "proof": build_proof(SETTLERS, address)},
    )


# --- Health -----------------------------------------------------------

async def test_liveness(client):
    response = await client.get("/api/v1/health/")
    assert response.status_code == 200
    assert response.json()["service"] == "posterity-api"


async def test_readiness_with_database(client):
    response = await client.get("/api/v1/health/ready")
    assert response.status_code == 200
    assert response.json()["checks"] == {"database": "healthy", "schema": "healthy"}


# --- Communities --------------------------------------------------------

async def test_create_community(client):
    response = await client.post(BASE, json=_create_body())
    assert response.status_code == 201
    data = response.json()
    assert data["current_epoch"] == 1
    assert data["initial_price"] == "0.03"
    assert data["decay_constant"] == "0.001"
    assert data["latest_birth"] == str(T0)
    assert data["total_supply"] == 0


async def test_create_community_zero_decay_rate(client):
    response = await client.post(BASE, json=_create_body(decay_rate=0))
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_DECAY_RATE"


async def test_create_community_malformed_owner(client):
    response = await client.post(BASE, json=_create_body(owner="0x1234"))
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert any("owner" in d["field"] for d in error["details"])


async def test_create_community_rejects_non_positive_constants(client):
    response = await client.post(BASE, json=_create_body(emission_rate="0"))
    assert response.status_code == 400


async def test_create_community_rejects_constant_below_one_atto(client):
    response = await client.post(
        BASE, json=_create_body(decay_constant="0.0000000000000000001"),
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_AUCTION_CONSTANT"


async def test_owner_is_normalized(client):
    response = await client.post(BASE, json=_create_body(owner=OWNER.upper().replace("0X", "0x")))
    assert response.status_code == 201
    assert response.json()["owner"] == OWNER


async def test_unknown_community(client):
    response = await client.get(f"{BASE}/{uuid.uuid4()}")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "RESOURCE_NOT_FOUND"


# --- Generations ----------------------------------------------------------

async def test_set_generation_requires_caller_header(client):
    community_id = await _create(client)
    response = await client.post(
        f"{BASE}/{community_id}/generations",
        json={"epoch": 2, "capacity": 50, "decay_rate": WEEK, "proof_root": ROOT},
    )
    assert response.status_code == 400


async def test_set_generation_non_owner_forbidden(client):
    community_id = await _create(client)
    response = await client.post(
        f"{BASE}/{community_id}/generations",
        json={"epoch": 2, "capacity": 50, "decay_rate": WEEK, "proof_root": ROOT},
        headers=_as(ALICE),
    )
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "UNAUTHORIZED"


async def test_set_generation_owner(client):
    community_id = await _create(client)
    body = {"epoch": 2, "capacity": 50, "decay_rate": 3600,
            "base_loss_rate": 1, "proof_root": ROOT}
    response = await client.post(
        f"{BASE}/{community_id}/generations", json=body, headers=_as(OWNER),
    )
    assert response.status_code == 201
    assert response.json()["capacity"] == 50

    again = await client.post(
        f"{BASE}/{community_id}/generations", json=body, headers=_as(OWNER),
    )
    assert again.status_code == 409
    assert again.json()["error"]["code"] == "EPOCH_NOT_ADVANCING"

    genesis = await client.get(f"{BASE}/{community_id}/generations/1")
    assert genesis.json()["capacity"] == 100
    missing = await client.get(f"{BASE}/{community_id}/generations/9")
    assert missing.status_code == 404


# --- Claims ---------------------------------------------------------------

async def test_claim_flow(client):
    community_id = await _create(client)
    response = await _claim(client, community_id, ALICE)
    assert response.status_code == 201
    assert response.json() == {"address": ALICE, "endowment": 100}

    again = await _claim(client, community_id, ALICE)
    assert again.status_code == 409
    assert again.json()["error"]["code"] == "ALREADY_ADMITTED"


async def test_claim_with_foreign_proof(client):
    community_id = await _create(client)
    response = await client.post(
        f"{BASE}/{community_id}/claims",
        json={"address": CAROL, "proof": build_proof(SETTLERS, ALICE)},
    )
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "INVALID_ADMISSION_PROOF"


# --- Transfers --------------------------------------------------------------

async def test_shard_then_capacity_exhausted(client, clock):
    community_id = await _create(client)
    await _claim(client, community_id, ALICE)
    clock.advance(100)

    erosion = await client.get(f"{BASE}/{community_id}/erosion")
    assert erosion.json() == {"amount": 1, "erosion": 2}

    response = await client.post(
        f"{BASE}/{community_id}/transfers",
        json={"to": CAROL, "amount": 1}, headers=_as(ALICE),
    )
    assert response.status_code == 200
    data = response.json()
    assert data["admission"] is True
    assert data["cost"] == 2
    assert data["endowment"] == 100
    assert data["recipient_state"] == "alive"

    second = await client.post(
        f"{BASE}/{community_id}/transfers",
        json={"to": DAVE, "amount": 1}, headers=_as(ALICE),
    )
    assert second.status_code == 429
    assert second.json()["error"]["code"] == "EMISSION_CAPACITY_EXCEEDED"
    assert second.headers["retry-after"] == "100"


async def test_partial_amount_rejected(client, clock):
    community_id = await _create(client)
    await _claim(client, community_id, ALICE)
    response = await client.post(
        f"{BASE}/{community_id}/transfers",
        json={"to": CAROL, "amount": 50}, headers=_as(ALICE),
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_TRANSFER_AMOUNT"


async def test_exit_kills_sender(client, clock):
    community_id = await _create(client)
    await _claim(client, community_id, ALICE)
    await _claim(client, community_id, BOB)
    clock.advance(WEEK)

    decay = await client.get(f"{BASE}/{community_id}/members/{ALICE}/decay")
    assert decay.json()["decay"] == 1

    response = await client.post(
        f"{BASE}/{community_id}/transfers",
        json={"to": BOB, "amount": 99}, headers=_as(ALICE),
    )
    assert response.status_code == 200
    assert response.json()["sender_state"] == "dead"

    member = await client.get(f"{BASE}/{community_id}/members/{ALICE}")
    assert member.json()["state"] == "dead"
    assert member.json()["balance"] == 0

    back = await client.post(
        f"{BASE}/{community_id}/transfers",
        json={"to": ALICE, "amount": 1}, headers=_as(BOB),
    )
    assert back.status_code == 400
    assert back.json()["error"]["code"] == "RECIPIENT_IS_DEAD"


async def test_perished_sender(client, clock):
    community_id = await _create(client)
    await _claim(client, community_id, ALICE)
    clock.advance(101 * WEEK)
    response = await client.post(
        f"{BASE}/{community_id}/transfers",
        json={"to": CAROL, "amount": 1}, headers=_as(ALICE),
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "SENDER_PERISHED"


async def test_caller_header_is_normalized(client, clock):
    community_id = await _create(client)
    await _claim(client, community_id, ALICE)
    clock.advance(100)
    response = await client.post(
        f"{BASE}/{community_id}/transfers",
        json={"to": CAROL, "amount": 1}, headers=_as(ALICE.upper().replace("0X", "0x")),
    )
    assert response.status_code == 200
    assert response.json()["sender"] == ALICE


async def test_malformed_caller_header(client):
    community_id = await _create(client)
    response = await client.post(
        f"{BASE}/{community_id}/transfers",
        json={"to": CAROL, "amount": 1}, headers=_as("alice"),
    )
    assert response.status_code == 400


# --- Allowances -------------------------------------------------------------

async def test_delegated_transfer_flow(client, clock):
    community_id = await _create(client)
    await _claim(client, community_id, ALICE)

    approval = await client.post(
        f"{BASE}/{community_id}/approvals",
        json={"spender": DAVE, "amount": 1}, headers=_as(ALICE),
    )
    assert approval.json() == {"owner": ALICE, "spender": DAVE, "amount": 1}

    clock.advance(100)
    response = await client.post(
        f"{BASE}/{community_id}/transfers/delegated",
        json={"owner": ALICE, "to": CAROL, "amount": 1}, headers=_as(DAVE),
    )
    assert response.status_code == 200
    assert response.json()["sender"] == ALICE

    allowance = await client.get(
        f"{BASE}/{community_id}/allowances/{ALICE}/{DAVE}",
    )
    assert allowance.json()["amount"] == 0


async def test_delegated_transfer_without_allowance(client, clock):
    community_id = await _create(client)
    await _claim(client, community_id, ALICE)
    clock.advance(100)
    response = await client.post(
        f"{BASE}/{community_id}/transfers/delegated",
        json={"owner": ALICE, "to": CAROL, "amount": 1}, headers=_as(DAVE),
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INSUFFICIENT_ALLOWANCE"


# --- Reads ----------------------------------------------------------------

async def test_unseen_member(client):
    community_id = await _create(client)
    response = await client.get(f"{BASE}/{community_id}/members/{CAROL}")
    assert response.status_code == 200
    data = response.json()
    assert data["state"] == "unseen"
    assert data["last_settled"] == 0
    assert data["balance"] == 0


async def test_member_in_earlier_epoch(client):
    community_id = await _create(client)
    await _claim(client, community_id, ALICE)
    await client.post(
        f"{BASE}/{community_id}/generations",
        json={"epoch": 2, "capacity": 50, "decay_rate": WEEK, "proof_root": ROOT},
        headers=_as(OWNER),
    )
    response = await client.get(
        f"{BASE}/{community_id}/members/{ALICE}", params={"epoch": 1},
    )
    assert response.json()["state"] == "alive"
    assert response.json()["epoch"] == 1


async def test_malformed_member_address(client):
    community_id = await _create(client)
    response = await client.get(f"{BASE}/{community_id}/members/nobody")
    assert response.status_code == 400


async def test_event_log(client):
    community_id = await _create(client)
    await _claim(client, community_id, ALICE)
    response = await client.get(f"{BASE}/{community_id}/events")
    kinds = [e["kind"] for e in response.json()["events"]]
    assert kinds == ["generation_changed", "transfer"]


async def test_erosion_quote_beyond_price_range(client):
    community_id = await _create(client)
    response = await client.get(
        f"{BASE}/{community_id}/erosion", params={"amount": 1_000_000},
    )
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "FIXED_POINT_OVERFLOW"
    assert error["context"]["community_id"] == community_id


async def test_erosion_quote_amount_bounded(client):
    community_id = await _create(client)
    response = await client.get(
        f"{BASE}/{community_id}/erosion", params={"amount": 2**32},
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


# --- Burns ----------------------------------------------------------------

async def test_settler_burns_all_knowledge(client):
    community_id = await _create(client)
    await _claim(client, community_id, ALICE)
    response = await client.post(
        f"{BASE}/{community_id}/burns", json={"amount": 100}, headers=_as(ALICE),
    )
    assert response.status_code == 200
    assert response.json() == {
        "holder": ALICE, "amount": 100, "balance": 0, "state": "dead",
    }

    member = await client.get(f"{BASE}/{community_id}/members/{ALICE}")
    assert member.json()["state"] == "dead"
    assert member.json()["balance"] == 0
    described = await client.get(f"{BASE}/{community_id}")
    assert described.json()["total_supply"] == 0


async def test_burn_beyond_balance(client):
    community_id = await _create(client)
    await _claim(client, community_id, ALICE)
    response = await client.post(
        f"{BASE}/{community_id}/burns", json={"amount": 101}, headers=_as(ALICE),
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INSUFFICIENT_BALANCE"


async def test_burn_of_nothing(client):
    community_id = await _create(client)
    await _claim(client, community_id, ALICE)
    response = await client.post(
        f"{BASE}/{community_id}/burns", json={"amount": 0}, headers=_as(ALICE),
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_BURN_AMOUNT"


# --- Zero address ---------------------------------------------------------

async def test_zero_address_recipient_rejected(client, clock):
    community_id = await _create(client)
    await _claim(client, community_id, ALICE)
    clock.advance(100)
    response = await client.post(
        f"{BASE}/{community_id}/transfers",
        json={"to": ZERO, "amount": 1}, headers=_as(ALICE),
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "ZERO_ADDRESS"

    zero = await client.get(f"{BASE}/{community_id}/members/{ZERO}")
    assert zero.json()["state"] == "unseen"
    assert zero.json()["balance"] == 0


async def test_zero_address_spender_rejected(client):
    community_id = await _create(client)
    response = await client.post(
        f"{BASE}/{community_id}/approvals",
        json={"spender": ZERO, "amount": 5}, headers=_as(ALICE),
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "ZERO_ADDRESS"
