"""Error hierarchy tests - category-derived HTTP status and the REST envelope."""

from posterity.core.errors import (
    CATEGORY_STATUS, EmissionCapacityExceededError, EpochNotAdvancingError,
    ErrorCategory, ErrorContext, InsufficientAllowanceError,
    WriteConflictError, DatabaseError,
)


def test_every_category_has_a_status():
    assert set(CATEGORY_STATUS) == set(ErrorCategory)


def test_status_follows_category():
    assert EmissionCapacityExceededError(2, 1).http_status == 429
    assert EpochNotAdvancingError(2, 2).http_status == 409
    assert WriteConflictError().http_status == 409
    assert InsufficientAllowanceError(0, 1).http_status == 400
    assert DatabaseError("down", "execute").http_status == 503


def test_envelope_carries_context():
    error = WriteConflictError(ErrorContext(community_id="c-1", address="0xab"))
    body = error.to_response()["error"]
    assert body["code"] == "WRITE_CONFLICT"
    assert body["category"] == "conflict"
    assert body["context"]["community_id"] == "c-1"
    assert body["context"]["address"] == "0xab"
