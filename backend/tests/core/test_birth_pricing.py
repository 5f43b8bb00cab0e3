"""Birth pricing tests - auction price, erosion, emission budget.

Curve used throughout: k = 0.03, lambda = 0.001, r = 0.01 units/second, so
one admission unit costs 100 emission-seconds and k / lambda = 30.

Tests cover:
    - Price at known elapsed times and its decrease as the auction idles
    - Erosion = price + base loss rate
    - Emission capacity check and latest_birth advancement
    - Long idle periods cannot overflow the exponential
    - Constants that floor to zero wad are refused
"""

import pytest

from posterity.core.birth_pricing import (
    AuctionClock, auction_price, knowledge_erosion,
    check_auction_constants, check_emission_capacity, consume_emission,
)
from posterity.core.errors import (
    EmissionCapacityExceededError, InvalidAuctionConstantError,
)
from posterity.core.fixed_point import WAD, parse_wad, to_wad

T0 = 1_700_000_000


def _clock() -> AuctionClock:
    return AuctionClock(
        initial_price=parse_wad("0.03"),
        decay_constant=parse_wad("0.001"),
        emission_rate=parse_wad("0.01"),
        latest_birth=to_wad(T0),
    )


# --- Emission budget --------------------------------------------------

def test_seconds_requested_is_amount_over_rate():
    assert _clock().seconds_requested(1) == 100 * WAD
    assert _clock().seconds_requested(3) == 300 * WAD


def test_seconds_available_counts_from_latest_birth():
    assert _clock().seconds_available(T0 + 250) == 250 * WAD


def test_capacity_refused_before_budget_accrues():
    with pytest.raises(EmissionCapacityExceededError) as exc:
        check_emission_capacity(_clock(), 1, T0 + 99)
    assert exc.value.http_status == 429
    assert exc.value.requested == 100 * WAD
    assert exc.value.available == 99 * WAD


def test_capacity_granted_at_exact_budget():
    assert check_emission_capacity(_clock(), 1, T0 + 100) == 100 * WAD


def test_consume_emission_advances_latest_birth():
    clock = _clock()
    consume_emission(clock, check_emission_capacity(clock, 1, T0 + 500))
    assert clock.latest_birth == to_wad(T0 + 100)
    # the unused 400 seconds remain available
    assert clock.seconds_available(T0 + 500) == 400 * WAD


# --- Price ------------------------------------------------------------

@pytest.mark.parametrize(
    "elapsed, expected",
    [(100, 2), (200, 2), (1000, 1), (5000, 0)],
)
def test_auction_price_at_known_elapsed_times(elapsed, expected):
    assert auction_price(_clock(), 1, T0 + elapsed) == expected


def test_auction_price_decreases_while_idle():
    prices = [auction_price(_clock(), 1, T0 + dt) for dt in (100, 400, 1600, 6400)]
    assert prices == sorted(prices, reverse=True)


def test_larger_purchases_cost_more():
    assert auction_price(_clock(), 2, T0 + 200) == 5


def test_long_idle_auction_prices_at_zero_without_overflow():
    assert auction_price(_clock(), 1, T0 + 10**9) == 0


def test_erosion_adds_base_loss_rate():
    assert knowledge_erosion(_clock(), 1, T0 + 100, 0) == 2
    assert knowledge_erosion(_clock(), 1, T0 + 5000, 3) == 3


# --- Constants --------------------------------------------------------

def test_configured_curve_passes_constant_check():
    check_auction_constants(_clock())


@pytest.mark.parametrize(
    "name", ["initial_price", "decay_constant", "emission_rate"],
)
def test_sub_atto_constant_floors_to_zero_and_is_refused(name):
    clock = _clock()
    setattr(clock, name, parse_wad("0.0000000000000000001"))
    with pytest.raises(InvalidAuctionConstantError) as exc:
        check_auction_constants(clock)
    assert exc.value.name == name
    assert exc.value.http_status == 400
