"""Birth Pricing Curve - continuous gradual dutch auction for admitting new members.

Invariants:
    - price(q) = floor((k / λ) * (e^(λq/r) - 1) / e^(λT)) with T = now - latest_birth
    - erosion = price + base_loss_rate of the current epoch
    - An admission of q units needs q / r emission-seconds; it is refused while
      fewer than that have accrued since latest_birth
    - latest_birth only moves forward, by exactly q / r per admission
    - k, λ and r are each at least one wad unit (1e-18); a constant that floors
      to zero would leave the curve undefined

Design Decisions:
    - (e^a - 1) / e^b evaluated as e^(a - b) - e^(-b): after the capacity check
      a <= b, so neither exponent can overflow however long the auction idled
    - All quantities in wad; the final knowledge amount is floored
"""

from dataclasses import dataclass

from posterity.core.errors import (
    EmissionCapacityExceededError, ErrorContext, InvalidAuctionConstantError,
)
from posterity.core.fixed_point import (
    to_wad, from_wad, wad_mul, wad_div, wad_exp,
)


@dataclass
class AuctionClock:
    """Auction constants (immutable after instantiation) and the moving clock."""
    initial_price: int
    decay_constant: int
    emission_rate: int
    latest_birth: int

    def seconds_requested(self, amount: int) -> int:
        return wad_div(to_wad(amount), self.emission_rate)

    def seconds_available(self, now: int) -> int:
        return to_wad(now) - self.latest_birth


def auction_price(clock: AuctionClock, amount: int, now: int) -> int:
    """Knowledge the auction charges for `amount` admission units at `now`."""
    elapsed = clock.seconds_available(now)
    requested_exponent = wad_mul(clock.decay_constant, clock.seconds_requested(amount))
    elapsed_exponent = wad_mul(clock.decay_constant, elapsed)

    scale = wad_div(clock.initial_price, clock.decay_constant)
    growth = (
        wad_exp(requested_exponent - elapsed_exponent)
        - wad_exp(-elapsed_exponent)
    )
    return max(from_wad(wad_mul(scale, growth)), 0)


def knowledge_erosion(
    clock: AuctionClock, amount: int, now: int, base_loss_rate: int,
) -> int:
    """Full admission cost: auction price plus the epoch's floor cost."""
    return auction_price(clock, amount, now) + base_loss_rate


def check_emission_capacity(clock: AuctionClock, amount: int, now: int) -> int:
    """Raise unless `amount` units fit the accrued budget. Returns seconds requested (wad)."""
    requested = clock.seconds_requested(amount)
    available = clock.seconds_available(now)
    if requested > available:
        raise EmissionCapacityExceededError(
            requested, available,
            ErrorContext(debug_info={"requested": requested, "available": available}),
        )
    return requested


def consume_emission(clock: AuctionClock, seconds_requested: int) -> None:
    """Advance the auction clock past a purchased admission."""
    clock.latest_birth += seconds_requested


def check_auction_constants(clock: AuctionClock) -> None:
    """Reject a curve whose price, decay constant or emission rate is not positive."""
    for name, value in (
        ("initial_price", clock.initial_price),
        ("decay_constant", clock.decay_constant),
        ("emission_rate", clock.emission_rate),
    ):
        if value <= 0:
            raise InvalidAuctionConstantError(
                name, ErrorContext(debug_info={name: value}),
            )
