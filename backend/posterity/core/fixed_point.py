"""Fixed-Point Arithmetic - signed 18-decimal ("wad") integers for the pricing curve.

Invariants:
    - Every operation rounds toward negative infinity (floor)
    - wad_exp raises above MAX_EXP_INPUT and returns 0 below MIN_EXP_INPUT
    - Pure functions over plain ints, no floats anywhere

Design Decisions:
    - decimal.Decimal at 60 digits for e^x, floored once when converting back
      to wad: the only transcendental in the engine
    - Bounds mirror the usual SD59x18 exp domain so stored prices stay portable
"""

from decimal import Decimal, ROUND_FLOOR, localcontext

from posterity.core.domain_types import Wad
from posterity.core.errors import FixedPointOverflowError


WAD: int = 10**18
MAX_EXP_INPUT: int = 133_084258667509499440
MIN_EXP_INPUT: int = -41_446531673892822322
_PRECISION: int = 60


def to_wad(units: int) -> Wad:
    return Wad(units * WAD)


def from_wad(value: int) -> int:
    """Integer part of a wad, floored."""
    return value // WAD


def parse_wad(value: str | Decimal | int) -> Wad:
    """Convert a decimal literal ("0.25", Decimal, int) to wad, flooring excess digits."""
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        scaled = Decimal(value) * WAD
        return Wad(int(scaled.to_integral_value(rounding=ROUND_FLOOR)))


def format_wad(value: int) -> str:
    """Render a wad as a plain decimal string without trailing zeros."""
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        text = format(Decimal(value) / WAD, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def wad_mul(a: int, b: int) -> Wad:
    return Wad((a * b) // WAD)


def wad_div(a: int, b: int) -> Wad:
    if b == 0:
        raise ZeroDivisionError("wad division by zero")
    return Wad((a * WAD) // b)


def wad_exp(x: int) -> Wad:
    """e^x for a wad exponent, floored to wad precision."""
    if x > MAX_EXP_INPUT:
        raise FixedPointOverflowError(x)
    if x < MIN_EXP_INPUT:
        return Wad(0)
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        result = (Decimal(x) / WAD).exp() * WAD
        return Wad(int(result.to_integral_value(rounding=ROUND_FLOOR)))
