from __future__ import annotations

from decimal import Decimal, ROUND_DOWN, ROUND_HALF_EVEN, ROUND_HALF_UP, ROUND_UP
from typing import Any, Iterable, Literal


MONEY_QUANT = Decimal("0.01")
ZERO = Decimal("0.00")

MoneyRounding = Literal["half_up", "half_even", "up", "down"]


_ROUNDING_MAP: dict[str, str] = {
    "half_up": ROUND_HALF_UP,
    "half_even": ROUND_HALF_EVEN,
    "up": ROUND_UP,
    "down": ROUND_DOWN,
}


def quantize_money(value: Decimal, *, rounding: MoneyRounding = "half_up") -> Decimal:
    mode = _ROUNDING_MAP.get(str(rounding), ROUND_HALF_UP)
    return Decimal(value).quantize(MONEY_QUANT, rounding=mode)


def as_money(value: Any) -> Decimal:
    """Coerce a driver value (Decimal, float, int, str or None) into a quantized Decimal."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return quantize_money(value)
    return quantize_money(Decimal(str(value)))


def percent_of(base: Decimal, percent: Decimal, *, rounding: MoneyRounding = "half_up") -> Decimal:
    if base <= 0 or percent <= 0:
        return ZERO
    return quantize_money(Decimal(base) * Decimal(percent) / Decimal("100"), rounding=rounding)


def line_nominal(unit_price: Decimal, quantity: int) -> Decimal:
    return quantize_money(Decimal(unit_price) * int(quantity))


def sum_money(values: Iterable[Decimal]) -> Decimal:
    total = ZERO
    for value in values:
        total += value
    return quantize_money(total)
