"""Decimal money utilities for the INR paper-trading ledger.

All cash, prices and cost basis are Decimal. No float on the ledger path.
  - cash amounts: 2 places (paise)
  - prices:       2 places
  - cost basis:   4 places
  - avg price:    6 places
"""

from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal

ZERO = Decimal("0")
HUNDRED = Decimal("100")

_PAISA = Decimal("0.01")
_BASIS = Decimal("0.0001")
_AVG = Decimal("0.000001")


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """Coerce provider/JSON numbers to Decimal via str() so floats keep their printed value."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_money(value: Decimal) -> Decimal:
    return value.quantize(_PAISA, rounding=ROUND_HALF_UP)


def to_money_ceil(value: Decimal) -> Decimal:
    """Round up to the paisa (platform never under-collects margin)."""
    return value.quantize(_PAISA, rounding=ROUND_CEILING)


def to_price(value: Decimal | int | float | str) -> Decimal:
    return to_decimal(value).quantize(_PAISA, rounding=ROUND_HALF_UP)


def to_basis(value: Decimal) -> Decimal:
    return value.quantize(_BASIS, rounding=ROUND_HALF_UP)


def to_avg_price(value: Decimal) -> Decimal:
    return value.quantize(_AVG, rounding=ROUND_HALF_UP)


def percent(part: Decimal, whole: Decimal) -> Decimal:
    """part / whole * 100, rounded to 2 places. Returns 0 when whole is 0."""
    if whole == ZERO:
        return ZERO.quantize(_PAISA)
    return (part / whole * HUNDRED).quantize(_PAISA, rounding=ROUND_HALF_UP)


def money_to_display(amount: Decimal) -> str:
    """Convert an amount to a display string: 95000 -> '₹95,000.00', -12.5 -> '-₹12.50'."""
    amount = to_money(amount)
    if amount < ZERO:
        return f"-₹{-amount:,.2f}"
    return f"₹{amount:,.2f}"
