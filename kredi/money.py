"""Decimal money helpers.

Amounts are kept as ``Decimal`` with cent precision. Rounding is
ROUND_HALF_UP at the cent and happens once, where a value is stored.
"""

from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal, InvalidOperation

from kredi.exceptions import ValidationError

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0.00")

MoneyLike = Decimal | int | float | str


def to_decimal(value: MoneyLike) -> Decimal:
    """Convert a boundary value to ``Decimal`` without binary float drift."""
    if isinstance(value, bool):
        raise ValidationError(f"Invalid amount: {value!r}")
    if isinstance(value, float):
        value = repr(value)
    try:
        result = Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid amount: {value!r}") from exc
    if not result.is_finite():
        raise ValidationError(f"Invalid amount: {value!r}")
    return result


def to_money(value: MoneyLike) -> Decimal:
    """Quantize to cents using round-half-up."""
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def truncate_cents(value: MoneyLike) -> Decimal:
    """Floor to cents (``floor(x * 100) / 100``)."""
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_FLOOR)


def format_currency(value: MoneyLike) -> str:
    """Format as Brazilian reais, e.g. ``R$ 1.650,00``."""
    amount = to_money(value)
    sign = "-" if amount < 0 else ""
    digits = f"{abs(amount):,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{sign}R$ {digits}"
