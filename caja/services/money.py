from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable

from caja.exceptions import ValidationError

CENT = Decimal('0.01')
ZERO = Decimal('0.00')


def to_money(value, *, field: str = 'amount') -> Decimal:
    """Parse ``value`` into a two-decimal ``Decimal``.

    Floats are routed through ``str`` so ``0.1`` becomes ``0.10`` rather
    than its binary expansion.
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError(f'{field} is required', field=field)
    if isinstance(value, float):
        value = str(value)
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f'{field} is not a valid amount', field=field)
    if not amount.is_finite():
        raise ValidationError(f'{field} is not a valid amount', field=field)
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def positive_money(value, *, field: str = 'amount') -> Decimal:
    amount = to_money(value, field=field)
    if amount <= ZERO:
        raise ValidationError(f'{field} must be greater than zero', field=field)
    return amount


def money_sum(values: Iterable[Decimal]) -> Decimal:
    return sum(values, ZERO).quantize(CENT)


def fmt(amount: Decimal) -> str:
    return str(Decimal(amount).quantize(CENT))
