from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from messledger.core.errors import InvalidAmountError, ValidationError

CENT = Decimal("0.01")


def to_decimal(value: Any, field: str = "amount") -> Decimal:
    if value is None:
        raise ValidationError(f"{field} is required", field=field)
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", field=field)
    try:
        # str() keeps float noise out of the Decimal
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"{field} must be a number", field=field) from exc


def positive(value: Any, field: str) -> Decimal:
    amount = to_decimal(value, field)
    if not amount.is_finite() or amount <= 0:
        raise InvalidAmountError(field, value)
    return amount


def quantize_money(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def inr_to_rub(amount_inr: Any, rubal_rate: Any) -> Decimal:
    """amount_inr × rubal_rate, rounded half-up to kopecks."""
    return quantize_money(positive(amount_inr, "amount_inr") * positive(rubal_rate, "rubal_rate"))


def rub_to_inr(amount_rub: Any, rubal_rate: Any) -> Decimal:
    return quantize_money(positive(amount_rub, "amount_rub") / positive(rubal_rate, "rubal_rate"))
