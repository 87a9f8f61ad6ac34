from decimal import Decimal

import pytest

from messledger.core.errors import InvalidAmountError, ValidationError
from messledger.services.currency import inr_to_rub, positive, rub_to_inr, to_decimal


def test_inr_to_rub_rounds_half_up_to_kopecks():
    assert inr_to_rub("1000", "0.9") == Decimal("900.00")
    assert inr_to_rub("1", "1.005") == Decimal("1.01")
    assert inr_to_rub("3", "1.0049") == Decimal("3.01")


def test_rub_to_inr_is_the_inverse_conversion():
    assert rub_to_inr("900", "0.9") == Decimal("1000.00")
    assert rub_to_inr("10", "3") == Decimal("3.33")


@pytest.mark.parametrize("amount,rate", [("0", "1"), ("100", "0"), ("-5", "1"), ("100", "-0.5")])
def test_non_positive_inputs_are_rejected(amount, rate):
    with pytest.raises(InvalidAmountError):
        inr_to_rub(amount, rate)


def test_floats_do_not_leak_binary_noise():
    assert to_decimal(0.1) == Decimal("0.1")


def test_non_numeric_and_missing_values():
    with pytest.raises(ValidationError):
        to_decimal("abc", "amount_inr")
    with pytest.raises(ValidationError):
        to_decimal(None, "amount_inr")
    with pytest.raises(ValidationError):
        to_decimal(True, "amount_inr")
    with pytest.raises(InvalidAmountError):
        positive("NaN", "amount_inr")
