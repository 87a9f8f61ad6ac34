import os
from decimal import Decimal, InvalidOperation

DEFAULT_PROCUREMENT_GAP_WARNING_RUB = Decimal("50000")
DEFAULT_COST_PER_STUDENT_DAY_WARNING_RUB = Decimal("400")
COST_WINDOW_DAYS = 30
RECENT_ACTIVITY_PER_SOURCE = 5
RECENT_ACTIVITY_LIMIT = 8


def _decimal_env(name: str, default: Decimal) -> Decimal:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return Decimal(raw.strip())
    except InvalidOperation as exc:
        raise ValueError(f"{name} must be a decimal number") from exc


def procurement_gap_warning_rub() -> Decimal:
    return _decimal_env("PROCUREMENT_GAP_WARNING_RUB", DEFAULT_PROCUREMENT_GAP_WARNING_RUB)


def cost_per_student_day_warning_rub() -> Decimal:
    return _decimal_env("COST_PER_STUDENT_DAY_WARNING_RUB", DEFAULT_COST_PER_STUDENT_DAY_WARNING_RUB)


def role_pins() -> dict[str, str]:
    return {
        "admin": os.getenv("ADMIN_PIN", "1234"),
        "manager": os.getenv("MANAGER_PIN", "5678"),
        "cook": os.getenv("COOK_PIN", "9999"),
    }
