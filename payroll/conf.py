from decimal import Decimal

from django.conf import settings

# A run reports success when at least this share of active employees end up
# with a snapshot. Lower it and up to that share of the workforce can silently
# miss payroll for the month.
DEFAULT_BATCH_SUCCESS_RATIO = Decimal("0.5")
DEFAULT_BATCH_MAX_WORKERS = 1
DEFAULT_CURRENCY_DECIMAL_PLACES = 2


def validate_success_ratio(value) -> Decimal:
    value = Decimal(str(value))
    if value < 0 or value > 1:
        raise ValueError("PAYROLL_BATCH_SUCCESS_RATIO must be between 0 and 1.")
    return value


def batch_success_ratio() -> Decimal:
    return validate_success_ratio(getattr(settings, "PAYROLL_BATCH_SUCCESS_RATIO", DEFAULT_BATCH_SUCCESS_RATIO))


def batch_max_workers() -> int:
    return max(1, int(getattr(settings, "PAYROLL_BATCH_MAX_WORKERS", DEFAULT_BATCH_MAX_WORKERS)))


def stored_decimal_places() -> int:
    """Scale of the snapshot money columns."""
    from .models import PayrollSnapshot

    return PayrollSnapshot._meta.get_field("gross_salary").decimal_places


def validate_decimal_places(value) -> int:
    # Amounts must survive the save unchanged, or gross stops being their sum.
    value = int(value)
    limit = stored_decimal_places()
    if value < 0 or value > limit:
        raise ValueError(f"PAYROLL_CURRENCY_DECIMAL_PLACES must be between 0 and {limit}.")
    return value


def currency_decimal_places() -> int:
    return validate_decimal_places(
        getattr(settings, "PAYROLL_CURRENCY_DECIMAL_PLACES", DEFAULT_CURRENCY_DECIMAL_PLACES)
    )
