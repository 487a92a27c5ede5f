"""
Fee split and Future Fund growth.

Both functions are pure. calculate_fees underlies every card payout; cash
payouts skip it and pay the full amount as net (see ledger.split_for).
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Dict

from core.constants import PLATFORM_FEE_RATE, FUTURE_FUND_RATE

CENT = Decimal('0.01')


def to_money(amount) -> Decimal:
    """Coerce an int/float/str/Decimal amount to a Decimal rounded to the cent."""
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"Malformed amount: {amount!r}")
    if not value.is_finite():
        raise ValueError(f"Malformed amount: {amount!r}")
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_fees(gross_amount) -> Dict[str, Decimal]:
    """
    Split a gross job amount into platform fee, Future Fund contribution and net.

    Each fee component is rounded half-up to the cent on its own; net is the
    residual, so it absorbs any rounding remainder and the three parts always
    sum to the gross.

    Raises:
        ValueError: if the amount is malformed or negative
    """
    gross = to_money(gross_amount)
    if gross < 0:
        raise ValueError(f"Gross amount must not be negative: {gross}")

    platform_fee = (gross * PLATFORM_FEE_RATE).quantize(CENT, rounding=ROUND_HALF_UP)
    future_fund = (gross * FUTURE_FUND_RATE).quantize(CENT, rounding=ROUND_HALF_UP)
    net_amount = (gross - platform_fee - future_fund).quantize(CENT, rounding=ROUND_HALF_UP)

    return {
        'platform_fee': platform_fee,
        'future_fund': future_fund,
        'net_amount': net_amount,
    }


def project_growth(principal, years, annual_rate) -> float:
    """Compound ``principal`` annually at ``annual_rate`` for ``years`` years."""
    return float(principal) * (1 + float(annual_rate)) ** years
