import math
from decimal import Decimal
from typing import Optional, Union

from shipment_pricing.core.errors import RoundingInvariantViolation
from shipment_pricing.schemas.commission import CommissionSplit
from shipment_pricing.utils.money import round_half_up, to_decimal

HUNDRED = Decimal("100")


def split(grand_total: Union[float, Decimal], commission_percent: Optional[float]) -> CommissionSplit:
    """Split a grand total into platform commission and carrier payout.

    Without a positive percent or a positive total the split is "not
    applicable" and both amounts stay ``None``. The commission is rounded
    half-up to whole currency units and the payout is derived by
    subtraction, so the two always add back up to the total. A percent
    above 100 is capped so the payout never goes negative.
    """
    if commission_percent is None or not math.isfinite(commission_percent) or commission_percent <= 0:
        return CommissionSplit()
    total = to_decimal(grand_total)
    if total <= 0:
        return CommissionSplit()

    commission_amount = round_half_up(total * min(to_decimal(commission_percent), HUNDRED) / HUNDRED)
    # rounding up must not take more than the whole-unit part of the total
    commission_amount = min(commission_amount, int(total))
    carrier_payout = total - commission_amount

    if commission_amount + carrier_payout != total:
        raise RoundingInvariantViolation(
            f"commission {commission_amount} + payout {carrier_payout} != total {total}"
        )

    return CommissionSplit(
        applicable=True,
        commission_amount=commission_amount,
        carrier_payout=float(carrier_payout),
    )
