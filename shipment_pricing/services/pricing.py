import logging
import math
from decimal import Decimal
from typing import Iterable, Optional

from shipment_pricing.core.enums import DistanceStatus, PricingCause, ResourceState
from shipment_pricing.core.errors import LookupUnavailable, NoMatchingRate, PricingError
from shipment_pricing.schemas.quote import DistanceResult, PriceBreakdown, PricingDiagnostic
from shipment_pricing.schemas.rates import RegionMatch
from shipment_pricing.services.commission import split
from shipment_pricing.services.extras import ExtrasCatalog
from shipment_pricing.utils.money import round_half_up, to_decimal

logger = logging.getLogger(__name__)

DISTANCE_UNAVAILABLE_MESSAGE = "Route distance could not be calculated. Check the pickup and drop-off locations."
RATES_UNAVAILABLE_MESSAGE = "Region prices could not be loaded. Please retry."
MISSING_INPUT_MESSAGE = "Enter pickup and drop-off locations to calculate a price."
MISSING_REGION_MESSAGE = "The drop-off or pickup address has no city/state to price against."
RATES_LOADING_MESSAGE = "Region prices are still loading."
DISTANCE_PENDING_MESSAGE = "Route distance is being calculated."


def _non_negative(value: Optional[float]) -> float:
    if value is None or not math.isfinite(value) or value <= 0:
        return 0.0
    return float(value)


def base_price_for(distance_km: float, unit_rate: float) -> int:
    distance_km = _non_negative(distance_km)
    unit_rate = _non_negative(unit_rate)
    if not distance_km or not unit_rate:
        return 0
    return round_half_up(to_decimal(distance_km) * to_decimal(unit_rate))


def compute_price(
    distance_km: float,
    unit_rate: float,
    selected_extra_ids: Iterable[str] = (),
    extras: Optional[ExtrasCatalog] = None,
    commission_percent: Optional[float] = None,
) -> PriceBreakdown:
    """Price a shipment as a pure function of its inputs.

    ``base_price`` is ``0`` whenever distance or rate is ``0``; that is the
    "not computable" state and callers gate submission on it.
    """
    distance_km = _non_negative(distance_km)
    unit_rate = _non_negative(unit_rate)

    base_price = base_price_for(distance_km, unit_rate)
    extras_total = extras.total_decimal(selected_extra_ids) if extras is not None else Decimal("0")
    grand_total = Decimal(base_price) + extras_total
    commission = split(grand_total, commission_percent)

    return PriceBreakdown(
        distance_km=distance_km,
        unit_rate=unit_rate,
        base_price=base_price,
        extras_total=float(extras_total),
        grand_total=float(grand_total),
        commission_applicable=commission.applicable,
        commission_amount=commission.commission_amount,
        carrier_payout=commission.carrier_payout,
    )


def is_ready_to_submit(breakdown: PriceBreakdown) -> bool:
    return breakdown.base_price > 0


def _region_label(match: RegionMatch, city_name: Optional[str], state_name: Optional[str]) -> str:
    if match.rate is not None:
        return ", ".join(part for part in (match.rate.city_name, match.rate.state_name) if part) or match.rate.route_label
    return ", ".join(part for part in (city_name, state_name) if part) or "this region"


def diagnose(
    breakdown: PriceBreakdown,
    distance: DistanceResult,
    match: RegionMatch,
    rates_state: ResourceState = ResourceState.READY,
    city_name: Optional[str] = None,
    state_name: Optional[str] = None,
    rates_error: Optional[str] = None,
) -> Optional[PricingDiagnostic]:
    """Explain why a breakdown is unpriced, or return None when it is priced."""
    if breakdown.base_price > 0:
        return None

    distance_missing = breakdown.distance_km <= 0
    rate_missing = breakdown.unit_rate <= 0
    if distance_missing and rate_missing:
        cause = PricingCause.BOTH
    elif distance_missing:
        cause = PricingCause.DISTANCE
    else:
        cause = PricingCause.RATE

    if distance_missing and distance.status == DistanceStatus.UNAVAILABLE:
        error = LookupUnavailable("distance", distance.error or DISTANCE_UNAVAILABLE_MESSAGE)
    elif distance_missing and distance.status == DistanceStatus.PENDING:
        error = PricingError(DISTANCE_PENDING_MESSAGE)
    elif rate_missing and rates_state == ResourceState.FAILED:
        error = LookupUnavailable("rates", rates_error or RATES_UNAVAILABLE_MESSAGE)
    elif rate_missing and rates_state in (ResourceState.IDLE, ResourceState.LOADING):
        error = PricingError(RATES_LOADING_MESSAGE)
    elif rate_missing and (state_name or "").strip():
        region = _region_label(match, city_name, state_name)
        error = NoMatchingRate(
            city_name,
            state_name,
            f"No price is defined for {region} and the selected vehicle. Define a rate for this region.",
        )
    elif rate_missing and not distance_missing:
        error = PricingError(MISSING_REGION_MESSAGE)
    else:
        error = PricingError(MISSING_INPUT_MESSAGE)

    return PricingDiagnostic.from_error(error, cause)
