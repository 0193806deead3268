"""Assembles a quote from catalogs, distance and the pricing engine"""
import asyncio
import logging
from typing import Iterable, List, Optional, Tuple

from shipment_pricing.core.enums import PricingCause, ResourceState
from shipment_pricing.core.errors import LookupUnavailable, PricingErrorKind
from shipment_pricing.core.metrics import quotes_computed
from shipment_pricing.schemas.commission import CommissionRate
from shipment_pricing.schemas.geo import GeoPoint
from shipment_pricing.schemas.quote import DistanceResult, PricingDiagnostic, QuoteRequest, QuoteResponse
from shipment_pricing.schemas.rates import RegionMatch
from shipment_pricing.services.backend import BackendClient
from shipment_pricing.services.catalog import CatalogStore, load_commission
from shipment_pricing.services.distance import DistanceResolver
from shipment_pricing.services.extras import ExtrasCatalog
from shipment_pricing.services.pricing import compute_price, diagnose, is_ready_to_submit
from shipment_pricing.services.rate_table import RATE_POLICY_VERSION, RateTable

logger = logging.getLogger(__name__)

EXTRAS_UNAVAILABLE_MESSAGE = "Extra services could not be loaded. Please retry."
COMMISSION_UNAVAILABLE_MESSAGE = "Commission rate could not be loaded."


def pricing_region(pickup: GeoPoint, dropoff: GeoPoint) -> Tuple[Optional[str], Optional[str]]:
    """Drop-off city/state, or the pickup's when the drop-off has no state."""
    point = dropoff if dropoff.has_region() else pickup
    return point.city_name, point.state_name


def evaluate(
    *,
    pickup: GeoPoint,
    dropoff: GeoPoint,
    carrier_type: Optional[str],
    vehicle_template: Optional[str],
    selected_extra_ids: Iterable[str],
    distance: DistanceResult,
    rates: Optional[RateTable],
    rates_state: ResourceState,
    rates_error: Optional[str] = None,
    extras: Optional[ExtrasCatalog] = None,
    extras_state: ResourceState = ResourceState.READY,
    commission: Optional[CommissionRate] = None,
    warnings: Optional[List[str]] = None,
) -> QuoteResponse:
    warnings = list(warnings or [])
    selected_extra_ids = list(selected_extra_ids or [])
    city_name, state_name = pricing_region(pickup, dropoff)

    if rates is not None:
        unit_rate, match, vehicle_class = rates.resolve_rate(
            city_name, state_name, vehicle_template=vehicle_template, carrier_type=carrier_type
        )
    else:
        unit_rate, match, vehicle_class = 0.0, RegionMatch(), None

    commission_percent = commission.percent if commission is not None else None
    diagnostic: Optional[PricingDiagnostic] = None

    if selected_extra_ids and extras is None:
        # selected extras cannot be priced; fall back to unpriced, never a guess
        breakdown = compute_price(0.0, 0.0)
        diagnostic = PricingDiagnostic(
            kind=PricingErrorKind.LOOKUP_UNAVAILABLE,
            cause=PricingCause.EXTRAS,
            message=EXTRAS_UNAVAILABLE_MESSAGE,
            retryable=extras_state == ResourceState.FAILED,
        )
    else:
        breakdown = compute_price(
            distance.distance_km,
            unit_rate,
            selected_extra_ids,
            extras=extras,
            commission_percent=commission_percent,
        )
        diagnostic = diagnose(
            breakdown,
            distance,
            match,
            rates_state=rates_state,
            city_name=city_name,
            state_name=state_name,
            rates_error=rates_error,
        )

    ready = is_ready_to_submit(breakdown) and diagnostic is None
    quotes_computed.labels(outcome="priced" if ready else str(diagnostic.kind)).inc()

    return QuoteResponse(
        breakdown=breakdown,
        ready_to_submit=ready,
        diagnostic=diagnostic,
        distance_status=distance.status,
        region_match=match.level,
        matched_rate_id=match.rate.id if match.rate is not None else None,
        vehicle_class=vehicle_class,
        rate_policy=RATE_POLICY_VERSION,
        commission_percent=commission_percent,
        commission_description=commission.description if commission is not None else None,
        warnings=warnings,
    )


class QuoteService:
    """Stateless quoting over the shared catalogs, one request at a time."""

    def __init__(self, store: CatalogStore, resolver: DistanceResolver):
        self.store = store
        self.resolver = resolver

    async def _commission(self, client: BackendClient) -> Optional[CommissionRate]:
        try:
            return await load_commission(client)
        except LookupUnavailable as e:
            logger.warning(f"Commission lookup failed: {e.message}")
            return None

    async def quote(self, request: QuoteRequest, client: Optional[BackendClient] = None) -> QuoteResponse:
        client = client or self.store.client
        rates, extras, distance, commission = await asyncio.gather(
            self.store.rates.get_or_none(),
            self.store.extras.get_or_none(),
            self.resolver.resolve_distance_km(request.pickup, request.dropoff),
            self._commission(client),
        )

        warnings = []
        if extras is None:
            warnings.append(self.store.extras.error or EXTRAS_UNAVAILABLE_MESSAGE)
        if commission is None:
            warnings.append(COMMISSION_UNAVAILABLE_MESSAGE)

        return evaluate(
            pickup=request.pickup,
            dropoff=request.dropoff,
            carrier_type=request.carrier_type,
            vehicle_template=request.vehicle_template,
            selected_extra_ids=request.selected_extra_ids,
            distance=distance,
            rates=rates,
            rates_state=self.store.rates.state,
            rates_error=self.store.rates.error,
            extras=extras,
            extras_state=self.store.extras.state,
            commission=commission,
            warnings=warnings,
        )
