"""Interactive pricing state for one dealer filling in a shipment form.

Inputs change one at a time; every change ends in an explicit
``recompute()`` over the current snapshot. Distance lookups go through a
``DistanceTracker`` so only the newest coordinates can update the quote.
"""
import logging
from typing import Iterable, Optional

from shipment_pricing.core.enums import CarrierType, ResourceState, VehicleTemplate
from shipment_pricing.schemas.commission import CommissionRate
from shipment_pricing.schemas.geo import GeoPoint
from shipment_pricing.schemas.quote import DistanceResult, QuoteResponse
from shipment_pricing.services.catalog import CatalogResource, CatalogStore, load_commission
from shipment_pricing.services.distance import DistanceResolver, DistanceTracker
from shipment_pricing.services.quotes import evaluate

logger = logging.getLogger(__name__)


def _coordinates(point: GeoPoint):
    return point.lat, point.lng


class PricingSession:

    def __init__(
        self,
        store: CatalogStore,
        resolver: DistanceResolver,
        commission: Optional[CatalogResource[CommissionRate]] = None,
    ):
        self.store = store
        self.commission = commission or CatalogResource(
            "commission", lambda: load_commission(store.client)
        )
        self.tracker = DistanceTracker(resolver, on_result=self._on_distance)
        self.pickup = GeoPoint()
        self.dropoff = GeoPoint()
        self.carrier_type: Optional[str] = CarrierType.COURIER
        self.vehicle_template: Optional[str] = VehicleTemplate.MOTORCYCLE
        self.selected_extra_ids: set = set()
        self.quote: QuoteResponse = self.recompute()

    async def load(self) -> QuoteResponse:
        await self.store.warm_up()
        await self.commission.get_or_none()
        return self.recompute()

    async def _on_distance(self, result: DistanceResult) -> None:
        self.recompute()

    async def set_points(self, pickup: GeoPoint, dropoff: GeoPoint) -> QuoteResponse:
        moved = (
            _coordinates(pickup) != _coordinates(self.pickup)
            or _coordinates(dropoff) != _coordinates(self.dropoff)
        )
        self.pickup = pickup
        self.dropoff = dropoff
        if moved:
            await self.tracker.request(pickup, dropoff)
        return self.recompute()

    def select_vehicle(
        self,
        carrier_type: Optional[str],
        vehicle_template: Optional[str] = None,
    ) -> QuoteResponse:
        self.carrier_type = carrier_type
        self.vehicle_template = vehicle_template
        return self.recompute()

    def toggle_extra(self, offer_id: str) -> QuoteResponse:
        if offer_id in self.selected_extra_ids:
            self.selected_extra_ids.discard(offer_id)
        else:
            self.selected_extra_ids.add(offer_id)
        return self.recompute()

    def set_extras(self, offer_ids: Iterable[str]) -> QuoteResponse:
        self.selected_extra_ids = set(offer_ids)
        return self.recompute()

    async def settle(self) -> QuoteResponse:
        """Wait for the newest distance lookup and return the resulting quote."""
        await self.tracker.wait()
        return self.quote

    def recompute(self) -> QuoteResponse:
        rates = self.store.rates
        extras = self.store.extras
        commission = self.commission
        warnings = []
        if extras.state == ResourceState.FAILED:
            warnings.append(extras.error)
        if commission.state == ResourceState.FAILED:
            warnings.append(commission.error)

        self.quote = evaluate(
            pickup=self.pickup,
            dropoff=self.dropoff,
            carrier_type=self.carrier_type,
            vehicle_template=self.vehicle_template,
            selected_extra_ids=sorted(self.selected_extra_ids),
            distance=self.tracker.result,
            rates=rates.value if rates.state == ResourceState.READY else None,
            rates_state=rates.state,
            rates_error=rates.error,
            extras=extras.value if extras.state == ResourceState.READY else None,
            extras_state=extras.state,
            commission=commission.value if commission.state == ResourceState.READY else None,
            warnings=[w for w in warnings if w],
        )
        return self.quote

    async def close(self) -> None:
        await self.tracker.close()
