import logging
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from shipment_pricing.schemas.extras import ExtraServiceOffer
from shipment_pricing.utils.money import to_decimal

logger = logging.getLogger(__name__)


class ExtrasCatalog:
    """Optional flat-priced add-on services, keyed by offer id."""

    def __init__(self, offers: Iterable[ExtraServiceOffer] = ()):
        self._offers: Tuple[ExtraServiceOffer, ...] = tuple(offers)
        self._by_id = {offer.id: offer for offer in self._offers}

    def __len__(self) -> int:
        return len(self._offers)

    def __contains__(self, offer_id: str) -> bool:
        return offer_id in self._by_id

    @property
    def offers(self) -> Tuple[ExtraServiceOffer, ...]:
        return self._offers

    def get(self, offer_id: str) -> Optional[ExtraServiceOffer]:
        return self._by_id.get(offer_id)

    def selected(self, selected_ids: Iterable[str]) -> List[ExtraServiceOffer]:
        wanted = set(selected_ids or ())
        unknown = wanted - self._by_id.keys()
        if unknown:
            logger.warning(f"Ignoring unknown extra service ids: {sorted(unknown)}")
        return [offer for offer in self._offers if offer.id in wanted]

    def total_decimal(self, selected_ids: Iterable[str]) -> Decimal:
        return sum((to_decimal(offer.price) for offer in self.selected(selected_ids)), Decimal("0"))

    def total(self, selected_ids: Iterable[str]) -> float:
        return float(self.total_decimal(selected_ids))

    def available_for(self, vehicle_tag: Optional[str]) -> List[ExtraServiceOffer]:
        if not vehicle_tag:
            return list(self._offers)
        tag = vehicle_tag.strip().lower()
        return [
            offer for offer in self._offers
            if not offer.applicable_vehicle_tag or offer.applicable_vehicle_tag.strip().lower() == tag
        ]
