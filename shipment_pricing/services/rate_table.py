"""Region rate resolution over an in-memory rate table.

Matching policy, first hit wins:

1. exact ``(city, state)`` match, trimmed and case-insensitive;
2. first row whose state matches;
3. nothing, which prices as ``0`` ("unpriced", never "free").

A blank city skips step 1. Vehicle classes come from the explicit vehicle
template when one is given, otherwise from the coarse carrier type, where a
truck prefers the ``kamyonet`` column and falls back to ``kamyon`` when that
column is unpriced.
"""
import logging
import unicodedata
from typing import Iterable, Optional, Tuple

from shipment_pricing.core.enums import CarrierType, RegionMatchLevel, VehicleClass, VehicleTemplate
from shipment_pricing.schemas.rates import RegionMatch, RegionRate

logger = logging.getLogger(__name__)

RATE_POLICY_VERSION = "region-rate/v1"

TEMPLATE_TO_CLASS = {
    VehicleTemplate.MOTORCYCLE: VehicleClass.COURIER,
    VehicleTemplate.MINIVAN: VehicleClass.MINIVAN,
    VehicleTemplate.PANELVAN: VehicleClass.PANELVAN,
    VehicleTemplate.KAMYONET: VehicleClass.KAMYONET,
    VehicleTemplate.KAMYON: VehicleClass.KAMYON,
}

CARRIER_TO_CLASSES = {
    CarrierType.COURIER: (VehicleClass.COURIER,),
    CarrierType.MINIVAN: (VehicleClass.MINIVAN,),
    CarrierType.PANELVAN: (VehicleClass.PANELVAN,),
    CarrierType.TRUCK: (VehicleClass.KAMYONET, VehicleClass.KAMYON),
}


def normalize_name(value: Optional[str]) -> str:
    # casefold turns "İ" into "i" + U+0307; drop the dot so "İstanbul" == "istanbul"
    folded = unicodedata.normalize("NFC", (value or "").strip()).casefold()
    return folded.replace("\u0307", "")


def _as_enum(enum_cls, value):
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        return None


def candidate_classes(
    vehicle_template: Optional[str] = None,
    carrier_type: Optional[str] = None,
) -> Tuple[VehicleClass, ...]:
    """Rate columns to try, in preference order."""
    template = _as_enum(VehicleTemplate, vehicle_template)
    if template is not None:
        return (TEMPLATE_TO_CLASS[template],)
    if vehicle_template:
        logger.debug(f"Unknown vehicle template {vehicle_template!r}, using carrier type")
    carrier = _as_enum(CarrierType, carrier_type)
    if carrier is None:
        return ()
    return CARRIER_TO_CLASSES[carrier]


def pick_unit_rate(
    rate: Optional[RegionRate],
    classes: Tuple[VehicleClass, ...],
) -> Tuple[float, Optional[VehicleClass]]:
    if rate is None or not classes:
        return 0.0, None
    for vehicle_class in classes:
        price = rate.rate_for(vehicle_class)
        if price > 0:
            return price, vehicle_class
    return 0.0, classes[-1]


class RateTable:
    """Immutable per-load lookup of per-region, per-vehicle-class unit rates."""

    def __init__(self, rows: Iterable[RegionRate] = ()):
        self._rows: Tuple[RegionRate, ...] = tuple(rows)

    def __len__(self) -> int:
        return len(self._rows)

    @property
    def rows(self) -> Tuple[RegionRate, ...]:
        return self._rows

    def match_region(self, city_name: Optional[str], state_name: Optional[str]) -> RegionMatch:
        state = normalize_name(state_name)
        if not state:
            return RegionMatch()

        city = normalize_name(city_name)
        if city:
            for row in self._rows:
                if normalize_name(row.city_name) == city and normalize_name(row.state_name) == state:
                    return RegionMatch(level=RegionMatchLevel.CITY, rate=row)

        for row in self._rows:
            if normalize_name(row.state_name) == state:
                return RegionMatch(level=RegionMatchLevel.STATE, rate=row)

        return RegionMatch()

    def find_rate(
        self,
        city_name: Optional[str],
        state_name: Optional[str],
        vehicle_class: VehicleClass,
    ) -> float:
        match = self.match_region(city_name, state_name)
        if match.rate is None:
            return 0.0
        return match.rate.rate_for(vehicle_class)

    def resolve_rate(
        self,
        city_name: Optional[str],
        state_name: Optional[str],
        vehicle_template: Optional[str] = None,
        carrier_type: Optional[str] = None,
    ) -> Tuple[float, RegionMatch, Optional[VehicleClass]]:
        match = self.match_region(city_name, state_name)
        unit_rate, vehicle_class = pick_unit_rate(
            match.rate, candidate_classes(vehicle_template, carrier_type)
        )
        return unit_rate, match, vehicle_class
