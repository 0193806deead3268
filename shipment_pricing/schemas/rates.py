from pydantic import BaseModel, ConfigDict, field_validator
from typing import Dict, Optional
from shipment_pricing.core.enums import VehicleClass, RegionMatchLevel


class RegionRate(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    route_label: str = ""
    country_id: Optional[int] = None
    state_id: Optional[int] = None
    city_id: Optional[int] = None
    state_name: str = ""
    city_name: str = ""
    unit_price_by_vehicle_class: Dict[VehicleClass, float] = {}

    @field_validator("unit_price_by_vehicle_class", mode="before")
    @classmethod
    def _unpriced_as_zero(cls, value):
        # 0 means "unpriced"; negatives and garbage collapse to it
        cleaned = {}
        for vehicle_class, price in (value or {}).items():
            try:
                price = float(price)
            except (TypeError, ValueError):
                price = 0.0
            if price != price or price < 0:
                price = 0.0
            cleaned[vehicle_class] = price
        return cleaned

    def rate_for(self, vehicle_class: VehicleClass) -> float:
        return self.unit_price_by_vehicle_class.get(vehicle_class, 0.0)


class RegionMatch(BaseModel):
    level: RegionMatchLevel = RegionMatchLevel.NONE
    rate: Optional[RegionRate] = None

    @property
    def matched(self) -> bool:
        return self.rate is not None
