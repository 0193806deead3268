from pydantic import BaseModel, Field
from typing import List, Optional
from shipment_pricing.core.enums import (
    CarrierType,
    DistanceStatus,
    PricingCause,
    RegionMatchLevel,
    VehicleClass,
    VehicleTemplate,
)
from shipment_pricing.core.errors import PricingError, PricingErrorKind
from shipment_pricing.schemas.geo import GeoPoint


class DistanceResult(BaseModel):
    status: DistanceStatus = DistanceStatus.INCOMPLETE
    distance_km: float = 0.0
    error: Optional[str] = None


class PriceBreakdown(BaseModel):
    distance_km: float = Field(default=0.0, ge=0)
    unit_rate: float = Field(default=0.0, ge=0)
    base_price: int = Field(default=0, ge=0)
    extras_total: float = Field(default=0.0, ge=0)
    grand_total: float = Field(default=0.0, ge=0)
    commission_applicable: bool = False
    commission_amount: Optional[int] = None
    carrier_payout: Optional[float] = None

    @property
    def is_priced(self) -> bool:
        return self.base_price > 0


class PricingDiagnostic(BaseModel):
    kind: PricingErrorKind
    cause: PricingCause
    message: str
    retryable: bool = False

    @classmethod
    def from_error(cls, error: PricingError, cause: PricingCause) -> "PricingDiagnostic":
        return cls(kind=error.kind, cause=cause, message=error.message, retryable=error.retryable)


class QuoteRequest(BaseModel):
    pickup: GeoPoint
    dropoff: GeoPoint
    carrier_type: CarrierType = CarrierType.COURIER
    vehicle_template: Optional[VehicleTemplate] = None
    selected_extra_ids: List[str] = []


class QuoteResponse(BaseModel):
    breakdown: PriceBreakdown
    ready_to_submit: bool
    diagnostic: Optional[PricingDiagnostic] = None
    distance_status: DistanceStatus
    region_match: RegionMatchLevel
    matched_rate_id: Optional[str] = None
    vehicle_class: Optional[VehicleClass] = None
    rate_policy: str
    commission_percent: Optional[float] = None
    commission_description: Optional[str] = None
    warnings: List[str] = []
