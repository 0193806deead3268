from datetime import date
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional, Tuple
from shipment_pricing.core.enums import (
    CarrierType,
    DeliveryType,
    PaymentMethod,
    VehicleTemplate,
)
from shipment_pricing.schemas.geo import GeoPoint


class JobCreate(BaseModel):
    pickup: GeoPoint
    dropoff: GeoPoint
    carrier_type: CarrierType = CarrierType.COURIER
    vehicle_template: Optional[VehicleTemplate] = None
    vehicle_product_id: Optional[str] = None
    selected_extra_ids: List[str] = []
    payment_method: Optional[PaymentMethod] = None
    delivery_type: DeliveryType = DeliveryType.IMMEDIATE
    delivery_date: Optional[date] = None
    delivery_time: Optional[str] = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    campaign_code: Optional[str] = None
    special_notes: str = ""
    image_file_ids: List[str] = []


class ExtraServiceLine(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str
    price: float
    service_id: int


class JobSubmission(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    campaign_code: Optional[str] = None
    carrier_type: CarrierType
    delivery_type: DeliveryType
    delivery_date: Optional[str] = None
    delivery_time: Optional[str] = None
    pickup_address: str
    pickup_coordinates: Tuple[float, float]
    dropoff_address: str
    dropoff_coordinates: Tuple[float, float]
    extra_services: List[ExtraServiceLine] = []
    extra_services_total: float = 0.0
    image_file_ids: List[str] = []
    payment_method: PaymentMethod
    special_notes: str = ""
    total_price: float
    vehicle_product_id: Optional[str] = None


class JobCreated(BaseModel):
    message: str
    job: Optional[dict] = None
    total_price: float
