from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class ExtraServiceOffer(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    price: float = Field(default=0.0, ge=0)
    applicable_vehicle_tag: Optional[str] = None
