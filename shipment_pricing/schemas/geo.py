import math
from pydantic import BaseModel, ConfigDict
from typing import Optional


class GeoPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: Optional[float] = None
    lng: Optional[float] = None
    address: Optional[str] = None
    city_name: Optional[str] = None
    state_name: Optional[str] = None

    def is_complete(self) -> bool:
        if self.lat is None or self.lng is None:
            return False
        return math.isfinite(self.lat) and math.isfinite(self.lng)

    def has_region(self) -> bool:
        return bool((self.state_name or "").strip())
