from pydantic import BaseModel
from typing import Dict, Optional
from shipment_pricing.core.enums import ResourceState


class ResourceStatus(BaseModel):
    state: ResourceState
    error: Optional[str] = None
    retryable: bool = False
    size: Optional[int] = None


class CatalogStatus(BaseModel):
    rate_policy: str
    resources: Dict[str, ResourceStatus]
