from pydantic import BaseModel, Field
from typing import Optional


class CommissionRate(BaseModel):
    percent: Optional[float] = Field(default=None, ge=0, le=100)
    description: Optional[str] = None

    @property
    def is_configured(self) -> bool:
        return self.percent is not None and self.percent > 0


class CommissionSplit(BaseModel):
    applicable: bool = False
    commission_amount: Optional[int] = None
    carrier_payout: Optional[float] = None
