from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional


class PurchasePlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    months: int = Field(gt=0)
    monthly_price: float
    total_price: float
    discount: Optional[int] = None  # percent off the 1-month price
    tag: Optional[str] = None


class PurchaseRequest(BaseModel):
    months: int = Field(gt=0)


class PurchaseReceipt(BaseModel):
    receipt_id: str
    user_id: str
    plan: PurchasePlan
    purchased_at: datetime
    remaining: int
