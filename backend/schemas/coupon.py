from datetime import datetime
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import List, Optional


class CouponOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    discount_percentage: int
    active: bool
    created_at: Optional[datetime] = None


class CouponCreate(BaseModel):
    code: str = Field(min_length=1, max_length=64)
    discount_percentage: int = Field(ge=0, le=100)


class CouponList(BaseModel):
    items: List[CouponOut]


# Newsletter subscription; a welcome coupon is issued in return
class SubscriptionRequest(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr


class SubscriptionResponse(BaseModel):
    code: str
    discount_percentage: int
    emailed: bool
