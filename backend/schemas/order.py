from decimal import Decimal
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime


# Input schema for checkout: shipping details, payment method and optional coupon
class CheckoutRequest(BaseModel):
    name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    city: str = Field(min_length=1)
    postal_code: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    country: str = Field(min_length=1)
    payment_method: str = Field(min_length=1)
    coupon_code: Optional[str] = None


class TotalsOut(BaseModel):
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    shipping: Decimal
    total: Decimal


# Checkout outcome; notified=False means the order exists but the e-mail did not go out
class CheckoutResponse(BaseModel):
    order_id: int
    totals: TotalsOut
    notified: bool
    notification_error: Optional[str] = None


# Output schema for an individual order line
class OrderItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: int
    product_name: str
    quantity: int
    unit_price: Decimal
    line_subtotal: Decimal


# Output schema representing the full order details
class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    status: str
    customer_name: str
    address: str
    city: str
    postal_code: str
    phone: str
    country: str
    payment_method: str
    subtotal: Decimal
    tax: Decimal
    shipping_cost: Decimal
    discount_amount: Decimal
    total: Decimal
    coupon_id: Optional[int] = None
    created_at: Optional[datetime] = None
    items: List[OrderItemOut]


# Schema for paginated order lists
class OrdersPage(BaseModel):
    items: List[OrderResponse]
    total: int
    page: int
    page_size: int
