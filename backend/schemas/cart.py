from decimal import Decimal
from pydantic import BaseModel, Field
from typing import List, Optional

# Request schema for adding an item to the cart
class CartAddItem(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)

# Request schema for updating cart item quantity
class CartUpdateItem(BaseModel):
    quantity: int = Field(gt=0)

# Response schema for a single cart line
class CartItemOut(BaseModel):
    product_id: int
    name: str
    category: Optional[str] = None
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    stock_on_hand: int

# Response schema for the entire cart; totals preview without coupon
class CartOut(BaseModel):
    items: List[CartItemOut]
    total_items: int
    subtotal: Decimal
    tax: Decimal
    shipping: Decimal
    total: Decimal
