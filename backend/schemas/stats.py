from decimal import Decimal
from pydantic import BaseModel
from typing import List, Optional


class CategorySales(BaseModel):
    category: str
    sales_count: int
    total_sales: Decimal


class SalesSummary(BaseModel):
    total_orders: int
    total_sales: Decimal
    average_sale: Decimal


class CategoryInventory(BaseModel):
    category: Optional[str] = None
    total_products: int
    stock_on_hand: int
    stock_initial: int


class InventoryRow(BaseModel):
    id: int
    name: str
    category: Optional[str] = None
    price: Decimal
    stock_on_hand: int
    stock_initial: int
    units_sold: int
