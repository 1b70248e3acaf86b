# backend/schemas/product.py
from decimal import Decimal
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List


# Base configuration for ORM compatibility
class ORMBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# Product as shown in the shop
class ProductOut(ORMBase):
    id: int
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    price: Decimal
    stock_on_hand: int
    image_url: Optional[str] = None


# Paginated response for product listings
class ProductListPage(ORMBase):
    items: List[ProductOut]
    total: int
    page: int
    page_size: int


# Admin: new catalog entry, stock_initial starts equal to stock
class ProductCreate(BaseModel):
    name: str = Field(min_length=1)
    price: Decimal = Field(ge=0, decimal_places=2)
    description: Optional[str] = None
    category: Optional[str] = None
    stock: int = Field(ge=0)
    image_url: Optional[str] = None


# Admin: reset stock level
class ProductRestock(BaseModel):
    stock: int = Field(ge=0)


# Admin: partial edit; stock goes through the restock endpoint
class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    description: Optional[str] = None
    category: Optional[str] = None
    image_url: Optional[str] = None
