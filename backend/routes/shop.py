from typing import Optional, List, Literal
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from database import get_db
from schemas.product import ProductOut, ProductListPage
from services.catalog import CatalogStore
from services.unit_of_work import ReadOnlyHandle

router = APIRouter(
    prefix="/shop",
    tags=["Shop"]
)

catalog = CatalogStore()


# Retrieve unique product categories (Salas, Dormitorios, Comedores...)
@router.get("/categories", response_model=List[str])
def get_unique_categories(db: Session = Depends(get_db)):
    return catalog.list_categories(ReadOnlyHandle(db))


@router.get("/products", response_model=ProductListPage)
def list_products_for_shop(
    q: Optional[str] = Query(None, description="Search by name or category"),
    category: Optional[str] = Query(None, description="Filter by category prefix"),
    page: int = Query(1, ge=1),
    page_size: int = Query(12, ge=1, le=100),
    sort_by: Literal["name", "price", "stock_on_hand"] = "name",
    order: Literal["asc", "desc"] = "asc",
    db: Session = Depends(get_db),
):
    # Only products with stock are shown in the shop
    items, total = catalog.list_products(
        ReadOnlyHandle(db), q=q, category=category, page=page, page_size=page_size,
        sort_by=sort_by, order=order, in_stock_only=True,
    )
    return {"items": items, "total": total, "page": page, "page_size": page_size}


@router.get("/products/{product_id}", response_model=ProductOut)
def get_product(product_id: int, db: Session = Depends(get_db)):
    product = catalog.get_product(ReadOnlyHandle(db), product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product
