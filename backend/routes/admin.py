# backend/routes/admin.py
from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from typing import List, Literal, Optional
from pydantic import BaseModel
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from schemas.product import ProductCreate, ProductOut, ProductRestock, ProductUpdate
from schemas.user import UserResponse
from services.catalog import CatalogStore
from services.errors import ShopError
from services.unit_of_work import ReadOnlyHandle, transaction
from utils.audit import write_log
from utils.http_errors import to_http
from utils.tokenJWT import role_required

router = APIRouter(prefix="/admin", tags=["Admin"])

catalog = CatalogStore()


# Schema for paginated user list response
class PaginatedUsersResponse(BaseModel):
    items: List[UserResponse]
    total: int
    page: int
    page_size: int


# Retrieve a list of users with filtering, sorting, and pagination (Admin only)
@router.get("/users", response_model=PaginatedUsersResponse)
def get_all_users(
    q: Optional[str] = Query(None, description="Search by e-mail"),
    subscribed: Optional[bool] = Query(None, description="Only newsletter subscribers"),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    sort_by: Literal["id", "email", "last_name"] = "id",
    order: Literal["asc", "desc"] = "asc",
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required("admin"))
):
    query = db.query(User)

    if q:
        query = query.filter(User.email.ilike(f"%{q.lower()}%"))
    if subscribed is not None:
        query = query.filter(User.subscribed.is_(subscribed))

    sort_map = {"id": User.id, "email": User.email, "last_name": User.last_name}
    col = sort_map.get(sort_by, User.id)
    query = query.order_by(col.asc() if order == "asc" else col.desc())

    total = query.count()
    users = query.offset((page - 1) * page_size).limit(page_size).all()

    return {"items": users, "total": total, "page": page, "page_size": page_size}


# Add a product to the catalog (Admin only)
@router.post("/products", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
def create_product(
    payload: ProductCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required("admin"))
):
    try:
        with transaction(db) as tx:
            product_id = catalog.create_product(
                tx,
                name=payload.name,
                price=payload.price,
                category=payload.category,
                description=payload.description,
                stock=payload.stock,
                image_url=payload.image_url,
            ).id
    except ShopError as e:
        raise to_http(e)

    write_log(db, user_id=current_user.id, action="PRODUCT_CREATE", resource="products",
              resource_id=product_id, ip=request.client.host, meta={"stock": payload.stock})
    return catalog.get_product(ReadOnlyHandle(db), product_id)


# Reset stock of a product (Admin only)
@router.put("/products/{product_id}/stock", response_model=ProductOut)
def restock_product(
    product_id: int,
    payload: ProductRestock,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required("admin"))
):
    try:
        with transaction(db) as tx:
            catalog.restock(tx, product_id, payload.stock)
    except ShopError as e:
        raise to_http(e)

    write_log(db, user_id=current_user.id, action="PRODUCT_RESTOCK", resource="products",
              resource_id=product_id, ip=request.client.host, meta={"stock": payload.stock})
    product = catalog.get_product(ReadOnlyHandle(db), product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


# Edit name, price or descriptive fields of a product (Admin only)
@router.put("/products/{product_id}", response_model=ProductOut)
def update_product(
    product_id: int,
    payload: ProductUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required("admin"))
):
    changes = payload.model_dump(exclude_unset=True)
    try:
        with transaction(db) as tx:
            catalog.update_product(tx, product_id, **changes)
    except ShopError as e:
        raise to_http(e)

    write_log(db, user_id=current_user.id, action="PRODUCT_UPDATE", resource="products",
              resource_id=product_id, ip=request.client.host,
              meta={k: str(v) for k, v in changes.items()})
    return catalog.get_product(ReadOnlyHandle(db), product_id)


# Remove a product that was never ordered (Admin only)
@router.delete("/products/{product_id}")
def delete_product(
    product_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required("admin"))
):
    try:
        with transaction(db) as tx:
            catalog.delete_product(tx, product_id)
    except ShopError as e:
        raise to_http(e)

    write_log(db, user_id=current_user.id, action="PRODUCT_DELETE", resource="products",
              resource_id=product_id, ip=request.client.host)
    return {"message": "Product deleted"}
