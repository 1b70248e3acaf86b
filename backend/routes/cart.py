# backend/routes/cart.py
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from models.users import User
from schemas.cart import CartAddItem, CartUpdateItem, CartOut, CartItemOut
from services.cart import CartStore, summarize
from services.errors import ShopError
from services.pricing import PricingConfig, to_cents
from services.unit_of_work import ReadOnlyHandle, transaction
from utils.audit import write_log
from utils.http_errors import to_http
from utils.tokenJWT import get_current_user

router = APIRouter(prefix="/cart", tags=["Cart"])

carts = CartStore()


def _cart_out(db: Session, user_id: int) -> CartOut:
    lines = carts.list_for_user(ReadOnlyHandle(db), user_id)
    items = [
        CartItemOut(
            product_id=line.product_id,
            name=line.name,
            category=line.category,
            quantity=line.quantity,
            unit_price=to_cents(line.unit_price),
            line_total=to_cents(line.unit_price * line.quantity),
            stock_on_hand=line.stock_on_hand,
        )
        for line in lines
    ]
    if not lines:
        zero = to_cents(0)
        return CartOut(items=[], total_items=0, subtotal=zero, tax=zero, shipping=zero, total=zero)

    totals = summarize(lines, PricingConfig.from_settings(settings))
    return CartOut(
        items=items,
        total_items=sum(line.quantity for line in lines),
        subtotal=totals.subtotal,
        tax=totals.tax,
        shipping=totals.shipping,
        total=totals.total,
    )


@router.get("", response_model=CartOut)
def get_cart(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return _cart_out(db, current_user.id)


@router.post("/add", response_model=CartOut)
def add_to_cart(
    payload: CartAddItem,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        with transaction(db) as tx:
            carts.add(tx, current_user.id, payload.product_id, payload.quantity)
    except ShopError as e:
        raise to_http(e)

    out = _cart_out(db, current_user.id)
    write_log(
        db,
        user_id=current_user.id,
        action="CART_ADD",
        resource="cart",
        resource_id=payload.product_id,
        ip=request.client.host,
        meta={"qty": payload.quantity, "cart_items": len(out.items), "total": str(out.total)},
    )
    return out


@router.put("/items/{product_id}", response_model=CartOut)
def update_cart_item(
    product_id: int,
    payload: CartUpdateItem,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        with transaction(db) as tx:
            carts.update_quantity(tx, current_user.id, product_id, payload.quantity)
    except ShopError as e:
        raise to_http(e)

    out = _cart_out(db, current_user.id)
    write_log(
        db,
        user_id=current_user.id,
        action="CART_UPDATE",
        resource="cart",
        resource_id=product_id,
        ip=request.client.host,
        meta={"qty": payload.quantity, "total": str(out.total)},
    )
    return out


@router.delete("/items/{product_id}", response_model=CartOut)
def delete_cart_item(
    product_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        with transaction(db) as tx:
            carts.remove(tx, current_user.id, product_id)
    except ShopError as e:
        raise to_http(e)

    out = _cart_out(db, current_user.id)
    write_log(
        db,
        user_id=current_user.id,
        action="CART_DELETE",
        resource="cart",
        resource_id=product_id,
        ip=request.client.host,
        meta={"cart_items": len(out.items)},
    )
    return out


@router.delete("", response_model=CartOut)
def clear_cart(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    with transaction(db) as tx:
        removed = carts.clear(tx, current_user.id)

    write_log(db, user_id=current_user.id, action="CART_CLEAR", resource="cart",
              ip=request.client.host, meta={"removed": removed})
    return _cart_out(db, current_user.id)
