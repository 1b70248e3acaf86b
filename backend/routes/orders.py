# backend/routes/orders.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, Response
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from schemas.order import CheckoutRequest, CheckoutResponse, OrderResponse, OrdersPage, TotalsOut
from services.checkout import CheckoutService, is_admin
from services.errors import ShopError
from services.ledger import OrderLedger, ShippingDetails
from services.unit_of_work import ReadOnlyHandle
from utils.audit import write_log
from utils.email_client import EmailClient, get_email_client
from utils.http_errors import to_http
from utils.pdf import InvoiceRenderer, get_invoice_renderer
from utils.tokenJWT import get_current_user

router = APIRouter(prefix="/orders", tags=["Orders"])
logger = logging.getLogger(__name__)

ledger = OrderLedger()


def get_checkout_service(
    db: Session = Depends(get_db),
    invoices: InvoiceRenderer = Depends(get_invoice_renderer),
    notifier: EmailClient = Depends(get_email_client),
) -> CheckoutService:
    return CheckoutService(db, invoices=invoices, notifier=notifier)


# Turn the current cart into an order
@router.post("/checkout", response_model=CheckoutResponse, status_code=201)
def checkout(
    payload: CheckoutRequest,
    request: Request,
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
    db: Session = Depends(get_db),
    service: CheckoutService = Depends(get_checkout_service),
    current_user: User = Depends(get_current_user),
):
    shipping = ShippingDetails(
        name=payload.name,
        address=payload.address,
        city=payload.city,
        postal_code=payload.postal_code,
        phone=payload.phone,
        country=payload.country,
    )
    try:
        result = service.checkout(
            current_user.id,
            shipping,
            payload.payment_method,
            coupon_code=payload.coupon_code,
            idempotency_key=idempotency_key,
        )
    except ShopError as e:
        logger.warning(f"Checkout rejected for user {current_user.id}: {e.kind} {e.message}")
        write_log(db, user_id=current_user.id, action="CHECKOUT", resource="orders", status="FAIL",
                  ip=request.client.host, meta=e.to_dict())
        raise to_http(e)

    write_log(
        db, user_id=current_user.id, action="CHECKOUT", resource="orders",
        resource_id=result.order_id, status="SUCCESS" if result.notified else "DEGRADED",
        ip=request.client.host,
        meta={"total": str(result.totals.total), "notified": result.notified},
    )
    return CheckoutResponse(
        order_id=result.order_id,
        totals=TotalsOut(**result.totals.as_dict()),
        notified=result.notified,
        notification_error=result.notification_error,
    )


# List the current user's orders
@router.get("", response_model=OrdersPage)
def list_my_orders(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    rows, total = ledger.list_orders_for_user(ReadOnlyHandle(db), current_user.id, page, page_size)
    return {"items": rows, "total": total, "page": page, "page_size": page_size}


# Get details of a specific order
@router.get("/{order_id}", response_model=OrderResponse)
def get_order_detail(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    order = ledger.get_order_by_id(ReadOnlyHandle(db), order_id)
    if not order or (order.user_id != current_user.id and not is_admin(current_user)):
        raise HTTPException(status_code=404, detail="Order not found or forbidden")
    return order


# Re-send the invoice e-mail; can be repeated until it succeeds
@router.post("/{order_id}/send-invoice")
def resend_invoice(
    order_id: int,
    request: Request,
    db: Session = Depends(get_db),
    service: CheckoutService = Depends(get_checkout_service),
    current_user: User = Depends(get_current_user),
):
    try:
        service.resend_invoice(order_id, requested_by=current_user)
    except ShopError as e:
        write_log(db, user_id=current_user.id, action="INVOICE_RESEND", resource="orders",
                  resource_id=order_id, status="FAIL", ip=request.client.host, meta=e.to_dict())
        raise to_http(e)

    write_log(db, user_id=current_user.id, action="INVOICE_RESEND", resource="orders",
              resource_id=order_id, ip=request.client.host)
    return {"order_id": order_id, "notified": True}


# Download the invoice PDF
@router.get("/{order_id}/invoice")
def download_invoice(
    order_id: int,
    service: CheckoutService = Depends(get_checkout_service),
    current_user: User = Depends(get_current_user),
):
    try:
        document = service.render_invoice(order_id, requested_by=current_user)
    except ShopError as e:
        raise to_http(e)

    return Response(
        content=document,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="Factura_{order_id}_Nova_Hogar.pdf"'},
    )
