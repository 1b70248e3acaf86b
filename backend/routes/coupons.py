# backend/routes/coupons.py
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from models.users import User
from schemas.coupon import CouponCreate, CouponList, CouponOut, SubscriptionRequest, SubscriptionResponse
from services.coupons import CouponStore, normalize_code
from services.errors import NotificationError, ShopError, ValidationError
from services.unit_of_work import ReadOnlyHandle, transaction
from utils.audit import write_log
from utils.email_client import EmailClient, get_email_client
from utils.http_errors import to_http
from utils.tokenJWT import get_current_user, role_required

router = APIRouter(tags=["Coupons"])
logger = logging.getLogger(__name__)

coupons = CouponStore()


# Check whether a code can be used at checkout
@router.get("/coupons/{code}", response_model=CouponOut)
def get_coupon(
    code: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    coupon = coupons.find_active(ReadOnlyHandle(db), code)
    if not coupon:
        raise HTTPException(status_code=404, detail="Coupon not found or inactive")
    return coupon


@router.get("/coupons", response_model=CouponList)
def list_coupons(
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required("admin")),
):
    return {"items": coupons.list_all(ReadOnlyHandle(db))}


@router.post("/coupons", response_model=CouponOut, status_code=status.HTTP_201_CREATED)
def create_coupon(
    payload: CouponCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required("admin")),
):
    try:
        with transaction(db) as tx:
            coupon_id = coupons.create(tx, payload.code, payload.discount_percentage).id
    except ShopError as e:
        raise to_http(e)
    except IntegrityError:
        # Lost a race with another insert of the same code
        code = normalize_code(payload.code)
        logger.warning("Coupon %s already exists", code)
        raise to_http(ValidationError(f"coupon '{code}' already exists", code=code))

    write_log(db, user_id=current_user.id, action="COUPON_CREATE", resource="coupons",
              resource_id=coupon_id, ip=request.client.host, meta={"code": payload.code})
    return coupons.find_by_code(ReadOnlyHandle(db), payload.code)


# Newsletter subscription: issue a welcome coupon and e-mail it (best effort)
@router.post("/subscription/subscribe", response_model=SubscriptionResponse, status_code=status.HTTP_201_CREATED)
def subscribe(
    payload: SubscriptionRequest,
    request: Request,
    db: Session = Depends(get_db),
    notifier: EmailClient = Depends(get_email_client),
):
    percent = settings.WELCOME_COUPON_PERCENT
    with transaction(db) as tx:
        code = coupons.subscribe(tx, payload.email, percent).code

    emailed = True
    try:
        notifier.send_welcome_coupon(payload.email, payload.name, code, percent)
    except NotificationError as e:
        emailed = False
        logger.warning(f"Welcome coupon {code} issued but e-mail to {payload.email} failed: {e.message}")

    write_log(db, user_id=None, action="COUPON_SUBSCRIBE", resource="coupons",
              status="SUCCESS" if emailed else "DEGRADED", ip=request.client.host,
              meta={"email": payload.email, "code": code})
    return SubscriptionResponse(code=code, discount_percentage=percent, emailed=emailed)
