# utils/http_errors.py
from fastapi import HTTPException, status

from services.errors import ShopError

# Domain error kind -> HTTP status
STATUS_BY_KIND = {
    "validation": status.HTTP_400_BAD_REQUEST,
    "empty_cart": status.HTTP_400_BAD_REQUEST,
    "invalid_coupon": status.HTTP_400_BAD_REQUEST,
    "insufficient_stock": status.HTTP_409_CONFLICT,
    "stock_conflict": status.HTTP_409_CONFLICT,
    "duplicate_checkout": status.HTTP_409_CONFLICT,
    "product_in_use": status.HTTP_409_CONFLICT,
    "not_found": status.HTTP_404_NOT_FOUND,
    "forbidden": status.HTTP_403_FORBIDDEN,
    "notification": status.HTTP_502_BAD_GATEWAY,
    "persistence": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def to_http(err: ShopError) -> HTTPException:
    code = STATUS_BY_KIND.get(err.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
    if code >= 500 and err.kind != "notification":
        # Internal details stay in the server log
        return HTTPException(status_code=code, detail={"kind": err.kind, "message": "Internal error, please try again later"})
    return HTTPException(status_code=code, detail=err.to_dict())
