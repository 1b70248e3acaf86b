# backend/services/coupons.py
import random
from typing import List, Optional

from sqlalchemy import func, update

from models.coupon import Coupon
from models.users import User
from services.errors import ValidationError
from services.unit_of_work import Handle, TransactionScope, require_transaction


def normalize_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


class CouponStore:

    def find_by_code(self, handle: Handle, code: str) -> Optional[Coupon]:
        return handle.session.query(Coupon).filter(Coupon.code == normalize_code(code)).first()

    def find_active(self, handle: Handle, code: str) -> Optional[Coupon]:
        return (
            handle.session.query(Coupon)
            .filter(Coupon.code == normalize_code(code), Coupon.active.is_(True))
            .first()
        )

    def list_all(self, handle: Handle) -> List[Coupon]:
        return handle.session.query(Coupon).order_by(Coupon.id.desc()).all()

    def exists(self, handle: Handle, code: str) -> bool:
        return handle.session.query(Coupon.id).filter(Coupon.code == normalize_code(code)).first() is not None

    def create(self, tx: TransactionScope, code: str, discount_percentage: int) -> Coupon:
        session = require_transaction(tx)
        code = normalize_code(code)
        if not code:
            raise ValidationError("coupon code is required")
        if not 0 <= discount_percentage <= 100:
            raise ValidationError("discount_percentage must be between 0 and 100")
        if self.exists(tx, code):
            raise ValidationError(f"coupon '{code}' already exists", code=code)

        coupon = Coupon(code=code, discount_percentage=discount_percentage, active=True)
        session.add(coupon)
        session.flush()
        return coupon

    def mark_used(self, tx: TransactionScope, coupon_id: int) -> int:
        """Deactivate a coupon; 0 affected rows means someone else consumed it first."""
        session = require_transaction(tx)
        result = session.execute(
            update(Coupon)
            .where(Coupon.id == coupon_id, Coupon.active.is_(True))
            .values(active=False)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def generate_welcome_code(self, handle: Handle) -> str:
        # WELCOME-123456, retried on the rare collision
        while True:
            code = f"WELCOME-{random.randint(0, 999999):06d}"
            if not handle.session.query(Coupon.id).filter(Coupon.code == code).first():
                return code

    def subscribe(self, tx: TransactionScope, email: str, discount_percentage: int) -> Coupon:
        """Newsletter subscription: issue a welcome coupon and flag a known user."""
        session = require_transaction(tx)
        coupon = self.create(tx, self.generate_welcome_code(tx), discount_percentage)

        user = session.query(User).filter(func.lower(User.email) == email.strip().lower()).first()
        if user:
            user.subscribed = True
            session.flush()
        return coupon
