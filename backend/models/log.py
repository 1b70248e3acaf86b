from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON, func
from database import Base


# Business audit trail: who did what to which shop resource, and how it ended
class AuditEntry(Base):
    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, index=True)
    ts = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    action = Column(String(50), index=True)      # e.g. CART_ADD, CHECKOUT, INVOICE_RESEND
    resource = Column(String(50), index=True)    # cart, orders, coupons, auth
    resource_id = Column(Integer, nullable=True) # order id, product id, coupon id
    status = Column(String(20), index=True)      # SUCCESS / FAIL / DEGRADED
    ip = Column(String(64), nullable=True)

    meta = Column(JSON, nullable=True)
