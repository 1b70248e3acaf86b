import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.log import AuditEntry
from services.unit_of_work import require_transaction, transaction

logger = logging.getLogger(__name__)


def write_log(db: Session, *, user_id, action, resource, resource_id=None, status="SUCCESS", ip=None, meta=None):
    # Own short transaction; call after the business transaction has finished
    try:
        with transaction(db) as tx:
            require_transaction(tx).add(AuditEntry(
                user_id=user_id, action=action, resource=resource, resource_id=resource_id,
                status=status, ip=ip, meta=meta or {},
            ))
    except SQLAlchemyError:
        logger.exception(f"Failed to write audit entry {action} for user {user_id}")
