"""Audit repository - Best-effort audit trail of booking and schedule changes"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...models import AuditLog

logger = logging.getLogger(__name__)

MAX_AUDIT_LOGS = 100


class AuditRepository:
    """Repository for audit log database operations"""

    @staticmethod
    def record(
        db: Session,
        action: str,
        entity: str,
        entity_id: int,
        business_id: Optional[int] = None,
        user_id: Optional[str] = None,
    ) -> None:
        """
        Write one audit record inside a savepoint of the caller's transaction.

        A failing insert rolls back the savepoint only and is logged; the
        surrounding mutation still commits.
        """
        db.flush()
        try:
            with db.begin_nested():
                db.add(
                    AuditLog(
                        action=action,
                        entity=entity,
                        entity_id=entity_id,
                        business_id=business_id,
                        user_id=user_id,
                    )
                )
        except SQLAlchemyError as e:
            logger.error(f"❌ Failed to record audit log {action} {entity}#{entity_id}: {e.__class__.__name__}")

    @staticmethod
    def list_logs(
        db: Session,
        business_id: int,
        entity: Optional[str] = None,
        entity_id: Optional[int] = None,
        action: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = MAX_AUDIT_LOGS,
    ) -> list[AuditLog]:
        """Audit logs of a business, newest first"""
        query = db.query(AuditLog).filter(AuditLog.business_id == business_id)
        if entity:
            query = query.filter(AuditLog.entity == entity)
        if entity_id is not None:
            query = query.filter(AuditLog.entity_id == entity_id)
        if action:
            query = query.filter(AuditLog.action == action)
        if start:
            query = query.filter(AuditLog.created_at >= start)
        if end:
            query = query.filter(AuditLog.created_at <= end)
        limit = max(1, min(limit, MAX_AUDIT_LOGS))
        return query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit).all()

    @staticmethod
    def delete_older_than(db: Session, cutoff: datetime) -> int:
        deleted = db.query(AuditLog).filter(AuditLog.created_at < cutoff).delete(synchronize_session=False)
        db.commit()
        return deleted
