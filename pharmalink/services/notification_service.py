"""
Notification dispatch.

Core services call ``notifier.notify(...)`` fire-and-forget after their own
transaction has committed. Delivery (push, realtime) is handled elsewhere;
the default notifier only stores a row the app polls or subscribes to.
"""
import logging
from typing import Any, Callable, Dict, List, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pharmalink.db.models.notification import Notification
from pharmalink.db.session import SessionLocal

logger = logging.getLogger(__name__)

NOTIFICATION_NEW_MATCH = "new_match"
NOTIFICATION_SUPER_LIKE = "super_like_received"
NOTIFICATION_CONTACTS_LIMIT = "contacts_limit_reached"
NOTIFICATION_FEE_PENDING = "mission_fee_pending"


class Notifier(Protocol):
    def notify(
        self,
        recipient_id: int,
        type: str,
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        ...


class DatabaseNotifier:
    """
    Stores notifications in their own session.

    A failure here is logged and dropped: the swipe, match or fee that
    triggered it is already committed.
    """

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self.session_factory = session_factory

    def notify(self, recipient_id, type, title, body, data=None):
        db = self.session_factory()
        try:
            db.add(Notification(user_id=recipient_id, type=type, title=title, body=body, data=data or {}))
            db.commit()
            logger.info(f"Notification stored: recipient_id={recipient_id}, type={type}")
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to store notification for user {recipient_id} ({type}): {e}", exc_info=True)
        finally:
            db.close()


def get_notifications(db: Session, user_id: int, limit: int = 50, unread_only: bool = False) -> List[Notification]:
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.read.is_(False))
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()


def get_unread_count(db: Session, user_id: int) -> int:
    return (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.read.is_(False))
        .count()
    )


def mark_as_read(db: Session, user_id: int, notification_id: Optional[int] = None) -> int:
    """Mark one notification (or all of the user's) as read. Returns rows changed."""
    query = db.query(Notification).filter(Notification.user_id == user_id, Notification.read.is_(False))
    if notification_id is not None:
        query = query.filter(Notification.id == notification_id)
    updated = query.update({Notification.read: True}, synchronize_session=False)
    db.commit()
    return updated
