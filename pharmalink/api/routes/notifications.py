from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from pharmalink.core.auth_dependency import get_current_user_obj, get_db
from pharmalink.db.models.user import User
from pharmalink.schemas.notification import NotificationListResponse, NotificationResponse
from pharmalink.services import notification_service

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", status_code=status.HTTP_200_OK, response_model=NotificationListResponse)
def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db)
):
    notifications = notification_service.get_notifications(db, user.id, limit=limit, unread_only=unread_only)
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        unread_count=notification_service.get_unread_count(db, user.id),
    )


@router.post("/read", status_code=status.HTTP_200_OK)
def mark_read(
    notification_id: Optional[int] = Query(None, description="Mark only this notification; all if omitted"),
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db)
):
    updated = notification_service.mark_as_read(db, user.id, notification_id)
    return {"updated": updated}
