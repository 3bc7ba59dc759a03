from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Dict, List

from app.database import get_db
from app.models.user import User
from app.routers.auth_deps import get_current_user, require_admin
from app.schemas.notification import (
    BulkNotificationRequest,
    MarkReadRequest,
    NotificationCreate,
    NotificationResponse,
    NotificationSummary,
)
from app.services.notification import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("/", response_model=List[NotificationResponse])
def get_notifications(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return NotificationService(db).get_user_notifications(current_user.id, page, size)


@router.get("/unread", response_model=List[NotificationResponse])
def get_unread_notifications(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return NotificationService(db).get_unread(current_user.id)


@router.get("/unread-count")
def get_unread_count(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return {"unread_count": NotificationService(db).get_unread_count(current_user.id)}


@router.get("/summary", response_model=NotificationSummary)
def get_summary(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return NotificationService(db).get_summary(current_user.id)


@router.get("/stats", response_model=Dict[str, int])
def get_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return NotificationService(db).get_stats(current_user.id)


@router.post("/mark-all-read")
def mark_all_notifications_as_read(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    updated = NotificationService(db).mark_all_read(current_user.id)
    return {"message": "All notifications marked as read", "updated": updated}


@router.post("/mark-read")
def mark_notifications_as_read(
    data: MarkReadRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    updated = NotificationService(db).mark_many_read(data.notification_ids, current_user.id)
    return {"message": "Notifications marked as read", "updated": updated}


@router.delete("/read")
def delete_read_notifications(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    deleted = NotificationService(db).delete_all_read(current_user.id)
    return {"message": "Read notifications deleted", "deleted": deleted}


@router.post("/", response_model=NotificationResponse, status_code=status.HTTP_201_CREATED)
def create_notification(
    data: NotificationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    return NotificationService(db).create_from_request(data)


@router.post("/bulk", response_model=List[NotificationResponse], status_code=status.HTTP_201_CREATED)
def create_bulk_notifications(
    data: BulkNotificationRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    return NotificationService(db).create_bulk_notifications(
        data.user_ids, data.title, data.message, data.type, data.action_url
    )


@router.get("/{notification_id}", response_model=NotificationResponse)
def get_notification(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return NotificationService(db).get_by_id(notification_id, current_user.id)


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
def mark_notification_as_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return NotificationService(db).mark_read(notification_id, current_user.id)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_notification(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    NotificationService(db).delete(notification_id, current_user.id)
