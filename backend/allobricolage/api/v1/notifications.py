"""In-app notification inbox."""

from typing import List
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from allobricolage.api.deps import get_db, require_user
from allobricolage.models.user import User
from allobricolage.schemas.notification import NotificationResponse
from allobricolage.services.notification_service import NotificationService

router = APIRouter()


@router.get("", response_model=List[NotificationResponse])
async def list_notifications(
    unread_only: bool = Query(False),
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    return await NotificationService(db).list_for_user(user.id, unread_only=unread_only)


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: UUID,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    notification = await NotificationService(db).mark_read(notification_id, user.id)
    if not notification:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return notification
