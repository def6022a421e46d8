"""Notification schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel

from allobricolage.models.notification import NotificationType


class NotificationResponse(BaseModel):
    id: UUID
    user_id: UUID
    type: NotificationType
    title: str
    message: str
    booking_id: Optional[UUID]
    payment_id: Optional[UUID]
    is_read: bool
    created_at: datetime

    class Config:
        from_attributes = True
