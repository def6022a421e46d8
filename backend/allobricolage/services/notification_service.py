"""Notification service - in-app inbox plus SMS, with delivery tracking."""

import logging
from datetime import date, datetime, time
from typing import Callable, List, Optional
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from allobricolage.config import get_settings
from allobricolage.engine.taxonomy import service_label
from allobricolage.integrations.twilio_client import SMSDeliveryError, TwilioClient
from allobricolage.models.notification import DeliveryStatus, Notification, NotificationType

logger = logging.getLogger(__name__)
settings = get_settings()


def new_booking_sms(
    service: str,
    city: str,
    price: int,
    scheduled_date: date,
    scheduled_time: time,
    client_name: str,
) -> str:
    """SMS sent to a technician when a client books them."""
    return (
        "🔔 Nouvelle réservation AlloBricolage!\n"
        f"📅 {scheduled_date.isoformat()} à {scheduled_time.strftime('%H:%M')}\n"
        f"📍 {city}\n"
        f"🔧 {service_label(service)}\n"
        f"💰 {price} MAD\n"
        f"👤 {client_name}\n\n"
        f"Connectez-vous pour accepter: {settings.PUBLIC_BASE_URL}/technician-dashboard"
    )


class NotificationService:
    """
    Writes inbox notifications and mirrors them by SMS when a phone number
    is given. Rows are flushed, not committed: they belong to the caller's
    transaction.
    """

    def __init__(
        self,
        db: AsyncSession,
        sms: Optional[TwilioClient] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.db = db
        self.sms = sms or TwilioClient()
        self.now = clock

    async def notify(
        self,
        user_id: UUID,
        type: NotificationType,
        title: str,
        message: str,
        booking_id: Optional[UUID] = None,
        payment_id: Optional[UUID] = None,
        sms_to: Optional[str] = None,
        sms_text: Optional[str] = None,
    ) -> Notification:
        """Create an inbox notification and optionally send it by SMS."""
        notification = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            booking_id=booking_id,
            payment_id=payment_id,
            created_at=self.now(),
        )
        self.db.add(notification)

        if sms_to:
            try:
                result = await self.sms.send_sms(sms_to, sms_text or f"{title}\n{message}")
                notification.sms_status = DeliveryStatus.SENT
                notification.external_id = result.get("sid")
                notification.sent_at = self.now()
            except SMSDeliveryError as e:
                # SMS is best effort; the inbox entry still stands
                logger.warning("SMS to %s failed: %s", sms_to, e)
                notification.sms_status = DeliveryStatus.FAILED
                notification.error_message = str(e)

        await self.db.flush()
        return notification

    async def list_for_user(self, user_id: UUID, unread_only: bool = False) -> List[Notification]:
        query = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            query = query.where(Notification.is_read.is_(False))
        result = await self.db.execute(query.order_by(Notification.created_at.desc()))
        return list(result.scalars())

    async def mark_read(self, notification_id: UUID, user_id: UUID) -> Optional[Notification]:
        result = await self.db.execute(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.user_id == user_id,
            )
        )
        notification = result.scalar_one_or_none()
        if not notification:
            return None

        notification.is_read = True
        await self.db.commit()
        await self.db.refresh(notification)
        return notification
