"""In-app notifications, with delivery tracking for the SMS copy."""

import uuid
from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import Column, String, Boolean, DateTime, Enum, ForeignKey, Text, Uuid
from sqlalchemy.orm import relationship
from allobricolage.database import Base


class NotificationType(str, PyEnum):
    BOOKING = "booking"
    PAYMENT = "payment"
    JOB_UPDATE = "job_update"
    SYSTEM = "system"


class DeliveryStatus(str, PyEnum):
    """SMS delivery status."""
    NOT_SENT = "not_sent"
    SENT = "sent"
    FAILED = "failed"


class Notification(Base):
    """Notification shown in the user's inbox, optionally mirrored by SMS."""

    __tablename__ = "notifications"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    type = Column(Enum(NotificationType), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)

    booking_id = Column(Uuid)
    payment_id = Column(Uuid)

    is_read = Column(Boolean, nullable=False, default=False)

    # SMS mirror
    sms_status = Column(Enum(DeliveryStatus), nullable=False, default=DeliveryStatus.NOT_SENT)
    external_id = Column(String(100))  # Twilio SID
    error_message = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)
    sent_at = Column(DateTime)

    user = relationship("User", back_populates="notifications")

    def __repr__(self):
        return f"<Notification {self.type.value} to {self.user_id}>"
