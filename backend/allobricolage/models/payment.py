"""Payment model."""

import uuid
from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import Column, String, DateTime, Enum, ForeignKey, Integer, JSON, Uuid
from sqlalchemy.orm import relationship
from allobricolage.database import Base


class PaymentMethod(str, PyEnum):
    CMI = "cmi"
    CASHPLUS = "cashplus"
    BANK_TRANSFER = "bank_transfer"
    CASH = "cash"
    STRIPE = "stripe"


class PaymentStatus(str, PyEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class Payment(Base):
    """Payment entity."""

    __tablename__ = "payments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_id = Column(Uuid, ForeignKey("bookings.id"), nullable=False, index=True)

    amount = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False, default="MAD")
    payment_method = Column(Enum(PaymentMethod), nullable=False)
    status = Column(Enum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING)

    # Gateway references
    payment_intent_id = Column(String(255))  # Stripe
    gateway_reference = Column(String(255), unique=True, index=True)  # issued by us to CMI, Cash Plus
    transaction_id = Column(String(255))  # reported by the gateway once paid
    bank_reference = Column(String(255))  # RIB/IBAN transfers
    payment_details = Column(JSON)

    paid_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    booking = relationship("Booking", back_populates="payments")

    def __repr__(self):
        return f"<Payment {self.amount} {self.currency} ({self.status.value})>"
