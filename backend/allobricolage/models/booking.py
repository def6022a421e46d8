"""Booking model: a client reserving a technician for a job."""

import uuid
from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import Column, String, Date, DateTime, Enum, Float, ForeignKey, Integer, Text, Time, Uuid
from sqlalchemy.orm import relationship
from allobricolage.database import Base


class BookingStatus(str, PyEnum):
    """Booking status enumeration."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class Booking(Base):
    """Booking entity."""

    __tablename__ = "bookings"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    job_id = Column(Uuid, ForeignKey("jobs.id"), nullable=False, index=True)
    technician_id = Column(Uuid, ForeignKey("technicians.id"), nullable=False, index=True)
    client_id = Column(Uuid, ForeignKey("users.id"), index=True)

    # Contact
    client_name = Column(String(255), nullable=False)
    client_phone = Column(String(20), nullable=False)  # E.164

    # Scheduling
    scheduled_date = Column(Date, nullable=False)
    scheduled_time = Column(Time, nullable=False)

    status = Column(Enum(BookingStatus), nullable=False, default=BookingStatus.PENDING, index=True)

    # Money
    estimated_cost = Column(Integer)
    final_cost = Column(Integer)

    # Match snapshot, written once at creation
    match_score = Column(Float)
    match_explanation = Column(Text)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    accepted_at = Column(DateTime)
    started_at = Column(DateTime)
    completed_at = Column(DateTime)
    cancelled_at = Column(DateTime)

    # Relationships
    job = relationship("Job", back_populates="bookings")
    technician = relationship("Technician", back_populates="bookings")
    payments = relationship("Payment", back_populates="booking", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Booking {self.id} ({self.status.value})>"
