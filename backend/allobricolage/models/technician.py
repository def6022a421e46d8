"""Technician profile, owned by a user account."""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, Float, ForeignKey, Integer, JSON, Text, Uuid
from sqlalchemy.orm import relationship
from allobricolage.database import Base


class Technician(Base):
    """Technician entity."""

    __tablename__ = "technicians"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)

    # Offer
    services = Column(JSON, nullable=False, default=list)  # taxonomy slugs
    skills = Column(JSON, nullable=False, default=list)
    bio = Column(Text)
    photo = Column(String(500))
    hourly_rate = Column(Integer, nullable=False, default=150)
    years_experience = Column(Integer, nullable=False, default=1)
    certifications = Column(JSON, nullable=False, default=list)
    languages = Column(JSON, nullable=False, default=lambda: ["français", "arabe"])

    # Reputation, derived from reviews and bookings only
    rating = Column(Float, nullable=False, default=0.0)
    review_count = Column(Integer, nullable=False, default=0)
    completed_jobs = Column(Integer, nullable=False, default=0)
    response_time_minutes = Column(Integer, nullable=False, default=30)
    completion_rate = Column(Float, nullable=False, default=0.95)

    # Flags
    is_verified = Column(Boolean, nullable=False, default=False)
    is_available = Column(Boolean, nullable=False, default=True)
    is_pro = Column(Boolean, nullable=False, default=False)
    is_promo = Column(Boolean, nullable=False, default=False)
    availability = Column(String(100), nullable=False, default="Sur RDV")

    # Location
    latitude = Column(Float)
    longitude = Column(Float)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="technician", lazy="joined")
    bookings = relationship("Booking", back_populates="technician")
    reviews = relationship("Review", back_populates="technician", cascade="all, delete-orphan")

    @property
    def name(self) -> str:
        return self.user.name if self.user else ""

    @property
    def city(self):
        return self.user.city if self.user else None

    @property
    def phone(self):
        return self.user.phone if self.user else None

    def __repr__(self):
        return f"<Technician {self.name}>"
