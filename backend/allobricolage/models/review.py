"""Client reviews of technicians."""

import uuid
from datetime import datetime
from sqlalchemy import Column, Boolean, CheckConstraint, DateTime, ForeignKey, Integer, Text, Uuid
from sqlalchemy.orm import relationship
from allobricolage.database import Base


class Review(Base):
    """Review entity."""

    __tablename__ = "reviews"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    technician_id = Column(Uuid, ForeignKey("technicians.id", ondelete="CASCADE"), nullable=False, index=True)
    client_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    booking_id = Column(Uuid, ForeignKey("bookings.id"), unique=True)

    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=False)

    # Optional sub-ratings
    service_quality = Column(Integer)
    punctuality = Column(Integer)
    professionalism = Column(Integer)
    value_for_money = Column(Integer)

    # Verified means it is tied to a completed booking
    is_verified = Column(Boolean, nullable=False, default=False)
    technician_response = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)

    technician = relationship("Technician", back_populates="reviews")

    __table_args__ = (
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating_range"),
    )

    def __repr__(self):
        return f"<Review {self.rating}★ for {self.technician_id}>"
