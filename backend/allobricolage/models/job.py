"""Job models - the core entity of the system."""

import uuid
from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import Column, String, DateTime, Enum, Float, ForeignKey, Integer, JSON, Text, Uuid
from sqlalchemy.orm import relationship
from allobricolage.database import Base
from allobricolage.engine.taxonomy import Complexity, Urgency


class JobStatus(str, PyEnum):
    """Job status enumeration."""
    PENDING = "pending"          # Created, no technician yet
    ACCEPTED = "accepted"        # A booking was made
    IN_PROGRESS = "in_progress"  # Technician on site
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Job(Base):
    """Job entity - a maintenance request."""

    __tablename__ = "jobs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id = Column(Uuid, ForeignKey("users.id"))

    # Request
    description = Column(Text, nullable=False)
    service = Column(String(100), nullable=False, index=True)  # taxonomy slug
    sub_services = Column(JSON, default=list)
    city = Column(String(100), nullable=False, index=True)
    latitude = Column(Float)
    longitude = Column(Float)
    urgency = Column(Enum(Urgency), nullable=False, default=Urgency.NORMAL)
    complexity = Column(Enum(Complexity), nullable=False, default=Complexity.MODERATE)
    estimated_duration = Column(String(50))

    # Estimate, fixed at creation
    min_cost = Column(Integer)
    likely_cost = Column(Integer)
    max_cost = Column(Integer)
    confidence = Column(Float)

    status = Column(Enum(JobStatus), nullable=False, default=JobStatus.PENDING, index=True)

    # Analysis
    extracted_keywords = Column(JSON, default=list)
    ai_analysis = Column(JSON)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    bookings = relationship("Booking", back_populates="job")
    status_history = relationship(
        "JobStatusHistory",
        back_populates="job",
        cascade="all, delete-orphan",
        order_by="JobStatusHistory.created_at",
    )

    def __repr__(self):
        return f"<Job {self.id} {self.service}>"


class JobStatusHistory(Base):
    """Track all status changes for auditing."""

    __tablename__ = "job_status_history"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    job_id = Column(Uuid, ForeignKey("jobs.id"), nullable=False, index=True)

    # Status change
    from_status = Column(String(50))
    to_status = Column(String(50), nullable=False)

    # Who made the change
    changed_by_type = Column(String(20))  # 'technician', 'client', 'system'
    changed_by_id = Column(Uuid)

    # Optional reason
    reason = Column(Text)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    job = relationship("Job", back_populates="status_history")

    def __repr__(self):
        return f"<JobStatusHistory {self.from_status} -> {self.to_status}>"
