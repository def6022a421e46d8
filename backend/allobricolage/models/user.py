"""User model: clients, technicians and admins share one account table."""

import uuid
from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import Column, String, DateTime, Enum, Uuid
from sqlalchemy.orm import relationship
from allobricolage.database import Base


class UserRole(str, PyEnum):
    """User roles."""
    CLIENT = "client"
    TECHNICIAN = "technician"
    ADMIN = "admin"


class User(Base):
    """User entity."""

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    username = Column(String(100), nullable=False, unique=True)
    role = Column(Enum(UserRole), default=UserRole.CLIENT, nullable=False)

    # Profile
    name = Column(String(255), nullable=False)
    email = Column(String(255))
    phone = Column(String(20))  # E.164
    city = Column(String(100))

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    technician = relationship(
        "Technician",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
    )
    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User {self.username} ({self.role.value})>"
