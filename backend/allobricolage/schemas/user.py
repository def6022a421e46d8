"""User schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, Field, field_validator

from allobricolage.models.user import UserRole
from allobricolage.schemas.common import normalize_phone


class UserCreate(BaseModel):
    """Register a user."""

    username: str = Field(..., min_length=3, max_length=100)
    name: str = Field(..., min_length=1, max_length=255)
    role: UserRole = UserRole.CLIENT
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = None
    city: Optional[str] = Field(None, max_length=100)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return normalize_phone(v) if v else v


class UserResponse(BaseModel):
    id: UUID
    username: str
    name: str
    role: UserRole
    email: Optional[str]
    phone: Optional[str]
    city: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True
