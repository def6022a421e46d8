"""Review schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, Field


class ReviewCreate(BaseModel):
    technician_id: UUID
    booking_id: Optional[UUID] = None
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., min_length=1, max_length=2000)
    service_quality: Optional[int] = Field(None, ge=1, le=5)
    punctuality: Optional[int] = Field(None, ge=1, le=5)
    professionalism: Optional[int] = Field(None, ge=1, le=5)
    value_for_money: Optional[int] = Field(None, ge=1, le=5)


class ReviewReply(BaseModel):
    response: str = Field(..., min_length=1, max_length=2000)


class ReviewResponse(BaseModel):
    id: UUID
    technician_id: UUID
    client_id: UUID
    booking_id: Optional[UUID]
    rating: int
    comment: str
    service_quality: Optional[int]
    punctuality: Optional[int]
    professionalism: Optional[int]
    value_for_money: Optional[int]
    is_verified: bool
    technician_response: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True
