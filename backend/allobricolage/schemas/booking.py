"""Booking schemas."""

from datetime import date, datetime, time
from typing import Optional, Union
from uuid import UUID
from pydantic import BaseModel, Field, field_validator

from allobricolage.models.booking import BookingStatus
from allobricolage.schemas.common import normalize_phone

DIRECT_BOOKING = "direct"


class BookingCreate(BaseModel):
    """
    Book a technician. `job_id` may be omitted (or "direct") to book
    straight from a technician profile.
    """

    technician_id: UUID
    job_id: Optional[Union[UUID, str]] = None
    client_name: str = Field(..., min_length=1, max_length=255)
    client_phone: str
    scheduled_date: date
    scheduled_time: time
    match_score: Optional[float] = Field(None, ge=0)
    match_explanation: Optional[str] = Field(None, max_length=2000)

    @field_validator("client_phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        return normalize_phone(v)

    @field_validator("job_id", mode="before")
    @classmethod
    def parse_job_id(cls, v):
        if v is None or v == "" or v == DIRECT_BOOKING:
            return None
        return UUID(str(v))


class BookingComplete(BaseModel):
    final_cost: Optional[int] = Field(None, ge=0)


class BookingCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class BookingResponse(BaseModel):
    id: UUID
    job_id: UUID
    technician_id: UUID
    client_id: Optional[UUID]
    client_name: str
    client_phone: str
    scheduled_date: date
    scheduled_time: time
    status: BookingStatus
    estimated_cost: Optional[int]
    final_cost: Optional[int]
    match_score: Optional[float]
    match_explanation: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
