"""Pricing request schemas. Results are the engine dataclasses."""

from datetime import date, time
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, Field


class PriceEstimateRequest(BaseModel):
    service_type: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    urgency: str = "scheduled"  # either urgency vocabulary
    scheduled_date: date
    scheduled_time: time
    technician_id: Optional[UUID] = None
    distance_km: Optional[float] = Field(None, ge=0)
    complexity: Optional[str] = None


class TotalCostRequest(BaseModel):
    service_type: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    urgency: str = "scheduled"
    estimated_hours: float = Field(..., gt=0, le=100)
    complexity: Optional[str] = None
    scheduled_date: date


class DiscountRequest(BaseModel):
    price: float = Field(..., ge=0)
    code: str = Field(..., min_length=1, max_length=50)
