"""Technician-related schemas."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel, Field, field_validator

from allobricolage.engine.taxonomy import SERVICE_CATEGORIES, Urgency, normalize_service
from allobricolage.schemas.common import normalize_phone


class TechnicianCreate(BaseModel):
    """
    Register a technician. Creates the owning user account too;
    name, phone and city live on the user.
    """

    username: str = Field(..., min_length=3, max_length=100)
    name: str = Field(..., min_length=1, max_length=255)
    phone: str = Field(..., description="Phone number, Moroccan format accepted")
    city: str = Field(..., max_length=100)
    email: Optional[str] = Field(None, max_length=255)

    services: List[str] = Field(..., min_length=1)
    skills: List[str] = []
    bio: Optional[str] = None
    photo: Optional[str] = Field(None, max_length=500)
    hourly_rate: int = Field(150, gt=0)
    years_experience: int = Field(1, ge=0)
    response_time_minutes: int = Field(30, ge=0)
    certifications: List[str] = []
    languages: List[str] = ["français", "arabe"]
    is_available: bool = True
    is_pro: bool = False
    is_promo: bool = False
    availability: str = "Sur RDV"
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        return normalize_phone(v)

    @field_validator("services")
    @classmethod
    def validate_services(cls, v: List[str]) -> List[str]:
        slugs = []
        for service in v:
            slug = normalize_service(service)
            if slug not in SERVICE_CATEGORIES:
                raise ValueError(f"Unknown service: {service}")
            if slug not in slugs:
                slugs.append(slug)
        return slugs


class TechnicianResponse(BaseModel):
    """Public technician profile."""

    id: UUID
    user_id: UUID
    name: str
    city: Optional[str]
    phone: Optional[str]
    services: List[str]
    skills: List[str]
    bio: Optional[str]
    photo: Optional[str]
    rating: float
    review_count: int
    completed_jobs: int
    response_time_minutes: int
    completion_rate: float
    years_experience: int
    hourly_rate: int
    is_verified: bool
    is_available: bool
    is_pro: bool
    is_promo: bool
    availability: str
    certifications: List[str]
    languages: List[str]
    latitude: Optional[float]
    longitude: Optional[float]
    created_at: datetime

    class Config:
        from_attributes = True


class TechnicianStats(BaseModel):
    """Dashboard figures for the calling technician. Earnings are in MAD."""

    total_earnings: int
    this_month_earnings: int
    last_month_earnings: int
    pending_jobs: int
    completed_jobs: int
    average_rating: float
    response_rate: int


class PendingJobResponse(BaseModel):
    """An open job the technician could take."""

    id: UUID
    description: str
    service: str
    city: str
    urgency: Urgency
    estimated_cost: int
    distance_km: Optional[float] = None
    match_score: float
    created_at: datetime
