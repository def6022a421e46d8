"""Job-related Pydantic schemas."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID
from pydantic import BaseModel, Field, field_validator

from allobricolage.engine.estimate import UpsellSuggestion
from allobricolage.engine.quick_match import QuickMatch
from allobricolage.engine.taxonomy import (
    SERVICE_CATEGORIES,
    Complexity,
    Urgency,
    normalize_service,
    to_complexity,
    to_urgency,
)
from allobricolage.models.job import JobStatus


class JobAnalyzeRequest(BaseModel):
    """Free-text request to analyse."""

    description: str = Field(..., min_length=3, max_length=5000)
    city: str = Field(..., max_length=100)
    urgency: Optional[str] = None


class JobCreate(BaseModel):
    """
    Schema for creating a job. Service and complexity are optional;
    missing ones come from analysing the description.
    """

    description: str = Field(..., min_length=3, max_length=5000)
    city: str = Field(..., max_length=100)
    service: Optional[str] = None
    urgency: Urgency = Urgency.NORMAL
    complexity: Optional[Complexity] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)

    @field_validator("service")
    @classmethod
    def validate_service(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return None
        slug = normalize_service(v)
        if slug not in SERVICE_CATEGORIES:
            raise ValueError(f"Unknown service: {v}")
        return slug

    @field_validator("urgency", mode="before")
    @classmethod
    def parse_urgency(cls, v: Any) -> Urgency:
        # Either vocabulary is accepted
        return to_urgency(v)

    @field_validator("complexity", mode="before")
    @classmethod
    def parse_complexity(cls, v: Any) -> Optional[Complexity]:
        if v is None or v == "":
            return None
        complexity = to_complexity(v)
        if complexity is None:
            raise ValueError(f"Unknown complexity: {v}")
        return complexity


class JobStatusHistoryResponse(BaseModel):
    from_status: Optional[str]
    to_status: str
    changed_by_type: Optional[str]
    reason: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class JobResponse(BaseModel):
    """Full job response schema."""

    id: UUID
    client_id: Optional[UUID]

    # Details
    description: str
    service: str
    sub_services: Optional[List[str]]
    city: str
    latitude: Optional[float]
    longitude: Optional[float]
    urgency: Urgency
    complexity: Complexity
    estimated_duration: Optional[str]

    # Estimate
    min_cost: Optional[int]
    likely_cost: Optional[int]
    max_cost: Optional[int]
    confidence: Optional[float]

    status: JobStatus
    extracted_keywords: Optional[List[str]]
    ai_analysis: Optional[Dict[str, Any]]

    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class JobCreateResponse(BaseModel):
    """A new job with its first technician suggestions."""

    job: JobResponse
    matches: List[QuickMatch]
    upsells: List[UpsellSuggestion]
