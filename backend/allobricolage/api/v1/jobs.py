"""Job endpoints: analysis, creation, matching and cancellation."""

from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from allobricolage.agents.job_analyzer import JobAnalysis
from allobricolage.api.deps import get_current_user_id, get_db
from allobricolage.api.rate_limit import RateLimiter
from allobricolage.config import get_settings
from allobricolage.engine.matching import MatchResult
from allobricolage.schemas.job import (
    JobAnalyzeRequest,
    JobCreate,
    JobCreateResponse,
    JobResponse,
    JobStatusHistoryResponse,
)
from allobricolage.services.job_service import JobService
from allobricolage.services.matching_service import MatchingService

settings = get_settings()
router = APIRouter()

analyze_limit = RateLimiter("jobs-analyze", settings.RATE_LIMIT_ANALYZE_PER_MINUTE)
create_limit = RateLimiter("jobs-create", settings.RATE_LIMIT_JOBS_PER_MINUTE)


@router.post("/analyze", response_model=JobAnalysis, dependencies=[Depends(analyze_limit)])
async def analyze_job(
    data: JobAnalyzeRequest,
    db: AsyncSession = Depends(get_db),
):
    """Extract service, urgency and complexity from a free-text request."""
    return await JobService(db).analyze(data.description, data.city, data.urgency)


@router.post(
    "",
    response_model=JobCreateResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(create_limit)],
)
async def create_job(
    data: JobCreate,
    user_id: Optional[UUID] = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Create a job, estimate its cost and suggest technicians."""
    job, matches, upsells = await JobService(db).create(data, client_id=user_id)
    return JobCreateResponse(
        job=JobResponse.model_validate(job),
        matches=matches,
        upsells=upsells,
    )


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(
    job_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    job = await JobService(db).get_by_id(job_id)
    if not job:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    return job


@router.get("/{job_id}/matches", response_model=List[MatchResult])
async def get_job_matches(
    job_id: UUID,
    user_id: Optional[UUID] = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Rank technicians for a job, personalised with the caller's booking history."""
    job = await JobService(db).get_by_id(job_id)
    if not job:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    return await MatchingService(db).match_job(job, client_id=user_id)


@router.get("/{job_id}/history", response_model=List[JobStatusHistoryResponse])
async def get_job_history(
    job_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    service = JobService(db)
    if not await service.get_by_id(job_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    return await service.history(job_id)


@router.patch("/{job_id}/cancel", response_model=JobResponse)
async def cancel_job(
    job_id: UUID,
    user_id: Optional[UUID] = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    try:
        job = await JobService(db).cancel(job_id, changed_by_id=user_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if not job:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    return job
