"""Technician endpoints: profiles, search and recommendations."""

from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from allobricolage.api.deps import get_current_user_id, get_db, require_user
from allobricolage.engine.matching import MultiSkillMatch, TechnicianCandidate
from allobricolage.schemas.review import ReviewResponse
from allobricolage.models.user import User
from allobricolage.schemas.technician import (
    PendingJobResponse,
    TechnicianCreate,
    TechnicianResponse,
    TechnicianStats,
)
from allobricolage.services.matching_service import MatchingService
from allobricolage.services.technician_service import TechnicianService

router = APIRouter()


@router.post("", response_model=TechnicianResponse, status_code=status.HTTP_201_CREATED)
async def create_technician(
    data: TechnicianCreate,
    db: AsyncSession = Depends(get_db),
):
    """Register a technician together with their user account."""
    try:
        return await TechnicianService(db).create(data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.get("", response_model=List[TechnicianResponse])
async def search_technicians(
    city: Optional[str] = Query(None),
    service: Optional[str] = Query(None),
    min_rating: Optional[float] = Query(None, ge=0, le=5),
    available: Optional[bool] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    sort_by: str = Query("rating", pattern="^(rating|reviews|price|experience|response)$"),
    db: AsyncSession = Depends(get_db),
):
    return await TechnicianService(db).search(
        city=city,
        service=service,
        min_rating=min_rating,
        available=available,
        search=search,
        sort_by=sort_by,
    )


@router.get("/multi-skill", response_model=List[MultiSkillMatch])
async def multi_skill_technicians(
    skills: List[str] = Query(...),
    city: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Technicians covering several services at once, best coverage first."""
    return await MatchingService(db).multi_skill(skills, city)


@router.get("/recommendations", response_model=List[TechnicianCandidate])
async def recommended_technicians(
    limit: int = Query(5, ge=1, le=20),
    user_id: Optional[UUID] = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Technicians the caller is likely to book again."""
    return await MatchingService(db).recommendations(user_id, limit=limit)


async def _own_profile(db: AsyncSession, user: User):
    technician = await TechnicianService(db).get_by_user_id(user.id)
    if not technician:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Technician profile not found")
    return technician


@router.get("/me/stats", response_model=TechnicianStats)
async def my_stats(
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """Earnings and job counts for the calling technician."""
    technician = await _own_profile(db, user)
    return await TechnicianService(db).stats(technician)


@router.get("/me/pending-jobs", response_model=List[PendingJobResponse])
async def my_pending_jobs(
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    technician = await _own_profile(db, user)
    return await TechnicianService(db).pending_jobs(technician)


@router.get("/{technician_id}", response_model=TechnicianResponse)
async def get_technician(
    technician_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    technician = await TechnicianService(db).get_by_id(technician_id)
    if not technician:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Technician not found")
    return technician


@router.get("/{technician_id}/reviews", response_model=List[ReviewResponse])
async def get_technician_reviews(
    technician_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    service = TechnicianService(db)
    if not await service.get_by_id(technician_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Technician not found")
    return await service.reviews(technician_id)
