"""Review endpoints."""

from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from allobricolage.api.deps import get_db, require_user
from allobricolage.models.user import User
from allobricolage.schemas.review import ReviewCreate, ReviewReply, ReviewResponse
from allobricolage.services.review_service import ReviewService

router = APIRouter()


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
async def create_review(
    data: ReviewCreate,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """Review a technician; the technician's rating is recomputed in the same transaction."""
    try:
        review = await ReviewService(db).create(data, client_id=user.id)
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if not review:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Technician or booking not found")
    return review


@router.patch("/{review_id}/response", response_model=ReviewResponse)
async def respond_to_review(
    review_id: UUID,
    data: ReviewReply,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        review = await ReviewService(db).respond(review_id, user.id, data.response)
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    if not review:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Review not found")
    return review
