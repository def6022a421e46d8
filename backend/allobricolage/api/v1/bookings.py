"""Booking endpoints and lifecycle actions."""

from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from allobricolage.api.deps import get_current_user, get_current_user_id, get_db
from allobricolage.models.user import User
from allobricolage.schemas.booking import BookingCancel, BookingComplete, BookingCreate, BookingResponse
from allobricolage.services.booking_service import BookingService

router = APIRouter()


def _found(booking):
    if not booking:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
    return booking


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    data: BookingCreate,
    user_id: Optional[UUID] = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Book a technician, for an existing job or directly."""
    try:
        booking = await BookingService(db).create(data, client_id=user_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if not booking:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Technician or job not found")
    return booking


@router.get("", response_model=List[BookingResponse])
async def list_bookings(
    user: Optional[User] = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """The caller's bookings: as client, as technician, or all for admins."""
    return await BookingService(db).list_for_user(user)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    return _found(await BookingService(db).get_by_id(booking_id))


@router.post("/{booking_id}/accept", response_model=BookingResponse)
async def accept_booking(
    booking_id: UUID,
    user_id: Optional[UUID] = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    try:
        return _found(await BookingService(db).accept(booking_id, changed_by_id=user_id))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.post("/{booking_id}/start", response_model=BookingResponse)
async def start_booking(
    booking_id: UUID,
    user_id: Optional[UUID] = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    try:
        return _found(await BookingService(db).start(booking_id, changed_by_id=user_id))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.post("/{booking_id}/complete", response_model=BookingResponse)
async def complete_booking(
    booking_id: UUID,
    data: Optional[BookingComplete] = None,
    user_id: Optional[UUID] = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    final_cost = data.final_cost if data else None
    try:
        return _found(await BookingService(db).complete(booking_id, final_cost, changed_by_id=user_id))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: UUID,
    data: Optional[BookingCancel] = None,
    user_id: Optional[UUID] = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    reason = data.reason if data else None
    try:
        return _found(await BookingService(db).cancel(booking_id, changed_by_id=user_id, reason=reason))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.post("/{booking_id}/no-show", response_model=BookingResponse)
async def mark_no_show(
    booking_id: UUID,
    user_id: Optional[UUID] = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    try:
        return _found(await BookingService(db).mark_no_show(booking_id, changed_by_id=user_id))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
