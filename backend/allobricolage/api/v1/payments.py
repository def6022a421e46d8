"""Payment endpoints."""

from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from allobricolage.api.deps import get_db
from allobricolage.schemas.payment import PaymentConfirm, PaymentCreate, PaymentMethodInfo, PaymentResponse
from allobricolage.services.payment_service import PaymentMethodUnavailableError, PaymentService

router = APIRouter()


@router.get("/methods", response_model=List[PaymentMethodInfo])
async def list_payment_methods(db: AsyncSession = Depends(get_db)):
    """Payment methods with their fees and whether they are configured."""
    return PaymentService(db).methods()


@router.post("", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def create_payment(
    data: PaymentCreate,
    db: AsyncSession = Depends(get_db),
):
    try:
        payment = await PaymentService(db).create(data)
    except PaymentMethodUnavailableError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if not payment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
    return payment


@router.get("/booking/{booking_id}", response_model=List[PaymentResponse])
async def list_booking_payments(
    booking_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    return await PaymentService(db).get_for_booking(booking_id)


@router.post("/{payment_id}/confirm", response_model=PaymentResponse)
async def confirm_payment(
    payment_id: UUID,
    data: Optional[PaymentConfirm] = None,
    db: AsyncSession = Depends(get_db),
):
    """Mark a payment as received; a pending booking becomes accepted."""
    try:
        payment = await PaymentService(db).confirm(
            payment_id,
            transaction_id=data.transaction_id if data else None,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if not payment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Payment not found")
    return payment
