"""Review service - reviews and the technician rating they derive."""

import logging
from datetime import datetime
from typing import Callable, Optional
from uuid import UUID
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from allobricolage.models.booking import Booking, BookingStatus
from allobricolage.models.review import Review
from allobricolage.models.technician import Technician
from allobricolage.schemas.review import ReviewCreate

logger = logging.getLogger(__name__)


async def recompute_rating(db: AsyncSession, technician: Technician) -> None:
    """Set rating and review_count from the technician's reviews. Does not commit."""
    result = await db.execute(
        select(func.avg(Review.rating), func.count(Review.id))
        .where(Review.technician_id == technician.id)
    )
    average, count = result.one()
    technician.rating = round(float(average), 2) if count else 0.0
    technician.review_count = count


class ReviewService:
    def __init__(self, db: AsyncSession, clock: Callable[[], datetime] = datetime.utcnow):
        self.db = db
        self.now = clock

    async def get_by_id(self, review_id: UUID) -> Optional[Review]:
        result = await self.db.execute(select(Review).where(Review.id == review_id))
        return result.scalar_one_or_none()

    async def create(self, data: ReviewCreate, client_id: UUID) -> Optional[Review]:
        """
        Insert a review and refresh the technician's rating in one transaction.

        The technician row is locked first, so concurrent reviews of the
        same technician serialise and every recompute sees all reviews.
        Returns None if the technician or the booking does not exist.
        """
        result = await self.db.execute(
            select(Technician)
            .where(Technician.id == data.technician_id)
            .with_for_update(of=Technician)
        )
        technician = result.unique().scalar_one_or_none()
        if not technician:
            return None

        if data.booking_id is not None:
            booking = (await self.db.execute(
                select(Booking).where(Booking.id == data.booking_id)
            )).scalar_one_or_none()
            if not booking:
                await self.db.rollback()
                return None
            if booking.technician_id != technician.id:
                await self.db.rollback()
                raise ValueError("Booking does not belong to this technician")
            if booking.status != BookingStatus.COMPLETED:
                await self.db.rollback()
                raise ValueError("Only completed bookings can be reviewed")
            if booking.client_id is not None and booking.client_id != client_id:
                await self.db.rollback()
                raise PermissionError("Only the client who booked can review this booking")

        review = Review(
            technician_id=technician.id,
            client_id=client_id,
            booking_id=data.booking_id,
            rating=data.rating,
            comment=data.comment,
            service_quality=data.service_quality,
            punctuality=data.punctuality,
            professionalism=data.professionalism,
            value_for_money=data.value_for_money,
            is_verified=data.booking_id is not None,
            created_at=self.now(),
        )
        self.db.add(review)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            raise ValueError("This booking has already been reviewed")

        await recompute_rating(self.db, technician)
        await self.db.commit()
        await self.db.refresh(review)

        logger.info(
            "Review %s: technician %s now %.2f (%d reviews)",
            review.id, technician.id, technician.rating, technician.review_count,
        )
        return review

    async def respond(self, review_id: UUID, technician_user_id: UUID, response: str) -> Optional[Review]:
        """Attach the reviewed technician's reply."""
        review = await self.get_by_id(review_id)
        if not review:
            return None

        technician = (await self.db.execute(
            select(Technician).where(Technician.user_id == technician_user_id)
        )).unique().scalar_one_or_none()
        if not technician or technician.id != review.technician_id:
            raise PermissionError("Only the reviewed technician can respond")

        review.technician_response = response
        await self.db.commit()
        await self.db.refresh(review)
        return review
