"""Technician service - profiles, search and the candidate pools used for matching."""

from datetime import datetime, timedelta
from typing import Callable, List, Optional
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from allobricolage.engine.geo import distance_between
from allobricolage.engine.matching import JobRequest, TechnicianCandidate
from allobricolage.engine.pricing import round_half_up
from allobricolage.engine.quick_match import score_candidate
from allobricolage.engine.taxonomy import fold_text, normalize_service, same_city
from allobricolage.models.booking import Booking, BookingStatus
from allobricolage.models.job import Job, JobStatus
from allobricolage.models.review import Review
from allobricolage.models.technician import Technician
from allobricolage.models.user import User, UserRole
from allobricolage.schemas.technician import PendingJobResponse, TechnicianCreate, TechnicianStats

SORT_KEYS = {
    "rating": lambda t: (-t.rating, -t.review_count),
    "reviews": lambda t: (-t.review_count, -t.rating),
    "price": lambda t: (t.hourly_rate, -t.rating),
    "experience": lambda t: (-t.years_experience, -t.rating),
    "response": lambda t: (t.response_time_minutes, -t.rating),
}


def job_request(job: Job) -> JobRequest:
    return JobRequest(
        service=job.service,
        city=job.city,
        description=job.description or "",
        latitude=job.latitude,
        longitude=job.longitude,
    )


def to_candidate(technician: Technician) -> TechnicianCandidate:
    """Snapshot an ORM technician for the matching engine."""
    return TechnicianCandidate(
        id=str(technician.id),
        name=technician.name,
        city=technician.city,
        services=list(technician.services or []),
        skills=list(technician.skills or []),
        rating=technician.rating or 0.0,
        review_count=technician.review_count or 0,
        completed_jobs=technician.completed_jobs or 0,
        response_time_minutes=technician.response_time_minutes,
        completion_rate=technician.completion_rate,
        years_experience=technician.years_experience or 0,
        hourly_rate=technician.hourly_rate,
        is_verified=bool(technician.is_verified),
        is_available=bool(technician.is_available),
        is_pro=bool(technician.is_pro),
        is_promo=bool(technician.is_promo),
        latitude=technician.latitude,
        longitude=technician.longitude,
        phone=technician.phone,
        photo=technician.photo,
        languages=list(technician.languages or []),
    )


class TechnicianService:
    """Service for technician operations."""

    def __init__(self, db: AsyncSession, clock: Callable[[], datetime] = datetime.utcnow):
        self.db = db
        self.now = clock

    async def get_by_id(self, technician_id: UUID) -> Optional[Technician]:
        result = await self.db.execute(select(Technician).where(Technician.id == technician_id))
        return result.unique().scalar_one_or_none()

    async def get_by_user_id(self, user_id: UUID) -> Optional[Technician]:
        result = await self.db.execute(select(Technician).where(Technician.user_id == user_id))
        return result.unique().scalar_one_or_none()

    async def get_many(self, technician_ids: List[UUID]) -> List[Technician]:
        if not technician_ids:
            return []
        result = await self.db.execute(select(Technician).where(Technician.id.in_(technician_ids)))
        return list(result.unique().scalars())

    async def create(self, data: TechnicianCreate) -> Technician:
        """Create the technician's user account and profile together."""
        user = User(
            username=data.username,
            name=data.name,
            role=UserRole.TECHNICIAN,
            email=data.email,
            phone=data.phone,
            city=data.city,
        )
        technician = Technician(
            user=user,
            services=data.services,
            skills=data.skills,
            bio=data.bio,
            photo=data.photo,
            hourly_rate=data.hourly_rate,
            years_experience=data.years_experience,
            response_time_minutes=data.response_time_minutes,
            certifications=data.certifications,
            languages=data.languages,
            is_available=data.is_available,
            is_pro=data.is_pro,
            is_promo=data.is_promo,
            availability=data.availability,
            latitude=data.latitude,
            longitude=data.longitude,
        )
        self.db.add(technician)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ValueError(f"Username '{data.username}' is already taken")

        return await self.get_by_id(technician.id)

    async def search(
        self,
        city: Optional[str] = None,
        service: Optional[str] = None,
        min_rating: Optional[float] = None,
        available: Optional[bool] = None,
        search: Optional[str] = None,
        sort_by: str = "rating",
    ) -> List[Technician]:
        """
        Filter technicians. City and text matching ignore case and accents,
        so they run in Python over the SQL-filtered rows.
        """
        query = (
            select(Technician)
            .join(User, Technician.user_id == User.id)
            .order_by(Technician.created_at, Technician.id)
        )
        if min_rating is not None:
            query = query.where(Technician.rating >= min_rating)
        if available is not None:
            query = query.where(Technician.is_available == available)

        result = await self.db.execute(query)
        technicians = list(result.unique().scalars())

        if city:
            technicians = [t for t in technicians if t.city and fold_text(t.city) == fold_text(city)]
        if service:
            slug = normalize_service(service)
            technicians = [
                t for t in technicians
                if any(normalize_service(s) == slug for s in t.services or [])
            ]
        if search:
            needle = fold_text(search)
            technicians = [
                t for t in technicians
                if needle in fold_text(t.name)
                or needle in fold_text(t.bio or "")
                or any(needle in fold_text(s) for s in (t.skills or []) + (t.services or []))
            ]

        technicians.sort(key=SORT_KEYS.get(sort_by, SORT_KEYS["rating"]))
        return technicians

    async def candidate_pool(
        self,
        service: Optional[str] = None,
        city: Optional[str] = None,
        available: Optional[bool] = None,
    ) -> List[TechnicianCandidate]:
        """Technicians offering a service (optionally in a city), as engine snapshots."""
        technicians = await self.search(city=city, service=service, available=available)
        return [to_candidate(t) for t in technicians]

    async def reviews(self, technician_id: UUID) -> List[Review]:
        result = await self.db.execute(
            select(Review)
            .where(Review.technician_id == technician_id)
            .order_by(Review.created_at.desc())
        )
        return list(result.scalars())

    async def stats(self, technician: Technician) -> TechnicianStats:
        """Earnings and job counts from the technician's bookings."""
        result = await self.db.execute(
            select(Booking).where(Booking.technician_id == technician.id)
        )
        bookings = list(result.scalars())
        completed = [b for b in bookings if b.status == BookingStatus.COMPLETED]

        this_month = self.now().replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        last_month = (this_month - timedelta(days=1)).replace(day=1)

        def earned(since: datetime, until: Optional[datetime] = None) -> int:
            total = 0
            for booking in completed:
                done_at = booking.completed_at or booking.created_at
                if done_at is None or done_at < since or (until and done_at >= until):
                    continue
                total += booking.final_cost or booking.estimated_cost or 0
            return total

        return TechnicianStats(
            total_earnings=sum(b.final_cost or b.estimated_cost or 0 for b in completed),
            this_month_earnings=earned(this_month),
            last_month_earnings=earned(last_month, this_month),
            pending_jobs=sum(1 for b in bookings if b.status == BookingStatus.PENDING),
            completed_jobs=len(completed),
            average_rating=technician.rating or 0.0,
            response_rate=round_half_up((technician.completion_rate or 0) * 100),
        )

    async def pending_jobs(self, technician: Technician) -> List[PendingJobResponse]:
        """Open jobs in the technician's services and city, newest first."""
        result = await self.db.execute(
            select(Job)
            .where(Job.status == JobStatus.PENDING)
            .order_by(Job.created_at.desc(), Job.id)
        )
        offered = {normalize_service(s) for s in technician.services or []}
        candidate = to_candidate(technician)

        feed = []
        for job in result.scalars():
            if normalize_service(job.service) not in offered:
                continue
            if technician.city and job.city and not same_city(technician.city, job.city):
                continue
            score, _ = score_candidate(candidate, job_request(job))
            distance = distance_between(technician.latitude, technician.longitude, job.latitude, job.longitude)
            feed.append(PendingJobResponse(
                id=job.id,
                description=job.description,
                service=job.service,
                city=job.city,
                urgency=job.urgency,
                estimated_cost=job.likely_cost or 250,
                distance_km=round(distance, 1) if distance is not None else None,
                match_score=round(score, 4),
                created_at=job.created_at,
            ))
        return feed
