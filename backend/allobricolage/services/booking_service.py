"""Booking service - creation and the booking lifecycle, kept in step with the job."""

import logging
from datetime import datetime
from typing import Callable, List, Optional
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from allobricolage.config import get_settings
from allobricolage.engine.pricing import round_half_up
from allobricolage.engine.taxonomy import Complexity, Urgency, service_label
from allobricolage.models.booking import Booking, BookingStatus
from allobricolage.models.job import Job, JobStatus, JobStatusHistory
from allobricolage.models.notification import NotificationType
from allobricolage.models.user import User, UserRole
from allobricolage.schemas.booking import BookingCreate
from allobricolage.services.job_service import JobService
from allobricolage.services.lifecycle import can_transition_job, check_booking_transition
from allobricolage.services.notification_service import NotificationService, new_booking_sms
from allobricolage.services.technician_service import TechnicianService

logger = logging.getLogger(__name__)
settings = get_settings()

DEFAULT_BOOKING_COST = 200
DIRECT_MATCH_SCORE = 0.9


class BookingService:
    """Service for booking operations."""

    def __init__(
        self,
        db: AsyncSession,
        notifications: Optional[NotificationService] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.db = db
        self.now = clock
        self.notifications = notifications or NotificationService(db, clock=clock)
        self.jobs = JobService(db, clock=clock)
        self.technicians = TechnicianService(db)

    async def get_by_id(self, booking_id: UUID) -> Optional[Booking]:
        result = await self.db.execute(select(Booking).where(Booking.id == booking_id))
        return result.scalar_one_or_none()

    async def list_for_user(self, user: Optional[User]) -> List[Booking]:
        """Clients see their bookings, technicians the ones assigned to them, admins all."""
        query = select(Booking).order_by(Booking.created_at.desc())
        if user is None:
            return []
        if user.role == UserRole.CLIENT:
            query = query.where(Booking.client_id == user.id)
        elif user.role == UserRole.TECHNICIAN:
            technician = await self.technicians.get_by_user_id(user.id)
            if not technician:
                return []
            query = query.where(Booking.technician_id == technician.id)

        result = await self.db.execute(query)
        return list(result.scalars())

    async def create(self, data: BookingCreate, client_id: Optional[UUID] = None) -> Optional[Booking]:
        """
        Book a technician. Without a job id a direct job is created from the
        technician's primary service. Returns None if the technician or the
        job does not exist.
        """
        technician = await self.technicians.get_by_id(data.technician_id)
        if not technician:
            return None

        now = self.now()
        estimated_cost = technician.hourly_rate or DEFAULT_BOOKING_COST

        if data.job_id is None:
            job = await self._create_direct_job(technician, estimated_cost, client_id, now)
        else:
            job = await self.jobs.get_by_id(data.job_id)
            if not job:
                return None
            estimated_cost = job.likely_cost or estimated_cost

        # A booked job is no longer open
        self.jobs.transition(job, JobStatus.ACCEPTED, "client", client_id, "Technician booked")

        booking = Booking(
            job_id=job.id,
            technician_id=technician.id,
            client_id=client_id,
            client_name=data.client_name,
            client_phone=data.client_phone,
            scheduled_date=data.scheduled_date,
            scheduled_time=data.scheduled_time,
            status=BookingStatus.PENDING,
            estimated_cost=estimated_cost,
            match_score=data.match_score if data.match_score is not None else DIRECT_MATCH_SCORE,
            match_explanation=data.match_explanation or f"Réservation confirmée avec {technician.name}",
            created_at=now,
            updated_at=now,
        )
        self.db.add(booking)
        await self.db.flush()

        await self.notifications.notify(
            user_id=technician.user_id,
            type=NotificationType.BOOKING,
            title="🔔 Nouvelle réservation",
            message=(
                f"{data.client_name} a réservé {service_label(job.service)} le "
                f"{data.scheduled_date.isoformat()} à {data.scheduled_time.strftime('%H:%M')}"
            ),
            booking_id=booking.id,
            sms_to=technician.phone,
            sms_text=new_booking_sms(
                service=job.service,
                city=technician.city or job.city,
                price=estimated_cost,
                scheduled_date=data.scheduled_date,
                scheduled_time=data.scheduled_time,
                client_name=data.client_name,
            ),
        )

        await self.db.commit()
        await self.db.refresh(booking)
        logger.info("Booking %s created for technician %s", booking.id, technician.id)
        return booking

    async def _create_direct_job(self, technician, estimated_cost: int, client_id, now: datetime) -> Job:
        service = (technician.services or ["services_generaux"])[0]
        job = Job(
            client_id=client_id,
            description=f"Réservation directe avec {technician.name}",
            service=service,
            city=technician.city or settings.DEFAULT_CITY,
            urgency=Urgency.NORMAL,
            complexity=Complexity.MODERATE,
            status=JobStatus.PENDING,
            likely_cost=estimated_cost,
            min_cost=round_half_up(estimated_cost * 0.8),
            max_cost=round_half_up(estimated_cost * 1.3),
            extracted_keywords=[service],
            created_at=now,
            updated_at=now,
        )
        self.db.add(job)
        await self.db.flush()
        self.db.add(JobStatusHistory(
            job_id=job.id,
            to_status=JobStatus.PENDING.value,
            changed_by_type="client" if client_id else "system",
            changed_by_id=client_id,
            reason="Direct booking",
            created_at=now,
        ))
        return job

    async def _move(
        self,
        booking_id: UUID,
        target: BookingStatus,
        job_target: Optional[JobStatus] = None,
        changed_by_type: str = "technician",
        changed_by_id: Optional[UUID] = None,
        reason: Optional[str] = None,
    ) -> Optional[Booking]:
        """Apply a booking transition and, where allowed, the matching job transition."""
        booking = await self.get_by_id(booking_id)
        if not booking:
            return None

        check_booking_transition(booking.status, target)

        now = self.now()
        booking.status = target
        booking.updated_at = now
        if target == BookingStatus.ACCEPTED:
            booking.accepted_at = now
        elif target == BookingStatus.IN_PROGRESS:
            booking.started_at = now
        elif target == BookingStatus.COMPLETED:
            booking.completed_at = now
        elif target in (BookingStatus.CANCELLED, BookingStatus.NO_SHOW):
            booking.cancelled_at = now

        if job_target is not None:
            job = await self.jobs.get_by_id(booking.job_id)
            if job and job.status != job_target and can_transition_job(job.status, job_target):
                self.jobs.transition(job, job_target, changed_by_type, changed_by_id, reason)

        return booking

    async def _commit(self, booking: Optional[Booking]) -> Optional[Booking]:
        if booking is None:
            return None
        await self.db.commit()
        await self.db.refresh(booking)
        return booking

    async def accept(self, booking_id: UUID, changed_by_id: Optional[UUID] = None) -> Optional[Booking]:
        booking = await self._move(booking_id, BookingStatus.ACCEPTED, changed_by_id=changed_by_id)
        return await self._commit(booking)

    async def start(self, booking_id: UUID, changed_by_id: Optional[UUID] = None) -> Optional[Booking]:
        booking = await self._move(
            booking_id, BookingStatus.IN_PROGRESS, JobStatus.IN_PROGRESS,
            changed_by_id=changed_by_id, reason="Work started",
        )
        return await self._commit(booking)

    async def complete(
        self,
        booking_id: UUID,
        final_cost: Optional[int] = None,
        changed_by_id: Optional[UUID] = None,
    ) -> Optional[Booking]:
        booking = await self._move(
            booking_id, BookingStatus.COMPLETED, JobStatus.COMPLETED,
            changed_by_id=changed_by_id, reason="Work completed",
        )
        if booking is None:
            return None

        if final_cost is not None:
            booking.final_cost = final_cost
        technician = await self.technicians.get_by_id(booking.technician_id)
        if technician:
            technician.completed_jobs = (technician.completed_jobs or 0) + 1

        return await self._commit(booking)

    async def cancel(
        self,
        booking_id: UUID,
        changed_by_type: str = "client",
        changed_by_id: Optional[UUID] = None,
        reason: Optional[str] = None,
    ) -> Optional[Booking]:
        booking = await self._move(
            booking_id, BookingStatus.CANCELLED, JobStatus.CANCELLED,
            changed_by_type=changed_by_type, changed_by_id=changed_by_id,
            reason=reason or "Booking cancelled",
        )
        return await self._commit(booking)

    async def mark_no_show(self, booking_id: UUID, changed_by_id: Optional[UUID] = None) -> Optional[Booking]:
        booking = await self._move(booking_id, BookingStatus.NO_SHOW, changed_by_id=changed_by_id)
        return await self._commit(booking)
