"""Matching service - loads pools and booking history, then ranks with the engine."""

from typing import Dict, List, Optional, Sequence
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from allobricolage.engine.matching import (
    BookingSnapshot,
    MatchResult,
    MultiSkillMatch,
    TechnicianCandidate,
    analyze_client_preferences,
    find_multi_skill_technicians,
    history_by_technician,
    match_technicians,
    personalized_recommendations,
)
from allobricolage.models.booking import Booking
from allobricolage.models.job import Job
from allobricolage.services.technician_service import TechnicianService, job_request


class MatchingService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.technicians = TechnicianService(db)

    async def _snapshots(self, *criteria) -> List[BookingSnapshot]:
        result = await self.db.execute(
            select(Booking, Job.service)
            .join(Job, Booking.job_id == Job.id)
            .where(*criteria)
            .order_by(Booking.created_at, Booking.id)
        )
        return [
            BookingSnapshot(
                technician_id=str(booking.technician_id),
                status=booking.status.value,
                service=service,
                scheduled_time=booking.scheduled_time.strftime("%H:%M") if booking.scheduled_time else None,
                estimated_cost=booking.estimated_cost,
            )
            for booking, service in result.all()
        ]

    async def client_history(self, client_id: Optional[UUID]) -> List[BookingSnapshot]:
        if client_id is None:
            return []
        return await self._snapshots(Booking.client_id == client_id)

    async def technician_history(
        self,
        pool: Sequence[TechnicianCandidate],
    ) -> Dict[str, List[BookingSnapshot]]:
        if not pool:
            return {}
        ids = [UUID(tech.id) for tech in pool]
        return history_by_technician(await self._snapshots(Booking.technician_id.in_(ids)))

    async def match_job(self, job: Job, client_id: Optional[UUID] = None) -> List[MatchResult]:
        """Rank the available technicians offering the job's service in its city."""
        pool = await self.technicians.candidate_pool(
            service=job.service, city=job.city, available=True
        )
        return match_technicians(
            job_request(job),
            pool,
            client_history=await self.client_history(client_id or job.client_id),
            technician_history=await self.technician_history(pool),
        )

    async def multi_skill(self, skills: Sequence[str], city: Optional[str] = None) -> List[MultiSkillMatch]:
        pool = await self.technicians.candidate_pool(city=city)
        return find_multi_skill_technicians(skills, pool)

    async def recommendations(self, client_id: Optional[UUID], limit: int = 5) -> List[TechnicianCandidate]:
        preferences = analyze_client_preferences(await self.client_history(client_id))
        pool = await self.technicians.candidate_pool()
        return personalized_recommendations(preferences, pool, limit=limit)
