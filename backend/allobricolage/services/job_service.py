"""Job service - handles job-related business logic."""

import logging
from dataclasses import asdict
from datetime import datetime
from typing import Callable, List, Optional, Tuple
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from allobricolage.agents.job_analyzer import JobAnalysis, JobAnalyzer
from allobricolage.engine.estimate import UpsellSuggestion, estimate_cost, upsell_suggestions
from allobricolage.engine.quick_match import QuickMatch, quick_match
from allobricolage.models.job import Job, JobStatus, JobStatusHistory
from allobricolage.schemas.job import JobCreate
from allobricolage.services.lifecycle import check_job_transition
from allobricolage.services.technician_service import TechnicianService, job_request

logger = logging.getLogger(__name__)


class JobService:
    """Service for job operations."""

    def __init__(
        self,
        db: AsyncSession,
        analyzer: Optional[JobAnalyzer] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.db = db
        self.analyzer = analyzer or JobAnalyzer()
        self.now = clock

    async def get_by_id(self, job_id: UUID) -> Optional[Job]:
        result = await self.db.execute(select(Job).where(Job.id == job_id))
        return result.scalar_one_or_none()

    async def analyze(self, description: str, city: str, urgency: Optional[str] = None) -> JobAnalysis:
        return await self.analyzer.analyze(description, city, urgency)

    async def create(
        self,
        data: JobCreate,
        client_id: Optional[UUID] = None,
    ) -> Tuple[Job, List[QuickMatch], List[UpsellSuggestion]]:
        """
        Create a job with its cost estimate, and suggest technicians.
        The suggestions are not persisted.
        """
        analysis = await self.analyze(data.description, data.city, data.urgency.value)
        service = data.service or analysis.service
        complexity = data.complexity or analysis.complexity
        now = self.now()

        estimate = estimate_cost(
            description=data.description,
            service=service,
            city=data.city,
            urgency=analysis.urgency,
            complexity=complexity,
            hour=now.hour,
        )

        job = Job(
            client_id=client_id,
            description=data.description,
            service=service,
            sub_services=analysis.sub_services,
            city=data.city,
            latitude=data.latitude,
            longitude=data.longitude,
            urgency=analysis.urgency,
            complexity=complexity,
            estimated_duration=analysis.estimated_duration,
            min_cost=estimate.min_cost,
            likely_cost=estimate.likely_cost,
            max_cost=estimate.max_cost,
            confidence=estimate.confidence,
            status=JobStatus.PENDING,
            extracted_keywords=analysis.extracted_keywords,
            ai_analysis=_analysis_blob(analysis),
            created_at=now,
            updated_at=now,
        )
        self.db.add(job)
        await self.db.flush()

        self.db.add(JobStatusHistory(
            job_id=job.id,
            from_status=None,
            to_status=JobStatus.PENDING.value,
            changed_by_type="client" if client_id else "system",
            changed_by_id=client_id,
            reason="Job created",
            created_at=now,
        ))
        await self.db.commit()
        await self.db.refresh(job)

        pool = await TechnicianService(self.db).candidate_pool(service=service, city=data.city)
        matches = quick_match(job_request(job), pool, estimate)
        logger.info("Job %s created (%s, %s): %d match(es)", job.id, service, data.city, len(matches))

        return job, matches, upsell_suggestions(service)

    def transition(
        self,
        job: Job,
        target: JobStatus,
        changed_by_type: str,
        changed_by_id: Optional[UUID] = None,
        reason: Optional[str] = None,
    ) -> None:
        """
        Move a job to `target` and record the change. Does not commit.
        Raises InvalidTransitionError if the move is not allowed.
        """
        check_job_transition(job.status, target)

        old_status = job.status
        now = self.now()
        job.status = target
        job.updated_at = now

        self.db.add(JobStatusHistory(
            job_id=job.id,
            from_status=old_status.value,
            to_status=target.value,
            changed_by_type=changed_by_type,
            changed_by_id=changed_by_id,
            reason=reason,
            created_at=now,
        ))

    async def cancel(
        self,
        job_id: UUID,
        changed_by_id: Optional[UUID] = None,
        reason: Optional[str] = None,
    ) -> Optional[Job]:
        job = await self.get_by_id(job_id)
        if not job:
            return None

        self.transition(job, JobStatus.CANCELLED, "client", changed_by_id, reason or "Cancelled by client")
        await self.db.commit()
        await self.db.refresh(job)
        return job

    async def history(self, job_id: UUID) -> List[JobStatusHistory]:
        result = await self.db.execute(
            select(JobStatusHistory)
            .where(JobStatusHistory.job_id == job_id)
            .order_by(JobStatusHistory.created_at, JobStatusHistory.id)
        )
        return list(result.scalars())


def _analysis_blob(analysis: JobAnalysis) -> dict:
    blob = asdict(analysis)
    blob["urgency"] = analysis.urgency.value
    blob["complexity"] = analysis.complexity.value
    return blob
