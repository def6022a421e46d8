"""Pricing service - gathers market context from the database for the pricing engine."""

from typing import Optional
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from allobricolage.engine.pricing import (
    DiscountResult,
    MarketContext,
    PriceRange,
    PricingParams,
    PricingResult,
    TotalJobCost,
    apply_discount_code,
    calculate_dynamic_price,
    estimate_total_job_cost,
    get_price_range,
)
from allobricolage.engine.taxonomy import normalize_service, same_city
from allobricolage.models.job import Job, JobStatus
from allobricolage.models.technician import Technician
from allobricolage.schemas.pricing import DiscountRequest, PriceEstimateRequest, TotalCostRequest


class PricingService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def pending_jobs_count(self, service: str, city: str) -> int:
        """Open demand: pending jobs for the same service in the same city."""
        result = await self.db.execute(
            select(Job.city).where(
                Job.status == JobStatus.PENDING,
                Job.service == normalize_service(service),
            )
        )
        return sum(1 for job_city in result.scalars() if same_city(job_city, city))

    async def technician_rating(self, technician_id: Optional[UUID]) -> Optional[float]:
        if technician_id is None:
            return None
        result = await self.db.execute(
            select(Technician.rating).where(Technician.id == technician_id)
        )
        return result.scalar_one_or_none()

    async def market_context(
        self,
        service: str,
        city: str,
        technician_id: Optional[UUID] = None,
    ) -> MarketContext:
        return MarketContext(
            pending_jobs_in_city=await self.pending_jobs_count(service, city),
            technician_rating=await self.technician_rating(technician_id),
        )

    async def estimate_price(self, data: PriceEstimateRequest) -> PricingResult:
        market = await self.market_context(data.service_type, data.city, data.technician_id)
        params = PricingParams(
            service_type=data.service_type,
            city=data.city,
            urgency=data.urgency,
            scheduled_date=data.scheduled_date,
            scheduled_time=data.scheduled_time,
            technician_id=str(data.technician_id) if data.technician_id else None,
            distance_km=data.distance_km,
            complexity=data.complexity,
        )
        return calculate_dynamic_price(params, market)

    def price_range(self, service: str) -> PriceRange:
        return get_price_range(service)

    async def total_cost(self, data: TotalCostRequest) -> TotalJobCost:
        market = await self.market_context(data.service_type, data.city)
        return estimate_total_job_cost(
            service_type=data.service_type,
            city=data.city,
            urgency=data.urgency,
            estimated_hours=data.estimated_hours,
            complexity=data.complexity,
            scheduled_date=data.scheduled_date,
            market=market,
        )

    def apply_discount(self, data: DiscountRequest) -> DiscountResult:
        return apply_discount_code(data.price, data.code)
