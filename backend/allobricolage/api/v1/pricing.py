"""Dynamic pricing endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from allobricolage.api.deps import get_db
from allobricolage.engine.pricing import DiscountResult, PriceRange, PricingResult, TotalJobCost
from allobricolage.schemas.pricing import DiscountRequest, PriceEstimateRequest, TotalCostRequest
from allobricolage.services.pricing_service import PricingService

router = APIRouter()


@router.post("/estimate", response_model=PricingResult)
async def estimate_price(
    data: PriceEstimateRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Price a visit from service, city, urgency, schedule, distance and
    complexity. Open demand in the city and the technician's rating feed
    the surge and premium adjustments.
    """
    return await PricingService(db).estimate_price(data)


@router.get("/range/{service}", response_model=PriceRange)
async def price_range(service: str, db: AsyncSession = Depends(get_db)):
    return PricingService(db).price_range(service)


@router.post("/total", response_model=TotalJobCost)
async def total_cost(
    data: TotalCostRequest,
    db: AsyncSession = Depends(get_db),
):
    return await PricingService(db).total_cost(data)


@router.post("/discount", response_model=DiscountResult)
async def apply_discount(data: DiscountRequest, db: AsyncSession = Depends(get_db)):
    return PricingService(db).apply_discount(data)
