"""
Dynamic pricing engine.

Composes urgency, time-of-day, weekend, demand surge, distance, technician
premium, complexity and seasonal adjustments into an hourly quote. Each
adjustment is applied to the running price in a fixed order, so surge and
premium fees are computed against the price produced by earlier steps.

Everything here is pure: demand and technician reputation arrive through
`MarketContext`, and the schedule is always explicit.
"""

import math
from dataclasses import dataclass, field
from datetime import date, time
from typing import Dict, List, Optional, Union

from allobricolage.engine.taxonomy import (
    Complexity,
    PricingUrgency,
    Urgency,
    normalize_service,
    service_label,
    to_complexity,
    to_pricing_urgency,
)


CURRENCY = "MAD"
PRICE_UNIT = "heure"
DEFAULT_BASE_PRICE = 250
RULE_BASED_CONFIDENCE = 0.85

# Base prices per service (MAD/hour)
BASE_PRICES: Dict[str, int] = {
    "plomberie": 250,
    "electricite": 300,
    "climatisation": 350,
    "peinture": 200,
    "menuiserie": 280,
    "maconnerie": 320,
    "carrelage": 300,
    "serrurerie": 400,
    "jardinage": 180,
    "nettoyage": 150,
    "reparation_appareils": 280,
    "installation_luminaires": 250,
    "petites_renovations": 300,
    "etancheite": 350,
    "metallerie": 320,
    "portes_serrures": 380,
    "services_generaux": 200,
    "travaux_construction": 400,
}

URGENT_MULTIPLIER = 1.5
FLEXIBLE_MULTIPLIER = 0.9
WEEKEND_MULTIPLIER = 1.2
NIGHT_MULTIPLIER = 1.3
NIGHT_STARTS_AT = 18
DAY_STARTS_AT = 8
SURGE_THRESHOLD = 10
SURGE_STEP = 0.05
SURGE_CAP = 0.5
FREE_DISTANCE_KM = 10
TRANSPORT_FEE_PER_KM = 10
PREMIUM_RATING = 4.8
PREMIUM_MULTIPLIER = 1.15
COMPLEX_MULTIPLIER = 1.25
SIMPLE_MULTIPLIER = 0.85
SUMMER_AC_MULTIPLIER = 1.2
WINTER_PLUMBING_MULTIPLIER = 1.15

MATERIALS_SHARE = 0.3
SERVICE_FEE_SHARE = 0.1


def round_half_up(value: float) -> int:
    """Round halves towards +infinity, the way the web client rounds prices."""
    return int(math.floor(value + 0.5))


@dataclass
class PricingParams:
    """Inputs for a dynamic price quote."""
    service_type: str
    city: str
    urgency: Union[PricingUrgency, Urgency, str]
    scheduled_date: date
    scheduled_time: time
    technician_id: Optional[str] = None
    distance_km: Optional[float] = None
    complexity: Optional[Union[Complexity, str]] = None


@dataclass
class MarketContext:
    """Live market signals looked up by the caller."""
    pending_jobs_in_city: int = 0
    technician_rating: Optional[float] = None


@dataclass
class PriceAdjustment:
    factor: str
    description: str
    multiplier: Optional[float] = None
    addition: Optional[float] = None


@dataclass
class PriceBreakdown:
    labor: int
    transport: int
    surge: int
    premium: int
    discount: int


@dataclass
class PricingResult:
    """Itemised hourly quote."""
    base_price: int
    final_price: int
    currency: str
    unit: str
    multipliers: List[PriceAdjustment]
    savings: int
    explanation: str
    breakdown: PriceBreakdown
    confidence: float
    discount_code: Optional[str] = None


@dataclass
class PriceRange:
    min: int
    max: int
    average: int


@dataclass
class TotalJobCost:
    hourly_rate: int
    estimated_hours: float
    labor_cost: float
    materials_cost: int
    transport_cost: int
    service_fee: int
    total_cost: float
    breakdown: List[str] = field(default_factory=list)


@dataclass
class DiscountResult:
    discounted_price: float
    discount_amount: float
    valid: bool
    message: str


@dataclass(frozen=True)
class DiscountCode:
    kind: str  # 'percent' or 'fixed'
    value: float
    min_order: float


DISCOUNT_CODES: Dict[str, DiscountCode] = {
    "WELCOME10": DiscountCode("percent", 10, 100),
    "FIRST50": DiscountCode("fixed", 50, 200),
    "VIP20": DiscountCode("percent", 20, 300),
    "SUMMER15": DiscountCode("percent", 15, 150),
    "SORRY50": DiscountCode("fixed", 50, 0),  # compensation code
}


def base_price_for(service_type: str) -> int:
    """Hourly base rate for a service, falling back to the default rate."""
    return BASE_PRICES.get(normalize_service(service_type), DEFAULT_BASE_PRICE)


def calculate_dynamic_price(
    params: PricingParams,
    market: Optional[MarketContext] = None,
) -> PricingResult:
    """
    Calculate an hourly price from the base rate and the ordered adjustments.

    Never raises for unknown services or missing context; it degrades to
    base-rate pricing.
    """
    market = market or MarketContext()
    service = normalize_service(params.service_type)
    urgency = to_pricing_urgency(params.urgency)
    complexity = to_complexity(params.complexity)

    base_price = base_price_for(service)
    price = float(base_price)
    multipliers: List[PriceAdjustment] = []
    transport_fee = 0
    surge_fee = 0.0
    premium_fee = 0.0
    discount = 0.0

    # 1. Urgency
    if urgency == PricingUrgency.URGENT:
        price *= URGENT_MULTIPLIER
        multipliers.append(PriceAdjustment(
            factor="Urgence",
            multiplier=URGENT_MULTIPLIER,
            description="Intervention urgente (+50%)",
        ))
    elif urgency == PricingUrgency.FLEXIBLE:
        price *= FLEXIBLE_MULTIPLIER
        discount += base_price * 0.1
        multipliers.append(PriceAdjustment(
            factor="Flexible",
            multiplier=FLEXIBLE_MULTIPLIER,
            description="Horaire flexible (-10%)",
        ))

    # 2. Weekend / night
    if params.scheduled_date.weekday() >= 5:
        price *= WEEKEND_MULTIPLIER
        multipliers.append(PriceAdjustment(
            factor="Weekend",
            multiplier=WEEKEND_MULTIPLIER,
            description="Intervention weekend (+20%)",
        ))

    hour = params.scheduled_time.hour
    if hour >= NIGHT_STARTS_AT or hour < DAY_STARTS_AT:
        price *= NIGHT_MULTIPLIER
        multipliers.append(PriceAdjustment(
            factor="Horaire nocturne",
            multiplier=NIGHT_MULTIPLIER,
            description="Intervention hors heures (+30%)",
        ))

    # 3. Demand surge
    pending = market.pending_jobs_in_city
    if pending > SURGE_THRESHOLD:
        surge_multiplier = 1 + min((pending - SURGE_THRESHOLD) * SURGE_STEP, SURGE_CAP)
        surge_fee = price * (surge_multiplier - 1)
        price *= surge_multiplier
        multipliers.append(PriceAdjustment(
            factor="Forte demande",
            multiplier=surge_multiplier,
            description=f"Demande élevée dans {params.city} (+{round_half_up((surge_multiplier - 1) * 100)}%)",
        ))

    # 4. Distance (flat fee, not a multiplier)
    if params.distance_km and params.distance_km > FREE_DISTANCE_KM:
        transport_fee = round_half_up((params.distance_km - FREE_DISTANCE_KM) * TRANSPORT_FEE_PER_KM)
        price += transport_fee
        multipliers.append(PriceAdjustment(
            factor="Distance",
            addition=transport_fee,
            description=f"Frais de déplacement (+{transport_fee} MAD)",
        ))

    # 5. Technician premium
    if params.technician_id and market.technician_rating is not None \
            and market.technician_rating >= PREMIUM_RATING:
        premium_fee = price * 0.15
        price *= PREMIUM_MULTIPLIER
        multipliers.append(PriceAdjustment(
            factor="Expert 5★",
            multiplier=PREMIUM_MULTIPLIER,
            description="Technicien premium (+15%)",
        ))

    # 6. Complexity
    if complexity == Complexity.COMPLEX:
        price *= COMPLEX_MULTIPLIER
        multipliers.append(PriceAdjustment(
            factor="Complexité",
            multiplier=COMPLEX_MULTIPLIER,
            description="Travail complexe (+25%)",
        ))
    elif complexity == Complexity.SIMPLE:
        price *= SIMPLE_MULTIPLIER
        discount += base_price * 0.15
        multipliers.append(PriceAdjustment(
            factor="Simple",
            multiplier=SIMPLE_MULTIPLIER,
            description="Travail simple (-15%)",
        ))

    # 7. Season (month numbers are 1-based here)
    month = params.scheduled_date.month
    if service == "climatisation" and month in (6, 7, 8):
        price *= SUMMER_AC_MULTIPLIER
        multipliers.append(PriceAdjustment(
            factor="Saison haute",
            multiplier=SUMMER_AC_MULTIPLIER,
            description="Période estivale (+20%)",
        ))
    if service == "plomberie" and month in (12, 1, 2):
        price *= WINTER_PLUMBING_MULTIPLIER
        multipliers.append(PriceAdjustment(
            factor="Saison hivernale",
            multiplier=WINTER_PLUMBING_MULTIPLIER,
            description="Période hivernale (+15%)",
        ))

    final_price = round_half_up(price)
    labor_cost = final_price - transport_fee - surge_fee - premium_fee

    if multipliers:
        explanation = "Prix calculé en fonction de: " + ", ".join(m.factor for m in multipliers)
    else:
        explanation = f"Tarif de base {service_label(service)}"

    return PricingResult(
        base_price=base_price,
        final_price=final_price,
        currency=CURRENCY,
        unit=PRICE_UNIT,
        multipliers=multipliers,
        savings=round_half_up(discount),
        explanation=explanation,
        breakdown=PriceBreakdown(
            labor=round_half_up(labor_cost),
            transport=round_half_up(transport_fee),
            surge=round_half_up(surge_fee),
            premium=round_half_up(premium_fee),
            discount=round_half_up(discount),
        ),
        confidence=RULE_BASED_CONFIDENCE,
    )


def get_price_range(service_type: str) -> PriceRange:
    """Price band for a service (max assumes most multipliers apply)."""
    base_price = base_price_for(service_type)
    return PriceRange(
        min=round_half_up(base_price * 0.8),
        max=round_half_up(base_price * 2.0),
        average=base_price,
    )


def estimate_total_job_cost(
    service_type: str,
    city: str,
    urgency: Union[PricingUrgency, Urgency, str],
    estimated_hours: float,
    complexity: Optional[Union[Complexity, str]],
    scheduled_date: date,
    market: Optional[MarketContext] = None,
) -> TotalJobCost:
    """Labour for the estimated hours plus materials and the platform fee."""
    pricing = calculate_dynamic_price(
        PricingParams(
            service_type=service_type,
            city=city,
            urgency=urgency,
            scheduled_date=scheduled_date,
            scheduled_time=time(10, 0),
            complexity=complexity,
        ),
        market,
    )

    labor_cost = pricing.final_price * estimated_hours
    materials_cost = round_half_up(labor_cost * MATERIALS_SHARE)
    transport_cost = pricing.breakdown.transport
    service_fee = round_half_up((labor_cost + materials_cost) * SERVICE_FEE_SHARE)
    total_cost = labor_cost + materials_cost + transport_cost + service_fee

    return TotalJobCost(
        hourly_rate=pricing.final_price,
        estimated_hours=estimated_hours,
        labor_cost=labor_cost,
        materials_cost=materials_cost,
        transport_cost=transport_cost,
        service_fee=service_fee,
        total_cost=total_cost,
        breakdown=[
            f"Main d'œuvre: {_fmt(labor_cost)} MAD ({_fmt(estimated_hours)}h × {pricing.final_price} MAD)",
            f"Matériaux (estimé): {materials_cost} MAD",
            f"Déplacement: {transport_cost} MAD",
            f"Frais de service: {service_fee} MAD",
            "---",
            f"Total: {_fmt(total_cost)} MAD",
        ],
    )


def apply_discount_code(price: float, code: str) -> DiscountResult:
    """
    Apply a promo code. Unknown codes and orders under the minimum are
    reported through `valid=False`, never raised.
    """
    discount = DISCOUNT_CODES.get((code or "").strip().upper())

    if discount is None:
        return DiscountResult(
            discounted_price=price,
            discount_amount=0,
            valid=False,
            message="Code promo invalide",
        )

    if price < discount.min_order:
        return DiscountResult(
            discounted_price=price,
            discount_amount=0,
            valid=False,
            message=f"Commande minimum de {_fmt(discount.min_order)} MAD requise",
        )

    if discount.kind == "percent":
        amount = round_half_up(price * (discount.value / 100))
    else:
        amount = discount.value
    # A fixed code cannot take the price below zero
    amount = min(amount, price)

    return DiscountResult(
        discounted_price=price - amount,
        discount_amount=amount,
        valid=True,
        message=f"Code appliqué: -{_fmt(amount)} MAD",
    )


def _fmt(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)
