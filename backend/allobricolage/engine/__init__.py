"""Pure pricing and matching logic (no I/O)."""

from allobricolage.engine.estimate import CostEstimate, estimate_cost, upsell_suggestions
from allobricolage.engine.matching import (
    BookingSnapshot,
    JobRequest,
    MatchResult,
    TechnicianCandidate,
    analyze_client_preferences,
    match_technicians,
)
from allobricolage.engine.pricing import (
    MarketContext,
    PricingParams,
    PricingResult,
    apply_discount_code,
    calculate_dynamic_price,
    estimate_total_job_cost,
    get_price_range,
)
from allobricolage.engine.quick_match import QuickMatch, quick_match

__all__ = [
    "CostEstimate",
    "estimate_cost",
    "upsell_suggestions",
    "BookingSnapshot",
    "JobRequest",
    "MatchResult",
    "TechnicianCandidate",
    "analyze_client_preferences",
    "match_technicians",
    "MarketContext",
    "PricingParams",
    "PricingResult",
    "apply_discount_code",
    "calculate_dynamic_price",
    "estimate_total_job_cost",
    "get_price_range",
    "QuickMatch",
    "quick_match",
]
