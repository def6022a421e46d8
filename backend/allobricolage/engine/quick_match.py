"""
Lightweight matcher run when a job is created.

Unlike `matching.match_technicians` this one needs no booking history:
it filters the pool on city and service, scores each technician on a
weighted [0, 1] scale and keeps the best five above a fixed threshold.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from allobricolage.engine.estimate import CostEstimate
from allobricolage.engine.matching import JobRequest, TechnicianCandidate, travel_minutes
from allobricolage.engine.pricing import round_half_up
from allobricolage.engine.taxonomy import normalize_service, same_city


MATCH_THRESHOLD = 0.5
MAX_MATCHES = 5
REFERENCE_HOURLY_RATE = 150

WEIGHTS = {
    "specialization": 0.25,
    "location": 0.15,
    "availability": 0.15,
    "response": 0.10,
    "completion": 0.15,
    "rating": 0.15,
    "price": 0.05,
}


@dataclass
class QuickMatchFactors:
    specialization: float
    location: float
    availability: float
    response: float
    completion: float
    rating: float
    price: float


@dataclass
class QuickMatch:
    technician: TechnicianCandidate
    match_score: float
    explanation: str
    eta_minutes: int
    estimated_cost: CostEstimate
    factors: QuickMatchFactors


def specialization_score(technician: TechnicianCandidate, description: str) -> float:
    score = 0.7
    text = (description or "").lower()
    for skill in technician.skills:
        if skill and skill.lower() in text:
            score += 0.1
    score += min((technician.years_experience or 0) / 20, 0.15)
    return min(score, 1.0)


def price_score(hourly_rate: Optional[float]) -> float:
    rate = hourly_rate or REFERENCE_HOURLY_RATE
    diff = (REFERENCE_HOURLY_RATE - rate) / REFERENCE_HOURLY_RATE
    return max(0.5, min(1.0, 0.75 + diff * 0.5))


def technician_cost(technician: TechnicianCandidate, estimate: CostEstimate) -> CostEstimate:
    """Scale the job estimate by how far the technician's rate is from the reference."""
    rate = technician.hourly_rate or REFERENCE_HOURLY_RATE
    factor = 1 + (rate - REFERENCE_HOURLY_RATE) / REFERENCE_HOURLY_RATE * 0.5
    return CostEstimate(
        min_cost=round_half_up(estimate.min_cost * factor),
        likely_cost=round_half_up(estimate.likely_cost * factor),
        max_cost=round_half_up(estimate.max_cost * factor),
        confidence=estimate.confidence,
        breakdown=estimate.breakdown,
        explanation=estimate.explanation,
    )


def default_explanation(technician: TechnicianCandidate, score: float) -> str:
    return (
        f"{technician.name} est un match à {round_half_up(score * 100)}% "
        f"grâce à {technician.years_experience} ans d'expérience et une note de "
        f"{technician.rating}/5 ({technician.review_count} avis). "
        + ("Disponible maintenant." if technician.is_available else "Disponible prochainement.")
    )


def score_candidate(technician: TechnicianCandidate, job: JobRequest) -> Tuple[float, QuickMatchFactors]:
    """Weighted [0, 1] score of one technician for a job, with its factors."""
    response_minutes = technician.response_time_minutes or 0
    factors = QuickMatchFactors(
        specialization=specialization_score(technician, job.description),
        location=0.9,
        availability=1.0 if technician.is_available else 0.5,
        response=max(0.0, 1 - response_minutes / 60),
        completion=technician.completion_rate if technician.completion_rate is not None else 0.8,
        rating=(technician.rating or 0) / 5,
        price=price_score(technician.hourly_rate),
    )
    score = sum(getattr(factors, name) * weight for name, weight in WEIGHTS.items())
    return score, factors


def quick_match(
    job: JobRequest,
    pool: Sequence[TechnicianCandidate],
    estimate: CostEstimate,
) -> List[QuickMatch]:
    service = normalize_service(job.service)
    eligible = [
        tech for tech in pool
        if same_city(tech.city, job.city)
        and any(normalize_service(s) == service for s in tech.services)
    ]

    matches: List[QuickMatch] = []
    for tech in eligible:
        score, factors = score_candidate(tech, job)
        if score <= MATCH_THRESHOLD:
            continue

        matches.append(QuickMatch(
            technician=tech,
            match_score=round(score, 4),
            explanation=default_explanation(tech, score),
            eta_minutes=round_half_up(tech.response_time_minutes or 0) + travel_minutes(tech, job),
            estimated_cost=technician_cost(tech, estimate),
            factors=factors,
        ))

    matches.sort(key=lambda m: -m.match_score)
    return matches[:MAX_MATCHES]
