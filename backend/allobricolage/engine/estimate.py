"""Quick min/likely/max cost estimate attached to a job at creation time."""

from dataclasses import dataclass
from typing import Dict, List, Optional, Union

from allobricolage.engine.pricing import round_half_up
from allobricolage.engine.taxonomy import (
    Complexity,
    Urgency,
    normalize_service,
    service_label,
    to_complexity,
    to_urgency,
)


BASE_RATES: Dict[str, int] = {
    "plomberie": 200,
    "electricite": 180,
    "peinture": 150,
    "menuiserie": 220,
    "climatisation": 250,
    "maconnerie": 200,
    "carrelage": 180,
    "serrurerie": 150,
    "jardinage": 120,
    "nettoyage": 100,
}
DEFAULT_BASE_RATE = 180

CITY_MULTIPLIERS: Dict[str, float] = {
    "Casablanca": 1.2,
    "Rabat": 1.15,
    "Marrakech": 1.1,
    "Fès": 1.0,
    "Tanger": 1.1,
    "Agadir": 1.05,
}
DEFAULT_CITY_MULTIPLIER = 1.0

URGENCY_PREMIUMS: Dict[Urgency, int] = {
    Urgency.EMERGENCY: 50,
    Urgency.HIGH: 30,
    Urgency.NORMAL: 0,
    Urgency.LOW: -10,
}

COMPLEXITY_PREMIUMS: Dict[Complexity, int] = {
    Complexity.COMPLEX: 100,
    Complexity.MODERATE: 30,
    Complexity.SIMPLE: 0,
}

OFF_HOURS_PREMIUM = 40
MIN_FACTOR = 0.8
MAX_FACTOR = 1.3
MAX_CONFIDENCE = 0.95


@dataclass
class CostBreakdown:
    base_rate: int
    urgency_premium: int
    time_premium: int
    complexity_premium: int
    demand_premium: int = 0


@dataclass
class CostEstimate:
    min_cost: int
    likely_cost: int
    max_cost: int
    confidence: float
    breakdown: CostBreakdown
    explanation: str


@dataclass
class UpsellSuggestion:
    service: str
    description: str
    probability: float
    discount: int
    reason: str


def _city_multiplier(city: str) -> float:
    for name, multiplier in CITY_MULTIPLIERS.items():
        if name.lower() == (city or "").strip().lower():
            return multiplier
    return DEFAULT_CITY_MULTIPLIER


def estimate_cost(
    description: str,
    service: str,
    city: str,
    urgency: Union[Urgency, str],
    complexity: Optional[Union[Complexity, str]],
    hour: int,
) -> CostEstimate:
    """
    Estimate the cost range of a job.

    `hour` is the local hour the request is evaluated at; callers pass it in
    explicitly so the estimate is reproducible.
    """
    slug = normalize_service(service)
    urgency_level = to_urgency(urgency)
    complexity_level = to_complexity(complexity) or Complexity.MODERATE

    base_rate = BASE_RATES.get(slug, DEFAULT_BASE_RATE)
    adjusted_base = round_half_up(base_rate * _city_multiplier(city))
    urgency_premium = URGENCY_PREMIUMS[urgency_level]
    complexity_premium = COMPLEXITY_PREMIUMS[complexity_level]
    time_premium = OFF_HOURS_PREMIUM if (hour < 8 or hour > 18) else 0

    likely_cost = adjusted_base + urgency_premium + time_premium + complexity_premium
    min_cost = round_half_up(likely_cost * MIN_FACTOR)
    max_cost = round_half_up(likely_cost * MAX_FACTOR)

    # More context in the description and an explicit complexity both help
    confidence = 0.75
    if len(description or "") > 50:
        confidence += 0.1
    if complexity_level != Complexity.MODERATE:
        confidence += 0.05

    notes = [f"Estimation basée sur le service {service_label(slug)} à {city}."]
    if urgency_level == Urgency.EMERGENCY:
        notes.append("Prime d'urgence appliquée.")
    if time_premium:
        notes.append("Prime horaire (hors heures normales).")

    return CostEstimate(
        min_cost=min_cost,
        likely_cost=likely_cost,
        max_cost=max_cost,
        confidence=round(min(confidence, MAX_CONFIDENCE), 2),
        breakdown=CostBreakdown(
            base_rate=adjusted_base,
            urgency_premium=urgency_premium,
            time_premium=time_premium,
            complexity_premium=complexity_premium,
        ),
        explanation=" ".join(notes),
    )


UPSELLS: Dict[str, List[UpsellSuggestion]] = {
    "plomberie": [
        UpsellSuggestion(
            service="Inspection plomberie complète",
            description="Vérification de toutes les installations",
            probability=0.6,
            discount=15,
            reason="Souvent demandé après une réparation",
        ),
        UpsellSuggestion(
            service="Remplacement joints",
            description="Prévention des futures fuites",
            probability=0.45,
            discount=10,
            reason="Maintenance préventive recommandée",
        ),
    ],
    "electricite": [
        UpsellSuggestion(
            service="Vérification tableau électrique",
            description="Diagnostic complet de sécurité",
            probability=0.55,
            discount=20,
            reason="Important pour la sécurité",
        ),
        UpsellSuggestion(
            service="Installation prises USB",
            description="Prises modernes avec ports USB",
            probability=0.35,
            discount=15,
            reason="Amélioration pratique",
        ),
    ],
    "peinture": [
        UpsellSuggestion(
            service="Réparation murs",
            description="Rebouchage fissures et trous",
            probability=0.5,
            discount=10,
            reason="Préparation optimale",
        ),
    ],
    "climatisation": [
        UpsellSuggestion(
            service="Entretien annuel",
            description="Nettoyage et maintenance préventive",
            probability=0.7,
            discount=25,
            reason="Prolonge la durée de vie",
        ),
    ],
}


def upsell_suggestions(service: str) -> List[UpsellSuggestion]:
    return list(UPSELLS.get(normalize_service(service), []))
