"""
Technician matching engine.

Ranks a pre-filtered technician pool against a job with a nine-factor
additive point system:

    1. rating             rating x 10                     (max 50)
    2. past success       completed/total x 20            (max 20)
    3. client preference  +15 preferred tech / +5 service (max 15)
    4. response time      max(0, 10 - minutes/6)          (max 10)
    5. completion rate    rate x 10                       (max 10)
    6. workload           -min(active x 2, 10)            (penalty)
    7. proximity          10 same city / 5 otherwise      (max 10)
    8. price              min(280/hourly_rate x 5, 10)    (max 10)
    9. availability       5 if available                  (max 5)

The percentage is taken against a fixed 140-point denominator so that it
stays comparable with what the web client already displays.

Scoring is per-candidate and has no shared state, so callers may score
candidates in any order; the final ordering is a stable sort.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from allobricolage.engine.geo import (
    AVERAGE_CITY_SPEED_KMH,
    AVERAGE_ROAD_SPEED_KMH,
    distance_between,
)
from allobricolage.engine.pricing import round_half_up
from allobricolage.engine.taxonomy import normalize_service, same_city


MAX_POSSIBLE_SCORE = 140
AVG_MARKET_RATE = 280
DEFAULT_ESTIMATED_COST = 250
DEFAULT_SUCCESS_RATE = 0.5
DEFAULT_COMPLETION_RATE = 0.8
DEFAULT_RESPONSE_MINUTES = 30

ACTIVE_STATUSES = ("accepted", "in_progress")
COMPLETED_STATUS = "completed"

# Estimated arrival windows
SAME_CITY_MINUTES = (10, 30)
OTHER_CITY_HOURS = (1, 3)
SAME_CITY_DEFAULT_MINUTES = 20
OTHER_CITY_DEFAULT_HOURS = 2


@dataclass
class TechnicianCandidate:
    """Snapshot of a technician profile, everything needed to render a match."""
    id: str
    name: str
    city: Optional[str]
    services: List[str] = field(default_factory=list)
    skills: List[str] = field(default_factory=list)
    rating: float = 0.0
    review_count: int = 0
    completed_jobs: int = 0
    response_time_minutes: Optional[float] = DEFAULT_RESPONSE_MINUTES
    completion_rate: Optional[float] = None
    years_experience: int = 0
    hourly_rate: Optional[float] = None
    is_verified: bool = False
    is_available: bool = True
    is_pro: bool = False
    is_promo: bool = False
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    phone: Optional[str] = None
    photo: Optional[str] = None
    languages: List[str] = field(default_factory=list)


@dataclass
class JobRequest:
    """The structured job signal the matcher scores against."""
    service: str
    city: str
    description: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None


@dataclass
class BookingSnapshot:
    """A past booking, reduced to what preference and history scoring read."""
    technician_id: str
    status: str
    service: Optional[str] = None
    scheduled_time: Optional[str] = None  # "HH:MM"
    estimated_cost: Optional[float] = None


@dataclass
class ClientPreferences:
    preferred_technicians: List[str] = field(default_factory=list)
    preferred_services: List[str] = field(default_factory=list)
    avg_booking_value: float = 0.0
    preferred_times: List[str] = field(default_factory=list)


@dataclass
class MatchFactor:
    name: str
    points: float
    max_points: float
    description: str


@dataclass
class MatchResult:
    technician: TechnicianCandidate
    match_score: float
    match_percentage: int
    match_factors: List[MatchFactor]
    estimated_arrival: str
    estimated_cost: float
    highlights: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class MultiSkillMatch:
    technician: TechnicianCandidate
    matched_skills: List[str]
    missing_skills: List[str]
    match_percentage: int
    can_do_fully: bool


def analyze_client_preferences(bookings: Iterable[BookingSnapshot]) -> ClientPreferences:
    """Aggregate a client's booking history into preference signals."""
    bookings = list(bookings)
    technician_counts: Counter = Counter()
    service_counts: Counter = Counter()
    time_counts: Counter = Counter()
    total_value = 0.0

    for booking in bookings:
        technician_counts[booking.technician_id] += 1
        if booking.service:
            service_counts[normalize_service(booking.service)] += 1
        if booking.scheduled_time:
            hour = booking.scheduled_time.split(":")[0].zfill(2)
            time_counts[hour] += 1
        total_value += booking.estimated_cost or 0

    # Counter.most_common keeps first-seen order among equal counts
    preferred_technicians = [
        tech_id for tech_id, count in technician_counts.most_common() if count > 1
    ]
    preferred_services = [service for service, _ in service_counts.most_common(3)]
    preferred_times = [f"{hour}:00" for hour, _ in time_counts.most_common(2)]

    return ClientPreferences(
        preferred_technicians=preferred_technicians,
        preferred_services=preferred_services,
        avg_booking_value=total_value / len(bookings) if bookings else 0.0,
        preferred_times=preferred_times,
    )


def travel_minutes(technician: TechnicianCandidate, job: JobRequest) -> int:
    """Deterministic travel-time estimate in minutes."""
    distance = distance_between(
        technician.latitude, technician.longitude, job.latitude, job.longitude
    )
    if same_city(technician.city, job.city):
        if distance is None:
            return SAME_CITY_DEFAULT_MINUTES
        minutes = round_half_up(distance / AVERAGE_CITY_SPEED_KMH * 60)
        return max(SAME_CITY_MINUTES[0], min(minutes, SAME_CITY_MINUTES[1]))

    if distance is None:
        return OTHER_CITY_DEFAULT_HOURS * 60
    hours = round_half_up(distance / AVERAGE_ROAD_SPEED_KMH)
    return max(OTHER_CITY_HOURS[0], min(hours, OTHER_CITY_HOURS[1])) * 60


def estimated_arrival(technician: TechnicianCandidate, job: JobRequest) -> str:
    """Human-readable ETA: minutes within the city, hours otherwise."""
    minutes = travel_minutes(technician, job)
    if same_city(technician.city, job.city):
        return f"{minutes} minutes"
    return f"{minutes // 60} heure(s)"


def _history_rates(history: Sequence[BookingSnapshot]) -> Tuple[Optional[float], int]:
    """Completed share of a technician's bookings, and the active booking count."""
    if not history:
        return None, 0
    completed = sum(1 for b in history if b.status == COMPLETED_STATUS)
    active = sum(1 for b in history if b.status in ACTIVE_STATUSES)
    return completed / len(history), active


def score_technician(
    technician: TechnicianCandidate,
    job: JobRequest,
    preferences: ClientPreferences,
    history: Sequence[BookingSnapshot] = (),
) -> MatchResult:
    """Score one technician against a job."""
    factors: List[MatchFactor] = []
    total_score = 0.0
    job_service = normalize_service(job.service)
    history_rate, active_jobs = _history_rates(history)

    # 1. Rating
    rating = technician.rating or 0.0
    rating_points = rating * 10
    total_score += rating_points
    factors.append(MatchFactor(
        name="Note moyenne",
        points=rating_points,
        max_points=50,
        description=f"{rating}★ sur 5",
    ))

    # 2. Past success
    success_rate = history_rate if history_rate is not None else DEFAULT_SUCCESS_RATE
    success_points = success_rate * 20
    total_score += success_points
    factors.append(MatchFactor(
        name="Expérience similaire",
        points=success_points,
        max_points=20,
        description=f"{round_half_up(success_rate * 100)}% de réussite",
    ))

    # 3. Client preference (exclusive tiers)
    is_preferred = technician.id in preferences.preferred_technicians
    offers_preferred_service = any(
        normalize_service(s) in preferences.preferred_services for s in technician.services
    )
    if is_preferred:
        total_score += 15
        factors.append(MatchFactor(
            name="Technicien préféré",
            points=15,
            max_points=15,
            description="Vous avez déjà travaillé avec ce technicien",
        ))
    elif offers_preferred_service:
        total_score += 5
        factors.append(MatchFactor(
            name="Service préféré",
            points=5,
            max_points=15,
            description="Service que vous utilisez souvent",
        ))

    # 4. Response time
    response_minutes = technician.response_time_minutes
    if response_minutes is None:
        response_minutes = DEFAULT_RESPONSE_MINUTES
    response_points = max(0.0, 10 - response_minutes / 6)
    total_score += response_points
    factors.append(MatchFactor(
        name="Rapidité de réponse",
        points=response_points,
        max_points=10,
        description="Répond rapidement" if response_minutes < 30 else "Temps de réponse moyen",
    ))

    # 5. Completion rate: booking history first, then the profile figure
    if history_rate is not None:
        completion_rate = history_rate
    elif technician.completion_rate is not None:
        completion_rate = technician.completion_rate
    else:
        completion_rate = DEFAULT_COMPLETION_RATE
    completion_points = completion_rate * 10
    total_score += completion_points
    factors.append(MatchFactor(
        name="Taux de complétion",
        points=completion_points,
        max_points=10,
        description=f"{round_half_up(completion_rate * 100)}% des jobs terminés",
    ))

    # 6. Workload
    workload_penalty = min(active_jobs * 2, 10)
    total_score -= workload_penalty
    if active_jobs > 0:
        factors.append(MatchFactor(
            name="Charge de travail",
            points=-workload_penalty,
            max_points=0,
            description=f"{active_jobs} job(s) en cours",
        ))

    # 7. Proximity
    in_city = same_city(technician.city, job.city)
    distance_points = 10 if in_city else 5
    total_score += distance_points
    factors.append(MatchFactor(
        name="Proximité",
        points=distance_points,
        max_points=10,
        description="Même ville" if in_city else "Ville proche",
    ))

    # 8. Price
    hourly_rate = technician.hourly_rate or AVG_MARKET_RATE
    price_points = min(AVG_MARKET_RATE / hourly_rate * 5, 10)
    total_score += price_points
    factors.append(MatchFactor(
        name="Prix compétitif",
        points=price_points,
        max_points=10,
        description="Prix attractif" if hourly_rate < AVG_MARKET_RATE else "Prix standard",
    ))

    # 9. Availability
    availability_points = 5 if technician.is_available else 0
    total_score += availability_points
    factors.append(MatchFactor(
        name="Disponibilité",
        points=availability_points,
        max_points=5,
        description="Disponible maintenant" if technician.is_available else "Peut-être occupé",
    ))

    match_percentage = max(0, min(100, round_half_up(total_score / MAX_POSSIBLE_SCORE * 100)))

    highlights: List[str] = []
    warnings: List[str] = []
    if rating >= 4.8:
        highlights.append("⭐ Technicien très bien noté")
    if technician.is_pro:
        highlights.append("🏆 Professionnel certifié")
    if technician.is_promo:
        highlights.append("🔥 Promotion en cours")
    if completion_rate >= 0.95:
        highlights.append("✅ Excellent taux de complétion")
    if is_preferred:
        highlights.append("❤️ Vous l'avez déjà choisi")
    if active_jobs >= 3:
        warnings.append("⚠️ Technicien très occupé")
    if rating < 4.0:
        warnings.append("⚠️ Note en dessous de la moyenne")

    return MatchResult(
        technician=technician,
        match_score=total_score,
        match_percentage=match_percentage,
        match_factors=factors,
        estimated_arrival=estimated_arrival(technician, job),
        estimated_cost=technician.hourly_rate or DEFAULT_ESTIMATED_COST,
        highlights=highlights,
        warnings=warnings,
    )


def rank_matches(results: Iterable[MatchResult]) -> List[MatchResult]:
    """
    Order by score, then rating, then review count, all descending.
    The sort is stable, so the pool order decides any remaining tie.
    """
    return sorted(
        results,
        key=lambda r: (-r.match_score, -(r.technician.rating or 0), -(r.technician.review_count or 0)),
    )


def match_technicians(
    job: JobRequest,
    pool: Sequence[TechnicianCandidate],
    client_history: Iterable[BookingSnapshot] = (),
    technician_history: Optional[Mapping[str, Sequence[BookingSnapshot]]] = None,
) -> List[MatchResult]:
    """
    Rank a pre-filtered technician pool for a job.

    `client_history` drives the preference bonus; `technician_history`
    maps technician ids to their own bookings (success, completion and
    workload factors). Missing history falls back to neutral defaults.
    """
    if not pool:
        return []

    preferences = analyze_client_preferences(client_history)
    technician_history = technician_history or {}

    return rank_matches(
        score_technician(tech, job, preferences, technician_history.get(tech.id, ()))
        for tech in pool
    )


def find_multi_skill_technicians(
    required_skills: Sequence[str],
    pool: Sequence[TechnicianCandidate],
) -> List[MultiSkillMatch]:
    """Rank technicians by how many of the required services they cover."""
    if not required_skills:
        return []

    required = [normalize_service(s) for s in required_skills]
    scored: List[MultiSkillMatch] = []

    for tech in pool:
        offered = {normalize_service(s) for s in tech.services}
        matched = [s for s in tech.services if normalize_service(s) in required]
        missing = [s for s, norm in zip(required_skills, required) if norm not in offered]
        covered = len(required_skills) - len(missing)

        scored.append(MultiSkillMatch(
            technician=tech,
            matched_skills=matched,
            missing_skills=missing,
            match_percentage=round_half_up(covered / len(required_skills) * 100),
            can_do_fully=not missing,
        ))

    return sorted(scored, key=lambda m: -m.match_percentage)


def personalized_recommendations(
    preferences: ClientPreferences,
    pool: Sequence[TechnicianCandidate],
    limit: int = 5,
) -> List[TechnicianCandidate]:
    """Technicians a client is likely to rebook, best first."""
    scored: List[Tuple[float, TechnicianCandidate]] = []

    for tech in pool:
        score = (tech.rating or 0) * 10
        if tech.id in preferences.preferred_technicians:
            score += 30
        service_match = sum(
            1 for s in tech.services if normalize_service(s) in preferences.preferred_services
        )
        score += service_match * 10
        scored.append((score, tech))

    scored.sort(key=lambda pair: -pair[0])
    return [tech for _, tech in scored[:limit]]


def history_by_technician(
    bookings: Iterable[BookingSnapshot],
) -> Dict[str, List[BookingSnapshot]]:
    """Group booking snapshots by technician id."""
    grouped: Dict[str, List[BookingSnapshot]] = {}
    for booking in bookings:
        grouped.setdefault(booking.technician_id, []).append(booking)
    return grouped
