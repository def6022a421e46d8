import pytest

from allobricolage.engine.matching import (
    BookingSnapshot,
    ClientPreferences,
    JobRequest,
    TechnicianCandidate,
    analyze_client_preferences,
    estimated_arrival,
    find_multi_skill_technicians,
    match_technicians,
    personalized_recommendations,
    travel_minutes,
)


def _tech(id, **overrides):
    values = dict(
        id=id,
        name=f"Tech {id}",
        city="Casablanca",
        services=["plomberie"],
        rating=4.0,
        review_count=10,
        hourly_rate=280,
        is_available=True,
    )
    values.update(overrides)
    return TechnicianCandidate(**values)


JOB = JobRequest(service="plomberie", city="Casablanca", description="Fuite sous l'évier")


def test_empty_pool():
    assert match_technicians(JOB, []) == []


def test_full_factor_vector():
    tech = _tech("t1", rating=4.8, completion_rate=0.97, hourly_rate=160)

    [result] = match_technicians(JOB, [tech])
    points = {f.name: f.points for f in result.match_factors}

    assert points == {
        "Note moyenne": pytest.approx(48),
        "Expérience similaire": pytest.approx(10),
        "Rapidité de réponse": pytest.approx(5),
        "Taux de complétion": pytest.approx(9.7),
        "Proximité": 10,
        "Prix compétitif": pytest.approx(8.75),
        "Disponibilité": 5,
    }
    assert result.match_score == pytest.approx(96.45)
    assert result.match_percentage == 69
    assert result.estimated_arrival == "20 minutes"
    assert result.estimated_cost == 160
    assert "⭐ Technicien très bien noté" in result.highlights
    assert "✅ Excellent taux de complétion" in result.highlights
    assert result.warnings == []


def test_percentage_uses_fixed_denominator():
    tech = _tech("t1")
    [result] = match_technicians(JOB, [tech])
    assert result.match_percentage == round(result.match_score / 140 * 100)


def test_history_drives_success_completion_and_workload():
    tech = _tech("t1", completion_rate=0.99)
    history = {
        "t1": [
            BookingSnapshot("t1", "completed"),
            BookingSnapshot("t1", "completed"),
            BookingSnapshot("t1", "accepted"),
            BookingSnapshot("t1", "cancelled"),
        ]
    }

    [result] = match_technicians(JOB, [tech], technician_history=history)
    points = {f.name: f.points for f in result.match_factors}

    assert points["Expérience similaire"] == pytest.approx(10)
    assert points["Taux de complétion"] == pytest.approx(5)
    assert points["Charge de travail"] == -2


def test_workload_penalty_is_capped():
    history = {"t1": [BookingSnapshot("t1", "in_progress") for _ in range(8)]}

    [result] = match_technicians(JOB, [_tech("t1")], technician_history=history)
    points = {f.name: f.points for f in result.match_factors}

    assert points["Charge de travail"] == -10
    assert "⚠️ Technicien très occupé" in result.warnings


def test_preferred_technician_beats_preferred_service():
    client_history = [
        BookingSnapshot("t1", "completed", service="plomberie"),
        BookingSnapshot("t1", "completed", service="plomberie"),
    ]
    pool = [_tech("t2"), _tech("t1")]

    results = match_technicians(JOB, pool, client_history=client_history)

    assert [r.technician.id for r in results] == ["t1", "t2"]
    first = {f.name: f.points for f in results[0].match_factors}
    second = {f.name: f.points for f in results[1].match_factors}
    assert first["Technicien préféré"] == 15
    assert "Service préféré" not in first
    assert second["Service préféré"] == 5
    assert "❤️ Vous l'avez déjà choisi" in results[0].highlights


def test_ties_break_on_rating_then_reviews_then_pool_order():
    # 0.2 rating gap offset by the response-time factor
    higher_rated = _tech("a", rating=4.2, response_time_minutes=42)
    more_reviews = _tech("b", rating=4.0, review_count=50)
    first_in_pool = _tech("c", rating=4.0, review_count=10)
    second_in_pool = _tech("d", rating=4.0, review_count=10)

    results = match_technicians(JOB, [second_in_pool, first_in_pool, more_reviews, higher_rated])
    scores = {r.technician.id: r.match_score for r in results}

    assert scores["a"] == pytest.approx(scores["b"])
    assert [r.technician.id for r in results] == ["a", "b", "d", "c"]


def test_other_city_gets_half_proximity_and_hours_eta():
    tech = _tech("t1", city="Rabat")

    [result] = match_technicians(JOB, [tech])
    points = {f.name: f.points for f in result.match_factors}

    assert points["Proximité"] == 5
    assert result.estimated_arrival == "2 heure(s)"


def test_travel_minutes_from_coordinates():
    job = JobRequest(service="plomberie", city="Casablanca", latitude=33.5731, longitude=-7.5898)
    next_door = _tech("t1", latitude=33.5731, longitude=-7.5898)
    across_town = _tech("t2", latitude=33.5731, longitude=-7.3198)  # ~25 km east
    in_rabat = _tech("t3", city="Rabat", latitude=34.0209, longitude=-6.8416)

    assert travel_minutes(next_door, job) == 10
    assert travel_minutes(across_town, job) == 30
    assert travel_minutes(in_rabat, job) == 60
    assert estimated_arrival(in_rabat, job) == "1 heure(s)"


def test_low_rating_warning():
    [result] = match_technicians(JOB, [_tech("t1", rating=3.5)])
    assert "⚠️ Note en dessous de la moyenne" in result.warnings


def test_analyze_client_preferences():
    bookings = [
        BookingSnapshot("t1", "completed", service="Plomberie", scheduled_time="09:30", estimated_cost=200),
        BookingSnapshot("t1", "completed", service="plomberie", scheduled_time="9:00", estimated_cost=300),
        BookingSnapshot("t2", "cancelled", service="peinture", scheduled_time="14:00", estimated_cost=100),
    ]

    preferences = analyze_client_preferences(bookings)

    assert preferences.preferred_technicians == ["t1"]
    assert preferences.preferred_services == ["plomberie", "peinture"]
    assert preferences.preferred_times == ["09:00", "14:00"]
    assert preferences.avg_booking_value == 200


def test_analyze_empty_history():
    preferences = analyze_client_preferences([])
    assert preferences == ClientPreferences()


def test_multi_skill():
    both = _tech("t1", services=["plomberie", "Électricité"])
    one = _tech("t2", services=["plomberie"])
    none = _tech("t3", services=["jardinage"])

    results = find_multi_skill_technicians(["plomberie", "electricite"], [none, one, both])

    assert [r.technician.id for r in results] == ["t1", "t2", "t3"]
    assert results[0].can_do_fully
    assert results[0].match_percentage == 100
    assert results[1].match_percentage == 50
    assert results[1].missing_skills == ["electricite"]
    assert results[2].matched_skills == []


def test_multi_skill_without_requirements():
    assert find_multi_skill_technicians([], [_tech("t1")]) == []


def test_personalized_recommendations():
    preferences = ClientPreferences(preferred_technicians=["t2"], preferred_services=["plomberie"])
    pool = [
        _tech("t1", rating=4.9, services=["peinture"]),
        _tech("t2", rating=4.0, services=["plomberie"]),
        _tech("t3", rating=4.5, services=["plomberie"]),
    ]

    recommended = personalized_recommendations(preferences, pool, limit=2)

    assert [t.id for t in recommended] == ["t2", "t3"]
