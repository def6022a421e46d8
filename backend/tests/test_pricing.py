from datetime import date, time

import pytest

from allobricolage.engine.pricing import (
    MarketContext,
    PricingParams,
    apply_discount_code,
    calculate_dynamic_price,
    estimate_total_job_cost,
    get_price_range,
    round_half_up,
)

WEDNESDAY = date(2024, 4, 10)
SATURDAY = date(2024, 4, 13)


def _params(**overrides):
    values = dict(
        service_type="plomberie",
        city="Casablanca",
        urgency="scheduled",
        scheduled_date=WEDNESDAY,
        scheduled_time=time(10, 0),
    )
    values.update(overrides)
    return PricingParams(**values)


def test_round_half_up():
    assert round_half_up(318.75) == 319
    assert round_half_up(37.5) == 38
    assert round_half_up(2.5) == 3
    assert round_half_up(2.49) == 2


def test_base_rate_without_adjustments():
    result = calculate_dynamic_price(_params())

    assert result.base_price == 250
    assert result.final_price == 250
    assert result.multipliers == []
    assert result.currency == "MAD"
    assert result.unit == "heure"
    assert result.confidence == 0.85
    assert result.explanation == "Tarif de base Plomberie"


def test_urgent_simple_job_on_a_weekday():
    result = calculate_dynamic_price(
        _params(service_type="Plomberie", urgency="urgent", complexity="simple")
    )

    assert result.final_price == 319
    assert [m.factor for m in result.multipliers] == ["Urgence", "Simple"]
    assert result.savings == 38
    assert result.breakdown.discount == 38
    assert result.breakdown.labor == 319


def test_job_urgency_vocabulary_is_accepted():
    emergency = calculate_dynamic_price(_params(urgency="emergency"))
    low = calculate_dynamic_price(_params(urgency="low"))

    assert emergency.final_price == 375
    assert low.final_price == 225
    assert low.savings == 25


def test_weekend_and_night_stack():
    result = calculate_dynamic_price(_params(scheduled_date=SATURDAY, scheduled_time=time(20, 0)))

    # 250 x 1.2 x 1.3
    assert result.final_price == 390
    assert [m.factor for m in result.multipliers] == ["Weekend", "Horaire nocturne"]


def test_early_morning_counts_as_night():
    result = calculate_dynamic_price(_params(scheduled_time=time(7, 59)))
    assert result.final_price == 325


def test_surge_applies_above_ten_pending_jobs():
    quiet = calculate_dynamic_price(_params(), MarketContext(pending_jobs_in_city=10))
    busy = calculate_dynamic_price(_params(), MarketContext(pending_jobs_in_city=14))

    assert quiet.final_price == 250
    assert busy.final_price == 300
    assert busy.breakdown.surge == 50
    assert busy.multipliers[0].description == "Demande élevée dans Casablanca (+20%)"


def test_surge_is_capped_at_fifty_percent():
    result = calculate_dynamic_price(_params(), MarketContext(pending_jobs_in_city=100))
    assert result.final_price == 375


def test_transport_fee_beyond_free_radius():
    near = calculate_dynamic_price(_params(distance_km=10))
    far = calculate_dynamic_price(_params(distance_km=15))

    assert near.final_price == 250
    assert far.final_price == 300
    assert far.breakdown.transport == 50
    assert far.multipliers[0].addition == 50


def test_premium_needs_a_technician_and_a_high_rating():
    market = MarketContext(technician_rating=4.9)

    locksmith = _params(service_type="serrurerie")

    anonymous = calculate_dynamic_price(locksmith, market)
    premium = calculate_dynamic_price(_params(service_type="serrurerie", technician_id="t-1"), market)
    average = calculate_dynamic_price(
        _params(service_type="serrurerie", technician_id="t-1"), MarketContext(technician_rating=4.5)
    )

    assert anonymous.final_price == 400
    assert premium.final_price == 460
    assert premium.breakdown.premium == 60
    assert average.final_price == 400


def test_seasonal_multipliers():
    summer_ac = calculate_dynamic_price(_params(service_type="climatisation", scheduled_date=date(2024, 7, 10)))
    winter_plumbing = calculate_dynamic_price(
        _params(scheduled_date=date(2024, 1, 10), scheduled_time=time(20, 0))
    )
    winter_ac = calculate_dynamic_price(_params(service_type="climatisation", scheduled_date=date(2024, 1, 10)))

    assert summer_ac.final_price == 420
    assert winter_plumbing.final_price == 374
    assert winter_ac.final_price == 350


def test_unknown_service_falls_back_to_default_rate():
    result = calculate_dynamic_price(_params(service_type="astrologie", urgency="n/a", complexity="??"))

    assert result.base_price == 250
    assert result.final_price == 250


def test_flexible_schedule_discount():
    result = calculate_dynamic_price(_params(urgency="flexible"))

    assert result.final_price == 225
    assert [m.factor for m in result.multipliers] == ["Flexible"]
    assert result.multipliers[0].multiplier == 0.9
    assert result.savings == 25
    assert result.breakdown.discount == 25
    assert result.breakdown.labor == 225


@pytest.mark.parametrize("service", ["plomberie", "electricite", "climatisation", "jardinage", "inconnu"])
@pytest.mark.parametrize("scheduled_date,scheduled_time", [
    (WEDNESDAY, time(10, 0)),
    (SATURDAY, time(21, 30)),
    (date(2024, 7, 15), time(6, 0)),
    (date(2024, 1, 8), time(14, 0)),
])
def test_urgency_ordering(service, scheduled_date, scheduled_time):
    market = MarketContext(pending_jobs_in_city=12, technician_rating=4.9)

    def price(urgency):
        params = _params(
            service_type=service,
            urgency=urgency,
            scheduled_date=scheduled_date,
            scheduled_time=scheduled_time,
            technician_id="t1",
            distance_km=14,
        )
        return calculate_dynamic_price(params, market).final_price

    assert price("urgent") >= price("scheduled") >= price("flexible")


def test_same_quote_twice():
    params = _params(
        service_type="climatisation",
        urgency="urgent",
        scheduled_date=date(2024, 7, 13),
        scheduled_time=time(22, 0),
        technician_id="t1",
        distance_km=23.4,
        complexity="complex",
    )
    market = MarketContext(pending_jobs_in_city=17, technician_rating=4.8)

    assert calculate_dynamic_price(params, market) == calculate_dynamic_price(params, market)


def test_price_range():
    plumbing = get_price_range("plomberie")
    assert (plumbing.min, plumbing.max, plumbing.average) == (200, 500, 250)

    cleaning = get_price_range("Nettoyage")
    assert (cleaning.min, cleaning.max, cleaning.average) == (120, 300, 150)


def test_total_job_cost():
    result = estimate_total_job_cost(
        service_type="plomberie",
        city="Rabat",
        urgency="scheduled",
        estimated_hours=2,
        complexity=None,
        scheduled_date=WEDNESDAY,
    )

    assert result.hourly_rate == 250
    assert result.labor_cost == 500
    assert result.materials_cost == 150
    assert result.transport_cost == 0
    assert result.service_fee == 65
    assert result.total_cost == 715
    assert result.breakdown[-1] == "Total: 715 MAD"


@pytest.mark.parametrize(
    "code, price, valid, amount, discounted",
    [
        ("WELCOME10", 300, True, 30, 270),
        ("welcome10", 300, True, 30, 270),
        ("FIRST50", 150, False, 0, 150),
        ("FIRST50", 250, True, 50, 200),
        ("SORRY50", 30, True, 30, 0),
        ("NOPE", 300, False, 0, 300),
    ],
)
def test_discount_codes(code, price, valid, amount, discounted):
    result = apply_discount_code(price, code)

    assert result.valid is valid
    assert result.discount_amount == amount
    assert result.discounted_price == discounted


def test_discount_messages():
    assert apply_discount_code(300, "XYZ").message == "Code promo invalide"
    assert apply_discount_code(50, "WELCOME10").message == "Commande minimum de 100 MAD requise"
    assert apply_discount_code(300, "WELCOME10").message == "Code appliqué: -30 MAD"
