import pytest

from allobricolage.engine.taxonomy import (
    Complexity,
    PricingUrgency,
    Urgency,
    normalize_service,
    same_city,
    service_label,
    to_complexity,
    to_pricing_urgency,
    to_urgency,
)


@pytest.mark.parametrize(
    "raw, slug",
    [
        ("plomberie", "plomberie"),
        ("Plomberie", "plomberie"),
        ("Électricité", "electricite"),
        ("Réparation d'appareils", "reparation_appareils"),
        ("Portes/Serrures", "portes_serrures"),
        ("  MAÇONNERIE ", "maconnerie"),
    ],
)
def test_normalize_service(raw, slug):
    assert normalize_service(raw) == slug


def test_normalize_unknown_service():
    assert normalize_service("Astrologie") == "astrologie"
    assert normalize_service(None) == ""


def test_service_label():
    assert service_label("electricite") == "Électricité"
    assert service_label("astrologie") == "astrologie"


@pytest.mark.parametrize(
    "value, expected",
    [
        ("emergency", PricingUrgency.URGENT),
        ("high", PricingUrgency.SCHEDULED),
        ("normal", PricingUrgency.SCHEDULED),
        ("low", PricingUrgency.FLEXIBLE),
        ("urgent", PricingUrgency.URGENT),
        (Urgency.LOW, PricingUrgency.FLEXIBLE),
        (None, PricingUrgency.SCHEDULED),
        ("whenever", PricingUrgency.SCHEDULED),
    ],
)
def test_to_pricing_urgency(value, expected):
    assert to_pricing_urgency(value) == expected


def test_to_urgency_accepts_pricing_vocabulary():
    assert to_urgency("urgent") == Urgency.EMERGENCY
    assert to_urgency("flexible") == Urgency.LOW
    assert to_urgency("scheduled") == Urgency.NORMAL
    assert to_urgency("HIGH") == Urgency.HIGH
    assert to_urgency("") == Urgency.NORMAL


def test_to_complexity():
    assert to_complexity("medium") == Complexity.MODERATE
    assert to_complexity("Complex") == Complexity.COMPLEX
    assert to_complexity("hard") is None
    assert to_complexity(None) is None


def test_same_city():
    assert same_city("Fès", "fes")
    assert same_city(" Casablanca", "CASABLANCA")
    assert not same_city("Rabat", "Salé")
    assert not same_city(None, "Rabat")
