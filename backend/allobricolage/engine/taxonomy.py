"""
Service taxonomy and the shared urgency/complexity vocabularies.

Jobs store the `Urgency` vocabulary (low|normal|high|emergency). The
dynamic pricer speaks `PricingUrgency` (urgent|scheduled|flexible).
`to_pricing_urgency` is the single place the two are reconciled.
"""

import unicodedata
from enum import Enum
from typing import Dict, Optional, Union


class Urgency(str, Enum):
    """Urgency as stored on jobs."""
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    EMERGENCY = "emergency"


class PricingUrgency(str, Enum):
    """Urgency as used by the dynamic pricing engine."""
    URGENT = "urgent"
    SCHEDULED = "scheduled"
    FLEXIBLE = "flexible"


class Complexity(str, Enum):
    """Job complexity levels."""
    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"


# slug -> display label
SERVICE_LABELS: Dict[str, str] = {
    "plomberie": "Plomberie",
    "electricite": "Électricité",
    "peinture": "Peinture",
    "menuiserie": "Menuiserie",
    "climatisation": "Climatisation",
    "maconnerie": "Maçonnerie",
    "carrelage": "Carrelage",
    "serrurerie": "Serrurerie",
    "jardinage": "Jardinage",
    "nettoyage": "Nettoyage",
    "reparation_appareils": "Réparation d'appareils",
    "petites_renovations": "Petites rénovations",
    "portes_serrures": "Portes/Serrures",
    "metallerie": "Métallerie",
    "etancheite": "Étanchéité",
    "installation_luminaires": "Installation Luminaires",
    "travaux_construction": "Travaux Construction",
    "services_generaux": "Services Généraux",
}

SERVICE_CATEGORIES = tuple(SERVICE_LABELS.keys())

MOROCCAN_CITIES = (
    "Casablanca",
    "Rabat",
    "Marrakech",
    "Fès",
    "Tanger",
    "Agadir",
    "Meknès",
    "Oujda",
    "Kenitra",
    "Tétouan",
    "Salé",
    "Nador",
    "Beni Mellal",
    "El Jadida",
    "Khouribga",
    "Safi",
    "Mohammedia",
)

URGENCY_TO_PRICING: Dict[Urgency, PricingUrgency] = {
    Urgency.EMERGENCY: PricingUrgency.URGENT,
    Urgency.HIGH: PricingUrgency.SCHEDULED,
    Urgency.NORMAL: PricingUrgency.SCHEDULED,
    Urgency.LOW: PricingUrgency.FLEXIBLE,
}

_COMPLEXITY_ALIASES = {"medium": Complexity.MODERATE}


def fold_text(value: str) -> str:
    """Lower-case and strip accents: 'Électricité' -> 'electricite'."""
    decomposed = unicodedata.normalize("NFKD", value.strip().lower())
    return "".join(c for c in decomposed if not unicodedata.combining(c))


_LABEL_INDEX: Dict[str, str] = {}
for _slug, _label in SERVICE_LABELS.items():
    _LABEL_INDEX[fold_text(_slug)] = _slug
    _LABEL_INDEX[fold_text(_label)] = _slug


def normalize_service(service: Optional[str]) -> str:
    """
    Map a slug or display label to its taxonomy slug.
    Unknown services are returned folded so that lookups fall back to defaults.
    """
    if not service:
        return ""
    folded = fold_text(str(service))
    return _LABEL_INDEX.get(folded, folded)


def service_label(service: str) -> str:
    """Display label for a service slug (the slug itself when unknown)."""
    return SERVICE_LABELS.get(normalize_service(service), service)


def to_pricing_urgency(value: Union[str, Urgency, PricingUrgency, None]) -> PricingUrgency:
    """Accept either vocabulary and return the pricing one."""
    if isinstance(value, PricingUrgency):
        return value
    if isinstance(value, Urgency):
        return URGENCY_TO_PRICING[value]
    if not value:
        return PricingUrgency.SCHEDULED
    raw = str(value).strip().lower()
    try:
        return PricingUrgency(raw)
    except ValueError:
        pass
    try:
        return URGENCY_TO_PRICING[Urgency(raw)]
    except ValueError:
        return PricingUrgency.SCHEDULED


def to_urgency(value: Union[str, Urgency, None]) -> Urgency:
    """Parse a job urgency, also accepting the pricing vocabulary."""
    if isinstance(value, Urgency):
        return value
    if not value:
        return Urgency.NORMAL
    raw = str(value).strip().lower()
    try:
        return Urgency(raw)
    except ValueError:
        pass
    reverse = {
        PricingUrgency.URGENT.value: Urgency.EMERGENCY,
        PricingUrgency.SCHEDULED.value: Urgency.NORMAL,
        PricingUrgency.FLEXIBLE.value: Urgency.LOW,
    }
    return reverse.get(raw, Urgency.NORMAL)


def to_complexity(value: Union[str, Complexity, None]) -> Optional[Complexity]:
    """Parse a complexity level; None when absent or unrecognised."""
    if isinstance(value, Complexity):
        return value
    if not value:
        return None
    raw = str(value).strip().lower()
    if raw in _COMPLEXITY_ALIASES:
        return _COMPLEXITY_ALIASES[raw]
    try:
        return Complexity(raw)
    except ValueError:
        return None


def same_city(a: Optional[str], b: Optional[str]) -> bool:
    """Case- and accent-insensitive city comparison."""
    if not a or not b:
        return False
    return fold_text(a) == fold_text(b)
