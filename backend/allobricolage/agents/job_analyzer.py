"""
Job description analyzer.
Layer 1: Keyword rules (instant, no LLM)
Layer 2: LLM extraction when OpenAI is configured
Layer 3: Validation against the service taxonomy, with rule-based fallback
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from allobricolage.engine.taxonomy import (
    SERVICE_CATEGORIES,
    Complexity,
    Urgency,
    normalize_service,
    to_complexity,
    to_urgency,
)
from allobricolage.integrations.openai_client import LLMError, OpenAIClient

logger = logging.getLogger(__name__)


RULE_BASED_CONFIDENCE = 0.8
LLM_DEFAULT_CONFIDENCE = 0.85
FALLBACK_CONFIDENCE = 0.7
DEFAULT_SERVICE = "plomberie"
DEFAULT_DURATION = "1-2 heures"


@dataclass
class JobAnalysis:
    """Structured signal extracted from a free-text job request."""
    service: str
    sub_services: List[str]
    urgency: Urgency
    complexity: Complexity
    estimated_duration: str
    extracted_keywords: List[str] = field(default_factory=list)
    confidence: float = RULE_BASED_CONFIDENCE
    language: str = "fr"
    source: str = "rules"  # rules | llm | fallback


# Checked in order; the first service with a hit wins
SERVICE_KEYWORDS: Dict[str, List[str]] = {
    "plomberie": ["plombier", "plomberie", "fuite", "eau", "robinet", "tuyau", "évier", "wc", "toilette", "chauffe-eau", "canalisation", "سباكة", "ماء", "تسرب"],
    "electricite": ["électricien", "électricité", "prise", "interrupteur", "tableau", "câble", "disjoncteur", "éclairage", "كهرباء", "كهربائي"],
    "peinture": ["peintre", "peinture", "peindre", "mur", "plafond", "enduit", "دهان", "طلاء"],
    "menuiserie": ["menuisier", "menuiserie", "bois", "porte", "fenêtre", "meuble", "placard", "نجارة", "خشب"],
    "climatisation": ["climatisation", "clim", "climatiseur", "ventilation", "chauffage", "تكييف", "مكيف"],
    "maconnerie": ["maçon", "maçonnerie", "mur", "béton", "brique", "construction", "بناء"],
    "carrelage": ["carrelage", "carreleur", "zellige", "mosaïque", "sol", "بلاط"],
    "serrurerie": ["serrurier", "serrure", "clé", "porte", "قفل", "أقفال"],
    "jardinage": ["jardinier", "jardin", "plante", "pelouse", "taille", "حديقة"],
    "nettoyage": ["nettoyage", "ménage", "nettoyer", "تنظيف"],
}

URGENCY_KEYWORDS: Dict[Urgency, List[str]] = {
    Urgency.EMERGENCY: ["urgence", "urgent", "immédiat", "maintenant", "catastrophe", "inondation", "طوارئ", "عاجل"],
    Urgency.HIGH: ["rapidement", "vite", "bientôt", "pressé", "سريع"],
}

# Negated forms are checked before the plain ones ("pas urgent" is not urgent)
CALM_KEYWORDS = ["pas pressé", "pas urgent", "planifier", "غير مستعجل"]

COMPLEXITY_KEYWORDS: Dict[Complexity, List[str]] = {
    Complexity.COMPLEX: ["rénovation", "installation complète", "remplacement total", "câblage complet", "معقد"],
    Complexity.MODERATE: ["réparation", "remplacement", "إصلاح"],
    Complexity.SIMPLE: ["petit", "simple", "rapide", "facile", "بسيط"],
}

SUB_SERVICE_KEYWORDS: Dict[str, List[str]] = {
    "Fuite d'eau": ["fuite", "coule", "goutte"],
    "Débouchage": ["bouché", "bouchée", "déboucher"],
    "Installation": ["installer", "installation", "poser"],
    "Réparation": ["réparer", "réparation", "cassé", "cassée"],
    "Remplacement": ["remplacer", "changer", "remplacement"],
    "Entretien": ["entretien", "maintenance", "nettoyer"],
}

DURATIONS: Dict[Complexity, str] = {
    Complexity.SIMPLE: "30 min - 1 heure",
    Complexity.MODERATE: DEFAULT_DURATION,
    Complexity.COMPLEX: "3-5 heures",
}

_URGENCY_RANK = [Urgency.LOW, Urgency.NORMAL, Urgency.HIGH, Urgency.EMERGENCY]

_ARABIC = re.compile(r"[؀-ۿ]")
_ENGLISH = re.compile(r"\b(the|and|or|is|are|have|has)\b", re.IGNORECASE)


def _mentions(text: str, keyword: str) -> bool:
    """Substring match, except short Latin keywords must stand alone ('eau' is not in 'tableau')."""
    if len(keyword) > 4 or _ARABIC.search(keyword):
        return keyword in text
    return re.search(rf"(?<!\w){re.escape(keyword)}(?!\w)", text) is not None


SYSTEM_PROMPT = f"""You are an assistant for AlloBricolage, a Moroccan handyman marketplace. Analyze job descriptions in French, Arabic or English and extract structured information.

Available services: {", ".join(SERVICE_CATEGORIES)}

Return JSON with this exact structure:
{{
  "service": "main service category",
  "subServices": ["specific issues or tasks"],
  "urgency": "low|normal|high|emergency",
  "complexity": "simple|moderate|complex",
  "estimatedDuration": "time estimate in French",
  "extractedKeywords": ["relevant keywords"],
  "confidence": 0.0 to 1.0,
  "language": "fr|ar|en"
}}"""


def detect_service(description: str) -> str:
    lower = description.lower()
    for service, keywords in SERVICE_KEYWORDS.items():
        if any(_mentions(lower, kw) for kw in keywords):
            return service
    return DEFAULT_SERVICE


def detect_urgency(description: str) -> Optional[Urgency]:
    """Urgency implied by the wording, or None when nothing stands out."""
    lower = description.lower()
    if any(_mentions(lower, kw) for kw in CALM_KEYWORDS):
        return Urgency.LOW
    for urgency, keywords in URGENCY_KEYWORDS.items():
        if any(_mentions(lower, kw) for kw in keywords):
            return urgency
    return None


def detect_complexity(description: str) -> Complexity:
    lower = description.lower()
    for complexity, keywords in COMPLEXITY_KEYWORDS.items():
        if any(_mentions(lower, kw) for kw in keywords):
            return complexity
    return Complexity.MODERATE


def extract_sub_services(description: str) -> List[str]:
    lower = description.lower()
    found = [
        label for label, keywords in SUB_SERVICE_KEYWORDS.items()
        if any(_mentions(lower, kw) for kw in keywords)
    ]
    return found[:3]


def extract_keywords(description: str) -> List[str]:
    known = {kw for keywords in SERVICE_KEYWORDS.values() for kw in keywords}
    return [w for w in description.lower().split() if w in known][:5]


def detect_language(description: str) -> str:
    if _ARABIC.search(description):
        return "ar"
    if _ENGLISH.search(description):
        return "en"
    return "fr"


def _escalate(selected: Urgency, detected: Optional[Urgency]) -> Urgency:
    """Keep the more urgent of the two; wording never lowers a chosen urgency."""
    if detected is None:
        return selected
    return max(selected, detected, key=_URGENCY_RANK.index)


def _string_list(value) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value]


class JobAnalyzer:
    """Turn a free-text request into {service, urgency, complexity, ...}."""

    def __init__(self, openai_client: Optional[OpenAIClient] = None):
        self.openai = openai_client or OpenAIClient()

    async def analyze(
        self,
        description: str,
        city: str,
        urgency: Optional[str] = None,
    ) -> JobAnalysis:
        selected = to_urgency(urgency)

        if not self.openai.enabled:
            return self.rule_based(description, selected)

        try:
            return await self._llm_analysis(description, city, selected)
        except LLMError as e:
            logger.warning("LLM analysis failed, using rule-based fallback: %s", e)
            analysis = self.rule_based(description, selected)
            analysis.sub_services = []
            analysis.estimated_duration = DEFAULT_DURATION
            analysis.confidence = FALLBACK_CONFIDENCE
            analysis.source = "fallback"
            return analysis

    def rule_based(self, description: str, selected: Urgency = Urgency.NORMAL) -> JobAnalysis:
        complexity = detect_complexity(description)
        return JobAnalysis(
            service=detect_service(description),
            sub_services=extract_sub_services(description),
            urgency=_escalate(selected, detect_urgency(description)),
            complexity=complexity,
            estimated_duration=DURATIONS[complexity],
            extracted_keywords=extract_keywords(description),
            confidence=RULE_BASED_CONFIDENCE,
            language=detect_language(description),
        )

    async def _llm_analysis(self, description: str, city: str, selected: Urgency) -> JobAnalysis:
        result = await self.openai.complete_json([
            {"role": "system", "content": SYSTEM_PROMPT},
            {
                "role": "user",
                "content": (
                    f'Analyze this job request from {city}:\n\n"{description}"\n\n'
                    f"User-selected urgency: {selected.value}"
                ),
            },
        ])

        # Anything outside the taxonomy is replaced by the rule-based answer
        service = normalize_service(result.get("service"))
        if service not in SERVICE_CATEGORIES:
            service = detect_service(description)

        complexity = to_complexity(result.get("complexity")) or detect_complexity(description)
        urgency = to_urgency(result.get("urgency")) if result.get("urgency") else selected

        try:
            confidence = float(result.get("confidence") or LLM_DEFAULT_CONFIDENCE)
        except (TypeError, ValueError):
            confidence = LLM_DEFAULT_CONFIDENCE

        language = result.get("language")
        if language not in ("fr", "ar", "en"):
            language = detect_language(description)

        return JobAnalysis(
            service=service,
            sub_services=_string_list(result.get("subServices")),
            urgency=_escalate(selected, urgency),
            complexity=complexity,
            estimated_duration=str(result.get("estimatedDuration") or DEFAULT_DURATION),
            extracted_keywords=_string_list(result.get("extractedKeywords")),
            confidence=max(0.0, min(confidence, 1.0)),
            language=language,
            source="llm",
        )
