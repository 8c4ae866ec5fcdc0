from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Tuple

from triage.models.assessment import SeverityAssessment
from triage.models.enums import DispatchLevel, SeverityCategory
from triage.rules.catalogues import RuleBook, default_rulebook, match_rules

MAX_SEVERITY = 10.0
MAX_PANIC = 5

# (minimum score, category, dispatch level, seconds to dispatch)
SEVERITY_BANDS: Tuple[Tuple[float, SeverityCategory, DispatchLevel, int], ...] = (
    (8.0, SeverityCategory.CATASTROPHIC, DispatchLevel.MASS_CASUALTY, 0),
    (6.0, SeverityCategory.CRITICAL, DispatchLevel.FULL_RESPONSE, 30),
    (4.0, SeverityCategory.MAJOR, DispatchLevel.MULTI_UNIT, 60),
    (2.0, SeverityCategory.MODERATE, DispatchLevel.SINGLE_UNIT, 180),
)

IMMEDIATE_CATEGORIES = (
    SeverityCategory.CATASTROPHIC,
    SeverityCategory.CRITICAL,
    SeverityCategory.MAJOR,
)


def classify_score(score: float) -> Tuple[SeverityCategory, DispatchLevel, int]:
    """Map a published severity score to its category band"""
    for minimum, category, level, seconds in SEVERITY_BANDS:
        if score >= minimum:
            return category, level, seconds
    return SeverityCategory.MINOR, DispatchLevel.SINGLE_UNIT, 300


def round_score(value: float) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


class SeverityAssessor:
    """Professional 0-10 severity assessment for emergency calls"""

    VICTIM_STEP = 0.3
    MAX_EXTRA_VICTIMS = 5
    PANIC_THRESHOLD = 4
    PANIC_BONUS = 0.2
    MISSING_PERSON_BONUS = 0.4
    REPEAT_THRESHOLD = 2

    def __init__(self, rules: Optional[RuleBook] = None):
        self.rules = rules or default_rulebook()

    def assess(self, text: str, history: Optional[List[str]] = None) -> SeverityAssessment:
        """
        Assess severity of the current utterance.

        Args:
            text: current caller utterance
            history: earlier caller utterances, oldest first

        Returns:
            SeverityAssessment value object
        """
        history = history or []
        lower = (text or "").lower()

        hits = match_rules(self.rules.severity, lower)
        base = sum(r.weight for r in hits)

        units: List[str] = []
        reasoning: List[str] = []
        for hit in hits:
            reasoning.append(hit.note)
            for unit in hit.units:
                if unit not in units:
                    units.append(unit)

        victims = self.count_victims(lower)
        panic = self.panic_level(lower, history)

        multiplier = 1.0
        if victims > 1:
            multiplier += self.VICTIM_STEP * min(victims - 1, self.MAX_EXTRA_VICTIMS)
            reasoning.append(f"MULTIPLE VICTIMS: {victims} people involved")
        if panic >= self.PANIC_THRESHOLD:
            multiplier += self.PANIC_BONUS
            reasoning.append(f"HIGH CALLER DISTRESS: panic level {panic}/{MAX_PANIC}")
        if base > 0 and self.rules.missing_person.search(lower):
            multiplier += self.MISSING_PERSON_BONUS
            reasoning.append("MISSING PERSON: search component required")

        score = round_score(min(base * multiplier, MAX_SEVERITY))
        category, level, seconds = classify_score(score)

        return SeverityAssessment(
            severity_score=score,
            category=category,
            immediate_dispatch=category in IMMEDIATE_CATEGORIES,
            dispatch_level=level,
            time_to_dispatch=seconds,
            required_units=units,
            reasoning=reasoning,
            victim_count=victims,
            panic_level=panic,
        )

    def count_victims(self, lower: str) -> int:
        counts = [
            self.rules.number_value(match.group(1))
            for match in self.rules.victim_count.finditer(lower)
        ]
        counts = [c for c in counts if c]
        if counts:
            return max(counts)
        if self.rules.victim_plural.search(lower):
            return 2
        return 1

    def panic_level(self, lower: str, history: List[str]) -> int:
        level = 1 + len(match_rules(self.rules.panic_markers, lower))

        normalized = lower.strip()
        repeats = sum(1 for h in history if h.lower().strip() == normalized)
        if normalized and repeats >= self.REPEAT_THRESHOLD:
            level += 1

        return min(level, MAX_PANIC)
