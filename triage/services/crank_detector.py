import logging
from typing import List, Optional

from triage.models.assessment import CrankAnalysis
from triage.models.enums import IncidentCode
from triage.rules.catalogues import RuleBook, default_rulebook, match_rules

logger = logging.getLogger(__name__)

CRANK_THRESHOLD = 50
ADMIN_THRESHOLD = 70
CRIMINAL_THRESHOLD = 80
HEDGING_MIN_HISTORY = 3
HEDGING_MIN_HITS = 2

CRANK_WARNING = (
    "⚠️ CRANK CALL DETECTED: False emergency reporting is a criminal offense. "
    "This call and your device information have been logged for investigation."
)
CRIMINAL_WARNING = (
    "🚨 This is a criminal act. False reports endanger lives. Your identity and "
    "device fingerprint have been logged. Authorities will be notified."
)


class CrankDetector:
    """Credibility check for joke and false emergency reports"""

    def __init__(self, rules: Optional[RuleBook] = None):
        self.rules = rules or default_rulebook()

    def analyze(self, text: str, history: Optional[List[str]] = None) -> CrankAnalysis:
        history = history or []
        current = (text or "").lower()
        combined = " ".join([current] + [h.lower() for h in history])

        indicators: List[str] = []
        score = 0

        # each family counts once, however many of its phrases appear
        for family in match_rules(self.rules.crank_families, combined):
            score += int(family.weight)
            indicators.append(family.label)

        if len(history) >= HEDGING_MIN_HISTORY:
            vague = match_rules(self.rules.vague_words, current)
            if len(vague) >= HEDGING_MIN_HITS:
                score += self.rules.hedging_weight
                indicators.append("Excessive uncertainty")

        if self.rules.no_emergency.search(combined) and self.rules.call_for_help.search(combined):
            score += self.rules.contradiction_weight
            indicators.append("Contradictory statements")

        confidence = min(score, 100)
        is_crank = score >= CRANK_THRESHOLD

        warning = None
        incident_code = None
        if is_crank:
            warning = CRANK_WARNING
            if confidence >= CRIMINAL_THRESHOLD:
                warning = CRIMINAL_WARNING
                incident_code = IncidentCode.FALSE_EMERGENCY.value

        return CrankAnalysis(
            is_crank=is_crank,
            confidence=confidence,
            raw_score=score,
            indicators=indicators,
            warning_message=warning,
            escalate_to_admin=is_crank and confidence >= ADMIN_THRESHOLD,
            incident_code=incident_code,
        )

    def log_crank_call(self, caller_id: str, text: str, analysis: CrankAnalysis):
        logger.warning(
            "🚨 Crank call flagged | caller=%s confidence=%s%% indicators=%s text=%r",
            caller_id, analysis.confidence, ", ".join(analysis.indicators), text,
        )
