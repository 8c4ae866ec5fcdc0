from typing import List, Optional, Tuple

from triage.rules.catalogues import RuleBook, default_rulebook, match_rules

MAX_THREAT_SCORE = 100

class ThreatScorer:
    """Keyword-weighted threat score for a single utterance"""

    def __init__(self, rules: Optional[RuleBook] = None):
        self.rules = rules or default_rulebook()

    def score(self, text: str) -> Tuple[List[str], int]:
        """
        Score an utterance against the lexical table.

        Overlapping entries ("shark" and "shark attack") both count.

        Returns:
            (matched keywords in table order, score clamped to 0-100)
        """
        if not text:
            return [], 0
        hits = match_rules(self.rules.lexical, text.lower())
        total = sum(int(r.weight) for r in hits)
        return [r.label for r in hits], min(max(total, 0), MAX_THREAT_SCORE)
