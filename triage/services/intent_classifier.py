import re
from typing import Optional

from triage.models.enums import CallerIntent
from triage.rules.catalogues import RuleBook, default_rulebook

MIN_WORDS = 2
MIN_LETTERS = 3


class IntentClassifier:
    """Rough caller intent, only used to pick a fallback probe"""

    def __init__(self, rules: Optional[RuleBook] = None):
        self.rules = rules or default_rulebook()

    def classify(self, text: str) -> CallerIntent:
        clean = (text or "").strip().lower()
        if not clean:
            return CallerIntent.NOISE

        for intent_rule in self.rules.intents:
            if intent_rule.matches(clean):
                return CallerIntent(intent_rule.family)

        letters = re.sub(r"[^a-z]", "", clean)
        if len(clean.split()) < MIN_WORDS and len(letters) < MIN_LETTERS:
            return CallerIntent.NOISE
        return CallerIntent.UNKNOWN
