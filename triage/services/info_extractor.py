from typing import Any, Dict, Optional

from triage.models.session import CriticalInfo
from triage.rules.catalogues import RuleBook, best_match, default_rulebook, match_rules


class InfoExtractor:
    """Pull structured dispatch facts out of free-text caller speech"""

    def __init__(self, rules: Optional[RuleBook] = None):
        self.rules = rules or default_rulebook()

    def extract(self, text: str) -> Dict[str, Any]:
        """Return a sparse patch with only the fields this utterance mentions"""
        lower = (text or "").lower()
        patch: Dict[str, Any] = {}
        if not lower.strip():
            return patch

        place = next(iter(match_rules(self.rules.locations, lower)), None)
        if place:
            section = next(iter(match_rules(self.rules.location_sections, lower)), None)
            patch["location"] = f"{place.label} ({section.label})" if section else place.label

        address = self.rules.street_address.search(lower)
        if address:
            patch["exact_address"] = address.group(0).strip()

        family = best_match(self.rules.incident_families, lower)
        if family:
            patch["incident_type"], patch["responder_needed"] = family.outcome
            patch["incident_rank"] = family.weight

        explicit = self.rules.explicit_victims.search(lower)
        if explicit:
            count = self.rules.number_value(explicit.group(1))
            if count:
                patch["number_of_victims"] = count
                patch["victims_explicit"] = True
        if "number_of_victims" not in patch and self.rules.singular_victim.search(lower):
            patch["number_of_victims"] = 1
            patch["victims_explicit"] = False

        condition = best_match(self.rules.conditions, lower)
        if condition:
            patch["current_condition"] = condition.outcome[0]
            patch["condition_rank"] = condition.weight

        # witness language wins over first person within a turn
        if self.rules.witness.search(lower):
            patch["caller_relation"] = "witness"
        elif self.rules.first_person.search(lower):
            patch["caller_relation"] = "victim/involved"

        hazards = [r.label for r in match_rules(self.rules.hazards, lower)]
        if hazards:
            patch["hazards"] = hazards

        actions = [r.label for r in match_rules(self.rules.immediate_actions, lower)]
        if actions:
            patch["immediate_actions"] = actions

        access = self.rules.access.search(lower)
        if access:
            patch["access_instructions"] = access.group(0).strip()

        return patch

    def merge(self, info: CriticalInfo, patch: Dict[str, Any]) -> CriticalInfo:
        """
        Fold a patch into the stored critical info.

        Fields are set once and then only refined: a location is replaced by
        one that extends it, an incident type by a more specific one, a
        condition by one at least as serious.
        """
        location = patch.get("location")
        if location and (not info.location or
                         (location != info.location and location.startswith(info.location))):
            info.location = location

        if patch.get("exact_address"):
            info.exact_address = patch["exact_address"]

        if patch.get("incident_type"):
            stored_rank = self._incident_rank(info.incident_type)
            if info.incident_type is None or patch["incident_rank"] > stored_rank:
                info.incident_type = patch["incident_type"]
                info.responder_needed = patch["responder_needed"]

        victims = patch.get("number_of_victims")
        if victims and (patch.get("victims_explicit") or info.number_of_victims is None):
            info.number_of_victims = victims

        if patch.get("current_condition"):
            if patch["condition_rank"] >= self._condition_rank(info.current_condition):
                info.current_condition = patch["current_condition"]

        if patch.get("caller_relation") and not info.caller_relation:
            info.caller_relation = patch["caller_relation"]

        for hazard in patch.get("hazards", []):
            if hazard not in info.hazards:
                info.hazards.append(hazard)

        for action in patch.get("immediate_actions", []):
            if action not in info.immediate_actions:
                info.immediate_actions.append(action)

        if patch.get("access_instructions"):
            info.access_instructions = patch["access_instructions"]

        return info

    def _incident_rank(self, incident_type: Optional[str]) -> float:
        for family in self.rules.incident_families:
            if family.outcome[0] == incident_type:
                return family.weight
        return 0

    def _condition_rank(self, condition: Optional[str]) -> float:
        for rule in self.rules.conditions:
            if rule.outcome[0] == condition:
                return rule.weight
        return 0
