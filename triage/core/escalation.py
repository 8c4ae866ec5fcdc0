"""
Per-caller escalation automaton.

States::

    none ──threat──▶ pending ──threat (turn ≥ 2)──▶ active
                        │ ▲                           │
              retraction│ │threat (reactivated)       │retraction
                        ▼ │                           ▼
                      retracted ◀──────────────────────
                        │
                  retraction again
                        ▼
                   false_report ──recovery (≤ 3 tries)──▶ reactivated_case ──threat──▶ active

Only ``active`` and a recovered ``reactivated_case`` authorize dispatch.
``pending`` routes to a responder for information only.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from triage.agents.prompts import ESCALATION_REPLIES
from triage.models.assessment import EscalationResult
from triage.models.enums import EscalationState, IncidentCode
from triage.models.session import EscalationSession
from triage.rules.catalogues import RuleBook, default_rulebook

logger = logging.getLogger(__name__)

MAX_RECOVERY_ATTEMPTS = 3
ACTIVATION_TURNS = 2


@dataclass(frozen=True)
class TurnSignals:
    is_threat: bool
    is_retraction: bool
    is_sarcastic: bool
    is_apology: bool
    is_recovery: bool
    threats: List[str]


class EscalationStateMachine:

    def __init__(self, rules: Optional[RuleBook] = None):
        self.rules = rules or default_rulebook()

    def signals(self, text: str) -> TurnSignals:
        lower = (text or "").lower()
        threats = sorted({m.group(1) for m in self.rules.threat.finditer(lower)})
        return TurnSignals(
            is_threat=bool(threats),
            is_retraction=bool(self.rules.retraction.search(lower)),
            is_sarcastic=bool(self.rules.sarcasm.search(lower)),
            is_apology=bool(self.rules.apology.search(lower)),
            is_recovery=bool(self.rules.recovery.search(lower)),
            threats=threats,
        )

    def advance(self, session: EscalationSession, text: str,
                now: Optional[datetime] = None) -> EscalationResult:
        """Apply one caller turn to the session and describe the outcome"""
        now = now or datetime.now()
        signals = self.signals(text)
        lower = (text or "").lower().strip()
        session.conversation_turns += 1

        if (session.level == EscalationState.FALSE_REPORT
                and session.recovery_attempts < MAX_RECOVERY_ATTEMPTS):
            self._attempt_recovery(session, signals, lower)

        elif signals.is_retraction or signals.is_sarcastic:
            if session.retraction_flag:
                session.retraction_confirmed = True
                session.level = EscalationState.FALSE_REPORT
                session.flagged_messages.append(lower)
                logger.warning("🚩 Second consecutive retraction, session marked as false report")
            elif session.level in (EscalationState.ACTIVE, EscalationState.PENDING,
                                   EscalationState.REACTIVATED_CASE):
                session.retraction_flag = True
                session.level = EscalationState.RETRACTED
                session.flagged_messages.append(lower)

        elif signals.is_threat:
            session.confirmed_threats.update(signals.threats)
            if session.level == EscalationState.RETRACTED:
                session.level = EscalationState.PENDING
                session.reactivated = True
                session.retraction_flag = False
            elif session.level == EscalationState.NONE:
                session.level = EscalationState.PENDING
                session.original_description = lower
                session.initial_threat_at = now
            elif (session.level == EscalationState.PENDING
                  and session.conversation_turns >= ACTIVATION_TURNS):
                session.level = EscalationState.ACTIVE
            elif session.level == EscalationState.REACTIVATED_CASE:
                session.level = EscalationState.ACTIVE

        return self.respond(session)

    def _attempt_recovery(self, session: EscalationSession, signals: TurnSignals, lower: str):
        session.recovery_attempts += 1
        repeats_original = bool(session.original_description
                                and session.original_description in lower)
        if signals.is_recovery or repeats_original or (signals.is_apology and signals.is_threat):
            session.level = EscalationState.REACTIVATED_CASE
            session.recovered_from_misflag = True
            session.reactivated = True
            session.retraction_flag = False
            session.retraction_confirmed = False
            session.confirmed_threats.update(signals.threats)
            logger.info("🧠 Recovered from misflag after %s attempt(s)", session.recovery_attempts)

    def respond(self, session: EscalationSession) -> EscalationResult:
        """Reply, routing and notices for the session's current state"""
        level = session.level
        threats = ", ".join(sorted(session.confirmed_threats)) or "unspecified"

        if level == EscalationState.PENDING:
            if session.reactivated:
                return EscalationResult(
                    reply_text=ESCALATION_REPLIES["reactivated"],
                    state=level,
                    label=EscalationState.REACTIVATED_CASE,
                    notify_responder=True,
                    responder_notice=f"🔄 Case reactivated after retraction: {threats}. Dispatch on hold pending confirmation.",
                    incident_code=IncidentCode.REACTIVATED_CASE_UNDER_REVIEW.value,
                )
            return EscalationResult(
                reply_text=ESCALATION_REPLIES["pending"],
                state=level,
                label=level,
                notify_responder=True,
                responder_notice=f"⚡ Threat confirmed: {threats}. Awaiting additional details.",
            )

        if level == EscalationState.ACTIVE:
            return EscalationResult(
                reply_text=ESCALATION_REPLIES["active"],
                state=level,
                label=level,
                route_to_responder=True,
                notify_responder=True,
                responder_notice=f"🚨 ACTIVE EMERGENCY: {threats}. Dispatch authorized.",
            )

        if level == EscalationState.RETRACTED:
            return EscalationResult(
                reply_text=ESCALATION_REPLIES["retracted"],
                state=level,
                label=level,
                responder_notice="⚠️ Caller contradicted the earlier report. Dispatch withheld pending clarification.",
            )

        if level == EscalationState.REACTIVATED_CASE:
            recovered = session.recovered_from_misflag
            return EscalationResult(
                reply_text=ESCALATION_REPLIES["recovered" if recovered else "reactivated"],
                state=level,
                label=level,
                route_to_responder=recovered,
                notify_responder=True,
                responder_notice=(
                    f"🧠 RECOVERED FROM MISFLAG: {threats}. Dispatch resumed, case under review."
                    if recovered else "🔄 Case reactivated, awaiting confirmation."
                ),
                incident_code=IncidentCode.REACTIVATED_CASE_UNDER_REVIEW.value,
            )

        if level == EscalationState.FALSE_REPORT:
            if session.recovery_attempts >= MAX_RECOVERY_ATTEMPTS:
                return EscalationResult(
                    reply_text=ESCALATION_REPLIES["false_report_final"],
                    state=level,
                    label=level,
                    responder_notice="⛔ False report confirmed. Recovery window closed.",
                    incident_code=IncidentCode.FALSE_EMERGENCY_CONFIRMED.value,
                    should_block=True,
                )
            remaining = MAX_RECOVERY_ATTEMPTS - session.recovery_attempts
            return EscalationResult(
                reply_text=ESCALATION_REPLIES["false_report"],
                state=level,
                label=level,
                responder_notice=f"🚩 Flagged as false report. {remaining} recovery attempt(s) remaining.",
                incident_code=IncidentCode.FALSE_EMERGENCY.value,
                should_block=True,
            )

        return EscalationResult(
            reply_text=ESCALATION_REPLIES["none"],
            state=level,
            label=level,
        )
