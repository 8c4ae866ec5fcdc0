import asyncio
import logging
from datetime import datetime
from typing import Optional

from triage.agents.prompts import (
    ACKNOWLEDGEMENTS,
    FOLLOW_UP_PROMPTS,
    LOCATION_DEMAND,
    SEVERITY_REPLIES,
)
from triage.agents.reply_agent import ReplyAgent
from triage.config import Settings, get_settings
from triage.core.escalation import EscalationStateMachine
from triage.core.guards import enforce_range
from triage.core.session_store import InMemorySessionStore, SessionStore
from triage.models.assessment import (
    CrankAnalysis,
    EscalationResult,
    SeverityAssessment,
    TurnResult,
)
from triage.models.enums import CallerIntent, EscalationLabel, EscalationState
from triage.models.session import CallerSession
from triage.ranking.severity_assessor import SeverityAssessor
from triage.ranking.threat_scorer import MAX_THREAT_SCORE, ThreatScorer
from triage.rules.catalogues import RuleBook, default_rulebook
from triage.services.crank_detector import CrankDetector
from triage.services.dispatch_summary import build_dispatch_summary
from triage.services.info_extractor import InfoExtractor
from triage.services.intent_classifier import IntentClassifier

logger = logging.getLogger(__name__)

SEVERITY_REPLY_THRESHOLD = 6.0
MAX_ESCALATION_LEVEL = 5
ESCALATING_THREAT = 40
GATHERING_THREAT = 20

# States whose own warning must never be replaced by a dispatch message
WARNING_STATES = (EscalationState.RETRACTED, EscalationState.FALSE_REPORT)
ESCALATING_STATES = (
    EscalationState.PENDING,
    EscalationState.RETRACTED,
    EscalationState.REACTIVATED_CASE,
)


class TriageOrchestrator:
    """Turns caller utterances into dispatch verdicts, one caller turn at a time"""

    def __init__(self, settings: Optional[Settings] = None,
                 store: Optional[SessionStore] = None,
                 reply_agent: Optional[ReplyAgent] = None,
                 rules: Optional[RuleBook] = None):
        self.settings = settings or get_settings()
        self.store = store or InMemorySessionStore()
        self.rules = rules or default_rulebook()

        self.scorer = ThreatScorer(self.rules)
        self.extractor = InfoExtractor(self.rules)
        self.crank_detector = CrankDetector(self.rules)
        self.assessor = SeverityAssessor(self.rules)
        self.escalation = EscalationStateMachine(self.rules)
        self.intents = IntentClassifier(self.rules)
        self.reply_agent = reply_agent or ReplyAgent(self.settings)

        self.is_running = False
        self._sweep_task: Optional[asyncio.Task] = None

    # --- LIFECYCLE ---
    async def start(self):
        self.is_running = True
        self._sweep_task = asyncio.create_task(self._sweep_loop())
        logger.info("🚀 Triage orchestrator started (idle timeout %ss)", self.settings.idle_timeout)

    async def stop(self):
        self.is_running = False
        if self._sweep_task:
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None

    async def _sweep_loop(self):
        while self.is_running:
            await asyncio.sleep(self.settings.sweep_interval)
            await self.cleanup_idle_sessions()

    # --- SESSION OPERATIONS ---
    async def get_session(self, caller_id: str) -> Optional[CallerSession]:
        """Detached copy of the caller's session, or None"""
        session = await self.store.get(caller_id)
        return session.model_copy(deep=True) if session else None

    async def reset_session(self, caller_id: str) -> bool:
        async with self.store.lock(caller_id):
            removed = await self.store.delete(caller_id)
        if removed:
            logger.info("♻️ Session reset: %s", caller_id)
        return removed

    async def cleanup_idle_sessions(self) -> int:
        removed = await self.store.sweep(self.settings.idle_timeout)
        if removed:
            logger.info("🧹 Cleaned up %s idle session(s)", removed)
        return removed

    # --- TURN HANDLING ---
    async def process_turn(self, caller_id: str, text: Optional[str]) -> TurnResult:
        """
        Run one caller utterance through the triage pipeline.

        Args:
            caller_id: opaque caller key
            text: raw utterance, may be empty

        Returns:
            TurnResult verdict for the host
        """
        utterance = text.strip() if isinstance(text, str) else ""

        async with self.store.lock(caller_id):
            session = await self.store.get_or_create(caller_id)
            now = self.store.now()

            if not utterance:
                return await self._no_signal_turn(session)

            history = session.caller_history()

            crank = self.crank_detector.analyze(utterance, history)
            if crank.is_crank:
                self.crank_detector.log_crank_call(caller_id, utterance, crank)
            if crank.escalate_to_admin and session.escalation.level == EscalationState.NONE:
                return await self._blocked_turn(session, utterance, crank, now)

            assessment = self.assessor.assess(utterance, history)
            escalation = self.escalation.advance(session.escalation, utterance, now)

            self._update_threat(session, utterance)
            self.extractor.merge(session.critical_info, self.extractor.extract(utterance))
            session.escalation_level = self._escalation_level(session, len(history) + 1)

            # a retraction outranks any threat words in the same sentence
            withheld = escalation.should_block or escalation.state == EscalationState.RETRACTED
            should_dispatch = not withheld and (
                assessment.immediate_dispatch
                or assessment.severity_score >= SEVERITY_REPLY_THRESHOLD
                or escalation.route_to_responder
            )
            newly_dispatched = should_dispatch and not session.dispatched
            session.dispatched = should_dispatch

            draft = self._compose_reply(session, utterance, assessment, escalation, should_dispatch)
            reply = await self.reply_agent.rephrase(draft, utterance)

            summary = None
            if newly_dispatched:
                summary = build_dispatch_summary(session, assessment)
                logger.info("🚑 Dispatch authorized for %s (%s, severity %s)",
                            caller_id, assessment.category.value, assessment.severity_score)

            session.add_turn(utterance, reply, now)
            await self.store.upsert(session)

            return TurnResult(
                caller_id=caller_id,
                reply_text=reply,
                should_dispatch=should_dispatch,
                escalation_level=self._label(session, escalation, should_dispatch),
                dispatch_summary=summary,
                crank_detected=crank.is_crank,
                escalate_to_admin=crank.escalate_to_admin or escalation.should_block,
                incident_code=escalation.incident_code,
                severity_score=enforce_range(assessment.severity_score, 0.0, 10.0, "severity_score",
                                             self.settings.strict_invariants, caller_id),
                category=assessment.category,
                escalation_state=escalation.label,
                responder_notice=escalation.responder_notice,
                crank_confidence=crank.confidence,
                crank_indicators=list(crank.indicators),
                threat_score=session.threat_score,
                missing_info=session.critical_info.missing_fields(),
                required_units=list(assessment.required_units),
            )

    async def _no_signal_turn(self, session: CallerSession) -> TurnResult:
        session.last_update = self.store.now()
        await self.store.upsert(session)
        reply = ACKNOWLEDGEMENTS[CallerIntent.NOISE.value] if session.conversation_history \
            else FOLLOW_UP_PROMPTS["opening"]
        return TurnResult(
            caller_id=session.caller_id,
            reply_text=reply,
            escalation_level=self._label(session, self.escalation.respond(session.escalation), False),
            escalation_state=session.escalation.level,
            threat_score=session.threat_score,
            missing_info=session.critical_info.missing_fields(),
        )

    async def _blocked_turn(self, session: CallerSession, utterance: str,
                            crank: CrankAnalysis, now: datetime) -> TurnResult:
        session.crank_flagged = True
        session.dispatched = False
        session.add_turn(utterance, crank.warning_message, now)
        await self.store.upsert(session)
        return TurnResult(
            caller_id=session.caller_id,
            reply_text=crank.warning_message,
            should_dispatch=False,
            escalation_level=EscalationLabel.INITIAL,
            crank_detected=True,
            escalate_to_admin=True,
            incident_code=crank.incident_code,
            escalation_state=session.escalation.level,
            responder_notice="🚫 Crank call blocked, supervisor review required.",
            crank_confidence=crank.confidence,
            crank_indicators=list(crank.indicators),
            threat_score=session.threat_score,
            missing_info=session.critical_info.missing_fields(),
        )

    # --- HELPERS ---
    def _update_threat(self, session: CallerSession, utterance: str):
        keywords, score = self.scorer.score(utterance)
        session.mentioned_keywords.update(keywords)
        session.threat_score = enforce_range(
            min(session.threat_score + score, MAX_THREAT_SCORE), 0, MAX_THREAT_SCORE,
            "threat_score", self.settings.strict_invariants, session.caller_id,
        )
        session.active_threats.update(self.escalation.signals(utterance).threats)

    def _escalation_level(self, session: CallerSession, turns: int) -> int:
        level = session.threat_score // 20
        if turns >= 3 and session.threat_score > 0:
            level += 1
        return enforce_range(min(level, MAX_ESCALATION_LEVEL), 0, MAX_ESCALATION_LEVEL,
                             "escalation_level", self.settings.strict_invariants, session.caller_id)

    def _compose_reply(self, session: CallerSession, utterance: str,
                       assessment: SeverityAssessment, escalation: EscalationResult,
                       should_dispatch: bool) -> str:
        if escalation.state in WARNING_STATES:
            return escalation.reply_text

        if assessment.severity_score >= SEVERITY_REPLY_THRESHOLD:
            reply = SEVERITY_REPLIES[assessment.category.value]
        elif escalation.state != EscalationState.NONE:
            reply = escalation.reply_text
        else:
            reply = self._fallback_probe(session, utterance)

        if should_dispatch and "location" in session.critical_info.missing_fields():
            reply = f"{reply} {LOCATION_DEMAND}"
        return reply

    def _fallback_probe(self, session: CallerSession, utterance: str) -> str:
        intent = self.intents.classify(utterance)
        if intent != CallerIntent.EMERGENCY:
            return ACKNOWLEDGEMENTS[intent.value]

        missing = session.critical_info.missing_fields()
        if {"location", "nature of emergency"} <= set(missing):
            return FOLLOW_UP_PROMPTS["opening"]
        if missing:
            return FOLLOW_UP_PROMPTS[missing[0]]
        return FOLLOW_UP_PROMPTS["details"]

    def _label(self, session: CallerSession, escalation: EscalationResult,
               should_dispatch: bool) -> EscalationLabel:
        if should_dispatch:
            return EscalationLabel.DISPATCHED
        if escalation.should_block:
            return EscalationLabel.INITIAL
        if escalation.state in ESCALATING_STATES or session.threat_score >= ESCALATING_THREAT:
            return EscalationLabel.ESCALATING
        if session.threat_score >= GATHERING_THREAT:
            return EscalationLabel.GATHERING
        return EscalationLabel.INITIAL

