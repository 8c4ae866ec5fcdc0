import asyncio
from types import SimpleNamespace

import pytest

from conftest import FakeClock, make_orchestrator
from triage.agents.prompts import FOLLOW_UP_PROMPTS, SEVERITY_REPLIES
from triage.core.guards import InvariantViolation, enforce_range
from triage.models.enums import EscalationLabel, EscalationState, IncidentCode, SeverityCategory
from triage.services.crank_detector import CRIMINAL_WARNING


class FakeGroq:
    """Stands in for AsyncGroq's chat.completions surface"""

    def __init__(self, reply="Rephrased.", error=None, delay=0.0, gate=None):
        self.reply = reply
        self.error = error
        self.delay = delay
        self.gate = gate
        self.calls = 0
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self.create))

    async def create(self, **kwargs):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=self.reply))])


def turns(orchestrator, caller_id, *utterances):
    async def _run():
        return [await orchestrator.process_turn(caller_id, text) for text in utterances]
    return asyncio.run(_run())


# --- REFERENCE SCENARIOS ---

def test_clear_drowning_report_dispatches_immediately(orchestrator):
    [result] = turns(orchestrator, "c1", "Someone is drowning, not moving, at Camps Bay")

    assert result.should_dispatch
    assert result.category == SeverityCategory.CRITICAL
    assert result.severity_score == 7.0
    assert result.escalation_level == EscalationLabel.DISPATCHED
    assert result.reply_text == SEVERITY_REPLIES["CRITICAL"]
    assert result.dispatch_summary is not None
    assert "camps bay" in result.dispatch_summary
    assert "Water Rescue Emergency" in result.dispatch_summary
    assert "Unconscious/unresponsive" in result.dispatch_summary
    assert not result.crank_detected

    session = asyncio.run(orchestrator.get_session("c1"))
    assert session.critical_info.location == "camps bay"
    assert session.critical_info.incident_type == "Water Rescue Emergency"
    assert session.critical_info.current_condition == "Unconscious/unresponsive"
    assert session.threat_score == 60


def test_joke_report_is_blocked(orchestrator):
    [result] = turns(orchestrator, "c2", "there's a unicorn attacking my house, lol just kidding")

    assert result.crank_detected
    assert result.escalate_to_admin
    assert result.incident_code == IncidentCode.FALSE_EMERGENCY.value
    assert not result.should_dispatch
    assert result.reply_text == CRIMINAL_WARNING
    assert result.dispatch_summary is None

    session = asyncio.run(orchestrator.get_session("c2"))
    assert session.crank_flagged
    assert session.threat_score == 0
    assert len(session.conversation_history) == 1


def test_two_turn_escalation(orchestrator):
    first, second = turns(orchestrator, "c3",
                          "I think there might be a fire",
                          "yes there's definitely a fire, people trapped")

    assert not first.should_dispatch
    assert first.escalation_state == EscalationState.PENDING
    assert first.escalation_level == EscalationLabel.ESCALATING
    assert first.dispatch_summary is None

    assert second.should_dispatch
    assert second.escalation_state == EscalationState.ACTIVE
    assert second.severity_score == 7.8
    assert second.escalation_level == EscalationLabel.DISPATCHED
    assert second.dispatch_summary is not None


def test_retraction_after_threat(orchestrator):
    first, second = turns(orchestrator, "c4", "shark attack, blood in the water", "just kidding, haha")

    assert first.should_dispatch
    assert second.escalation_state == EscalationState.RETRACTED
    assert not second.should_dispatch
    assert "contradict" in second.reply_text
    assert second.crank_detected
    assert second.dispatch_summary is None


def test_second_retraction_blocks_and_flags_admin(orchestrator):
    *_, last = turns(orchestrator, "c5", "shark attack, blood in the water", "just kidding", "haha")

    assert last.escalation_state == EscalationState.FALSE_REPORT
    assert not last.should_dispatch
    assert last.escalate_to_admin
    assert last.incident_code == IncidentCode.FALSE_EMERGENCY.value
    assert last.escalation_level == EscalationLabel.INITIAL


def test_summary_only_when_dispatch_first_authorized(orchestrator):
    results = turns(orchestrator, "c6",
                    "Someone is drowning at Clifton",
                    "he is still drowning, please hurry")
    assert results[0].dispatch_summary is not None
    assert results[1].should_dispatch
    assert results[1].dispatch_summary is None


def test_location_demanded_when_dispatching_blind(orchestrator):
    [result] = turns(orchestrator, "c7", "my friend is drowning")
    assert result.should_dispatch
    assert "EXACT LOCATION" in result.reply_text
    assert "location" in result.missing_info


def test_retraction_naming_a_threat_still_withholds_dispatch(orchestrator):
    first, second = turns(orchestrator, "c13",
                          "help, I think something is wrong",
                          "just kidding, there is no shark attack")

    assert not first.should_dispatch
    assert second.escalation_state == EscalationState.RETRACTED
    assert not second.should_dispatch
    assert second.dispatch_summary is None
    assert second.escalation_level == EscalationLabel.ESCALATING
    assert "contradict" in second.reply_text

    session = asyncio.run(orchestrator.get_session("c13"))
    assert not session.dispatched


def test_victim_lying_down_is_still_dispatched(orchestrator):
    *_, last = turns(orchestrator, "c14",
                     "help there was a shark attack",
                     "he is lying on the sand bleeding",
                     "he is lying there unconscious, not breathing")

    assert last.escalation_state != EscalationState.FALSE_REPORT
    assert last.severity_score >= 7.0
    assert last.should_dispatch
    assert not last.escalate_to_admin


# --- EDGE CASES ---

@pytest.mark.parametrize("text", ["", "   ", None])
def test_empty_utterance_is_a_no_signal_turn(orchestrator, text):
    [result] = turns(orchestrator, "c8", text)

    assert result.reply_text == FOLLOW_UP_PROMPTS["opening"]
    assert not result.should_dispatch
    assert result.escalation_level == EscalationLabel.INITIAL

    session = asyncio.run(orchestrator.get_session("c8"))
    assert session.conversation_history == []
    assert session.escalation.conversation_turns == 0


def test_greeting_gets_acknowledged(orchestrator):
    [result] = turns(orchestrator, "c9", "hello?")
    assert result.reply_text == "Yes, I hear you. Please describe your emergency."
    assert result.escalation_level == EscalationLabel.INITIAL


def test_threat_score_never_decreases_and_stays_in_range(orchestrator):
    results = turns(orchestrator, "c10",
                    "help, shark attack",
                    "he is bleeding in the water",
                    "ok",
                    "trapped under the rocks, drowning")
    scores = [r.threat_score for r in results]
    assert scores == sorted(scores)
    assert all(0 <= s <= 100 for s in scores)

    session = asyncio.run(orchestrator.get_session("c10"))
    assert 0 <= session.escalation_level <= 5
    assert {"shark attack", "bleeding", "drowning"} <= session.mentioned_keywords
    assert {"shark", "help"} <= session.active_threats


# --- SESSION LIFECYCLE ---

def test_get_session_is_idempotent_and_detached(orchestrator):
    turns(orchestrator, "c11", "help, someone is drowning at muizenberg")

    first = asyncio.run(orchestrator.get_session("c11"))
    second = asyncio.run(orchestrator.get_session("c11"))
    assert first.model_dump() == second.model_dump()

    first.threat_score = 0
    first.conversation_history.clear()
    third = asyncio.run(orchestrator.get_session("c11"))
    assert third.model_dump() == second.model_dump()


def test_unknown_caller(orchestrator):
    assert asyncio.run(orchestrator.get_session("nobody")) is None
    assert asyncio.run(orchestrator.reset_session("nobody")) is False


def test_reset_clears_everything(orchestrator):
    turns(orchestrator, "c12", "shark attack at clifton")
    assert asyncio.run(orchestrator.reset_session("c12")) is True
    assert asyncio.run(orchestrator.get_session("c12")) is None

    [result] = turns(orchestrator, "c12", "hello?")
    assert result.threat_score == 0


def test_idle_sessions_are_evicted(clock):
    orchestrator = make_orchestrator(clock=clock)
    turns(orchestrator, "old", "help")
    clock.advance(200)
    turns(orchestrator, "fresh", "help")

    clock.advance(150)
    assert asyncio.run(orchestrator.cleanup_idle_sessions()) == 1
    assert asyncio.run(orchestrator.get_session("old")) is None
    assert asyncio.run(orchestrator.get_session("fresh")) is not None


# --- CONCURRENCY ---

def test_callers_are_independent():
    orchestrator = make_orchestrator()

    async def _run():
        return await asyncio.gather(
            orchestrator.process_turn("a", "there's a unicorn attacking my house, lol just kidding"),
            orchestrator.process_turn("b", "Someone is drowning, not moving, at Camps Bay"),
        )

    crank, genuine = asyncio.run(_run())
    assert crank.crank_detected and not crank.should_dispatch
    assert genuine.should_dispatch and not genuine.crank_detected


def test_turns_for_one_caller_are_serialized():
    orchestrator = make_orchestrator(client=FakeGroq(delay=0.01), phrasing_timeout=1.0)

    async def _run():
        await asyncio.gather(*[
            orchestrator.process_turn("same", f"help number {i}") for i in range(5)
        ])
        return await orchestrator.get_session("same")

    session = asyncio.run(_run())
    assert len(session.conversation_history) == 5
    assert session.escalation.conversation_turns == 5
    assert session.escalation.level == EscalationState.ACTIVE


def test_sweep_skips_caller_with_turn_in_flight():
    clock = FakeClock()

    async def _run():
        gate = asyncio.Event()
        orchestrator = make_orchestrator(clock=clock, client=FakeGroq(gate=gate), phrasing_timeout=5.0)
        await orchestrator.process_turn("busy", "")
        clock.advance(600)

        turn = asyncio.create_task(orchestrator.process_turn("busy", "help"))
        await asyncio.sleep(0)
        while not orchestrator.reply_agent.client.calls:
            await asyncio.sleep(0)

        removed = await orchestrator.cleanup_idle_sessions()
        gate.set()
        await turn
        return removed, await orchestrator.get_session("busy")

    removed, session = asyncio.run(_run())
    assert removed == 0
    assert session is not None
    assert len(session.conversation_history) == 1


# --- OPTIONAL PHRASING ---

def test_phrasing_replaces_reply_but_not_verdict():
    client = FakeGroq(reply="Stay calm, rescue teams are on the way. Stay on the line.")
    orchestrator = make_orchestrator(client=client)
    [result] = turns(orchestrator, "p1", "Someone is drowning, not moving, at Camps Bay")

    assert result.reply_text == client.reply
    assert result.should_dispatch
    assert client.calls == 1


@pytest.mark.parametrize("client", [
    FakeGroq(error=RuntimeError("service unavailable")),
    FakeGroq(delay=1.0),
    FakeGroq(reply=""),
])
def test_phrasing_failure_falls_back_to_rule_text(client):
    orchestrator = make_orchestrator(client=client, phrasing_timeout=0.05)
    [result] = turns(orchestrator, "p2", "Someone is drowning, not moving, at Camps Bay")

    assert result.reply_text == SEVERITY_REPLIES["CRITICAL"]
    assert result.should_dispatch


def test_blocked_reply_is_never_rephrased():
    client = FakeGroq()
    orchestrator = make_orchestrator(client=client)
    [result] = turns(orchestrator, "p3", "there's a unicorn attacking my house, lol just kidding")

    assert result.reply_text == CRIMINAL_WARNING
    assert client.calls == 0


# --- INVARIANT GUARDS ---

def test_strict_mode_raises_on_breach():
    with pytest.raises(InvariantViolation):
        enforce_range(120, 0, 100, "threat_score", strict=True)


def test_lenient_mode_clamps():
    assert enforce_range(120, 0, 100, "threat_score", strict=False) == 100
    assert enforce_range(-1.5, 0.0, 10.0, "severity_score", strict=False) == 0.0
    assert enforce_range(42, 0, 100, "threat_score", strict=True) == 42
