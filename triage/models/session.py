from datetime import datetime
from typing import Optional, List, Set
from pydantic import BaseModel, Field

from .enums import EscalationState

class CriticalInfo(BaseModel):
    location: Optional[str] = None
    exact_address: Optional[str] = None
    incident_type: Optional[str] = None
    number_of_victims: Optional[int] = None
    current_condition: Optional[str] = None
    caller_relation: Optional[str] = None
    responder_needed: Optional[str] = None
    immediate_actions: List[str] = Field(default_factory=list)
    hazards: List[str] = Field(default_factory=list)
    access_instructions: Optional[str] = None

    def missing_fields(self) -> List[str]:
        """Critical details still unknown, most urgent first"""
        missing = []
        if not self.location and not self.exact_address:
            missing.append("location")
        if not self.incident_type:
            missing.append("nature of emergency")
        if not self.number_of_victims:
            missing.append("number of people involved")
        if not self.current_condition:
            missing.append("victim condition")
        return missing

class ConversationTurn(BaseModel):
    caller: str
    operator: str
    timestamp: datetime = Field(default_factory=datetime.now)

class EscalationSession(BaseModel):
    level: EscalationState = EscalationState.NONE
    confirmed_threats: Set[str] = Field(default_factory=set)
    retraction_flag: bool = False
    retraction_confirmed: bool = False
    conversation_turns: int = 0

    # Recovery bookkeeping
    reactivated: bool = False
    recovered_from_misflag: bool = False
    recovery_attempts: int = 0
    flagged_messages: List[str] = Field(default_factory=list)
    original_description: Optional[str] = None
    initial_threat_at: Optional[datetime] = None

class CallerSession(BaseModel):
    caller_id: str

    # Lexical accumulation
    threat_score: int = 0
    mentioned_keywords: Set[str] = Field(default_factory=set)
    escalation_level: int = 0
    active_threats: Set[str] = Field(default_factory=set)

    conversation_history: List[ConversationTurn] = Field(default_factory=list)
    critical_info: CriticalInfo = Field(default_factory=CriticalInfo)
    escalation: EscalationSession = Field(default_factory=EscalationSession)

    # Verdict bookkeeping
    dispatched: bool = False
    crank_flagged: bool = False

    created_at: datetime = Field(default_factory=datetime.now)
    last_update: datetime = Field(default_factory=datetime.now)

    def caller_history(self) -> List[str]:
        return [turn.caller for turn in self.conversation_history]

    def add_turn(self, caller_text: str, operator_text: str, now: datetime):
        self.conversation_history.append(
            ConversationTurn(caller=caller_text, operator=operator_text, timestamp=now)
        )
        self.last_update = now
