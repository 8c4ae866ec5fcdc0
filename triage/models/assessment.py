from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field

from .enums import (
    DispatchLevel,
    EscalationLabel,
    EscalationState,
    SeverityCategory,
)

class SeverityAssessment(BaseModel):
    model_config = ConfigDict(frozen=True)

    severity_score: float = 0.0
    category: SeverityCategory = SeverityCategory.MINOR
    immediate_dispatch: bool = False
    dispatch_level: DispatchLevel = DispatchLevel.SINGLE_UNIT
    time_to_dispatch: int = 300  # seconds
    required_units: List[str] = Field(default_factory=list)
    reasoning: List[str] = Field(default_factory=list)
    victim_count: int = 1
    panic_level: int = 1

class CrankAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_crank: bool = False
    confidence: int = 0
    raw_score: int = 0
    indicators: List[str] = Field(default_factory=list)
    warning_message: Optional[str] = None
    escalate_to_admin: bool = False
    incident_code: Optional[str] = None

class EscalationResult(BaseModel):
    reply_text: str
    state: EscalationState
    label: EscalationState
    route_to_responder: bool = False
    notify_responder: bool = False
    responder_notice: str = ""
    incident_code: Optional[str] = None
    should_block: bool = False

class TurnResult(BaseModel):
    """Verdict returned to the host for a single caller turn"""
    caller_id: str
    reply_text: str
    should_dispatch: bool = False
    escalation_level: EscalationLabel = EscalationLabel.INITIAL
    dispatch_summary: Optional[str] = None
    crank_detected: bool = False
    escalate_to_admin: bool = False
    incident_code: Optional[str] = None
    severity_score: float = 0.0
    category: SeverityCategory = SeverityCategory.MINOR

    # Audit trail
    escalation_state: EscalationState = EscalationState.NONE
    responder_notice: str = ""
    crank_confidence: int = 0
    crank_indicators: List[str] = Field(default_factory=list)
    threat_score: int = 0
    missing_info: List[str] = Field(default_factory=list)
    required_units: List[str] = Field(default_factory=list)
