from enum import Enum

class EscalationState(str, Enum):
    NONE = "none"
    PENDING = "pending"
    ACTIVE = "active"
    RETRACTED = "retracted"
    FALSE_REPORT = "false_report"
    REACTIVATED_CASE = "reactivated_case"

class EscalationLabel(str, Enum):
    """Externally visible progress of a call"""
    INITIAL = "initial"
    GATHERING = "gathering"
    ESCALATING = "escalating"
    DISPATCHED = "dispatched"

class SeverityCategory(str, Enum):
    CATASTROPHIC = "CATASTROPHIC"
    CRITICAL = "CRITICAL"
    MAJOR = "MAJOR"
    MODERATE = "MODERATE"
    MINOR = "MINOR"

class DispatchLevel(str, Enum):
    MASS_CASUALTY = "MASS_CASUALTY"
    FULL_RESPONSE = "FULL_RESPONSE"
    MULTI_UNIT = "MULTI_UNIT"
    SINGLE_UNIT = "SINGLE_UNIT"

class CallerIntent(str, Enum):
    EMERGENCY = "emergency"
    GREETING = "greeting"
    NOISE = "noise"
    UNKNOWN = "unknown"

class IncidentCode(str, Enum):
    FALSE_EMERGENCY = "FALSE_EMERGENCY"
    FALSE_EMERGENCY_CONFIRMED = "FALSE_EMERGENCY_CONFIRMED"
    REACTIVATED_CASE_UNDER_REVIEW = "REACTIVATED_CASE_UNDER_REVIEW"
