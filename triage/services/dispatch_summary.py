from typing import List

from triage.models.assessment import SeverityAssessment
from triage.models.session import CallerSession


def threat_level_label(threat_score: int) -> str:
    if threat_score >= 80:
        return "CRITICAL"
    if threat_score >= 60:
        return "HIGH"
    return "ELEVATED"


def build_dispatch_summary(session: CallerSession, assessment: SeverityAssessment) -> str:
    """Responder briefing, built from what the caller has told us so far"""
    info = session.critical_info
    location = info.location or "Unknown - CRITICAL"
    if info.exact_address:
        location = f"{location} / {info.exact_address}" if info.location else info.exact_address

    lines: List[str] = [
        "🚨 EMERGENCY DISPATCH SUMMARY 🚨",
        "",
        f"📍 LOCATION: {location}",
        f"⚠️ INCIDENT TYPE: {info.incident_type or 'Under assessment'}",
        f"👥 VICTIMS: {info.number_of_victims or 'Unknown'}",
        f"🩺 CONDITION: {info.current_condition or 'Unknown'}",
        f"🚑 RESPONSE UNITS: {info.responder_needed or 'Multi-unit response'}",
        f"⛔ HAZARDS: {', '.join(info.hazards) or 'Standard precautions'}",
        f"📞 CALLER: {info.caller_relation or 'Unknown relation'}",
    ]

    if info.immediate_actions:
        lines.append(f"🤝 ACTIONS ON SCENE: {', '.join(info.immediate_actions)}")
    if info.access_instructions:
        lines.append(f"🚪 ACCESS: {info.access_instructions}")

    lines += [
        f"🔑 KEYWORDS: {', '.join(sorted(session.mentioned_keywords)) or 'None'}",
        f"📊 THREAT LEVEL: {session.threat_score}% - {threat_level_label(session.threat_score)}",
        f"🏷️ SEVERITY: {assessment.severity_score}/10 {assessment.category.value} ({assessment.dispatch_level.value})",
    ]
    if assessment.required_units:
        lines.append(f"🚒 REQUIRED UNITS: {', '.join(assessment.required_units)}")
    if assessment.reasoning:
        lines.append("🧾 REASONING:")
        lines += [f"  - {reason}" for reason in assessment.reasoning]

    missing = info.missing_fields()
    if missing:
        lines.append(f"❓ STILL MISSING: {', '.join(missing)}")

    lines += ["", "📡 ONGOING COMMUNICATION: Caller remains on line for updates."]
    return "\n".join(lines)
