OPERATOR_PHRASING_PROMPT = """You are the voice of an emergency call-taker. You are given a DRAFT reply that
has already been decided by the triage engine. Your only job is to rephrase it so
it sounds calm and human.

RULES:
- Keep every fact, instruction and question from the draft
- Never add new questions, promises or response times
- Never say help is coming unless the draft says so
- Never soften or remove a legal warning
- Maximum 2 short sentences more than the draft
- Reply with the rephrased text only
"""

# Generic probes, keyed by the next missing piece of critical info
FOLLOW_UP_PROMPTS = {
    "opening": "911 Emergency - What is your exact location and what is the emergency?",
    "location": "What is your exact location? Tell me the beach or street, the section, and the nearest landmark.",
    "nature of emergency": "What is the emergency? What exactly is happening?",
    "number of people involved": "How many people are involved?",
    "victim condition": "Tell me exactly what you're seeing right now - are they conscious, moving, responding to you?",
    "details": "I'm coordinating a response. Is anyone in immediate danger? Are there any hazards responders should know about?",
}

ACKNOWLEDGEMENTS = {
    "greeting": "Yes, I hear you. Please describe your emergency.",
    "noise": "I'm having trouble hearing you. Please repeat that clearly.",
    "unknown": "Got it. Please share more details about what is happening.",
}

# Location is the one detail dispatch cannot proceed without
LOCATION_DEMAND = "I need your EXACT LOCATION immediately - what beach, what street, nearest landmark?"

SEVERITY_REPLIES = {
    "CATASTROPHIC": (
        "EMERGENCY CONFIRMED - CATASTROPHIC LEVEL. Multiple emergency units dispatched immediately. "
        "EVACUATE THE AREA if safe to do so. Stay on the line for continuous updates."
    ),
    "CRITICAL": (
        "CRITICAL EMERGENCY CONFIRMED. Emergency services dispatched with highest priority. "
        "Stay exactly where you are and remain on the line. How many people need immediate medical attention?"
    ),
    "MAJOR": (
        "MAJOR EMERGENCY - Units dispatched. Keep a safe distance and stay on the line. "
        "Describe any changes in the situation."
    ),
    "MODERATE": (
        "Help is being arranged. Stay on the line. Can you describe the injuries or damage in more detail?"
    ),
    "MINOR": (
        "I'm assessing your situation. Please describe exactly what is happening."
    ),
}

ESCALATION_REPLIES = {
    "pending": "Emergency confirmed. Stay on the line. Please describe exactly what you're seeing now.",
    "active": (
        "EMERGENCY CONFIRMED. Units are being dispatched. Stay on the line. "
        "How many people are involved? Are they conscious and responding?"
    ),
    "retracted": (
        "⚠️ WARNING: Your statements contradict your earlier emergency report. "
        "Please clarify immediately - is this a real emergency or not?"
    ),
    "reactivated": (
        "⚠️ Emergency session reactivated based on updated information. Please reconfirm: "
        "Where is the incident happening now? Describe the current situation."
    ),
    "recovered": (
        "We have reassessed your report based on your clarification. Emergency dispatch has resumed. "
        "Stay on the line and tell me exactly where you are."
    ),
    "false_report": (
        "🚨 You are now flagged for false emergency reporting. This is a criminal offense punishable by law. "
        "Your call details and device information have been logged for investigation."
    ),
    "false_report_final": (
        "Your actions have been logged and forwarded to authorities. "
        "Misuse of emergency services is a serious offense."
    ),
    "none": "Please describe the emergency situation in detail. What exactly is happening?",
}
