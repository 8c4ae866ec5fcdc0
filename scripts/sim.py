"""Replay scripted callers through the triage engine, all at once, in-process."""
import asyncio
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from triage.config import get_settings
from triage.core.orchestrator import TriageOrchestrator

# Color codes for terminal output
RED = '\033[91m'
GREEN = '\033[92m'
YELLOW = '\033[93m'
CYAN = '\033[96m'
RESET = '\033[0m'

SCENARIOS = {
    "+27-555-0100": [
        "Someone is drowning, not moving, at Camps Bay",
        "My friend is pulling him out, near the rocks on the north side",
    ],
    "+27-555-0200": [
        "there's a unicorn attacking my house, lol just kidding",
    ],
    "+27-555-0300": [
        "I think there might be a fire",
        "yes there's definitely a fire, people trapped",
    ],
    "+27-555-0400": [
        "shark attack, blood in the water",
        "just kidding, haha",
        "lol it was a prank",
        "sorry I was wrong, please help, the shark attack is real",
    ],
    "+27-555-0500": [
        "hello?",
        "",
        "my car fell off the jack and my dad is stuck under it at 12 Beach Road",
    ],
}

def print_banner():
    print(f"{RED}================================================={RESET}")
    print(f"{RED}   🚨 TRIAGE ENGINE SIMULATION STARTED 🚨        {RESET}")
    print(f"{RED}================================================={RESET}")

async def simulate_caller(orchestrator: TriageOrchestrator, phone: str, messages, delay: float = 0):
    """Simulates a single caller interaction"""
    await asyncio.sleep(delay)
    print(f"📞 {CYAN}Incoming Call{RESET} from {phone}")

    for msg in messages:
        await asyncio.sleep(0.2)  # Simulate speaking time
        result = await orchestrator.process_turn(phone, msg)

        color = RED if result.should_dispatch else (YELLOW if result.escalate_to_admin else GREEN)
        print(f"{CYAN}{phone}{RESET} 🗣️  {msg!r}")
        print(f"{color}   ↳ [{result.escalation_level.value} | {result.escalation_state.value} | "
              f"severity {result.severity_score} {result.category.value} | "
              f"dispatch={result.should_dispatch} admin={result.escalate_to_admin} "
              f"code={result.incident_code}]{RESET}")
        print(f"   🤖 {result.reply_text}")
        if result.dispatch_summary:
            print(f"{RED}{result.dispatch_summary}{RESET}")

async def run_simulation():
    print_banner()
    logging.basicConfig(level=logging.WARNING)

    orchestrator = TriageOrchestrator(settings=get_settings())
    await asyncio.gather(*[
        simulate_caller(orchestrator, phone, messages, delay=i * 0.1)
        for i, (phone, messages) in enumerate(SCENARIOS.items())
    ])

    print(f"\n{YELLOW}⚡ All calls placed. Final session state...{RESET}\n")
    print(f"{'CALLER':<15} | {'THREAT':<6} | {'STATE':<16} | {'LOCATION'}")
    print("-" * 70)
    for phone in SCENARIOS:
        session = await orchestrator.get_session(phone)
        if not session:
            continue
        row_color = RED if session.threat_score >= 60 else (YELLOW if session.threat_score >= 20 else RESET)
        print(f"{row_color}{phone:<15} | {session.threat_score:<6} | "
              f"{session.escalation.level.value:<16} | {session.critical_info.location or 'Unknown'}{RESET}")

if __name__ == "__main__":
    asyncio.run(run_simulation())
