from fastapi import APIRouter, HTTPException
from pydantic import BaseModel
from typing import Optional

from triage.core.orchestrator import TriageOrchestrator
from triage.models.assessment import TurnResult

router = APIRouter(prefix="/api/calls", tags=["calls"])

class TurnRequest(BaseModel):
    text: str = ""

# This will be set by main.py
orchestrator: Optional[TriageOrchestrator] = None

def set_orchestrator(orch: TriageOrchestrator):
    """Set the orchestrator instance"""
    global orchestrator
    orchestrator = orch

def _require_orchestrator() -> TriageOrchestrator:
    if not orchestrator:
        raise HTTPException(status_code=500, detail="Orchestrator not initialized")
    return orchestrator

@router.post("/cleanup")
async def cleanup_sessions():
    """Evict idle sessions now instead of waiting for the timer"""
    removed = await _require_orchestrator().cleanup_idle_sessions()
    return {"removed": removed}

@router.post("/{caller_id}/turns", response_model=TurnResult)
async def submit_turn(caller_id: str, request: TurnRequest):
    """
    Submit one caller utterance

    Returns the triage verdict for this turn
    """
    return await _require_orchestrator().process_turn(caller_id, request.text)

@router.get("/{caller_id}")
async def get_session(caller_id: str):
    """Get the caller's current session state"""
    session = await _require_orchestrator().get_session(caller_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session.model_dump(mode='json')

@router.delete("/{caller_id}")
async def reset_session(caller_id: str):
    """Forget everything about a caller"""
    if not await _require_orchestrator().reset_session(caller_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return {"message": f"Session {caller_id} reset"}
