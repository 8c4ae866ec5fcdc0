import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from triage.api.routes import calls
from triage.config import Settings, get_settings
from triage.core.orchestrator import TriageOrchestrator

logger = logging.getLogger(__name__)


def create_app(orchestrator: Optional[TriageOrchestrator] = None,
               settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    orchestrator = orchestrator or TriageOrchestrator(settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await orchestrator.start()
        yield
        await orchestrator.stop()
        logger.info("🛑 Triage orchestrator stopped")

    app = FastAPI(title="Emergency Triage API", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- LINK ORCHESTRATOR TO ROUTES ---
    calls.set_orchestrator(orchestrator)
    app.include_router(calls.router)
    app.state.orchestrator = orchestrator

    @app.get("/health")
    async def health():
        return {"status": "ok", "phrasing": orchestrator.reply_agent.enabled}

    return app


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(create_app(settings=settings), host=settings.host, port=settings.port)
