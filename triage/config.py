import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    groq_api_key: Optional[str]
    groq_model: str
    phrasing_enabled: bool
    phrasing_timeout: float
    idle_timeout: float
    sweep_interval: float
    strict_invariants: bool
    log_level: str
    host: str
    port: int


def get_settings() -> Settings:
    load_dotenv(override=False)
    return Settings(
        groq_api_key=os.getenv("GROQ_API_KEY"),
        groq_model=os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile"),
        phrasing_enabled=_flag("TRIAGE_PHRASING_ENABLED", "true"),
        phrasing_timeout=float(os.getenv("TRIAGE_PHRASING_TIMEOUT", "2.0")),
        idle_timeout=float(os.getenv("TRIAGE_IDLE_TIMEOUT", "300")),
        sweep_interval=float(os.getenv("TRIAGE_SWEEP_INTERVAL", "60")),
        strict_invariants=_flag("TRIAGE_STRICT_INVARIANTS"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )
