import asyncio
import logging
from typing import Any, Optional

from groq import AsyncGroq

from triage.agents.prompts import OPERATOR_PHRASING_PROMPT
from triage.config import Settings

logger = logging.getLogger(__name__)


class ReplyAgent:
    """
    Optional LLM voice for the operator.

    The triage engine always decides the reply first; this agent may only
    rephrase it. Any failure or timeout returns the rule text unchanged.
    """

    def __init__(self, settings: Settings, client: Optional[Any] = None):
        self.model = settings.groq_model
        self.timeout = settings.phrasing_timeout

        if client is not None:
            self.client = client
        elif settings.phrasing_enabled and settings.groq_api_key:
            self.client = AsyncGroq(api_key=settings.groq_api_key)
            logger.info("🤖 Reply agent connected to Groq (%s)", self.model)
        else:
            self.client = None
            logger.info("⚠️ Reply agent in rule-text mode (no Groq key or phrasing disabled)")

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def rephrase(self, draft: str, caller_text: str = "") -> str:
        if not self.client or not draft:
            return draft

        messages = [
            {"role": "system", "content": OPERATOR_PHRASING_PROMPT},
            {"role": "user", "content": f"CALLER SAID: {caller_text}\nDRAFT: {draft}\n\nREPHRASED:"},
        ]
        try:
            completion = await asyncio.wait_for(
                self.client.chat.completions.create(
                    messages=messages,
                    model=self.model,
                    temperature=0.3,
                    max_tokens=160,
                ),
                timeout=self.timeout,
            )
            text = (completion.choices[0].message.content or "").strip()
        except asyncio.TimeoutError:
            logger.warning("⏱️ Phrasing timed out after %ss, using rule text", self.timeout)
            return draft
        except Exception as e:
            logger.warning("❌ Phrasing failed (%s), using rule text", e)
            return draft

        return text or draft
