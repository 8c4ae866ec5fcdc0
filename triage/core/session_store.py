"""
Per-caller session storage.

The orchestrator only talks to the abstract ``SessionStore``; the in-memory
implementation below keeps one ``asyncio.Lock`` per caller so turns from
different callers never wait on each other. Swap in another backend by
implementing the same interface.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import AsyncIterator, Callable, Dict, Optional

from triage.models.session import CallerSession

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class SessionStore(ABC):

    def now(self) -> datetime:
        return datetime.now()

    @abstractmethod
    def lock(self, caller_id: str):
        """Async context manager serializing all work on one caller"""

    @abstractmethod
    async def get(self, caller_id: str) -> Optional[CallerSession]:
        ...

    @abstractmethod
    async def get_or_create(self, caller_id: str) -> CallerSession:
        ...

    @abstractmethod
    async def upsert(self, session: CallerSession):
        ...

    @abstractmethod
    async def delete(self, caller_id: str) -> bool:
        ...

    @abstractmethod
    async def sweep(self, idle_timeout: float) -> int:
        """Evict sessions idle for longer than idle_timeout seconds"""


class InMemorySessionStore(SessionStore):
    """Volatile store. Sessions vanish on restart by design of the service."""

    def __init__(self, clock: Clock = datetime.now):
        self.clock = clock
        self._sessions: Dict[str, CallerSession] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def now(self) -> datetime:
        return self.clock()

    def is_busy(self, caller_id: str) -> bool:
        return self._lock_users.get(caller_id, 0) > 0

    @asynccontextmanager
    async def lock(self, caller_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(caller_id, asyncio.Lock())
        self._lock_users[caller_id] = self._lock_users.get(caller_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[caller_id] -= 1
            # drop the lock once nobody holds or waits on it
            if not self._lock_users[caller_id]:
                del self._lock_users[caller_id]
                self._locks.pop(caller_id, None)

    async def get(self, caller_id: str) -> Optional[CallerSession]:
        return self._sessions.get(caller_id)

    async def get_or_create(self, caller_id: str) -> CallerSession:
        session = self._sessions.get(caller_id)
        if session is None:
            now = self.now()
            session = CallerSession(caller_id=caller_id, created_at=now, last_update=now)
            self._sessions[caller_id] = session
            logger.info("📞 New caller session: %s", caller_id)
        return session

    async def upsert(self, session: CallerSession):
        self._sessions[session.caller_id] = session

    async def delete(self, caller_id: str) -> bool:
        return self._sessions.pop(caller_id, None) is not None

    async def sweep(self, idle_timeout: float) -> int:
        cutoff = timedelta(seconds=idle_timeout)
        removed = 0

        for caller_id in list(self._sessions):
            # a turn in flight will refresh last_update anyway
            if self.is_busy(caller_id):
                continue
            async with self.lock(caller_id):
                session = self._sessions.get(caller_id)
                if session is None or self.now() - session.last_update <= cutoff:
                    continue
                del self._sessions[caller_id]
                removed += 1
                logger.info("🧹 Evicted idle session: %s", caller_id)

        return removed
