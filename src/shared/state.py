import threading
import time
from collections import OrderedDict
from typing import Callable, Dict, List, Optional

from src.shared import settings
from src.shared.logging_utils import info as log_info
from src.shared.session import ListingSession
from src.specs.common.errors import ResourceNotFoundError

# Sessions live in process memory only. A restart or a scale-out to another
# worker starts every merchant from an empty session. The store is bounded:
# sessions idle longer than MERCHANTAI_SESSION_TTL are dropped, and beyond
# MERCHANTAI_MAX_SESSIONS the least recently used one goes first.

SessionFactory = Callable[[Optional[str]], ListingSession]


def _default_factory(session_id: Optional[str]) -> ListingSession:
    return ListingSession(session_id=session_id) if session_id else ListingSession()


class _MemorySessionStore:
    def __init__(self, factory: SessionFactory = _default_factory, clock: Callable[[], float] = time.monotonic) -> None:
        # ordered oldest-used first
        self._sessions: "OrderedDict[str, ListingSession]" = OrderedDict()
        self._last_used: Dict[str, float] = {}
        self._lock = threading.Lock()
        self.factory = factory
        self.clock = clock

    def create(self, session_id: Optional[str] = None) -> ListingSession:
        session = self.factory(session_id)
        with self._lock:
            self._put(session.session_id, session)
            evicted = self._evict()
        log_info(session.session_id, "session_store:created")
        self._log_evicted(evicted)
        return session

    def get(self, session_id: str) -> ListingSession:
        with self._lock:
            evicted = self._evict()
            session = self._sessions.get(session_id)
            if session is not None:
                self._touch(session_id)
        self._log_evicted(evicted)
        if session is None:
            raise ResourceNotFoundError("Session", session_id)
        return session

    def get_or_create(self, session_id: Optional[str]) -> ListingSession:
        if not session_id:
            return self.create()
        created = False
        with self._lock:
            evicted = self._evict()
            session = self._sessions.get(session_id)
            if session is not None:
                self._touch(session_id)
            else:
                session = self.factory(session_id)
                self._put(session_id, session)
                evicted += self._evict()
                created = True
        if created:
            log_info(session_id, "session_store:created")
        self._log_evicted(evicted)
        return session

    def discard(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)
            self._last_used.pop(session_id, None)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()
            self._last_used.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions

    # callers hold self._lock
    def _put(self, session_id: str, session: ListingSession) -> None:
        self._sessions[session_id] = session
        self._touch(session_id)

    def _touch(self, session_id: str) -> None:
        self._sessions.move_to_end(session_id)
        self._last_used[session_id] = self.clock()

    def _evict(self) -> List[str]:
        evicted: List[str] = []
        ttl = settings.session_idle_ttl()
        now = self.clock()
        while self._sessions:
            oldest = next(iter(self._sessions))
            if ttl > 0 and now - self._last_used[oldest] > ttl:
                evicted.append(oldest)
                self._sessions.popitem(last=False)
                self._last_used.pop(oldest, None)
            else:
                break
        limit = settings.max_sessions()
        while limit > 0 and len(self._sessions) > limit:
            oldest, _ = self._sessions.popitem(last=False)
            self._last_used.pop(oldest, None)
            evicted.append(oldest)
        return evicted

    def _log_evicted(self, evicted: List[str]) -> None:
        for session_id in evicted:
            log_info(session_id, "session_store:evicted")


SessionStore = _MemorySessionStore()
