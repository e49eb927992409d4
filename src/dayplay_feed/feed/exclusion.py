"""
No-repeat bookkeeping for feed sessions.

The exclusion set is every listing the user has swiped (either direction)
plus every listing already served in the current session. It only grows:
ExclusionTracker.extend is the single way to add to it, and it returns a new
frozenset instead of mutating.

Sessions live in a backend keyed by session id. Only the in-memory backend
exists; sessions are lost on restart, which is acceptable because the swipe
log re-seeds the exclusion set on the next session.
"""

import time
import uuid
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, TypeVar, Union

from dayplay_feed.core.logging import get_logger
from dayplay_feed.feed.models import Listing, SwipeRecord


logger = get_logger(__name__)

L = TypeVar("L", bound=Listing)


class ExclusionTracker:
    """Pure helpers over frozen exclusion sets."""

    @staticmethod
    def seed(history: Iterable[Union[SwipeRecord, str]]) -> FrozenSet[str]:
        """
        All swiped listing ids, likes and passes alike.

        Accepts swipe records or bare listing ids, so callers can pass
        `SwipeLog.swiped_ids` (the full log) instead of a capped history.
        """
        return frozenset(s if isinstance(s, str) else s.listing_id for s in history)

    @staticmethod
    def extend(exclude: FrozenSet[str], new_ids: Iterable[str]) -> FrozenSet[str]:
        return exclude | frozenset(new_ids)

    @staticmethod
    def apply(candidates: Iterable[L], exclude: FrozenSet[str]) -> List[L]:
        if not exclude:
            return list(candidates)
        return [c for c in candidates if c.id not in exclude]


# =============================================================================
# Session State
# =============================================================================

@dataclass
class FeedSession:
    """
    Caller-owned feed session.

    `exclude_ids` is replaced, never mutated in place, and always through
    ExclusionTracker.extend.
    """
    session_id: str
    user_id: str
    exclude_ids: FrozenSet[str] = field(default_factory=frozenset)
    pages_served: int = 0
    served_count: int = 0
    created_at: float = field(default_factory=time.time)
    last_access: float = field(default_factory=time.time)

    @staticmethod
    def generate_session_id() -> str:
        return f"fs_{uuid.uuid4().hex[:16]}"

    def mark_served(self, listing_ids: List[str]) -> None:
        """Fold a served page into the exclusion set."""
        self.exclude_ids = ExclusionTracker.extend(self.exclude_ids, listing_ids)
        self.pages_served += 1
        self.served_count += len(listing_ids)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "user_id": self.user_id,
            "excluded": len(self.exclude_ids),
            "pages_served": self.pages_served,
            "served_count": self.served_count,
            "created_at": self.created_at,
            "last_access": self.last_access,
        }


class InMemorySessionBackend:
    """
    In-memory feed session storage.

    Sessions idle longer than `ttl_seconds` are dropped lazily on access.
    """

    def __init__(self, ttl_seconds: int = 86400, cleanup_interval: int = 3600):
        self._sessions: Dict[str, FeedSession] = {}
        self._lock = Lock()
        self._ttl = ttl_seconds
        self._cleanup_interval = cleanup_interval
        self._last_cleanup = time.time()

    def _maybe_cleanup(self) -> None:
        now = time.time()
        if now - self._last_cleanup > self._cleanup_interval:
            self._cleanup_expired(now)
            self._last_cleanup = now

    def _cleanup_expired(self, now: float) -> None:
        cutoff = now - self._ttl
        with self._lock:
            expired = [sid for sid, s in self._sessions.items() if s.last_access < cutoff]
            for sid in expired:
                del self._sessions[sid]
        if expired:
            logger.info("Expired feed sessions removed", count=len(expired))

    def create_session(self, user_id: str, exclude_ids: FrozenSet[str] = frozenset()) -> FeedSession:
        session = FeedSession(
            session_id=FeedSession.generate_session_id(),
            user_id=user_id,
            exclude_ids=frozenset(exclude_ids),
        )
        with self._lock:
            self._sessions[session.session_id] = session
        return session

    def get_session(self, session_id: str) -> Optional[FeedSession]:
        self._maybe_cleanup()
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None
            if time.time() - session.last_access > self._ttl:
                del self._sessions[session_id]
                return None
            session.last_access = time.time()
            return session

    def update_session(self, session: FeedSession) -> None:
        with self._lock:
            session.last_access = time.time()
            self._sessions[session.session_id] = session

    def delete_session(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            active = len(self._sessions)
        return {
            "backend": "in_memory",
            "active_sessions": active,
            "ttl_seconds": self._ttl,
        }
