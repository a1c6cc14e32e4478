"""Conversation sessions keyed by (user, document).

ConversationContext owns the turn history a request reads and appends to.
Storage is delegated to a SessionBackend (see session_store.py); this
module never decides where sessions live.
"""

import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from typing import Callable, Iterator, Literal, Optional, Protocol
from uuid import uuid4


@dataclass(frozen=True)
class ConversationTurn:
    """One message in a session. Turns are never edited once appended.

    Attributes:
        role: Who spoke (user or assistant).
        content: Message text.
        timestamp: Unix timestamp of the turn.
        source: How an assistant turn was produced (e.g. "pdf_content",
            "greeting", "error"). None for user turns.
    """

    role: Literal["user", "assistant"]
    content: str
    timestamp: float = field(default_factory=time.time)
    source: Optional[str] = None


@dataclass
class ConversationSession:
    """Ordered turn history for one (user, document) pair."""

    user_id: str
    document_id: str
    id: str = field(default_factory=lambda: str(uuid4()))
    title: str = "Chat Session"
    turns: list[ConversationTurn] = field(default_factory=list)
    created_at: float = field(default_factory=time.time)
    last_active: float = field(default_factory=time.time)

    @property
    def key(self) -> tuple[str, str]:
        return (self.user_id, self.document_id)


class SessionBackend(Protocol):
    """Persistence interface for sessions."""

    def load_session(self, user_id: str, document_id: str) -> Optional[ConversationSession]:
        ...

    def save(self, session: ConversationSession) -> None:
        ...

    def list_sessions(self, user_id: str) -> list[ConversationSession]:
        ...

    def delete_session(self, user_id: str, document_id: str) -> bool:
        ...

    def delete_sessions_for_document(self, document_id: str, user_id: Optional[str] = None) -> int:
        ...


class ConversationContext:
    """Read and append access to sessions, with one lock per session.

    Appends to the same session are serialized; sessions are independent
    of one another. DocumentChat holds lock() for a whole request so a
    user turn and its assistant turn are never interleaved with another
    request's turns.

    Example:
        >>> context = ConversationContext(SessionStore())
        >>> session = context.get_or_create("user-1", "doc-1")
        >>> context.append(session, ConversationTurn("user", "hi"))
        >>> context.window(session, 4)
    """

    def __init__(self, store: SessionBackend):
        """Initialize with a session backend.

        Args:
            store: Backend used to load and save sessions.
        """
        self.store = store
        self._locks: dict[tuple[str, str], threading.RLock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, user_id: str, document_id: str) -> threading.RLock:
        with self._locks_guard:
            key = (user_id, document_id)
            if key not in self._locks:
                self._locks[key] = threading.RLock()
            return self._locks[key]

    @contextmanager
    def lock(self, user_id: str, document_id: str) -> Iterator[None]:
        """Hold the mutation slot for one session."""
        lock = self._lock_for(user_id, document_id)
        with lock:
            yield

    def get_or_create(
        self, user_id: str, document_id: str, title: Optional[str] = None
    ) -> ConversationSession:
        """Load the session for the pair, creating an empty one if absent.

        Args:
            user_id: Owner of the session.
            document_id: Document the session is about.
            title: Title for a newly created session.

        Returns:
            Existing or newly created session.
        """
        with self.lock(user_id, document_id):
            session = self.store.load_session(user_id, document_id)
            if session is None:
                session = ConversationSession(
                    user_id=user_id,
                    document_id=document_id,
                    title=title or "Chat Session",
                )
                self.store.save(session)
            return session

    def append(self, session: ConversationSession, turn: ConversationTurn) -> None:
        """Append a turn, bump last_active and persist.

        The in-memory session only changes once the store accepted the
        turn, so a failed save leaves both sides as they were.
        """
        with self.lock(*session.key):
            updated = replace(session, turns=[*session.turns, turn], last_active=time.time())
            self.store.save(updated)
            session.turns = updated.turns
            session.last_active = updated.last_active

    def window(self, session: ConversationSession, k: int) -> list[ConversationTurn]:
        """Last k turns in chronological order (fewer if the session is short)."""
        if k <= 0:
            return []
        return list(session.turns[-k:])

    def history(self, user_id: str, document_id: str) -> Optional[ConversationSession]:
        return self.store.load_session(user_id, document_id)

    def list_sessions(self, user_id: str) -> list[ConversationSession]:
        """All sessions for a user, most recently active first."""
        return self.store.list_sessions(user_id)

    def delete(self, user_id: str, document_id: str) -> bool:
        with self.lock(user_id, document_id):
            deleted = self.store.delete_session(user_id, document_id)
        self._drop_locks(lambda key: key == (user_id, document_id))
        return deleted

    def delete_for_document(self, document_id: str, user_id: Optional[str] = None) -> int:
        """Delete every session about a document, or only one user's."""
        removed = self.store.delete_sessions_for_document(document_id, user_id)
        self._drop_locks(
            lambda key: key[1] == document_id and (user_id is None or key[0] == user_id)
        )
        return removed

    def _drop_locks(self, matches: Callable[[tuple[str, str]], bool]) -> None:
        with self._locks_guard:
            for key in [k for k in self._locks if matches(k)]:
                del self._locks[key]
