"""Tests for ConversationContext and SessionStore."""

import threading
import time

import pytest

from doc_chat.core.session import ConversationContext, ConversationSession, ConversationTurn
from doc_chat.core.session_store import SessionStore


@pytest.fixture
def store():
    """Provide an in-memory session store."""
    s = SessionStore(":memory:")
    yield s
    s.close()


@pytest.fixture
def context(store):
    """Provide a context over the in-memory store."""
    return ConversationContext(store)


class TestSessionStore:
    """Tests for SessionStore persistence."""

    def test_round_trip(self, store):
        """Test saving and loading a session with turns."""
        session = ConversationSession(user_id="u1", document_id="d1", title="Chat about a.pdf")
        session.turns.append(ConversationTurn("user", "hello"))
        session.turns.append(ConversationTurn("assistant", "Hi!", source="greeting"))
        store.save(session)

        loaded = store.load_session("u1", "d1")
        assert loaded.id == session.id
        assert loaded.title == "Chat about a.pdf"
        assert [(t.role, t.content, t.source) for t in loaded.turns] == [
            ("user", "hello", None),
            ("assistant", "Hi!", "greeting"),
        ]

    def test_missing_session(self, store):
        assert store.load_session("u1", "nope") is None

    def test_save_appends_only_new_turns(self, store):
        """Test that repeated saves never rewrite stored turns."""
        session = ConversationSession(user_id="u1", document_id="d1")
        session.turns.append(ConversationTurn("user", "first"))
        store.save(session)
        session.turns.append(ConversationTurn("assistant", "second"))
        store.save(session)
        store.save(session)

        loaded = store.load_session("u1", "d1")
        assert [t.content for t in loaded.turns] == ["first", "second"]

    def test_list_sessions_most_recent_first(self, store):
        """Test ordering by last_active."""
        now = time.time()
        for i, doc in enumerate(["d1", "d2", "d3"]):
            store.save(ConversationSession(user_id="u1", document_id=doc, last_active=now + i))
        store.save(ConversationSession(user_id="u2", document_id="d1"))

        sessions = store.list_sessions("u1")
        assert [s.document_id for s in sessions] == ["d3", "d2", "d1"]

    def test_delete_session(self, store):
        store.save(ConversationSession(user_id="u1", document_id="d1"))
        assert store.delete_session("u1", "d1") is True
        assert store.load_session("u1", "d1") is None
        assert store.delete_session("u1", "d1") is False

    def test_delete_sessions_for_document(self, store):
        """Test removing every user's session about one document."""
        store.save(ConversationSession(user_id="u1", document_id="d1"))
        store.save(ConversationSession(user_id="u2", document_id="d1"))
        store.save(ConversationSession(user_id="u1", document_id="d2"))

        assert store.delete_sessions_for_document("d1") == 2
        assert store.load_session("u1", "d2") is not None


class TestConversationContext:
    """Tests for ConversationContext."""

    def test_get_or_create_new(self, context):
        """Test that a new pair gets an empty, persisted session."""
        session = context.get_or_create("u1", "d1", title="Chat about a.pdf")
        assert session.turns == []
        assert session.title == "Chat about a.pdf"
        assert context.history("u1", "d1").id == session.id

    def test_get_or_create_existing(self, context):
        """Test that the same pair returns the same session."""
        first = context.get_or_create("u1", "d1")
        context.append(first, ConversationTurn("user", "hello"))

        again = context.get_or_create("u1", "d1", title="ignored")
        assert again.id == first.id
        assert again.title == "Chat Session"
        assert len(again.turns) == 1

    def test_sessions_keyed_by_user_and_document(self, context):
        a = context.get_or_create("u1", "d1")
        b = context.get_or_create("u2", "d1")
        c = context.get_or_create("u1", "d2")
        assert len({a.id, b.id, c.id}) == 3

    def test_append_updates_last_active(self, context):
        """Test that appending bumps last_active and persists the turn."""
        session = context.get_or_create("u1", "d1")
        before = session.last_active
        time.sleep(0.01)
        context.append(session, ConversationTurn("user", "hello"))

        assert session.last_active > before
        assert context.history("u1", "d1").turns[0].content == "hello"

    def test_window(self, context):
        """Test that the window is the last k turns in order."""
        session = context.get_or_create("u1", "d1")
        for i in range(6):
            role = "user" if i % 2 == 0 else "assistant"
            context.append(session, ConversationTurn(role, f"m{i}"))

        assert [t.content for t in context.window(session, 4)] == ["m2", "m3", "m4", "m5"]
        assert len(context.window(session, 10)) == 6
        assert context.window(session, 0) == []

    def test_delete(self, context):
        context.get_or_create("u1", "d1")
        assert context.delete("u1", "d1") is True
        assert context.history("u1", "d1") is None

    def test_concurrent_appends_serialized(self, context):
        """Test that paired appends under lock() never interleave."""
        session = context.get_or_create("u1", "d1")

        def worker(n):
            for i in range(10):
                with context.lock("u1", "d1"):
                    context.append(session, ConversationTurn("user", f"q{n}-{i}"))
                    context.append(session, ConversationTurn("assistant", f"a{n}-{i}"))

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        turns = context.history("u1", "d1").turns
        assert len(turns) == 80
        for user, assistant in zip(turns[::2], turns[1::2]):
            assert user.role == "user"
            assert assistant.role == "assistant"
            assert user.content[1:] == assistant.content[1:]

    def test_append_failure_leaves_session_unchanged(self, context, monkeypatch):
        """Test that a turn the store rejects is not kept in memory either."""
        session = context.get_or_create("u1", "d1")
        context.append(session, ConversationTurn("user", "hello"))
        last_active = session.last_active

        def broken_save(s):
            raise RuntimeError("disk full")

        monkeypatch.setattr(context.store, "save", broken_save)
        with pytest.raises(RuntimeError, match="disk full"):
            context.append(session, ConversationTurn("assistant", "Hi!"))

        assert [t.content for t in session.turns] == ["hello"]
        assert session.last_active == last_active

    def test_delete_releases_lock(self, context):
        """Test that deleting a session forgets its lock."""
        context.get_or_create("u1", "d1")
        context.get_or_create("u1", "d2")
        assert len(context._locks) == 2

        context.delete("u1", "d1")
        assert set(context._locks) == {("u1", "d2")}

    def test_delete_for_document_releases_locks(self, context):
        for user in ("u1", "u2"):
            context.get_or_create(user, "d1")
        context.get_or_create("u1", "d2")

        assert context.delete_for_document("d1", user_id="u2") == 1
        assert set(context._locks) == {("u1", "d1"), ("u1", "d2")}

        assert context.delete_for_document("d1") == 1
        assert set(context._locks) == {("u1", "d2")}
