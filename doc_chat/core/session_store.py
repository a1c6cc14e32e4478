"""Conversation session storage with DuckDB.

Turns are append-only: saving a session inserts only the turns that are
not yet stored, and never rewrites earlier ones.
"""

import threading
from pathlib import Path
from typing import Optional

import duckdb

from .session import ConversationSession, ConversationTurn


class SessionStore:
    """Persistent store for (user, document) conversation sessions."""

    def __init__(self, db_path: str = ":memory:"):
        """Initialize the session store.

        Args:
            db_path: Path to DuckDB database file, or ":memory:" for in-memory
        """
        self.db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = duckdb.connect(db_path)
        self._lock = threading.Lock()
        self._init_schema()

    def _init_schema(self):
        """Initialize database schema."""
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS sessions (
                id VARCHAR PRIMARY KEY,
                user_id VARCHAR NOT NULL,
                document_id VARCHAR NOT NULL,
                title VARCHAR NOT NULL,
                created_at DOUBLE NOT NULL,
                last_active DOUBLE NOT NULL
            )
        """)
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS turns (
                session_id VARCHAR NOT NULL,
                position INTEGER NOT NULL,
                role VARCHAR NOT NULL,
                content TEXT NOT NULL,
                timestamp DOUBLE NOT NULL,
                source VARCHAR,
                PRIMARY KEY (session_id, position)
            )
        """)
        self.conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_user_doc ON sessions(user_id, document_id)"
        )

    def load_session(self, user_id: str, document_id: str) -> Optional[ConversationSession]:
        """Get the session for a (user, document) pair.

        Returns:
            The most recently active matching session, or None
        """
        with self._lock:
            row = self.conn.execute(
                """
                SELECT id, user_id, document_id, title, created_at, last_active
                FROM sessions
                WHERE user_id = ? AND document_id = ?
                ORDER BY last_active DESC
                LIMIT 1
            """,
                [user_id, document_id],
            ).fetchone()
        return self._row_to_session(row) if row else None

    def save(self, session: ConversationSession) -> None:
        """Upsert the session row and insert any turns not yet stored."""
        with self._lock:
            self.conn.execute("BEGIN TRANSACTION")
            try:
                exists = self.conn.execute(
                    "SELECT COUNT(*) FROM sessions WHERE id = ?", [session.id]
                ).fetchone()[0]
                if exists:
                    self.conn.execute(
                        "UPDATE sessions SET title = ?, last_active = ? WHERE id = ?",
                        [session.title, session.last_active, session.id],
                    )
                else:
                    self.conn.execute(
                        """
                        INSERT INTO sessions (id, user_id, document_id, title, created_at, last_active)
                        VALUES (?, ?, ?, ?, ?, ?)
                    """,
                        [
                            session.id,
                            session.user_id,
                            session.document_id,
                            session.title,
                            session.created_at,
                            session.last_active,
                        ],
                    )

                stored = self.conn.execute(
                    "SELECT COUNT(*) FROM turns WHERE session_id = ?", [session.id]
                ).fetchone()[0]
                for position in range(stored, len(session.turns)):
                    turn = session.turns[position]
                    self.conn.execute(
                        """
                        INSERT INTO turns (session_id, position, role, content, timestamp, source)
                        VALUES (?, ?, ?, ?, ?, ?)
                    """,
                        [session.id, position, turn.role, turn.content, turn.timestamp, turn.source],
                    )
                self.conn.execute("COMMIT")
            except Exception:
                self.conn.execute("ROLLBACK")
                raise

    def list_sessions(self, user_id: str) -> list[ConversationSession]:
        """All sessions for a user, most recently active first."""
        with self._lock:
            rows = self.conn.execute(
                """
                SELECT id, user_id, document_id, title, created_at, last_active
                FROM sessions
                WHERE user_id = ?
                ORDER BY last_active DESC
            """,
                [user_id],
            ).fetchall()
        return [self._row_to_session(row) for row in rows]

    def delete_session(self, user_id: str, document_id: str) -> bool:
        """Delete the session(s) for a pair.

        Returns:
            True if anything was deleted
        """
        with self._lock:
            ids = [
                r[0]
                for r in self.conn.execute(
                    "SELECT id FROM sessions WHERE user_id = ? AND document_id = ?",
                    [user_id, document_id],
                ).fetchall()
            ]
            self._delete_ids(ids)
        return bool(ids)

    def delete_sessions_for_document(self, document_id: str, user_id: Optional[str] = None) -> int:
        """Delete every session about a document, optionally for one user.

        Returns:
            Number of sessions deleted
        """
        sql = "SELECT id FROM sessions WHERE document_id = ?"
        params = [document_id]
        if user_id is not None:
            sql += " AND user_id = ?"
            params.append(user_id)

        with self._lock:
            ids = [r[0] for r in self.conn.execute(sql, params).fetchall()]
            self._delete_ids(ids)
        return len(ids)

    def _delete_ids(self, ids: list[str]) -> None:
        for session_id in ids:
            self.conn.execute("DELETE FROM turns WHERE session_id = ?", [session_id])
            self.conn.execute("DELETE FROM sessions WHERE id = ?", [session_id])

    def _load_turns(self, session_id: str) -> list[ConversationTurn]:
        rows = self.conn.execute(
            """
            SELECT role, content, timestamp, source
            FROM turns
            WHERE session_id = ?
            ORDER BY position ASC
        """,
            [session_id],
        ).fetchall()
        return [
            ConversationTurn(role=r[0], content=r[1], timestamp=r[2], source=r[3])
            for r in rows
        ]

    def _row_to_session(self, row: tuple) -> ConversationSession:
        """Convert database row to a ConversationSession with its turns."""
        with self._lock:
            turns = self._load_turns(row[0])
        return ConversationSession(
            id=row[0],
            user_id=row[1],
            document_id=row[2],
            title=row[3],
            created_at=row[4],
            last_active=row[5],
            turns=turns,
        )

    def close(self):
        """Close database connection."""
        self.conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
