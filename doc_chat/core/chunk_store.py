"""Document and chunk storage with DuckDB.

This module handles persistence for documents and their embedded chunks.
The Chunk and Document dataclasses are imported from chunk.py (pure data,
no logic here). Ranking happens in Python (scoring.py), so the store only
needs to return a document's chunks in order.
"""

import threading
from pathlib import Path
from typing import Optional

import duckdb
import numpy as np

from .chunk import Chunk, Document


class DocumentStore:
    """Store for documents and their ordered chunk vectors."""

    def __init__(self, db_path: str = ":memory:", dim: int = 128):
        """Initialize the document store.

        Args:
            db_path: Path to DuckDB database file, or ":memory:" for in-memory
            dim: Dimensionality of chunk vectors (must match the embedder)
        """
        self.dim = dim
        self.db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = duckdb.connect(db_path)
        self._lock = threading.Lock()
        self._init_schema()

    def _init_schema(self):
        """Initialize database schema."""
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS documents (
                id VARCHAR PRIMARY KEY,
                owner_id VARCHAR NOT NULL,
                name VARCHAR NOT NULL,
                text TEXT NOT NULL,
                uploaded_at DOUBLE NOT NULL
            )
        """)

        # Vector column width is fixed by the store's dimension
        self.conn.execute(f"""
            CREATE TABLE IF NOT EXISTS chunks (
                document_id VARCHAR NOT NULL,
                chunk_index INTEGER NOT NULL,
                text TEXT NOT NULL,
                vector FLOAT[{self.dim}],
                PRIMARY KEY (document_id, chunk_index)
            )
        """)

        self.conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_owner ON documents(owner_id)"
        )

    def add_document(self, document: Document) -> None:
        """Insert a document and all of its chunks.

        Args:
            document: Document with chunks already embedded

        Raises:
            ValueError: If a chunk vector does not match the store dimension
        """
        for chunk in document.chunks:
            if chunk.vector is not None and chunk.dim != self.dim:
                raise ValueError(
                    f"Chunk {chunk.index} has dimension {chunk.dim}, store expects {self.dim}"
                )

        with self._lock:
            self.conn.execute("BEGIN TRANSACTION")
            try:
                self.conn.execute(
                    """
                    INSERT INTO documents (id, owner_id, name, text, uploaded_at)
                    VALUES (?, ?, ?, ?, ?)
                """,
                    [document.id, document.owner_id, document.name, document.text, document.uploaded_at],
                )
                for chunk in document.chunks:
                    self.conn.execute(
                        """
                        INSERT INTO chunks (document_id, chunk_index, text, vector)
                        VALUES (?, ?, ?, ?)
                    """,
                        [
                            document.id,
                            chunk.index,
                            chunk.text,
                            chunk.vector.tolist() if chunk.vector is not None else None,
                        ],
                    )
                self.conn.execute("COMMIT")
            except Exception:
                self.conn.execute("ROLLBACK")
                raise

    def get_document(
        self, document_id: str, owner_id: Optional[str] = None, with_chunks: bool = True
    ) -> Optional[Document]:
        """Get a document by ID, optionally restricted to an owner.

        Args:
            document_id: The document's unique identifier
            owner_id: If given, only return the document if this user owns it
            with_chunks: Whether to load the chunks as well

        Returns:
            The Document if found, None otherwise
        """
        sql = "SELECT id, owner_id, name, text, uploaded_at FROM documents WHERE id = ?"
        params = [document_id]
        if owner_id is not None:
            sql += " AND owner_id = ?"
            params.append(owner_id)

        with self._lock:
            row = self.conn.execute(sql, params).fetchone()
        if row is None:
            return None

        chunks = tuple(self.load_chunks(document_id)) if with_chunks else ()
        return Document(
            id=row[0],
            owner_id=row[1],
            name=row[2],
            text=row[3],
            uploaded_at=row[4],
            chunks=chunks,
        )

    def load_chunks(self, document_id: str) -> list[Chunk]:
        """Get all chunks for a document in source order.

        Args:
            document_id: The document to query

        Returns:
            List of chunks with their stored vectors
        """
        with self._lock:
            result = self.conn.execute(
                """
                SELECT document_id, chunk_index, text, vector
                FROM chunks
                WHERE document_id = ?
                ORDER BY chunk_index ASC
            """,
                [document_id],
            ).fetchall()

        return [self._row_to_chunk(row) for row in result]

    def list_documents(self, owner_id: str) -> list[Document]:
        """List a user's documents, newest first, without chunks."""
        with self._lock:
            result = self.conn.execute(
                """
                SELECT id, owner_id, name, text, uploaded_at
                FROM documents
                WHERE owner_id = ?
                ORDER BY uploaded_at DESC
            """,
                [owner_id],
            ).fetchall()

        return [
            Document(id=r[0], owner_id=r[1], name=r[2], text=r[3], uploaded_at=r[4])
            for r in result
        ]

    def count(self, document_id: Optional[str] = None) -> int:
        """Count chunks in store, optionally filtered by document.

        Args:
            document_id: Optional document to count

        Returns:
            Number of chunks
        """
        with self._lock:
            if document_id:
                result = self.conn.execute(
                    "SELECT COUNT(*) FROM chunks WHERE document_id = ?",
                    [document_id],
                ).fetchone()
            else:
                result = self.conn.execute("SELECT COUNT(*) FROM chunks").fetchone()
        return result[0] if result else 0

    def delete_document(self, document_id: str, owner_id: Optional[str] = None) -> bool:
        """Delete a document and its chunks.

        Args:
            document_id: The document to delete
            owner_id: If given, only delete if this user owns it

        Returns:
            True if a document was deleted
        """
        if self.get_document(document_id, owner_id, with_chunks=False) is None:
            return False

        with self._lock:
            self.conn.execute("DELETE FROM chunks WHERE document_id = ?", [document_id])
            self.conn.execute("DELETE FROM documents WHERE id = ?", [document_id])
        return True

    def _row_to_chunk(self, row: tuple) -> Chunk:
        """Convert database row to Chunk object.

        Args:
            row: Tuple of column values from SELECT

        Returns:
            Chunk object
        """
        return Chunk(
            document_id=row[0],
            index=row[1],
            text=row[2],
            vector=np.array(row[3], dtype=np.float32) if row[3] is not None else None,
        )

    def close(self):
        """Close database connection."""
        self.conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
