"""Pure data classes for document chunks.

This module contains only data structures with no business logic.
Splitting lives in chunking.py, vectors come from embedder.py and
ranking from scoring.py.
"""

import time
from dataclasses import dataclass, field
from typing import Optional
from uuid import uuid4

import numpy as np


@dataclass(frozen=True)
class Chunk:
    """Immutable segment of a document's text.

    Attributes:
        text: The trimmed, non-empty chunk text.
        vector: Unit-normalized float32 vector from the embedder, or None
            if the chunk was never embedded.
        index: 0-based position of the chunk in its document.
        document_id: ID of the document this chunk belongs to.
    """

    text: str = ""
    vector: Optional[np.ndarray] = None
    index: int = 0
    document_id: str = ""

    def __post_init__(self):
        """Coerce the vector to float32 if present."""
        if self.vector is not None:
            vector = np.asarray(self.vector, dtype=np.float32)
            object.__setattr__(self, "vector", vector)

    @property
    def dim(self) -> int:
        return 0 if self.vector is None else int(self.vector.shape[0])


@dataclass
class ScoredChunk:
    """Chunk with its similarity to a query.

    Attributes:
        chunk: The underlying Chunk.
        score: Cosine similarity clamped to [0, 1]. Used only for ranking.
    """

    chunk: Chunk
    score: float = 0.0


@dataclass
class Document:
    """An uploaded document and its ordered chunks.

    The core never mutates a Document after chunking and embedding.

    Attributes:
        id: Unique identifier.
        owner_id: ID of the user who uploaded it.
        name: Display name (usually the original file name).
        text: Full extracted text.
        chunks: Ordered chunks reflecting source order.
        uploaded_at: Unix timestamp of ingestion.
    """

    id: str = field(default_factory=lambda: str(uuid4()))
    owner_id: str = ""
    name: str = ""
    text: str = ""
    chunks: tuple[Chunk, ...] = ()
    uploaded_at: float = field(default_factory=time.time)
