"""Deterministic hash-based text embedder.

This is a lexical approximation of semantic similarity, not a learned
embedding: texts that share vocabulary land in shared buckets. It needs no
model download and no network, and the same text always maps to the same
vector, so vectors stored at ingestion stay comparable with query vectors
across process restarts.
"""

import re

import numpy as np

from .chunk import Chunk

NON_WORD_RE = re.compile(r"[\W_]+")

MIN_TOKEN_LEN = 2

# Weight multipliers for the primary, secondary and position buckets.
BUCKET_WEIGHTS = (1.0, 0.5, 0.25)


def normalize_text(text: str) -> str:
    """Lowercase, replace non-word characters with spaces, collapse, trim."""
    return " ".join(NON_WORD_RE.sub(" ", text.lower()).split())


def rolling_hash(token: str) -> int:
    """Java-style string hash (h = h*31 + c) wrapped to signed 32 bits."""
    h = 0
    for ch in token:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h & 0x80000000:
        h -= 0x100000000
    return h


class HashEmbedder:
    """Maps text to fixed-dimension unit vectors without any model.

    For the token at position i, three buckets derived from its rolling
    hash receive position-decayed weights:

        h mod D         += 1.0  / (i + 1)
        (h * 31) mod D  += 0.5  / (i + 1)
        (h + i) mod D   += 0.25 / (i + 1)

    The result is L2-normalized. Empty text yields the all-zero vector,
    which callers must treat as "no signal".

    Example:
        >>> embedder = HashEmbedder(dim=128)
        >>> v = embedder.embed("The project uses React and Node.js.")
        >>> v.shape
        (128,)
    """

    def __init__(self, dim: int = 128):
        """Initialize the embedder.

        Args:
            dim: Vector dimension D. Must match the dimension of any stored
                chunk vectors that queries are compared against.
        """
        if dim <= 0:
            raise ValueError(f"dim must be positive, got {dim}")
        self.dim = dim

    def tokenize(self, text: str) -> list[str]:
        """Normalize text and return tokens of at least two characters."""
        return [t for t in normalize_text(text).split() if len(t) >= MIN_TOKEN_LEN]

    def embed(self, text: str) -> np.ndarray:
        """Embed a single text string.

        Args:
            text: Text to embed (chunk or query).

        Returns:
            Unit-norm float32 vector of shape (dim,), or zeros if the text
            has no usable tokens.
        """
        vector = np.zeros(self.dim, dtype=np.float64)
        if not text:
            return vector.astype(np.float32)

        for i, token in enumerate(self.tokenize(text)):
            h = rolling_hash(token)
            decay = 1.0 / (i + 1)
            buckets = (h % self.dim, (h * 31) % self.dim, (h + i) % self.dim)
            for bucket, weight in zip(buckets, BUCKET_WEIGHTS):
                vector[bucket] += weight * decay

        norm = np.linalg.norm(vector)
        if norm > 0:
            vector /= norm
        return vector.astype(np.float32)

    def embed_batch(self, texts: list[str]) -> np.ndarray:
        """Embed multiple texts.

        Args:
            texts: List of texts to embed.

        Returns:
            Array of shape (len(texts), dim).
        """
        if not texts:
            return np.zeros((0, self.dim), dtype=np.float32)
        return np.stack([self.embed(t) for t in texts])

    def embed_chunks(self, texts: list[str], document_id: str = "") -> list[Chunk]:
        """Embed chunk texts and wrap them as ordered Chunks.

        Args:
            texts: Chunk texts in document order.
            document_id: ID of the owning document.

        Returns:
            List of Chunks with vectors set and index matching position.
        """
        vectors = self.embed_batch(texts)
        return [
            Chunk(text=text, vector=vectors[i], index=i, document_id=document_id)
            for i, text in enumerate(texts)
        ]

    def get_info(self) -> dict:
        """Get information about the embedder.

        Returns:
            Dict with embedder name and dimension.
        """
        return {"embedder": "hash", "dimension": self.dim}
