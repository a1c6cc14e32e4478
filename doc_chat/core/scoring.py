"""Similarity scoring and ranking for retrieval.

This is the single source of truth for how a chunk is scored against a
query. Retriever uses it for every ranking decision.
"""

from typing import Optional

import numpy as np

from .chunk import Chunk, ScoredChunk


def is_usable(vector: Optional[np.ndarray], dim: Optional[int] = None) -> bool:
    """Whether a vector carries signal: present, non-empty, non-zero.

    Args:
        vector: Vector to check.
        dim: Expected dimension. Checked only if given.
    """
    if vector is None or vector.size == 0:
        return False
    if dim is not None and vector.shape[0] != dim:
        return False
    return bool(np.any(vector))


def cosine_similarity(a: Optional[np.ndarray], b: Optional[np.ndarray]) -> float:
    """Cosine similarity clamped into [0, 1].

    Returns 0 when either vector is missing, has zero magnitude, or the
    dimensions differ.
    """
    if a is None or b is None or a.shape != b.shape:
        return 0.0

    norm_a = float(np.linalg.norm(a))
    norm_b = float(np.linalg.norm(b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    sim = float(np.dot(a, b)) / (norm_a * norm_b)
    return min(1.0, max(0.0, sim))


class RelevanceScorer:
    """Scores chunks against a query vector and ranks them.

    Example:
        >>> scorer = RelevanceScorer()
        >>> scored = scorer.score_all(query_vec, chunks)
        >>> top = scorer.select_top_k(scorer.rank(scored), k=5)
    """

    def similarity(self, a: Optional[np.ndarray], b: Optional[np.ndarray]) -> float:
        return cosine_similarity(a, b)

    def score(self, chunk: Chunk, query_vector: np.ndarray) -> ScoredChunk:
        """Score a single chunk against the query.

        Args:
            chunk: The chunk to score.
            query_vector: Embedded query.

        Returns:
            ScoredChunk with clamped cosine similarity.
        """
        return ScoredChunk(chunk=chunk, score=self.similarity(query_vector, chunk.vector))

    def score_all(self, query_vector: np.ndarray, chunks: list[Chunk]) -> list[ScoredChunk]:
        """Score every chunk with a usable vector, keeping input order.

        Chunks whose vector is missing, zero, or of a different dimension
        than the query are skipped.
        """
        dim = query_vector.shape[0] if query_vector is not None else None
        return [
            self.score(chunk, query_vector)
            for chunk in chunks
            if is_usable(chunk.vector, dim)
        ]

    def rank(self, scored: list[ScoredChunk]) -> list[ScoredChunk]:
        """Sort by descending score.

        The sort is stable, so equal scores keep document order.
        """
        return sorted(scored, key=lambda sc: -sc.score)

    def select_top_k(self, scored: list[ScoredChunk], k: int) -> list[ScoredChunk]:
        """Select top-k chunks by score.

        Args:
            scored: List of scored chunks.
            k: Number of chunks to select.

        Returns:
            Top-k chunks sorted by descending score.
        """
        return self.rank(scored)[:k]

    def filter_above(self, scored: list[ScoredChunk], threshold: float) -> list[ScoredChunk]:
        """Keep chunks whose score is strictly above the threshold."""
        return [sc for sc in scored if sc.score > threshold]
