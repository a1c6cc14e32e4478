"""Threshold retrieval with a never-empty fallback.

Uses RelevanceScorer (from scoring.py) for all scoring decisions.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .chunk import Chunk, ScoredChunk
from .embedder import HashEmbedder
from .scoring import RelevanceScorer

logger = logging.getLogger(__name__)


@dataclass
class RetrievalConfig:
    """Configuration for the retrieval strategy."""

    threshold: float = 0.01  # Minimum score, exclusive
    top_k: int = 5  # Maximum chunks returned when above threshold
    fallback_k: int = 3  # Chunks returned when nothing clears the threshold


class Retriever:
    """Ranks a document's chunks against a query.

    Retrieval strategy:
    1. Score every chunk with a usable vector (clamped cosine)
    2. Stable sort by descending score
    3. Keep chunks above the threshold, up to top_k
    4. If none survive but some chunk was scorable, return the top
       fallback_k regardless of threshold

    An empty result means no chunk in the document has a usable vector,
    and the caller should answer without document context.
    """

    def __init__(
        self,
        embedder: HashEmbedder,
        scorer: Optional[RelevanceScorer] = None,
        config: Optional[RetrievalConfig] = None,
    ):
        """Initialize the retriever.

        Args:
            embedder: Embedder for encoding query text.
            scorer: RelevanceScorer for scoring chunks.
            config: Retrieval configuration (uses defaults if not provided).
        """
        self.embedder = embedder
        self.scorer = scorer or RelevanceScorer()
        self.config = config or RetrievalConfig()

    def retrieve(self, query_vector: np.ndarray, chunks: list[Chunk]) -> list[ScoredChunk]:
        """Retrieve relevant chunks for an embedded query.

        Args:
            query_vector: Embedded query.
            chunks: The document's chunks in document order.

        Returns:
            Ranked ScoredChunks; empty only if no chunk is scorable.
        """
        return self.retrieve_with_breakdown(query_vector, chunks)["selected"]

    def search(self, query: str, chunks: list[Chunk]) -> list[ScoredChunk]:
        """Embed the query text, then retrieve."""
        return self.retrieve(self.embedder.embed(query), chunks)

    def retrieve_with_breakdown(
        self, query_vector: np.ndarray, chunks: list[Chunk]
    ) -> dict:
        """Retrieve with detailed breakdown of each stage.

        Useful for debugging and analysis.

        Returns:
            Dict with keys 'ranked', 'filtered', 'selected', 'fallback_used'.
        """
        ranked = self.scorer.rank(self.scorer.score_all(query_vector, chunks))
        filtered = self.scorer.filter_above(ranked, self.config.threshold)

        if ranked:
            top = ", ".join(f"{sc.score:.4f}" for sc in ranked[:3])
            logger.debug("Scored %d/%d chunks, top scores: %s", len(ranked), len(chunks), top)

        fallback_used = False
        if filtered:
            selected = filtered[: self.config.top_k]
        elif ranked:
            logger.info(
                "No chunks above threshold %.3f, using top %d anyway",
                self.config.threshold,
                self.config.fallback_k,
            )
            selected = ranked[: self.config.fallback_k]
            fallback_used = True
        else:
            selected = []

        return {
            "ranked": ranked,
            "filtered": filtered,
            "selected": selected,
            "fallback_used": fallback_used,
        }
