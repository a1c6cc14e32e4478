"""Text chunking strategies for splitting extracted document text.

Separates chunking logic from storage - DocumentStore handles persistence,
this module handles text splitting decisions.
"""

import logging
import re
from dataclasses import dataclass
from typing import Literal

logger = logging.getLogger(__name__)

# Sentence boundary: terminator followed by whitespace.
SENTENCE_BREAK_RE = re.compile(r"(?<=[.!?])\s+")


@dataclass
class ChunkingConfig:
    """Configuration for text chunking.

    Attributes:
        target_size: Maximum characters per chunk before overlap is added.
        overlap: Characters carried over from the previous chunk.
        max_chunks: Hard cap on chunks per document; extra chunks are dropped
            from the tail.
        strategy: "sentence" packs whole sentences, "fixed" slices
            fixed-width character windows.
        separator: Joins the overlap prefix to the chunk body.
    """

    target_size: int = 1000
    overlap: int = 200
    max_chunks: int = 100
    strategy: Literal["sentence", "fixed"] = "sentence"
    separator: str = " "


class TextChunker:
    """Splits document text into an ordered sequence of overlapping chunks.

    The sentence strategy works in two passes:
    1. Greedily pack sentences into segments of at most target_size chars
    2. Prefix each segment after the first with the tail of its predecessor

    Example:
        >>> chunker = TextChunker(ChunkingConfig(target_size=30, overlap=10))
        >>> chunker.split("First sentence here. Second one follows. Third.")
        ['First sentence here.', 'ence here. Second one follows. Third.']
    """

    def __init__(self, config: ChunkingConfig | None = None):
        """Initialize chunker.

        Args:
            config: Chunking configuration. Uses defaults if None.
        """
        self.config = config or ChunkingConfig()

    def split(self, text: str) -> list[str]:
        """Split text into trimmed, non-empty chunks.

        Args:
            text: Raw extracted document text.

        Returns:
            Ordered chunk texts. Empty for empty or whitespace-only input.
        """
        if not text or not text.strip():
            return []

        if self.config.strategy == "fixed":
            chunks = self._split_fixed(text)
        else:
            chunks = self._with_overlap(self.segment(text))

        return self._cap(chunks)

    def segment(self, text: str) -> list[str]:
        """Pack sentences into segments without overlap.

        Joining the segments with spaces reproduces the words of the
        original text in order.

        Args:
            text: Text to segment.

        Returns:
            List of sentence-packed segments.
        """
        if not text or not text.strip():
            return []

        segments = []
        current = ""

        for sentence in self._split_sentences(text):
            candidate = f"{current} {sentence}" if current else sentence
            if len(candidate) > self.config.target_size and current:
                segments.append(current)
                current = sentence
            else:
                current = candidate

        if current:
            segments.append(current)

        return segments

    def _split_sentences(self, text: str) -> list[str]:
        """Split on '.', '!' and '?', keeping any unterminated tail."""
        sentences = []
        for raw in SENTENCE_BREAK_RE.split(text.strip()):
            sentence = " ".join(raw.split())
            if sentence:
                sentences.append(sentence)
        return sentences

    def _with_overlap(self, segments: list[str]) -> list[str]:
        """Prefix each segment after the first with its predecessor's tail."""
        overlap = self.config.overlap
        if overlap <= 0 or len(segments) < 2:
            return segments

        chunks = [segments[0]]
        for prev, seg in zip(segments, segments[1:]):
            tail = prev[-overlap:].strip()
            chunks.append(f"{tail}{self.config.separator}{seg}".strip() if tail else seg)
        return chunks

    def _split_fixed(self, text: str) -> list[str]:
        """Slice fixed-width windows advancing by target_size - overlap."""
        size = max(1, self.config.target_size)
        stride = max(1, size - self.config.overlap)

        chunks = []
        start = 0
        while start < len(text):
            piece = text[start:start + size].strip()
            if piece:
                chunks.append(piece)
            start += stride
        return chunks

    def _cap(self, chunks: list[str]) -> list[str]:
        limit = self.config.max_chunks
        if limit > 0 and len(chunks) > limit:
            logger.warning(
                "Document produced %d chunks, keeping the first %d",
                len(chunks),
                limit,
            )
            return chunks[:limit]
        return chunks
