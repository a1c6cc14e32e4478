"""DocChatBuilder for wiring all document chat components.

This factory handles all component instantiation and dependency injection,
keeping DocumentChat thin and focused on orchestration.
"""

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml

from .core.chat import DEFAULT_FAILURE_MESSAGE, DocumentChat
from .core.chunk_store import DocumentStore
from .core.chunking import ChunkingConfig, TextChunker
from .core.classifier import QueryClassifier
from .core.embedder import HashEmbedder
from .core.generator import APIGenerator, DummyGenerator, Generator
from .core.prompt_composer import DEFAULT_FALLBACK_SENTENCE, PromptComposer, PromptConfig
from .core.retriever import RetrievalConfig, Retriever
from .core.session import ConversationContext
from .core.session_store import SessionStore

logger = logging.getLogger(__name__)


@dataclass
class DocChatConfig:
    """Unified configuration for all document chat components.

    Groups all configuration options in one place for convenience.
    Individual component configs can still be used for fine-grained control.

    Attributes:
        db_path: Path to DuckDB database (":memory:" for in-memory).
        dimension: Embedding dimension D, shared by chunks and queries.
        chunk_size: Target characters per chunk.
        chunk_overlap: Characters carried over between chunks.
        max_chunks: Hard cap on chunks per document.
        chunk_strategy: "sentence" or "fixed".
        threshold: Minimum similarity (exclusive) for retrieval.
        top_k: Maximum chunks used as context.
        fallback_k: Chunks used when none clear the threshold.
        history_turns: Conversation turns inlined into prompts.
        greeting_turns: Turns inlined when continuing after a greeting.
        fallback_sentence: Sentence the model emits when context is insufficient.
        failure_message: User-facing text when generation fails.
        provider: "api" for an OpenAI-compatible service, "dummy" for offline.
        model: Model identifier for the API.
        base_url: OpenAI-compatible endpoint.
        api_key_env: Environment variable holding the API key.
        temperature: Sampling temperature.
        max_tokens: Maximum tokens to generate.
        generation_timeout: Seconds before a generation call is abandoned.
    """

    # Storage
    db_path: str = ":memory:"

    # Embedding
    dimension: int = 128

    # Chunking
    chunk_size: int = 1000
    chunk_overlap: int = 200
    max_chunks: int = 100
    chunk_strategy: str = "sentence"

    # Retrieval
    threshold: float = 0.01
    top_k: int = 5
    fallback_k: int = 3

    # Prompting
    history_turns: int = 4
    greeting_turns: int = 2
    fallback_sentence: str = DEFAULT_FALLBACK_SENTENCE
    failure_message: str = DEFAULT_FAILURE_MESSAGE

    # Generation
    provider: str = "dummy"
    model: str = "llama-3.1-8b-instant"
    base_url: Optional[str] = "https://api.groq.com/openai/v1"
    api_key_env: str = "GROQ_API_KEY"
    temperature: float = 0.7
    max_tokens: int = 1000
    generation_timeout: float = 30.0


def load_config(path: str | Path) -> DocChatConfig:
    """Load a DocChatConfig from a YAML file.

    Args:
        path: YAML file with a flat mapping of DocChatConfig fields.

    Returns:
        Config with file values over defaults.

    Raises:
        ValueError: If the file has unknown keys or is not a mapping.
    """
    with open(path, "r") as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ValueError(f"Config file {path} must contain a mapping")

    known = {f.name for f in fields(DocChatConfig)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ValueError(f"Unknown config keys in {path}: {', '.join(unknown)}")

    return DocChatConfig(**raw)


class DocChatBuilder:
    """Fluent builder for creating configured DocumentChat instances.

    Handles all component instantiation and wiring, providing a clean
    interface for configuration. The builder pattern allows for:
    - Fluent chained configuration
    - Sensible defaults that can be overridden
    - Proper dependency injection

    Example:
        >>> chat = (
        ...     DocChatBuilder()
        ...     .with_generator(my_generator)
        ...     .with_db_path("doc_chat.duckdb")
        ...     .with_retrieval_config(top_k=3)
        ...     .build()
        ... )

        >>> # Or use convenience function
        >>> from doc_chat import create_chat
        >>> chat = create_chat(generator=my_generator)
    """

    def __init__(self, config: Optional[DocChatConfig] = None):
        """Initialize builder with optional unified configuration.

        Args:
            config: Unified configuration. Uses defaults if None.
        """
        self.config = config or DocChatConfig()
        self._generator: Optional[Generator] = None
        self._document_store: Optional[DocumentStore] = None
        self._session_store: Optional[SessionStore] = None

    def with_generator(self, generator: Generator) -> "DocChatBuilder":
        """Set the generator to use for response generation.

        Args:
            generator: Generator instance (APIGenerator, DummyGenerator, etc.)

        Returns:
            Self for method chaining.
        """
        self._generator = generator
        return self

    def with_db_path(self, path: str) -> "DocChatBuilder":
        """Set the database path for document and session storage.

        Args:
            path: Path to DuckDB file, or ":memory:" for in-memory.

        Returns:
            Self for method chaining.
        """
        self.config.db_path = path
        return self

    def with_dimension(self, dimension: int) -> "DocChatBuilder":
        """Set the embedding dimension.

        Stored chunk vectors are only comparable with queries embedded at
        the same dimension.

        Returns:
            Self for method chaining.
        """
        self.config.dimension = dimension
        return self

    def with_chunking_config(
        self,
        chunk_size: Optional[int] = None,
        chunk_overlap: Optional[int] = None,
        max_chunks: Optional[int] = None,
        chunk_strategy: Optional[str] = None,
    ) -> "DocChatBuilder":
        """Configure chunking parameters.

        Returns:
            Self for method chaining.
        """
        if chunk_size is not None:
            self.config.chunk_size = chunk_size
        if chunk_overlap is not None:
            self.config.chunk_overlap = chunk_overlap
        if max_chunks is not None:
            self.config.max_chunks = max_chunks
        if chunk_strategy is not None:
            self.config.chunk_strategy = chunk_strategy
        return self

    def with_retrieval_config(
        self,
        threshold: Optional[float] = None,
        top_k: Optional[int] = None,
        fallback_k: Optional[int] = None,
    ) -> "DocChatBuilder":
        """Configure retrieval parameters.

        Args:
            threshold: Minimum similarity (exclusive).
            top_k: Maximum chunks above threshold.
            fallback_k: Chunks used when none clear the threshold.

        Returns:
            Self for method chaining.
        """
        if threshold is not None:
            self.config.threshold = threshold
        if top_k is not None:
            self.config.top_k = top_k
        if fallback_k is not None:
            self.config.fallback_k = fallback_k
        return self

    def with_existing_stores(
        self,
        document_store: Optional[DocumentStore] = None,
        session_store: Optional[SessionStore] = None,
    ) -> "DocChatBuilder":
        """Use existing store instances.

        Useful when sharing storage across several chat instances.

        Returns:
            Self for method chaining.
        """
        self._document_store = document_store
        self._session_store = session_store
        return self

    def _build_generator(self) -> Generator:
        if self._generator is not None:
            return self._generator

        if self.config.provider == "dummy":
            return DummyGenerator()

        if self.config.provider == "api":
            api_key = os.environ.get(self.config.api_key_env)
            if not api_key:
                raise ValueError(f"{self.config.api_key_env} is not configured")
            return APIGenerator.from_settings(
                api_key=api_key,
                base_url=self.config.base_url,
                model=self.config.model,
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
                timeout=self.config.generation_timeout,
            )

        raise ValueError(f"Unknown provider '{self.config.provider}', expected 'api' or 'dummy'")

    def build(self) -> DocumentChat:
        """Build and return a fully configured DocumentChat.

        All components are instantiated and wired together. The embedder
        and the document store share one dimension so stored vectors stay
        comparable with query vectors.

        Returns:
            Configured DocumentChat instance.

        Raises:
            ValueError: If the generator cannot be configured.
        """
        cfg = self.config

        embedder = HashEmbedder(dim=cfg.dimension)
        document_store = self._document_store or DocumentStore(cfg.db_path, dim=cfg.dimension)
        session_store = self._session_store or SessionStore(cfg.db_path)

        if document_store.dim != embedder.dim:
            raise ValueError(
                f"Document store dimension {document_store.dim} does not match embedder dimension {embedder.dim}"
            )

        # Build component configs
        chunking_config = ChunkingConfig(
            target_size=cfg.chunk_size,
            overlap=cfg.chunk_overlap,
            max_chunks=cfg.max_chunks,
            strategy=cfg.chunk_strategy,
        )

        retrieval_config = RetrievalConfig(
            threshold=cfg.threshold,
            top_k=cfg.top_k,
            fallback_k=cfg.fallback_k,
        )

        prompt_config = PromptConfig(
            history_turns=cfg.history_turns,
            greeting_turns=cfg.greeting_turns,
            fallback_sentence=cfg.fallback_sentence,
        )

        classifier = QueryClassifier()
        generator = self._build_generator()
        logger.debug("Building DocumentChat with %s", type(generator).__name__)

        return DocumentChat(
            documents=document_store,
            context=ConversationContext(session_store),
            chunker=TextChunker(chunking_config),
            embedder=embedder,
            retriever=Retriever(embedder, config=retrieval_config),
            classifier=classifier,
            composer=PromptComposer(prompt_config, classifier),
            generator=generator,
            history_window=max(cfg.history_turns, cfg.greeting_turns),
            generation_timeout=cfg.generation_timeout,
            failure_message=cfg.failure_message,
        )


def create_chat(
    db_path: str = ":memory:",
    generator: Optional[Generator] = None,
    **kwargs,
) -> DocumentChat:
    """Convenience function to create a document chat with defaults.

    For more control, use DocChatBuilder directly.

    Args:
        db_path: Path to DuckDB database (":memory:" for in-memory).
        generator: Generator instance (uses DummyGenerator if None).
        **kwargs: Additional config options passed to DocChatConfig.

    Returns:
        Configured DocumentChat instance.

    Example:
        >>> chat = create_chat()
        >>> chat = create_chat(db_path="doc_chat.duckdb", top_k=3, threshold=0.05)
    """
    config = DocChatConfig(db_path=db_path, **kwargs)
    builder = DocChatBuilder(config)

    if generator:
        builder.with_generator(generator)

    return builder.build()
