"""doc_chat: Ask questions about an uploaded document.

This package implements a retrieval-augmented generation (RAG) pipeline
for document chat: extracted text is split into chunks, each chunk gets a
deterministic hash embedding, and at question time the closest chunks are
retrieved and rendered into an intent-specific prompt for a language model.
Each (user, document) pair keeps its own conversation history.

Key components:
- Chunk/ScoredChunk/Document: Pure data classes
- TextChunker: Splits text into overlapping, sentence-aware chunks
- HashEmbedder: Model-free, deterministic text vectors
- RelevanceScorer: Clamped cosine similarity and ranking
- Retriever: Threshold retrieval with a never-empty fallback
- QueryClassifier: Ordered rules mapping a message to an Intent
- PromptComposer: One instruction template per intent
- ConversationContext: Per-session turn history with serialized appends
- DocumentStore/SessionStore: DuckDB persistence
- Generator: OpenAI-compatible API backend or offline dummy
- DocumentChat: Thin orchestration layer
- DocChatBuilder: Factory for creating configured chats

Example usage:
    from doc_chat import create_chat
    from doc_chat.core.generator import APIGenerator

    generator = APIGenerator.from_settings(api_key="...")
    chat = create_chat(db_path="doc_chat.duckdb", generator=generator)

    doc = chat.ingest_file("report.pdf", owner_id="alice")
    reply = chat.ask("alice", doc.id, "What technologies are used?")
    print(reply.response, reply.source)
"""

# Re-export everything from core
from .core import (
    # Core data structures
    Chunk,
    ScoredChunk,
    Document,
    # Chunking
    TextChunker,
    ChunkingConfig,
    # Embedding
    HashEmbedder,
    # Scoring
    RelevanceScorer,
    cosine_similarity,
    # Retrieval
    Retriever,
    RetrievalConfig,
    # Classification
    Intent,
    QueryClassifier,
    # Sessions
    ConversationTurn,
    ConversationSession,
    ConversationContext,
    # Prompt composition
    PromptComposer,
    PromptConfig,
    # Storage
    DocumentStore,
    SessionStore,
    # Generation
    Generator,
    APIGenerator,
    DummyGenerator,
    # Extraction
    extract_text,
    # Orchestration
    DocumentChat,
    ChatResponse,
)
from .builder import DocChatBuilder, DocChatConfig, create_chat, load_config
from .errors import DocChatError, ExtractionError, GenerationError

__all__ = [
    "Chunk",
    "ScoredChunk",
    "Document",
    "TextChunker",
    "ChunkingConfig",
    "HashEmbedder",
    "RelevanceScorer",
    "cosine_similarity",
    "Retriever",
    "RetrievalConfig",
    "Intent",
    "QueryClassifier",
    "ConversationTurn",
    "ConversationSession",
    "ConversationContext",
    "PromptComposer",
    "PromptConfig",
    "DocumentStore",
    "SessionStore",
    "Generator",
    "APIGenerator",
    "DummyGenerator",
    "extract_text",
    "DocumentChat",
    "ChatResponse",
    # Builder
    "DocChatBuilder",
    "DocChatConfig",
    "create_chat",
    "load_config",
    # Errors
    "DocChatError",
    "ExtractionError",
    "GenerationError",
]

__version__ = "0.1.0"
