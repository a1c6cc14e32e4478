"""Core components for doc_chat.

This module contains all the core implementation classes for the
retrieval-augmented document question answering pipeline.
"""

# Core data structures
from .chunk import Chunk, ScoredChunk, Document

# Text chunking
from .chunking import TextChunker, ChunkingConfig

# Embedding
from .embedder import HashEmbedder

# Scoring
from .scoring import RelevanceScorer, cosine_similarity

# Retrieval
from .retriever import Retriever, RetrievalConfig

# Classification
from .classifier import Intent, QueryClassifier

# Sessions
from .session import ConversationTurn, ConversationSession, ConversationContext

# Prompt composition
from .prompt_composer import PromptComposer, PromptConfig

# Storage
from .chunk_store import DocumentStore
from .session_store import SessionStore

# Generation
from .generator import Generator, APIGenerator, DummyGenerator

# Extraction
from .extraction import extract_text

# Orchestration
from .chat import DocumentChat, ChatResponse

__all__ = [
    # Core data structures
    "Chunk",
    "ScoredChunk",
    "Document",
    # Chunking
    "TextChunker",
    "ChunkingConfig",
    # Embedding
    "HashEmbedder",
    # Scoring
    "RelevanceScorer",
    "cosine_similarity",
    # Retrieval
    "Retriever",
    "RetrievalConfig",
    # Classification
    "Intent",
    "QueryClassifier",
    # Sessions
    "ConversationTurn",
    "ConversationSession",
    "ConversationContext",
    # Prompt composition
    "PromptComposer",
    "PromptConfig",
    # Storage
    "DocumentStore",
    "SessionStore",
    # Generation
    "Generator",
    "APIGenerator",
    "DummyGenerator",
    # Extraction
    "extract_text",
    # Orchestration
    "DocumentChat",
    "ChatResponse",
]
