"""Thin orchestration layer for chatting with a document.

DocumentChat coordinates between components but contains no retrieval or
prompt logic of its own. All scoring is done by Retriever, all splitting
by TextChunker, all templates by PromptComposer.

For creating instances, use DocChatBuilder from builder.py.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
from uuid import uuid4

from ..errors import GenerationError
from .chunk import Document, ScoredChunk
from .chunk_store import DocumentStore
from .chunking import TextChunker
from .classifier import Intent, QueryClassifier
from .embedder import HashEmbedder
from .extraction import extract_text
from .generator import Generator
from .prompt_composer import PromptComposer
from .retriever import Retriever
from .session import ConversationContext, ConversationSession, ConversationTurn

logger = logging.getLogger(__name__)

# Source tags recorded on assistant turns and responses
SOURCE_PDF_CONTENT = "pdf_content"
SOURCE_GREETING = "greeting"
SOURCE_NO_PDF = "direct_ai_no_pdf"
SOURCE_PDF_NOT_FOUND = "direct_ai_pdf_not_found"
SOURCE_NO_CHUNKS = "direct_ai_no_chunks"
SOURCE_NO_RELEVANT_CHUNKS = "direct_ai_no_relevant_chunks"
SOURCE_FALLBACK = "fallback_no_context"
SOURCE_ERROR = "error"

DEFAULT_FAILURE_MESSAGE = (
    "Sorry, I couldn't generate a response right now. Please try again in a moment."
)


@dataclass
class ChatResponse:
    """Result of one chat request.

    Attributes:
        response: Text shown to the user.
        source: How the response was produced (see SOURCE_* tags).
        intent: Classified intent, None when no document was involved.
        relevant_chunks: Chunks used as context, best first.
        session_id: Session the turns were appended to.
        debug: Diagnostics only; never shown to the user.
    """

    response: str
    source: str
    intent: Optional[Intent] = None
    relevant_chunks: list[ScoredChunk] = field(default_factory=list)
    session_id: Optional[str] = None
    debug: dict = field(default_factory=dict)


class DocumentChat:
    """Thin orchestration layer for document question answering.

    Coordinates the flow between components:
    1. Chunker splits extracted text into chunks
    2. Embedder encodes chunks and queries
    3. DocumentStore persists chunks with their vectors
    4. Retriever ranks chunks against the query
    5. Classifier picks the intent, composer renders the prompt
    6. Generator produces the answer
    7. ConversationContext records both turns

    All business logic lives in the individual components.
    Use DocChatBuilder to create configured instances.

    Example:
        >>> from doc_chat import create_chat
        >>> chat = create_chat()
        >>> doc = chat.ingest("The project uses React.", owner_id="u1", name="notes.txt")
        >>> chat.ask("u1", doc.id, "What does the project use?").response
    """

    def __init__(
        self,
        documents: DocumentStore,
        context: ConversationContext,
        chunker: TextChunker,
        embedder: HashEmbedder,
        retriever: Retriever,
        classifier: QueryClassifier,
        composer: PromptComposer,
        generator: Generator,
        history_window: int = 4,
        generation_timeout: Optional[float] = None,
        failure_message: str = DEFAULT_FAILURE_MESSAGE,
    ):
        """Initialize a document chat.

        Args:
            documents: DocumentStore holding documents and chunk vectors.
            context: ConversationContext for session history.
            chunker: TextChunker for splitting extracted text.
            embedder: Embedder for chunks and queries.
            retriever: Retriever for ranking chunks.
            classifier: QueryClassifier for intent.
            composer: PromptComposer for rendering prompts.
            generator: Generator for producing answers.
            history_window: Turns loaded from the session for each prompt.
            generation_timeout: Default per-call timeout in seconds.
            failure_message: User-facing text when generation fails twice.
        """
        self.documents = documents
        self.context = context
        self.chunker = chunker
        self.embedder = embedder
        self.retriever = retriever
        self.classifier = classifier
        self.composer = composer
        self.generator = generator
        self.history_window = history_window
        self.generation_timeout = generation_timeout
        self.failure_message = failure_message

    def ingest(
        self,
        text: str,
        owner_id: str,
        name: str,
        document_id: Optional[str] = None,
    ) -> Document:
        """Chunk, embed and store a document's text.

        Args:
            text: Extracted document text.
            owner_id: User who owns the document.
            name: Display name.
            document_id: Optional ID (auto-generated if None).

        Returns:
            The stored Document with its chunks.
        """
        document_id = document_id or str(uuid4())
        texts = self.chunker.split(text)
        chunks = self.embedder.embed_chunks(texts, document_id)

        document = Document(
            id=document_id,
            owner_id=owner_id,
            name=name,
            text=text,
            chunks=tuple(chunks),
        )
        self.documents.add_document(document)

        logger.info(
            "Ingested %s (%s): %d chars, %d chunks",
            name,
            document_id,
            len(text),
            len(chunks),
        )
        return document

    def ingest_file(
        self,
        path: str | Path,
        owner_id: str,
        name: Optional[str] = None,
        document_id: Optional[str] = None,
    ) -> Document:
        """Extract text from a file and ingest it.

        Raises:
            ExtractionError: If no text can be extracted.
        """
        path = Path(path)
        text = extract_text(path)
        return self.ingest(text, owner_id, name or path.name, document_id)

    def ask(
        self,
        user_id: str,
        document_id: Optional[str],
        message: str,
        timeout: Optional[float] = None,
    ) -> ChatResponse:
        """Answer a message about a document and record both turns.

        This is the main entry point for chat requests:
        1. Load the session and commit the user turn
        2. Route (greeting, missing document, no chunks, grounded answer)
        3. Generate, falling back once to an answer without context
        4. Commit the assistant turn, even if everything above failed

        Args:
            user_id: The requesting user.
            document_id: Document to ground on; None answers directly.
            message: The user's message.
            timeout: Per-call generation timeout override in seconds.

        Returns:
            ChatResponse with the answer and its source tag.

        Raises:
            ValueError: If the message is empty.
        """
        if not message or not message.strip():
            raise ValueError("Message is required")
        timeout = timeout if timeout is not None else self.generation_timeout

        if document_id is None:
            logger.info("No document given, answering directly")
            answer, source, error = self._generate(
                self.composer.compose_ungrounded(message, []),
                message,
                [],
                timeout,
                SOURCE_NO_PDF,
                grounded=False,
            )
            return ChatResponse(response=answer, source=source, debug=self._error_debug(error))

        with self.context.lock(user_id, document_id):
            document = self.documents.get_document(document_id, owner_id=user_id)
            title = f"Chat about {document.name}" if document else None
            session = self.context.get_or_create(user_id, document_id, title=title)
            self._close_dangling_turn(session)
            window = self.context.window(session, self.history_window)

            self.context.append(session, ConversationTurn(role="user", content=message))

            try:
                result = self._answer(document, message, window, timeout)
            except Exception as e:
                logger.exception("Chat request failed for document %s", document_id)
                result = ChatResponse(
                    response=self.failure_message,
                    source=SOURCE_ERROR,
                    debug={"error": str(e)},
                )

            try:
                self.context.append(
                    session,
                    ConversationTurn(role="assistant", content=result.response, source=result.source),
                )
            except Exception as e:
                # The next request on this session closes the open user turn
                logger.exception("Could not record the reply for document %s", document_id)
                result.debug["persist_error"] = str(e)

        result.session_id = session.id
        result.debug["conversation_messages"] = len(session.turns)
        return result

    def _close_dangling_turn(self, session: ConversationSession) -> None:
        """Record a failure reply after a user turn whose reply was never stored."""
        if session.turns and session.turns[-1].role == "user":
            logger.warning("Session %s ends with an unanswered user turn, closing it", session.id)
            self.context.append(
                session,
                ConversationTurn(role="assistant", content=self.failure_message, source=SOURCE_ERROR),
            )

    def _answer(
        self,
        document: Optional[Document],
        message: str,
        window: list[ConversationTurn],
        timeout: Optional[float],
    ) -> ChatResponse:
        """Route one message and produce the response (no session writes)."""
        if document is None:
            logger.info("Document not found for user, answering directly")
            return self._ungrounded(message, window, timeout, SOURCE_PDF_NOT_FOUND)

        intent = self.classifier.classify(message)
        logger.debug("Classified %r as %s", message[:80], intent.value)

        if intent == Intent.GREETING:
            prompt = self.composer.compose(intent, [], window, message, document.name)
            answer, source, error = self._generate(
                prompt, message, window, timeout, SOURCE_GREETING, grounded=False
            )
            return ChatResponse(
                response=answer, source=source, intent=intent, debug=self._error_debug(error)
            )

        if not document.chunks:
            logger.info("Document %s has no chunks, answering directly", document.id)
            return self._ungrounded(message, window, timeout, SOURCE_NO_CHUNKS, intent)

        breakdown = self.retriever.retrieve_with_breakdown(
            self.embedder.embed(message), list(document.chunks)
        )
        selected = breakdown["selected"]
        if not selected:
            logger.info("No chunk of %s has a usable vector, answering directly", document.id)
            return self._ungrounded(message, window, timeout, SOURCE_NO_RELEVANT_CHUNKS, intent)

        prompt = self.composer.compose(intent, selected, window, message, document.name)
        answer, source, error = self._generate(
            prompt, message, window, timeout, SOURCE_PDF_CONTENT, grounded=True
        )

        debug = {
            "document_id": document.id,
            "document_name": document.name,
            "total_chunks": len(document.chunks),
            "relevant_chunks_used": len(selected),
            "top_score": selected[0].score,
            "fallback_used": breakdown["fallback_used"],
        }
        debug.update(self._error_debug(error))

        return ChatResponse(
            response=answer,
            source=source,
            intent=intent,
            relevant_chunks=selected if source == SOURCE_PDF_CONTENT else [],
            debug=debug,
        )

    def _ungrounded(
        self,
        message: str,
        window: list[ConversationTurn],
        timeout: Optional[float],
        source: str,
        intent: Optional[Intent] = None,
    ) -> ChatResponse:
        prompt = self.composer.compose_ungrounded(message, window)
        answer, source, error = self._generate(
            prompt, message, window, timeout, source, grounded=False
        )
        return ChatResponse(
            response=answer, source=source, intent=intent, debug=self._error_debug(error)
        )

    def _generate(
        self,
        prompt: str,
        message: str,
        window: list[ConversationTurn],
        timeout: Optional[float],
        source: str,
        grounded: bool,
    ) -> tuple[str, str, Optional[str]]:
        """Call the generator with the failure policy applied.

        A failed grounded call is retried exactly once without document
        context. If that fails too (or the first call was already without
        context), the generic failure message is returned.

        Returns:
            Tuple of (answer, source tag, error detail or None).
        """
        try:
            return self.generator.generate(prompt, timeout=timeout), source, None
        except GenerationError as e:
            if not grounded:
                logger.error("Generation failed (%s): %s", source, e)
                return self.failure_message, SOURCE_ERROR, str(e)
            first_error = e

        logger.warning("Grounded generation failed (%s), retrying without context", first_error)
        try:
            answer = self.generator.generate(
                self.composer.compose_ungrounded(message, window), timeout=timeout
            )
            return answer, SOURCE_FALLBACK, str(first_error)
        except GenerationError as e:
            logger.error("Fallback generation failed: %s (original error: %s)", e, first_error)
            return self.failure_message, SOURCE_ERROR, f"{first_error}; fallback: {e}"

    @staticmethod
    def _error_debug(error: Optional[str]) -> dict:
        return {"error": error} if error else {}

    def history(self, user_id: str, document_id: str) -> Optional[ConversationSession]:
        """Get the session for a document, or None if the user never asked."""
        return self.context.history(user_id, document_id)

    def list_sessions(self, user_id: str) -> list[ConversationSession]:
        return self.context.list_sessions(user_id)

    def list_documents(self, owner_id: str) -> list[Document]:
        """A user's documents, newest first. Chunks are not loaded."""
        return self.documents.list_documents(owner_id)

    def delete_history(self, user_id: str, document_id: str) -> bool:
        return self.context.delete(user_id, document_id)

    def delete_document(self, document_id: str, owner_id: str) -> bool:
        """Delete a document, its chunks and every session about it."""
        deleted = self.documents.delete_document(document_id, owner_id)
        if deleted:
            removed = self.context.delete_for_document(document_id)
            logger.info("Deleted document %s and %d session(s)", document_id, removed)
        return deleted

    def get_stats(self, user_id: str, document_id: str) -> dict:
        """Get statistics about a document and its session.

        Returns:
            Dict with chunk and turn counts.
        """
        session = self.history(user_id, document_id)
        turns = session.turns if session else []

        source_counts: dict[str, int] = {}
        for turn in turns:
            if turn.source:
                source_counts[turn.source] = source_counts.get(turn.source, 0) + 1

        return {
            "document_id": document_id,
            "total_chunks": self.documents.count(document_id),
            "total_turns": len(turns),
            "source_counts": source_counts,
            "last_active": session.last_active if session else None,
        }
