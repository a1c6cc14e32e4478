"""Prompt composition for grounded document answers.

Renders the intent, retrieved chunks and recent conversation into the
single instruction string sent to the generator. Every rendering is a
pure function of its inputs; templates never mix.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from .chunk import ScoredChunk
from .classifier import Intent, QueryClassifier
from .session import ConversationTurn

DEFAULT_FALLBACK_SENTENCE = "I couldn't find that information in this document."

GROUNDING_RULES = """Rules:
- Answer ONLY from the document content above. Do not use outside knowledge.
- If the content does not contain the answer, reply exactly: "{fallback}"
- Do not invent names, numbers or details that are not in the content."""

GREETING_FIRST_TEMPLATE = """Start a new conversation about a document.

Document: "{document}"
User said: "{message}"

Respond with a simple, friendly greeting in one or two short sentences.
Do NOT mention or describe the document content. Just greet naturally.
If the user asks for information from the document, reply exactly "{fallback}" and nothing else."""

GREETING_CONTINUE_TEMPLATE = """Continue the conversation naturally.

Previous messages:
{history}

User just said: "{message}"

Respond with a simple, friendly greeting that continues the conversation.
Keep it casual and short (1-2 sentences max).
Do NOT describe the document content. If the user asks for information from it,
reply exactly "{fallback}" and nothing else."""

SUMMARY_TEMPLATE = """You are summarizing a document for a user.

Document: "{document}"

DOCUMENT CONTENT (relevant parts):
{context}

User's request: "{message}"

Write a structured summary:
1. One sentence on what the document is.
2. The main points as short bullet points.
3. Any conclusions or outcomes it states.

{rules}"""

TECHNICAL_TEMPLATE = """You are extracting technical information from a document.

Document: "{document}"

DOCUMENT CONTENT (relevant parts):
{context}

User's question: "{message}"

Identify every technology, framework, library, tool, programming language or
skill the content mentions that is relevant to the question. Name each one
exactly as written and say briefly how the document uses it.

{rules}"""

LIST_TEMPLATE = """You are extracting a list from a document.

Document: "{document}"

DOCUMENT CONTENT (relevant parts):
{context}

User's question: "{message}"

Answer as a bulleted list with one item per line. Include every matching item
the content mentions and nothing else.

{rules}"""

PERSON_TEMPLATE = """You are identifying people named in a document.

Document: "{document}"

DOCUMENT CONTENT (relevant parts):
{context}

User's question: "{message}"

Name each relevant person exactly as written, with their role (for example
author, student, supervisor or professor) if the content states it.

{rules}"""

DETAIL_TEMPLATE = """You are explaining part of a document in detail.

Document: "{document}"

DOCUMENT CONTENT (relevant parts):
{context}

User's question: "{message}"

Give a thorough, step-by-step explanation of the process, method or concept
asked about. Quote the content directly where it helps.

{rules}"""

GENERAL_DOCUMENT_TEMPLATE = """You are helping a user understand a document.

Document: "{document}"

DOCUMENT CONTENT (relevant parts):
{context}

User's question: "{message}"

Give a helpful, concise answer about the document.

{rules}"""

GENERAL_CONVERSATION_TEMPLATE = """You are having a conversation about a document with a user.

PREVIOUS CONVERSATION (for context):
{history}

Document: "{document}"

RELEVANT DOCUMENT CONTEXT:
{context}

User's current question: "{message}"

Answer the question and continue the conversation naturally.

{rules}"""

UNGROUNDED_TEMPLATE = """You are a helpful assistant.

PREVIOUS CONVERSATION (for context):
{history}

User's question: "{message}"

No document content is available for this question. Answer helpfully and
concisely, and say so if you are unsure."""

GROUNDED_TEMPLATES = {
    Intent.SUMMARY_REQUEST: SUMMARY_TEMPLATE,
    Intent.TECHNICAL_QUERY: TECHNICAL_TEMPLATE,
    Intent.LIST_QUERY: LIST_TEMPLATE,
    Intent.PERSON_QUERY: PERSON_TEMPLATE,
    Intent.DETAIL_QUERY: DETAIL_TEMPLATE,
}


@dataclass
class PromptConfig:
    """Configuration for prompt composition.

    Attributes:
        history_turns: Turns inlined for the general conversational template.
        greeting_turns: Turns inlined when continuing after a greeting.
        fallback_sentence: Exact sentence the model must emit when the
            context is insufficient.
        context_separator: Joins retrieved chunk texts.
    """

    history_turns: int = 4
    greeting_turns: int = 2
    fallback_sentence: str = DEFAULT_FALLBACK_SENTENCE
    context_separator: str = "\n\n"


class PromptComposer:
    """Selects the template for an intent and fills it.

    Example:
        >>> composer = PromptComposer()
        >>> prompt = composer.compose(
        ...     Intent.TECHNICAL_QUERY, scored, [], "What is used?", "report.pdf"
        ... )
    """

    def __init__(
        self,
        config: Optional[PromptConfig] = None,
        classifier: Optional[QueryClassifier] = None,
    ):
        """Initialize the composer.

        Args:
            config: Prompt configuration (uses defaults if not provided).
            classifier: Supplies the "is this about the document" gate for
                the general template.
        """
        self.config = config or PromptConfig()
        self.classifier = classifier or QueryClassifier()

    def compose(
        self,
        intent: Intent,
        context_chunks: Sequence[ScoredChunk],
        window: Sequence[ConversationTurn],
        message: str,
        document_name: str,
    ) -> str:
        """Render the prompt for one request.

        Args:
            intent: Classified intent of the message.
            context_chunks: Retrieved chunks, best first.
            window: Recent turns, oldest first, excluding the current message.
            message: The current user message.
            document_name: Display name of the document.

        Returns:
            The instruction string for the generator.
        """
        if intent == Intent.GREETING:
            return self._greeting(window, message, document_name)

        fields = {
            "document": document_name,
            "context": self.format_context(context_chunks),
            "message": message,
            "rules": GROUNDING_RULES.format(fallback=self.config.fallback_sentence),
        }

        template = GROUNDED_TEMPLATES.get(intent)
        if template is not None:
            return template.format(**fields)

        if self.classifier.is_document_question(message):
            return GENERAL_DOCUMENT_TEMPLATE.format(**fields)

        history = self.format_history(window, self.config.history_turns)
        return GENERAL_CONVERSATION_TEMPLATE.format(history=history, **fields)

    def compose_ungrounded(self, message: str, window: Sequence[ConversationTurn]) -> str:
        """Render the prompt used when no document context is available."""
        history = self.format_history(window, self.config.history_turns)
        return UNGROUNDED_TEMPLATE.format(history=history, message=message)

    def _greeting(
        self, window: Sequence[ConversationTurn], message: str, document_name: str
    ) -> str:
        recent = list(window)[-self.config.greeting_turns:] if self.config.greeting_turns > 0 else []
        if recent:
            return GREETING_CONTINUE_TEMPLATE.format(
                history=self.format_history(recent, len(recent)),
                message=message,
                fallback=self.config.fallback_sentence,
            )
        return GREETING_FIRST_TEMPLATE.format(
            document=document_name, message=message, fallback=self.config.fallback_sentence
        )

    def format_context(self, context_chunks: Sequence[ScoredChunk]) -> str:
        if not context_chunks:
            return "(no relevant content found)"
        return self.config.context_separator.join(sc.chunk.text for sc in context_chunks)

    def format_history(self, window: Sequence[ConversationTurn], n: int) -> str:
        """Format the last n turns as 'role: content' lines."""
        recent = list(window)[-n:] if n > 0 else []
        if not recent:
            return "No previous conversation"
        return "\n".join(f"{turn.role}: {turn.content}" for turn in recent)
