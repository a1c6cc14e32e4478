"""Tests for PromptComposer."""

import pytest

from doc_chat.core.chunk import Chunk, ScoredChunk
from doc_chat.core.classifier import Intent
from doc_chat.core.prompt_composer import (
    DEFAULT_FALLBACK_SENTENCE,
    PromptComposer,
    PromptConfig,
)
from doc_chat.core.session import ConversationTurn


GROUNDED_INTENTS = [
    Intent.SUMMARY_REQUEST,
    Intent.TECHNICAL_QUERY,
    Intent.LIST_QUERY,
    Intent.PERSON_QUERY,
    Intent.DETAIL_QUERY,
]


@pytest.fixture
def composer():
    """Provide a composer with default config."""
    return PromptComposer()


@pytest.fixture
def context():
    """Provide two retrieved chunks."""
    return [
        ScoredChunk(Chunk(text="The project uses React and Node.js.", index=0), 0.8),
        ScoredChunk(Chunk(text="It was written by Ada Lovelace.", index=1), 0.4),
    ]


@pytest.fixture
def window():
    """Provide a short conversation history."""
    return [
        ConversationTurn("user", "hello"),
        ConversationTurn("assistant", "Hi! How can I help?"),
        ConversationTurn("user", "what is in chapter one"),
        ConversationTurn("assistant", "Chapter one covers the setup."),
    ]


class TestGroundedTemplates:
    """Tests for the intent-specific grounded templates."""

    @pytest.mark.parametrize("intent", GROUNDED_INTENTS)
    def test_contains_inputs(self, composer, context, intent):
        """Test that every grounded prompt carries the name, context and question."""
        prompt = composer.compose(intent, context, [], "What is used?", "report.pdf")

        assert '"report.pdf"' in prompt
        assert "The project uses React and Node.js." in prompt
        assert "It was written by Ada Lovelace." in prompt
        assert '"What is used?"' in prompt

    @pytest.mark.parametrize("intent", GROUNDED_INTENTS)
    def test_contains_fallback_sentence(self, composer, context, intent):
        """Test that every grounded prompt names the exact fallback sentence."""
        prompt = composer.compose(intent, context, [], "question", "report.pdf")
        assert DEFAULT_FALLBACK_SENTENCE in prompt

    def test_templates_distinct(self, composer, context):
        """Test that each intent renders a different prompt."""
        prompts = {
            composer.compose(intent, context, [], "question", "report.pdf")
            for intent in GROUNDED_INTENTS
        }
        assert len(prompts) == len(GROUNDED_INTENTS)

    def test_context_order_preserved(self, composer, context):
        """Test that chunks appear best first."""
        prompt = composer.compose(Intent.SUMMARY_REQUEST, context, [], "summarize", "report.pdf")
        assert prompt.index("React") < prompt.index("Lovelace")

    def test_custom_fallback_sentence(self, context):
        composer = PromptComposer(PromptConfig(fallback_sentence="Not in the file."))
        prompt = composer.compose(Intent.LIST_QUERY, context, [], "list", "report.pdf")
        assert "Not in the file." in prompt
        assert DEFAULT_FALLBACK_SENTENCE not in prompt

    def test_grounded_templates_omit_history(self, composer, context, window):
        """Test that intent templates do not inline the conversation."""
        prompt = composer.compose(Intent.PERSON_QUERY, context, window, "who?", "report.pdf")
        assert "Chapter one covers the setup." not in prompt

    def test_empty_context(self, composer):
        prompt = composer.compose(Intent.DETAIL_QUERY, [], [], "explain", "report.pdf")
        assert "(no relevant content found)" in prompt


class TestGeneralTemplates:
    """Tests for the GENERAL intent."""

    def test_document_question(self, composer, context, window):
        """Test that questions about the document use the document template."""
        prompt = composer.compose(
            Intent.GENERAL, context, window, "what is this file for", "report.pdf"
        )
        assert "The project uses React and Node.js." in prompt
        assert "Chapter one covers the setup." not in prompt

    def test_conversational_question(self, composer, context, window):
        """Test that other questions inline recent history."""
        prompt = composer.compose(Intent.GENERAL, context, window, "and after that?", "report.pdf")
        assert "user: what is in chapter one" in prompt
        assert "assistant: Chapter one covers the setup." in prompt
        assert "The project uses React and Node.js." in prompt
        assert DEFAULT_FALLBACK_SENTENCE in prompt

    def test_history_limited(self, context, window):
        """Test that only the last history_turns turns are inlined."""
        composer = PromptComposer(PromptConfig(history_turns=2))
        prompt = composer.compose(Intent.GENERAL, context, window, "and then?", "report.pdf")
        assert "Hi! How can I help?" not in prompt
        assert "Chapter one covers the setup." in prompt

    def test_no_history(self, composer, context):
        prompt = composer.compose(Intent.GENERAL, context, [], "and then?", "report.pdf")
        assert "No previous conversation" in prompt


class TestGreeting:
    """Tests for greeting prompts."""

    def test_first_greeting(self, composer, context):
        """Test that a greeting with no history never includes chunk text."""
        prompt = composer.compose(Intent.GREETING, context, [], "hi", "report.pdf")
        assert '"hi"' in prompt
        assert "report.pdf" in prompt
        assert "React" not in prompt

    def test_continuing_greeting(self, composer, window):
        """Test that a later greeting includes the last two turns only."""
        prompt = composer.compose(Intent.GREETING, [], window, "hey", "report.pdf")
        assert "user: what is in chapter one" in prompt
        assert "assistant: Chapter one covers the setup." in prompt
        assert "Hi! How can I help?" not in prompt

    @pytest.mark.parametrize("with_history", [False, True])
    def test_greeting_carries_fallback_sentence(self, composer, window, with_history):
        """Test that both greeting variants name the exact fallback sentence."""
        history = window if with_history else []
        prompt = composer.compose(Intent.GREETING, [], history, "hi", "report.pdf")
        assert DEFAULT_FALLBACK_SENTENCE in prompt
        assert "Do NOT" in prompt

    def test_greeting_custom_fallback_sentence(self):
        composer = PromptComposer(PromptConfig(fallback_sentence="Not in the file."))
        prompt = composer.compose(Intent.GREETING, [], [], "hello", "report.pdf")
        assert "Not in the file." in prompt


class TestUngrounded:
    def test_compose_ungrounded(self, composer, window):
        prompt = composer.compose_ungrounded("What is RAG?", window)
        assert '"What is RAG?"' in prompt
        assert "assistant: Chapter one covers the setup." in prompt
        assert "DOCUMENT CONTENT" not in prompt

    def test_pure_function(self, composer, context, window):
        """Test that equal inputs render equal prompts."""
        a = composer.compose(Intent.GENERAL, context, window, "and?", "report.pdf")
        b = composer.compose(Intent.GENERAL, context, window, "and?", "report.pdf")
        assert a == b
