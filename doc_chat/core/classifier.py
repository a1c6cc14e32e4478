"""Rule-based query intent classification.

The rules form an ordered decision table of (predicate, intent) pairs.
The first predicate that matches wins; GENERAL is the catch-all.
"""

import re
from enum import Enum
from typing import Callable


class Intent(str, Enum):
    """Purpose of a user message. Selects the prompt template."""

    GREETING = "greeting"
    SUMMARY_REQUEST = "summary_request"
    TECHNICAL_QUERY = "technical_query"
    LIST_QUERY = "list_query"
    PERSON_QUERY = "person_query"
    DETAIL_QUERY = "detail_query"
    GENERAL = "general"


GREETING_PHRASES = frozenset({
    "hi",
    "hello",
    "hey",
    "greetings",
    "good morning",
    "good afternoon",
    "good evening",
    "hi there",
    "hello there",
})

GREETING_PREFIXES = ("hi", "hello", "hey")


# Plain keywords match anywhere in the lowercased message, so "who" also
# fires on "whose" and "list" on "checklist".
SUMMARY_KEYWORDS = ("summar", "overview", "about", "tell me about", "what is this", "describe")
TECHNICAL_KEYWORDS = ("tech stack", "technolog", "framework", "librar", "tool", "language", "skill")
LIST_KEYWORDS = ("list", "name", "what are", "which", "mention")
PERSON_KEYWORDS = ("who", "person", "student", "author", "supervisor", "professor")
DETAIL_KEYWORDS = ("detail", "explain", "elaborate", "process", "methodology")

DOCUMENT_KEYWORDS = (
    "pdf",
    "document",
    "file",
    "about",
    "tell me",
    "describe",
    "summarize",
    "what is",
    "overview",
    "what's this",
    "whats this",
    "explain this",
    "explain the",
)

# Two-part phrases with anything in between
BUILT_RE = re.compile(r"how.*built")
USES_RE = re.compile(r"what.*use")
WORKS_RE = re.compile(r"how.*work")


def _clean(message: str) -> str:
    return " ".join(message.lower().split())


def is_greeting(message: str) -> bool:
    """Exact canonical greeting (optionally ending in '.' or '!'), or a
    single word starting with hi/hello/hey."""
    cleaned = _clean(message)
    if not cleaned:
        return False

    if cleaned in GREETING_PHRASES:
        return True
    if cleaned[-1] in ".!" and cleaned[:-1] in GREETING_PHRASES:
        return True

    words = cleaned.split()
    return len(words) == 1 and words[0].startswith(GREETING_PREFIXES)


def _contains(keywords: tuple[str, ...], *patterns: re.Pattern) -> Callable[[str], bool]:
    """Predicate true if the message contains any keyword or matches any pattern."""
    def predicate(message: str) -> bool:
        return any(k in message for k in keywords) or any(p.search(message) for p in patterns)
    return predicate


class QueryClassifier:
    """Assigns a message to one Intent using ordered pattern rules.

    Example:
        >>> classifier = QueryClassifier()
        >>> classifier.classify("hi")
        <Intent.GREETING: 'greeting'>
        >>> classifier.classify("can you summarize and list the authors")
        <Intent.SUMMARY_REQUEST: 'summary_request'>
    """

    def __init__(self):
        self.rules: list[tuple[Callable[[str], bool], Intent]] = [
            (is_greeting, Intent.GREETING),
            (_contains(SUMMARY_KEYWORDS), Intent.SUMMARY_REQUEST),
            (_contains(TECHNICAL_KEYWORDS, BUILT_RE, USES_RE), Intent.TECHNICAL_QUERY),
            (_contains(LIST_KEYWORDS), Intent.LIST_QUERY),
            (_contains(PERSON_KEYWORDS), Intent.PERSON_QUERY),
            (_contains(DETAIL_KEYWORDS, WORKS_RE), Intent.DETAIL_QUERY),
        ]
        self._about_document = _contains(DOCUMENT_KEYWORDS)

    def classify(self, message: str) -> Intent:
        """Classify a message. Unmatched input resolves to GENERAL."""
        cleaned = _clean(message or "")
        for predicate, intent in self.rules:
            if predicate(cleaned):
                return intent
        return Intent.GENERAL

    def is_document_question(self, message: str) -> bool:
        """Whether the message asks about the document itself."""
        return self._about_document(_clean(message or ""))
