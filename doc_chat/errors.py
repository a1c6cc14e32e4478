"""Exceptions raised by doc_chat."""


class DocChatError(Exception):
    """Base class for doc_chat errors."""


class GenerationError(DocChatError):
    """The generation backend failed or returned an unusable response."""


class ExtractionError(DocChatError):
    """Text could not be extracted from an uploaded file."""
