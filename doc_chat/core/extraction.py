"""Text extraction from uploaded files."""

import logging
from pathlib import Path
from typing import Callable

from ..errors import ExtractionError

logger = logging.getLogger(__name__)

# 10MB, the upload limit
MAX_FILE_BYTES = 10 * 1024 * 1024


def _extract_pdf(path: Path) -> str:
    """Extract page text from a PDF, skipping empty pages."""
    from pypdf import PdfReader

    with open(path, "rb") as f:
        reader = PdfReader(f)
        parts = []
        for page in reader.pages:
            page_text = page.extract_text() or ""
            if page_text.strip():
                parts.append(page_text)
    return "\n".join(parts)


def _extract_plain(path: Path) -> str:
    with open(path, "r", encoding="utf-8", errors="ignore") as f:
        return f.read()


EXTRACTORS: dict[str, Callable[[Path], str]] = {
    ".pdf": _extract_pdf,
    ".txt": _extract_plain,
    ".md": _extract_plain,
}


def extract_text(path: str | Path, max_bytes: int = MAX_FILE_BYTES) -> str:
    """Extract the text content of a supported file.

    Args:
        path: File to read (.pdf, .txt or .md).
        max_bytes: Files larger than this are rejected.

    Returns:
        The extracted text, stripped.

    Raises:
        ExtractionError: If the file is missing, too large, of an unsupported
            type, unreadable, or yields no text.
    """
    path = Path(path)
    if not path.is_file():
        raise ExtractionError(f"File not found: {path}")

    extractor = EXTRACTORS.get(path.suffix.lower())
    if extractor is None:
        raise ExtractionError(
            f"Unsupported file type '{path.suffix}', expected one of {sorted(EXTRACTORS)}"
        )

    size = path.stat().st_size
    if size > max_bytes:
        raise ExtractionError(f"{path.name} is {size} bytes, limit is {max_bytes}")

    try:
        text = extractor(path)
    except Exception as e:
        # pypdf raises its own error types for damaged files
        raise ExtractionError(f"Could not extract text from {path.name}: {e}") from e

    text = text.strip()
    if not text:
        raise ExtractionError(f"Could not extract text from {path.name}")

    logger.info("Extracted %d characters from %s", len(text), path.name)
    return text
