"""Document text extraction for sydneyqt.

Plain text formats are read directly; rich formats go through
MarkItDown, which is imported on first use.
"""

import re
from pathlib import Path

from sydneyqt.errors import IngestError
from sydneyqt.logging import get_logger
from sydneyqt.models.reference import DocumentData

__all__ = [
    "DOCUMENT_EXTENSIONS",
    "extract_document",
    "normalize_extracted_text",
]

logger = get_logger(__name__)

DOCUMENT_EXTENSIONS = (".pdf", ".docx", ".pptx", ".txt", ".md")
_PLAIN_TEXT_EXTENSIONS = (".txt", ".md")

_NEWLINE_RUNS = re.compile(r"\n+")


def normalize_extracted_text(text: str) -> str:
    """Remove carriage returns and collapse runs of newlines."""
    return _NEWLINE_RUNS.sub("\n", text.replace("\r", "")).strip()


def extract_document(path: Path) -> DocumentData:
    """Extract the text of a document file.

    Blocking; callers on the event loop should run it in a thread.

    Args:
        path: Document path

    Returns:
        DocumentData with the file name, lower-cased extension and text

    Raises:
        IngestError: If the extension is not allowed, the file cannot be
            read, or it contains no text
    """
    ext = path.suffix.lower()
    if ext not in DOCUMENT_EXTENSIONS:
        raise IngestError(
            f"Unsupported document type {ext or '(none)'}; "
            f"expected one of {', '.join(DOCUMENT_EXTENSIONS)}"
        )

    try:
        if ext in _PLAIN_TEXT_EXTENSIONS:
            text = path.read_text(encoding="utf-8")
        else:
            from markitdown import MarkItDown

            result = MarkItDown().convert(str(path))
            text = normalize_extracted_text(result.text_content or "")
    except (OSError, UnicodeDecodeError) as e:
        raise IngestError(f"Cannot read document {path.name}: {e}") from e
    except Exception as e:
        # MarkItDown raises converter-specific exception types
        raise IngestError(f"Cannot extract text from {path.name}: {e}") from e

    if not text.strip():
        raise IngestError(f"Document {path.name} contains no text")

    logger.debug("document_extracted", file=path.name, ext=ext, chars=len(text))
    return DocumentData(name=path.name, ext=ext, text=text)
