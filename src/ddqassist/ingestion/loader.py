"""Document ingestion: text extraction and normalization.

PDFs are read through their text layer with PyMuPDF (fitz); everything else
is treated as UTF-8 plain text.
"""

from __future__ import annotations

import logging
from typing import Iterator

import fitz  # PyMuPDF

from ddqassist.config import MAX_DOCUMENT_CHARS
from ddqassist.errors import DocumentReadError
from ddqassist.models import Document
from ddqassist.utils.files import looks_like_pdf
from ddqassist.utils.text import normalize_text

LOGGER = logging.getLogger(__name__)


def iter_pdf_pages(data: bytes) -> Iterator[str]:
    """Yield the text layer of each page of an in-memory PDF."""
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except Exception as exc:
        raise DocumentReadError() from exc

    try:
        for index in range(len(doc)):
            try:
                yield doc[index].get_text() or ""
            except Exception as exc:  # pragma: no cover - damaged page
                LOGGER.warning("Failed to read page %s: %s", index, exc)
    finally:
        doc.close()


def extract_text(filename: str, data: bytes) -> str:
    """Return raw text for an uploaded file."""
    if looks_like_pdf(filename, data):
        return "\n\n".join(iter_pdf_pages(data))
    return data.decode("utf-8-sig", errors="replace")


def build_document(
    name: str,
    size: int,
    raw_text: str,
    *,
    max_chars: int = MAX_DOCUMENT_CHARS,
) -> Document:
    """Normalize extracted text and keep at most ``max_chars`` characters."""
    content = normalize_text(raw_text)
    truncated = len(content) > max_chars
    if truncated:
        content = content[:max_chars]
        LOGGER.info("Document %s truncated to %s characters", name, max_chars)
    return Document(name=name, size=size, content=content, truncated=truncated)


def load_upload(filename: str, data: bytes, *, max_chars: int = MAX_DOCUMENT_CHARS) -> Document:
    """Extract, normalize and truncate an uploaded file in one step."""
    return build_document(filename, len(data), extract_text(filename, data), max_chars=max_chars)
