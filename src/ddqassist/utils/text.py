"""Text helpers: whitespace normalization and line-aware chunking."""

from __future__ import annotations

import re
from typing import List

from ddqassist.models import Chunk

_HORIZONTAL_SPACE = re.compile(r"[ \t\f\v\u00a0]+")
_BLANK_RUNS = re.compile(r"\n{3,}")


def normalize_text(raw: str) -> str:
    """Canonicalize line endings and collapse runs of whitespace.

    Line breaks survive (at most one blank line in a row) because the chunker
    uses them as preferred cut points.
    """
    if not raw:
        return ""
    text = raw.replace("\r\n", "\n").replace("\r", "\n").replace("\ufeff", "")
    lines = (_HORIZONTAL_SPACE.sub(" ", line).strip() for line in text.split("\n"))
    return _BLANK_RUNS.sub("\n\n", "\n".join(lines)).strip()


def chunk_text(text: str, *, max_chars: int = 1200, overlap: int = 200) -> List[Chunk]:
    """Split text into overlapping chunks, snapping cuts to line breaks.

    A window that ends before the text does is cut at its last line break
    when that break lies past the window midpoint. Pieces are trimmed and
    empty ones dropped; offsets refer to the trimmed text inside ``text``.
    """
    if max_chars <= 0:
        raise ValueError("max_chars must be positive")
    if overlap < 0 or overlap >= max_chars:
        raise ValueError("overlap must be >= 0 and smaller than max_chars")
    if not text or not text.strip():
        return []

    chunks: List[Chunk] = []
    length = len(text)
    start = 0
    while start < length:
        end = min(start + max_chars, length)
        if end < length:
            line_break = text.rfind("\n", start, end)
            if line_break > start + max_chars // 2:
                end = line_break

        piece = text[start:end]
        stripped = piece.strip()
        if stripped:
            offset = start + (len(piece) - len(piece.lstrip()))
            chunks.append(
                Chunk(
                    id=len(chunks),
                    text=stripped,
                    start_offset=offset,
                    end_offset=offset + len(stripped),
                )
            )

        if end >= length:
            break
        next_start = max(end - overlap, 0)
        # snapped windows can be shorter than the overlap
        start = next_start if next_start > start else end
    return chunks
