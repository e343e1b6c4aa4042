"""Session-scoped document state.

The document, its chunks and the embedding index are replaced together and
invalidated together. ``version`` increases on every document change so an
index built for an older document can be recognized and dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List

import numpy as np

from ddqassist.config import AppConfig
from ddqassist.models import Chunk, Document
from ddqassist.utils.files import format_file_size
from ddqassist.utils.text import chunk_text

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class EmbeddingIndex:
    vectors: np.ndarray
    model: str
    version: int

    def is_valid_for(self, chunks: List[Chunk], model: str, version: int) -> bool:
        return len(self.vectors) == len(chunks) and self.model == model and self.version == version


class SessionStore:
    """Holds the single uploaded document and everything derived from it."""

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config = config or AppConfig()
        self.document: Document | None = None
        self.chunks: List[Chunk] = []
        self.index: EmbeddingIndex | None = None
        self.version = 0

    @property
    def has_content(self) -> bool:
        return bool(self.document and self.document.content)

    def replace(self, document: Document) -> List[Chunk]:
        """Install a new document, recompute its chunks and drop the index."""
        chunks = chunk_text(
            document.content,
            max_chars=self.config.chunk_chars,
            overlap=self.config.overlap,
        )
        self.document, self.chunks, self.index = document, chunks, None
        self.version += 1
        LOGGER.info(
            "Loaded %s: %s characters, %s chunks%s",
            document.name,
            len(document.content),
            len(chunks),
            " (truncated)" if document.truncated else "",
        )
        return chunks

    def clear(self) -> None:
        self.document, self.chunks, self.index = None, [], None
        self.version += 1
        LOGGER.info("Document cleared")

    def invalidate_index(self) -> None:
        self.index = None

    def install_index(self, index: EmbeddingIndex) -> bool:
        """Atomically publish ``index`` unless the document changed meanwhile."""
        if index.version != self.version or len(index.vectors) != len(self.chunks):
            LOGGER.info("Discarding embedding index built for a replaced document")
            return False
        self.index = index
        return True

    def current_index(self, model: str) -> EmbeddingIndex | None:
        """Return the index if it is still valid for the current chunks and model."""
        if self.index is None or not self.index.is_valid_for(self.chunks, model, self.version):
            return None
        return self.index

    def summary(self) -> dict:
        if self.document is None:
            return {"loaded": False}
        return {
            "loaded": True,
            "name": self.document.name,
            "size": self.document.size,
            "size_label": format_file_size(self.document.size),
            "characters": len(self.document.content),
            "truncated": self.document.truncated,
            "chunks": len(self.chunks),
            "indexed": self.index is not None,
        }
