"""Per-question evidence retrieval over the session document."""

from __future__ import annotations

import asyncio
import logging
from typing import List

from ddqassist.config import MAX_CONTEXT_CHUNKS, MIN_SIMILARITY_THRESHOLD
from ddqassist.embedding.client import EmbeddingClient
from ddqassist.errors import EmbeddingMismatchError, EmptyDocumentError, MalformedResponseError
from ddqassist.index.ranker import rank, select_top_evidence
from ddqassist.index.session import EmbeddingIndex, SessionStore
from ddqassist.models import EvidenceItem, Question

LOGGER = logging.getLogger(__name__)


def query_text(question: Question) -> str:
    """Text embedded for a question; the number disambiguates similar wording."""
    return f"{question.number}: {question.text}"


class Retriever:
    """Builds the chunk index lazily and selects evidence for questions."""

    def __init__(
        self,
        session: SessionStore,
        embedder: EmbeddingClient,
        *,
        max_chunks: int = MAX_CONTEXT_CHUNKS,
        min_similarity: float = MIN_SIMILARITY_THRESHOLD,
    ) -> None:
        self.session = session
        self.embedder = embedder
        self.max_chunks = max_chunks
        self.min_similarity = min_similarity
        self._build_lock = asyncio.Lock()

    async def ensure_index(self, *, api_key: str, question_ref: str | None = None) -> EmbeddingIndex:
        """Return a valid index, rebuilding it if absent or stale."""
        if not self.session.chunks:
            raise EmptyDocumentError()

        async with self._build_lock:
            model = self.embedder.model_name
            index = self.session.current_index(model)
            if index is not None:
                return index

            version = self.session.version
            chunks = list(self.session.chunks)
            self.session.invalidate_index()
            LOGGER.info("Building embedding index for %s chunks with %s", len(chunks), model)
            vectors = await self.embedder.embed(
                [chunk.text for chunk in chunks],
                api_key=api_key,
                subtype="document",
                question_ref=question_ref,
            )
            if len(vectors) != len(chunks):
                raise EmbeddingMismatchError(len(chunks), len(vectors))

            index = EmbeddingIndex(vectors=vectors, model=model, version=version)
            self.session.install_index(index)
            return index

    async def gather_evidence(self, question: Question, *, api_key: str) -> List[EvidenceItem]:
        """Rank the document chunks against ``question``.

        Raises:
            EmptyDocumentError: the session holds no chunks.
            EmbeddingMismatchError: the index could not be aligned with the chunks.
            MalformedResponseError: the question embedding does not match the index.
        """
        index = await self.ensure_index(api_key=api_key, question_ref=question.number)
        if index.version != self.session.version:
            raise EmptyDocumentError("The document changed while it was being indexed. Please retry.")
        chunks = list(self.session.chunks)

        query = await self.embedder.embed_query(
            query_text(question), api_key=api_key, question_ref=question.number
        )
        if query.shape[0] != index.vectors.shape[1]:
            raise MalformedResponseError(
                f"Question embedding has {query.shape[0]} dimensions, "
                f"the document index has {index.vectors.shape[1]}."
            )
        ranked = rank(query, index.vectors)
        evidence = select_top_evidence(
            ranked, chunks, limit=self.max_chunks, threshold=self.min_similarity
        )
        LOGGER.info(
            "Question %s: %s evidence chunks (best score %.2f)",
            question.number,
            len(evidence),
            ranked[0][1] if ranked else 0.0,
        )
        return evidence
