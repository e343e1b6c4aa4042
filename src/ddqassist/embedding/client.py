"""Remote embedding client.

Texts are sent to an OpenAI-compatible ``/embeddings`` endpoint in
sequential batches; each batch is one telemetry record.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import httpx
import numpy as np

from ddqassist.config import DEFAULT_EMBEDDING_MODEL, EMBEDDING_BATCH_SIZE, EMBEDDING_ENDPOINT
from ddqassist.errors import AssistError, EmbeddingMismatchError, MalformedResponseError
from ddqassist.telemetry.ledger import TelemetryLedger, normalize_token_usage
from ddqassist.utils.http import encode_payload, post_json

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class EmbeddingConfig:
    model_name: str = DEFAULT_EMBEDDING_MODEL
    endpoint: str = EMBEDDING_ENDPOINT
    batch_size: int = EMBEDDING_BATCH_SIZE
    timeout: float = 60.0


def _vectors_from(data: object) -> list[list[float]]:
    if not isinstance(data, dict) or not isinstance(data.get("data"), list):
        raise MalformedResponseError("Embedding response did not contain a data array.")
    vectors = []
    for item in data["data"]:
        embedding = item.get("embedding") if isinstance(item, dict) else None
        if not isinstance(embedding, list):
            raise MalformedResponseError("Embedding response item had no embedding.")
        vectors.append(embedding)
    return vectors


class EmbeddingClient:
    """Batches texts through the embedding API and returns float32 vectors."""

    def __init__(
        self,
        ledger: TelemetryLedger,
        config: EmbeddingConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.ledger = ledger
        self.config = config or EmbeddingConfig()
        self._transport = transport

    @property
    def model_name(self) -> str:
        return self.config.model_name

    async def embed(
        self,
        texts: Sequence[str],
        *,
        api_key: str,
        subtype: str = "document",
        question_ref: str | None = None,
    ) -> np.ndarray:
        """Embed ``texts`` in order; batch N+1 starts after batch N resolves."""
        texts = list(texts)
        batches: list[np.ndarray] = []
        size = self.config.batch_size
        total_batches = (len(texts) + size - 1) // size
        for number, start in enumerate(range(0, len(texts), size), start=1):
            batch = texts[start : start + size]
            description = f"Embedding batch {number}/{total_batches} ({len(batch)} texts)"
            batches.append(
                await self._embed_batch(
                    batch,
                    api_key=api_key,
                    subtype=subtype,
                    description=description,
                    question_ref=question_ref,
                )
            )
        if not batches:
            return np.zeros((0, 0), dtype="float32")
        if len({matrix.shape[1] for matrix in batches}) > 1:
            raise MalformedResponseError("Embedding batches had inconsistent dimensions.")
        return np.vstack(batches)

    async def embed_query(self, text: str, *, api_key: str, question_ref: str | None = None) -> np.ndarray:
        """Convenience wrapper for single-query embedding."""
        vectors = await self._embed_batch(
            [text],
            api_key=api_key,
            subtype="query",
            description="Question embedding",
            question_ref=question_ref,
        )
        return vectors[0]

    async def _embed_batch(
        self,
        batch: list[str],
        *,
        api_key: str,
        subtype: str,
        description: str,
        question_ref: str | None,
    ) -> np.ndarray:
        body = encode_payload({"model": self.config.model_name, "input": batch})
        record_id = self.ledger.record(
            "embedding",
            subtype=subtype,
            description=description,
            question_ref=question_ref,
            context_count=len(batch),
            payload_size=len(body),
        )
        try:
            response = await post_json(
                self.config.endpoint,
                body,
                api_key=api_key,
                timeout=self.config.timeout,
                transport=self._transport,
            )
            vectors = _vectors_from(response.data)
            if len(vectors) != len(batch):
                raise EmbeddingMismatchError(len(batch), len(vectors))
            matrix = np.asarray(vectors, dtype="float32")
            if matrix.ndim != 2:
                raise MalformedResponseError("Embedding vectors must be flat lists of numbers.")
            if not np.isfinite(matrix).all():
                raise MalformedResponseError("Embedding vectors contained non-numeric values.")
        except AssistError as exc:
            self.ledger.fail(record_id, exc)
            raise
        except ValueError as exc:
            # ragged vectors
            error = MalformedResponseError("Embedding vectors had inconsistent dimensions.")
            self.ledger.fail(record_id, error)
            raise error from exc

        self.ledger.succeed(
            record_id,
            http_status=response.status_code,
            token_usage=normalize_token_usage(response.data.get("usage")),
            response_preview=f"{len(vectors)} vectors x {matrix.shape[1]} dims",
        )
        return matrix
