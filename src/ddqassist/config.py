"""Application configuration defaults."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"
DEFAULT_COMPLETION_MODEL = "gpt-4.1-mini"
EMBEDDING_ENDPOINT = "https://api.openai.com/v1/embeddings"
COMPLETION_ENDPOINT = "https://api.openai.com/v1/responses"

MAX_DOCUMENT_CHARS = 15000
EMBEDDING_BATCH_SIZE = 8
MAX_CONTEXT_CHUNKS = 5
MIN_SIMILARITY_THRESHOLD = 0.18
TELEMETRY_CAPACITY = 200


@dataclass(slots=True)
class AppConfig:
    max_document_chars: int = MAX_DOCUMENT_CHARS
    chunk_chars: int = 1200
    overlap: int = 200
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    embedding_endpoint: str = EMBEDDING_ENDPOINT
    embedding_batch_size: int = EMBEDDING_BATCH_SIZE
    completion_model: str = DEFAULT_COMPLETION_MODEL
    completion_endpoint: str = COMPLETION_ENDPOINT
    temperature: float = 0.2
    max_context_chunks: int = MAX_CONTEXT_CHUNKS
    min_similarity: float = MIN_SIMILARITY_THRESHOLD
    telemetry_capacity: int = TELEMETRY_CAPACITY
    request_timeout: float = 60.0

    def __post_init__(self) -> None:
        if self.chunk_chars <= 0:
            raise ValueError("chunk_chars must be positive")
        if self.overlap < 0 or self.overlap >= self.chunk_chars:
            raise ValueError("overlap must be >= 0 and smaller than chunk_chars")
        if self.embedding_batch_size <= 0:
            raise ValueError("embedding_batch_size must be positive")
