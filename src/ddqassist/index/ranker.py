"""Cosine-similarity ranking of chunk embeddings."""

from __future__ import annotations

from typing import List, Sequence, Tuple

import numpy as np

from ddqassist.config import MAX_CONTEXT_CHUNKS, MIN_SIMILARITY_THRESHOLD
from ddqassist.models import Chunk, EvidenceItem


def cosine_similarity(a: Sequence[float] | np.ndarray, b: Sequence[float] | np.ndarray) -> float:
    """Cosine similarity clamped to [-1, 1]; 0 when either vector has no magnitude."""
    left = np.asarray(a, dtype="float64")
    right = np.asarray(b, dtype="float64")
    norm = float(np.linalg.norm(left) * np.linalg.norm(right))
    if norm == 0.0:
        return 0.0
    return float(np.clip(np.dot(left, right) / norm, -1.0, 1.0))


def similarity_scores(query: np.ndarray, vectors: np.ndarray) -> np.ndarray:
    """Vectorized cosine similarity of ``query`` against each row of ``vectors``."""
    matrix = np.asarray(vectors, dtype="float64")
    if matrix.size == 0:
        return np.zeros(len(matrix), dtype="float64")
    query = np.asarray(query, dtype="float64")
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
    dots = matrix @ query
    scores = np.divide(dots, norms, out=np.zeros_like(dots), where=norms != 0)
    return np.clip(scores, -1.0, 1.0)


def rank(query: np.ndarray, vectors: np.ndarray) -> List[Tuple[int, float]]:
    """Return ``(index, score)`` pairs by descending score; ties keep index order."""
    scores = similarity_scores(query, vectors)
    order = np.argsort(-scores, kind="stable")
    return [(int(idx), float(scores[idx])) for idx in order]


def select_top_evidence(
    ranked: Sequence[Tuple[int, float]],
    chunks: Sequence[Chunk],
    *,
    limit: int = MAX_CONTEXT_CHUNKS,
    threshold: float = MIN_SIMILARITY_THRESHOLD,
) -> List[EvidenceItem]:
    """Take the best ``limit`` candidates, then drop those below ``threshold``.

    An empty result means the document holds no sufficiently similar passage.
    """
    evidence: List[EvidenceItem] = []
    for index, score in ranked[:limit]:
        if not score >= threshold:
            continue
        chunk = chunks[index]
        evidence.append(
            EvidenceItem(chunk_id=chunk.id, text=chunk.text, score=score, rank=len(evidence) + 1)
        )
    return evidence
