from __future__ import annotations

from dataclasses import dataclass
from typing import List

import numpy as np

from src.embeddings.embedder import EmbeddingClient
from src.embeddings.vector_store import VectorStore
from src.errors import BackendError


@dataclass(frozen=True)
class SimilarityResult:
    text: str
    score: float
    index: int


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Cosine of the angle between a and b; 0.0 when either vector has zero norm."""
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    if a.shape != b.shape:
        raise BackendError(f"embedding dimension mismatch: {a.shape[0]} vs {b.shape[0]}")
    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.clip(np.dot(a, b) / (norm_a * norm_b), -1.0, 1.0))


def _similarities(query_vector: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    q = np.asarray(query_vector, dtype=np.float64)
    if q.ndim != 1 or q.shape[0] != matrix.shape[1]:
        raise BackendError(f"query embedding dimension {q.shape[-1]} != store dimension {matrix.shape[1]}")
    denom = np.linalg.norm(matrix, axis=1) * np.linalg.norm(q)
    dots = matrix @ q
    # zero-norm rows (or a zero query) score 0 instead of nan
    sims = np.divide(dots, denom, out=np.zeros_like(dots), where=denom != 0)
    return np.clip(sims, -1.0, 1.0)


def rank(query_vector: np.ndarray, store: VectorStore, top_n: int) -> List[SimilarityResult]:
    """
    Score every entry against the query and return the top_n, best first.
    Equal scores keep store order (stable sort).
    """
    if top_n <= 0 or len(store) == 0:
        return []
    sims = _similarities(query_vector, store.matrix)
    order = np.argsort(-sims, kind="stable")[:top_n]
    entries = store.entries
    return [
        SimilarityResult(text=entries[i].chunk, score=float(sims[i]), index=entries[i].index)
        for i in order
    ]


def retrieve_relevant_chunks(query: str, store: VectorStore, client: EmbeddingClient, k: int = 3) -> List[SimilarityResult]:
    """Embed a query and return the top-k similar chunks."""
    q_vec = client.embed(query)
    return rank(q_vec, store, k)
