from __future__ import annotations
from dataclasses import dataclass
from typing import Iterator, List, Sequence, Tuple

import numpy as np

from src.errors import BackendError, StoreBuildError
from src.observability.logger import get_logger

from .embedder import EmbeddingClient

logger = get_logger(__name__)


@dataclass(frozen=True, eq=False)
class VectorDBEntry:
    index: int
    chunk: str
    embedding: np.ndarray


class VectorStore:
    """
    In-memory, read-only list of (chunk, embedding) entries in dataset order.
    Built once per run by build_store(); there is no add/remove.
    """

    def __init__(self, entries: Sequence[VectorDBEntry] = ()):
        self._entries: Tuple[VectorDBEntry, ...] = tuple(entries)
        if self._entries:
            self._matrix = np.vstack([e.embedding for e in self._entries])
        else:
            self._matrix = np.zeros((0, 0), dtype=np.float64)
        self._matrix.setflags(write=False)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[VectorDBEntry]:
        return iter(self._entries)

    @property
    def entries(self) -> Tuple[VectorDBEntry, ...]:
        return self._entries

    @property
    def dimension(self) -> int:
        return int(self._matrix.shape[1])

    @property
    def matrix(self) -> np.ndarray:
        """Stacked embeddings, shape (n_entries, dimension)."""
        return self._matrix


def build_store(chunks: Sequence[str], client: EmbeddingClient) -> VectorStore:
    """
    Embed every chunk in order, one call at a time.
    The first failure aborts the build with the failing chunk's index.
    """
    total = len(chunks)
    entries: List[VectorDBEntry] = []
    dim = None
    for i, chunk in enumerate(chunks):
        try:
            vec = client.embed(chunk)
        except BackendError as exc:
            raise StoreBuildError(i, str(exc), total=total) from exc
        if dim is None:
            dim = vec.shape[0]
        elif vec.shape[0] != dim:
            raise StoreBuildError(i, f"embedding dimension {vec.shape[0]} != {dim}", total=total)
        entries.append(VectorDBEntry(index=i, chunk=chunk, embedding=vec))
        logger.debug("Added chunk %d/%d to the database", i + 1, total)

    logger.info("Built vector store with %d entries (dim=%s)", len(entries), dim)
    return VectorStore(entries)
