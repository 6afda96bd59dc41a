"""
Shared test fixtures.

Provides: in-memory embedding/chat fakes, a mocked requests session, dataset files
Dependencies: pytest, numpy
"""

from typing import Dict, List, Optional, Sequence, Tuple
from unittest.mock import MagicMock

import numpy as np
import pytest

from src.errors import BackendError


class FakeEmbeddingClient:
    """Returns canned vectors per text; raises BackendError for texts listed in fail_on."""

    def __init__(self, vectors: Dict[str, Sequence[float]], fail_on: Sequence[str] = ()):
        self.vectors = vectors
        self.fail_on = set(fail_on)
        self.calls: List[str] = []

    def embed(self, text: str) -> np.ndarray:
        self.calls.append(text)
        if text in self.fail_on:
            raise BackendError(f"embedding service refused {text!r}")
        return np.asarray(self.vectors[text], dtype=np.float64)


class FakeChatClient:
    def __init__(self, reply: str = "Cats sleep a lot.", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.calls: List[Tuple[str, str]] = []

    def complete(self, system_prompt: str, user_message: str) -> str:
        self.calls.append((system_prompt, user_message))
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture(autouse=True)
def clear_rag_env(monkeypatch):
    """Keep RAG_* variables from the developer's shell out of config tests."""
    for name in ("RAG_BASE_URL", "RAG_EMBEDDINGS_MODEL", "RAG_CHAT_MODEL",
                 "RAG_TOP_N", "RAG_DATASET", "RAG_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_embedder_factory():
    return FakeEmbeddingClient


@pytest.fixture
def fake_chat_factory():
    return FakeChatClient


@pytest.fixture
def three_chunk_vectors() -> Dict[str, List[float]]:
    """Chunks with known 2-D embeddings plus a query aligned with chunk0."""
    return {
        "chunk0": [1.0, 0.0],
        "chunk1": [0.0, 1.0],
        "chunk2": [1.0, 1.0],
        "query": [1.0, 0.0],
    }


@pytest.fixture
def dataset_file(tmp_path):
    path = tmp_path / "facts.txt"
    path.write_text("chunk0\n\n   chunk1  \nchunk2\n", encoding="utf-8")
    return path


@pytest.fixture
def mock_session():
    """
    Create a mocked requests.Session.

    Returns:
        MagicMock: session whose post() returns a response with a configurable json()
    """
    session = MagicMock()
    response = MagicMock()
    response.raise_for_status.return_value = None
    session.post.return_value = response
    return session
