from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional

import requests

from src.embeddings.embedder import DEFAULT_BASE_URL, AppConfig, EmbeddingClient, post_json
from src.embeddings.vector_store import VectorStore
from src.errors import BackendError
from src.observability.logger import get_logger

from .prompt import ChatRequest, build_prompt
from .retriever import SimilarityResult, retrieve_relevant_chunks

logger = get_logger(__name__)


class ChatClient:
    def __init__(self, model: str, base_url: str = DEFAULT_BASE_URL, timeout: float = 120.0,
                 temperature: float = 0.1, session: Optional[requests.Session] = None):
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.temperature = temperature
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, cfg: AppConfig, session: Optional[requests.Session] = None) -> "ChatClient":
        return cls(cfg.chat_model, cfg.base_url, cfg.timeout, cfg.temperature, session=session)

    def complete(self, system_prompt: str, user_message: str) -> str:
        """Send a non-streaming chat request and return the reply text."""
        url = f"{self.base_url}/api/chat"
        payload = {
            "model": self.model,
            "messages": [m.to_dict() for m in ChatRequest(system_prompt, user_message).messages],
            "stream": False,
            "options": {"temperature": self.temperature},
        }
        body = post_json(self.session, url, payload, self.timeout)
        message = body.get("message")
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            raise BackendError(f"response from {url} has no 'message.content' string")
        return content


@dataclass
class Answer:
    question: str
    retrieved: List[SimilarityResult]
    request: ChatRequest
    text: str


def answer(question: str, store: VectorStore, embedder: EmbeddingClient, chat: ChatClient, k: int = 3,
           on_retrieved: Optional[Callable[[List[SimilarityResult]], None]] = None) -> Answer:
    """
    Retrieve top-k chunks and ask the chat model to answer grounded on them.
    on_retrieved sees the ranked chunks before the chat call is made.
    """
    retrieved = retrieve_relevant_chunks(question, store, embedder, k=k)
    if on_retrieved is not None:
        on_retrieved(retrieved)
    request = build_prompt(question, retrieved)
    logger.debug("System prompt:\n%s", request.system)
    text = chat.complete(request.system, request.user)
    return Answer(question=question, retrieved=retrieved, request=request, text=text)
