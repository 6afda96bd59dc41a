from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence

from .retriever import SimilarityResult

SYSTEM_PREAMBLE = (
    "You are a helpful chatbot.\n"
    "Use only the following pieces of context to answer the question. "
    "Don't make up any new information:"
)


@dataclass(frozen=True)
class ChatMessage:
    role: str
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class ChatRequest:
    system: str
    user: str

    @property
    def messages(self) -> List[ChatMessage]:
        return [ChatMessage("system", self.system), ChatMessage("user", self.user)]


def build_prompt(query: str, retrieved: Sequence[SimilarityResult]) -> ChatRequest:
    """Context lines go into the system message in ranked order; the query is passed through untouched."""
    context_lines = "\n".join(f" - {r.text}" for r in retrieved)
    return ChatRequest(system=f"{SYSTEM_PREAMBLE}\n{context_lines}", user=query)
