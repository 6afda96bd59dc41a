from __future__ import annotations

import argparse
import enum
import logging
import sys
from typing import Callable, List, Optional, TextIO

from pydantic import ValidationError

from src.chunking.chunker import load_dataset
from src.embeddings.embedder import AppConfig, EmbeddingClient, load_app_config
from src.embeddings.vector_store import VectorStore, build_store
from src.errors import EmptyQueryError, RagError, StoreBuildError
from src.observability.logger import configure_logging, get_logger
from src.rag.answerer import ChatClient, answer
from src.rag.retriever import SimilarityResult

logger = get_logger(__name__)

QUESTION_PROMPT = "Ask me a question: "


class PipelineState(enum.Enum):
    IDLE = "idle"
    DATASET_LOADED = "dataset_loaded"
    STORE_BUILT = "store_built"
    QUERY_RECEIVED = "query_received"
    RETRIEVED = "retrieved"
    ANSWERED = "answered"
    DONE = "done"
    ABORTED = "aborted"


# diagnostic prefix printed when the step leading out of a state fails
_FAILURE_LABELS = {
    PipelineState.IDLE: "loading dataset",
    PipelineState.DATASET_LOADED: "building vector store",
    PipelineState.STORE_BUILT: "reading query",
    PipelineState.QUERY_RECEIVED: "retrieving knowledge",
    PipelineState.RETRIEVED: "from chatbot",
}


def read_query(stdin: TextIO, prompt_fn: Callable[[str], str] = input) -> str:
    """
    Piped stdin is read whole and trimmed; a terminal gets an interactive prompt.
    A blank query raises EmptyQueryError in either case.
    """
    if not stdin.isatty():
        query = stdin.read().strip()
        if not query:
            raise EmptyQueryError("piped input was empty")
        return query
    try:
        query = prompt_fn(QUESTION_PROMPT)
    except EOFError as exc:
        raise EmptyQueryError("input closed before a question was entered") from exc
    if not query.strip():
        raise EmptyQueryError()
    return query


class Pipeline:
    """
    Runs one query end to end:
    load dataset -> build store -> read query -> retrieve -> chat -> print.
    Any RagError aborts the run; nothing after the failing step is attempted.
    """

    def __init__(self, cfg: AppConfig, embedder: EmbeddingClient, chat: ChatClient,
                 stdin: Optional[TextIO] = None, out: Optional[TextIO] = None,
                 prompt_fn: Callable[[str], str] = input):
        self.cfg = cfg
        self.embedder = embedder
        self.chat = chat
        self.stdin = stdin if stdin is not None else sys.stdin
        self.out = out if out is not None else sys.stdout
        self.prompt_fn = prompt_fn
        self.state = PipelineState.IDLE
        self.store: Optional[VectorStore] = None
        self.retrieved: List[SimilarityResult] = []
        self.response: Optional[str] = None

    def _advance(self, state: PipelineState) -> None:
        logger.debug("Pipeline %s -> %s", self.state.value, state.value)
        self.state = state

    def _print(self, *args) -> None:
        print(*args, file=self.out)

    def run(self, query: Optional[str] = None) -> int:
        try:
            self._run(query)
        except RagError as exc:
            label = _FAILURE_LABELS.get(self.state, "running pipeline")
            if isinstance(exc, StoreBuildError):
                label = f"embedding chunk {exc.index + 1}"
            logger.error("Aborted while %s: %s", label, exc)
            self._print(f"Error {label}: {exc}")
            self._advance(PipelineState.ABORTED)
            return 1
        self._advance(PipelineState.DONE)
        return 0

    def _show_retrieved(self, retrieved: List[SimilarityResult]) -> None:
        self.retrieved = retrieved
        self._print("Retrieved knowledge:")
        for r in retrieved:
            self._print(f" - (similarity: {r.score:.2f}) {r.text}")
        self._advance(PipelineState.RETRIEVED)

    def _run(self, query: Optional[str]) -> None:
        dataset = load_dataset(self.cfg.dataset_path)
        self._print(f"Loaded {len(dataset)} entries")
        self._advance(PipelineState.DATASET_LOADED)

        self.store = build_store(dataset, self.embedder)
        self._advance(PipelineState.STORE_BUILT)

        if query is None:
            query = read_query(self.stdin, self.prompt_fn)
        elif not query.strip():
            raise EmptyQueryError()
        self._advance(PipelineState.QUERY_RECEIVED)

        result = answer(query, self.store, self.embedder, self.chat, k=self.cfg.top_n,
                        on_retrieved=self._show_retrieved)
        self.response = result.text
        self._advance(PipelineState.ANSWERED)
        self._print("Chatbot response:")
        self._print(self.response)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Answer one question from a line-per-fact text corpus.")
    parser.add_argument("--config", default="config/config.yaml", help="Path to the YAML config file.")
    parser.add_argument("--dataset", default=None, help="Dataset file, one chunk per line.")
    parser.add_argument("--top-n", type=int, default=None, help="How many chunks to retrieve.")
    parser.add_argument("--query", default=None, help="Question to ask instead of reading stdin.")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="-v for INFO, -vv for DEBUG logs.")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    configure_logging(level)

    try:
        cfg = load_app_config(args.config)
    except RagError as exc:
        print(f"Error loading config: {exc}")
        return 1
    updates = {}
    if args.dataset is not None:
        updates["dataset_path"] = args.dataset
    if args.top_n is not None:
        updates["top_n"] = args.top_n
    if updates:
        try:
            cfg = AppConfig(**{**cfg.model_dump(), **updates})
        except ValidationError as exc:
            print(f"Error loading config: invalid command-line override: {exc}")
            return 1

    pipeline = Pipeline(cfg, EmbeddingClient.from_config(cfg), ChatClient.from_config(cfg))
    return pipeline.run(query=args.query)


if __name__ == "__main__":
    sys.exit(main())
