from __future__ import annotations

from typing import Optional


class RagError(Exception):
    """Base for every failure that aborts a pipeline run."""


class ConfigError(RagError):
    pass


class DatasetLoadError(RagError):
    def __init__(self, path: str, reason: str):
        super().__init__(f"could not load dataset {path!r}: {reason}")
        self.path = path


class BackendError(RagError):
    """Embedding or chat service unreachable, non-2xx, or malformed body."""


class StoreBuildError(BackendError):
    def __init__(self, index: int, reason: str, total: Optional[int] = None):
        where = f"chunk {index + 1}" if total is None else f"chunk {index + 1}/{total}"
        super().__init__(f"failed embedding {where}: {reason}")
        self.index = index


class EmptyQueryError(RagError):
    def __init__(self, msg: str = "no query text provided"):
        super().__init__(msg)
