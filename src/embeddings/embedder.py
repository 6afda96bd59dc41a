from __future__ import annotations
import os
from pathlib import Path
from typing import Any, Dict, Optional

import numpy as np
import requests
import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from src.errors import BackendError, ConfigError
from src.observability.logger import get_logger

load_dotenv("config/.env")

logger = get_logger(__name__)

DEFAULT_BASE_URL = "http://localhost:11434"
DEFAULT_EMBEDDING_MODEL = "hf.co/CompendiumLabs/bge-base-en-v1.5-gguf"
DEFAULT_CHAT_MODEL = "hf.co/bartowski/Llama-3.2-1B-Instruct-GGUF"

# env var -> AppConfig field
_ENV_OVERRIDES = {
    "RAG_BASE_URL": "base_url",
    "RAG_EMBEDDINGS_MODEL": "embeddings_model",
    "RAG_CHAT_MODEL": "chat_model",
    "RAG_TOP_N": "top_n",
    "RAG_DATASET": "dataset_path",
    "RAG_TIMEOUT": "timeout",
}


class AppConfig(BaseModel):
    embeddings_model: str = DEFAULT_EMBEDDING_MODEL
    chat_model: str = DEFAULT_CHAT_MODEL
    base_url: str = DEFAULT_BASE_URL
    timeout: float = Field(default=120.0, gt=0)
    top_n: int = Field(default=3, ge=0)
    temperature: float = Field(default=0.1, ge=0)
    dataset_path: str = "cat-facts.txt"


def load_app_config(path: str = "config/config.yaml") -> AppConfig:
    """
    Read the YAML config (a missing file means defaults), then apply RAG_* env overrides.
    """
    cfg: Dict[str, Any] = {}
    p = Path(path)
    if p.exists():
        try:
            with open(p, "r") as f:
                cfg = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"invalid YAML in {path}: {exc}") from exc
        if not isinstance(cfg, dict):
            raise ConfigError(f"{path} must contain a mapping at the top level")
    else:
        logger.debug("Config file %s not found, using defaults", path)

    backend = cfg.get("backend") or {}
    embeddings = cfg.get("embeddings") or {}
    chat = cfg.get("chat") or {}
    retrieval = cfg.get("retrieval") or {}
    paths = cfg.get("paths") or {}

    values: Dict[str, Any] = {
        "base_url": backend.get("base_url", DEFAULT_BASE_URL),
        "timeout": backend.get("timeout", 120.0),
        "embeddings_model": embeddings.get("model", DEFAULT_EMBEDDING_MODEL),
        "chat_model": chat.get("model", DEFAULT_CHAT_MODEL),
        "temperature": chat.get("temperature", 0.1),
        "top_n": retrieval.get("top_n", 3),
        "dataset_path": paths.get("dataset", "cat-facts.txt"),
    }
    for env_name, field in _ENV_OVERRIDES.items():
        env_val = os.getenv(env_name)
        if env_val:
            values[field] = env_val

    try:
        return AppConfig(**values)
    except ValidationError as exc:
        raise ConfigError(f"invalid configuration: {exc}") from exc


def post_json(session: requests.Session, url: str, payload: Dict[str, Any], timeout: float) -> Dict[str, Any]:
    """POST a JSON body and return the decoded JSON object; every failure becomes BackendError."""
    try:
        resp = session.post(url, json=payload, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as exc:
        raise BackendError(f"request to {url} failed: {exc}") from exc
    try:
        body = resp.json()
    except ValueError as exc:
        raise BackendError(f"response from {url} is not valid JSON") from exc
    if not isinstance(body, dict):
        raise BackendError(f"response from {url} is not a JSON object")
    return body


class EmbeddingClient:
    def __init__(self, model: str, base_url: str = DEFAULT_BASE_URL, timeout: float = 120.0,
                 session: Optional[requests.Session] = None):
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, cfg: AppConfig, session: Optional[requests.Session] = None) -> "EmbeddingClient":
        return cls(cfg.embeddings_model, cfg.base_url, cfg.timeout, session=session)

    def embed(self, text: str) -> np.ndarray:
        url = f"{self.base_url}/api/embeddings"
        body = post_json(self.session, url, {"model": self.model, "prompt": text}, self.timeout)
        vec = body.get("embedding")
        if not isinstance(vec, list) or not vec:
            raise BackendError(f"response from {url} has no 'embedding' list")
        if any(isinstance(x, bool) or not isinstance(x, (int, float)) for x in vec):
            raise BackendError(f"response from {url} has a non-numeric embedding")
        arr = np.asarray(vec, dtype=np.float64)
        if not np.all(np.isfinite(arr)):
            raise BackendError(f"response from {url} has a non-finite embedding")
        return arr
