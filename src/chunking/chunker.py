from __future__ import annotations
from pathlib import Path
from typing import List

from src.errors import DatasetLoadError

DEFAULT_DATASET = "cat-facts.txt"


def load_dataset(path: str = DEFAULT_DATASET) -> List[str]:
    """
    Read one chunk per line.
    Lines are trimmed; blank lines are skipped; order is kept.
    """
    p = Path(path)
    try:
        raw = p.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise DatasetLoadError(str(p), "file not found") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise DatasetLoadError(str(p), str(exc)) from exc

    out = []
    # only "\n" ends a line; strip() drops a trailing "\r"
    for ln in raw.split("\n"):
        ln = ln.strip()
        if ln:
            out.append(ln)
    return out
