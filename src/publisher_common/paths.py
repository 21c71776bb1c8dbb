"""Repository path constants used across publisher service modules."""

from __future__ import annotations

import os
from pathlib import Path


def _resolve_repo_root() -> Path:
    override = os.getenv("PUBLISHER_REPO_ROOT")
    if override:
        return Path(override).expanduser().resolve()
    return Path(__file__).resolve().parents[2]


REPO_ROOT = _resolve_repo_root()
SRC_ROOT = REPO_ROOT / "src"
DEFAULT_DATA_DIR = REPO_ROOT / "data"


__all__ = ["DEFAULT_DATA_DIR", "REPO_ROOT", "SRC_ROOT"]
