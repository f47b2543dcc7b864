"""Shared helpers for resolving runtime storage roots."""

from __future__ import annotations

import os
from pathlib import Path


_REPO_ROOT = Path(__file__).resolve().parents[1]


def get_repo_root() -> Path:
    """Return the repository root for callers that need absolute resolution."""

    return _REPO_ROOT


def get_data_root() -> Path:
    """Resolve the runtime data root honoring the STOCKLEDGER_DATA_ROOT override."""

    override = os.environ.get("STOCKLEDGER_DATA_ROOT")
    if override:
        return Path(override).expanduser()
    return get_repo_root() / ".stockledger_data"


def dumps_root(*segments: str) -> Path:
    """Directory for raw source dumps that can be replayed offline."""

    base = get_data_root() / "dumps"
    return base.joinpath(*segments) if segments else base


__all__ = ["dumps_root", "get_data_root", "get_repo_root"]
