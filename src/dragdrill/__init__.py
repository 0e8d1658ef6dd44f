"""dragdrill package."""

from __future__ import annotations

import tomllib
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

from .config import DEFAULT_CONFIG, EngineConfig
from .models import Canvas, FocusMode, GameKind, PracticeItem
from .session import SessionController, create_session
from .store import MemoryPracticeStore

__all__ = [
    "DEFAULT_CONFIG",
    "Canvas",
    "EngineConfig",
    "FocusMode",
    "GameKind",
    "MemoryPracticeStore",
    "PracticeItem",
    "SessionController",
    "__version__",
    "create_session",
]

# src/dragdrill/__init__.py -> checkout root
_CHECKOUT_PYPROJECT = Path(__file__).resolve().parents[2] / "pyproject.toml"


def _checkout_version() -> str | None:
    """Version declared by the checkout this package was imported from, if any."""
    if not _CHECKOUT_PYPROJECT.is_file():
        return None
    with _CHECKOUT_PYPROJECT.open("rb") as handle:
        project = tomllib.load(handle).get("project", {})
    if project.get("name") != "dragdrill":
        return None
    declared = project.get("version")
    return declared if isinstance(declared, str) else None


try:
    __version__ = version("dragdrill")
except PackageNotFoundError:
    __version__ = _checkout_version() or "0+unknown"
