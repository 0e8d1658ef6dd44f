"""Engine timings and geometry, with a JSON loader for overrides."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class Timings:
    """Feedback and animation durations in milliseconds."""

    correct_hold_ms: int = 1000
    pairing_incorrect_ms: int = 1500
    spelling_incorrect_ms: int = 500
    celebration_ms: int = 1000
    advance_delay_ms: int = 500
    traversal_lead_in_ms: int = 500
    traversal_steps: int = 60
    traversal_step_ms: int = 50
    skip_reveal_ms: int = 3000

    def __post_init__(self) -> None:
        if self.traversal_steps < 1:
            raise ValueError("timings.traversal_steps must be positive.")


@dataclass(frozen=True)
class Geometry:
    """Sizes and margins in canvas units."""

    card_width: float = 140.0
    card_height: float = 80.0
    card_cell_inset: float = 20.0
    card_rotation: float = 10.0
    card_hover_factor: float = 0.75
    letter_size: float = 56.0
    letter_spacing: float = 8.0
    row_spacing: float = 12.0
    min_spacing: float = 8.0
    edge_margin: float = 32.0
    top_reserved: float = 120.0
    bottom_reserved: float = 150.0
    jitter: float = 4.0
    letter_rotation: float = 15.0
    letter_hover_factor: float = 1.5

    def __post_init__(self) -> None:
        for name in ("card_width", "card_height", "letter_size"):
            if getattr(self, name) <= 0:
                raise ValueError(f"geometry.{name} must be positive.")


@dataclass(frozen=True)
class EngineConfig:
    """Complete engine configuration."""

    timings: Timings = field(default_factory=Timings)
    geometry: Geometry = field(default_factory=Geometry)
    placement_attempts: int = 100
    min_capacity: int = 6
    max_capacity: int = 16
    max_blanks: int = 5
    alphabet: str = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"

    def __post_init__(self) -> None:
        if self.min_capacity < 2 or self.min_capacity % 2:
            raise ValueError("min_capacity must be an even number of at least 2.")
        if self.max_capacity < self.min_capacity or self.max_capacity % 2:
            raise ValueError("max_capacity must be even and not below min_capacity.")
        if self.placement_attempts < 1:
            raise ValueError("placement_attempts must be positive.")
        if self.max_blanks < 1:
            raise ValueError("max_blanks must be positive.")
        if not self.alphabet:
            raise ValueError("alphabet must not be empty.")


DEFAULT_CONFIG = EngineConfig()


def _coerce_int(value: object, default: int | None = None) -> int | None:
    """Coerce value to int for config normalization."""
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return default
    return default


def _coerce_float(value: object, default: float | None = None) -> float | None:
    """Coerce value to float for config normalization."""
    if isinstance(value, bool):
        return default
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return default
    return default


def _section_from_dict(section: str, base: Any, raw: object) -> Any:
    """Apply raw overrides onto one dataclass section."""
    if not isinstance(raw, dict):
        raise ValueError(f"Config section '{section}' must be an object.")
    known = {item.name: item for item in fields(base)}
    changes: dict[str, object] = {}
    for key, value in raw.items():
        if key not in known:
            raise ValueError(f"Unknown config key '{section}.{key}'.")
        if known[key].type == "int":
            coerced: object = _coerce_int(value)
        else:
            coerced = _coerce_float(value)
        if coerced is None or coerced < 0:
            raise ValueError(f"Config key '{section}.{key}' has invalid value {value!r}.")
        changes[key] = coerced
    return replace(base, **changes)


def config_from_dict(raw: dict[str, Any], base: EngineConfig = DEFAULT_CONFIG) -> EngineConfig:
    """Build an engine config from nested JSON-style overrides."""
    changes: dict[str, Any] = {}
    for key, value in raw.items():
        if key == "timings":
            changes[key] = _section_from_dict(key, base.timings, value)
        elif key == "geometry":
            changes[key] = _section_from_dict(key, base.geometry, value)
        elif key == "alphabet":
            letters = "".join(dict.fromkeys(str(value).upper()))
            if not letters.isalpha():
                raise ValueError("Config key 'alphabet' must contain letters only.")
            changes[key] = letters
        elif key in {"placement_attempts", "min_capacity", "max_capacity", "max_blanks"}:
            coerced = _coerce_int(value)
            if coerced is None:
                raise ValueError(f"Config key '{key}' has invalid value {value!r}.")
            changes[key] = coerced
        else:
            raise ValueError(f"Unknown config key '{key}'.")
    return replace(base, **changes)


def load_config(path: Path | str) -> EngineConfig:
    """Load engine config overrides from a JSON file."""
    raw = json.loads(Path(path).read_text(encoding="utf-8-sig"))
    if not isinstance(raw, dict):
        raise ValueError("Config file must contain a JSON object.")
    return config_from_dict(raw)
