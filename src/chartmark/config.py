"""
ChartMark Config - Engine settings from the environment

Settings are read from CHARTMARK_* environment variables. A `.env` file is
loaded first if one exists in the project root or the current directory.

    CHARTMARK_SELECTION_TOLERANCE_PX=10
    CHARTMARK_SNAP_ENABLED=true
    CHARTMARK_SNAP_MODE=price
    CHARTMARK_SNAP_PRICE_STEP=0.5
    CHARTMARK_ANNOTATIONS_PATH=chart_annotations.json
    CHARTMARK_LOG_LEVEL=DEBUG
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from .snapping import SnapMode

ENV_PREFIX = "CHARTMARK_"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _load_env() -> Optional[str]:
    """Load the first .env file found. Returns its path, or None."""
    possible_paths = [
        Path(__file__).resolve().parents[2] / ".env",  # src/chartmark/../../.env
        Path.cwd() / ".env",
    ]
    for env_path in possible_paths:
        if env_path.exists():
            load_dotenv(env_path, override=False)
            return str(env_path)
    return None


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off", ""):
        return False
    raise ValueError(f"{name}: expected a boolean, got {value!r}")


def _parse_float(name: str, value: str) -> float:
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"{name}: expected a number, got {value!r}") from exc


@dataclass
class EngineConfig:
    """
    Engine settings.

    Attributes:
        selection_tolerance_px: Click tolerance around shapes, in pixels
        selection_margin_ratio: Extra hit margin as a share of the shape's size
        snap_enabled: Snap without holding Shift
        snap_mode: Snap target when snapping is active
        snap_price_step: Price grid step for SnapMode.PRICE
        annotations_path: Default save/load file
        log_level: Logging level name
    """
    selection_tolerance_px: float = 10.0
    selection_margin_ratio: float = 0.02
    snap_enabled: bool = False
    snap_mode: SnapMode = SnapMode.NONE
    snap_price_step: float = 1.0
    annotations_path: str = "chart_annotations.json"
    log_level: str = "INFO"

    def __post_init__(self):
        if self.selection_tolerance_px < 0:
            raise ValueError("selection_tolerance_px must be >= 0")
        if self.selection_margin_ratio < 0:
            raise ValueError("selection_margin_ratio must be >= 0")
        if self.snap_price_step <= 0:
            raise ValueError("snap_price_step must be > 0")
        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {LOG_LEVELS}, got {self.log_level!r}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EngineConfig":
        """
        Build a config from CHARTMARK_* variables.

        Args:
            environ: Mapping to read instead of os.environ (no .env loading)
        """
        if environ is None:
            _load_env()
            environ = os.environ

        def get(key: str) -> Optional[str]:
            return environ.get(ENV_PREFIX + key)

        kwargs = {}
        value = get("SELECTION_TOLERANCE_PX")
        if value is not None:
            kwargs["selection_tolerance_px"] = _parse_float("SELECTION_TOLERANCE_PX", value)
        value = get("SELECTION_MARGIN_RATIO")
        if value is not None:
            kwargs["selection_margin_ratio"] = _parse_float("SELECTION_MARGIN_RATIO", value)
        value = get("SNAP_ENABLED")
        if value is not None:
            kwargs["snap_enabled"] = _parse_bool("SNAP_ENABLED", value)
        value = get("SNAP_MODE")
        if value is not None:
            try:
                kwargs["snap_mode"] = SnapMode(value.strip().lower())
            except ValueError as exc:
                raise ValueError(f"SNAP_MODE: unknown mode {value!r}") from exc
        value = get("SNAP_PRICE_STEP")
        if value is not None:
            kwargs["snap_price_step"] = _parse_float("SNAP_PRICE_STEP", value)
        value = get("ANNOTATIONS_PATH")
        if value:
            kwargs["annotations_path"] = value
        value = get("LOG_LEVEL")
        if value:
            kwargs["log_level"] = value.strip().upper()

        return cls(**kwargs)
