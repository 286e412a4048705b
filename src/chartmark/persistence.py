"""
ChartMark Persistence - Versioned JSON documents of drawn shapes

File format:
    {
      "Version": 1,
      "Shapes": [
        {"ShapeType": "TrendLine", "X1": 10.5, "Y1": 100.2, "X2": 20.3, "Y2": 105.6,
         "LineColor": "#0000FF", "LineWidth": 2, "FillColor": null, "FillAlpha": 25}
      ]
    }

Records whose ShapeType is not registered (e.g. written by a newer version)
or that are malformed are skipped; the rest of the document still loads.
"""

import json
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from .geometry import Point, Style, hex_to_bgr
from .shape_manager import DrawnShape
from .strategies import StrategyRegistry, default_registry

CURRENT_VERSION = 1

PathLike = Union[str, Path]


def _finite(data: Dict[str, Any], key: str, default: Optional[float] = None) -> float:
    """Read a finite number; null falls back to `default` when one is given."""
    value = data.get(key) if default is not None else data[key]
    if value is None:
        if default is None:
            raise ValueError(f"{key} is null")
        return default
    if isinstance(value, bool):
        raise ValueError(f"{key} must be a number, got {value!r}")
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"{key} must be finite, got {value!r}")
    return number


def _color(value: Any, key: str) -> str:
    """Validate a "#RRGGBB" color."""
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string, got {value!r}")
    if not value.startswith("#"):
        raise ValueError(f"Invalid {key}: {value!r}")
    hex_to_bgr(value)
    return value


@dataclass
class ShapeRecord:
    """Serializable projection of a DrawnShape."""
    shape_type: str
    x1: float
    y1: float
    x2: float
    y2: float
    line_color: str = "#808080"
    line_width: float = 1.0
    fill_color: Optional[str] = None
    fill_alpha: int = 25

    @classmethod
    def from_shape(cls, shape: DrawnShape) -> "ShapeRecord":
        return cls(
            shape_type=shape.kind.value,
            x1=shape.anchor_start.x,
            y1=shape.anchor_start.y,
            x2=shape.anchor_end.x,
            y2=shape.anchor_end.y,
            line_color=shape.style.line_color,
            line_width=shape.style.line_width,
            fill_color=shape.style.fill_color,
            fill_alpha=shape.style.fill_alpha,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ShapeType": self.shape_type,
            "X1": self.x1,
            "Y1": self.y1,
            "X2": self.x2,
            "Y2": self.y2,
            "LineColor": self.line_color,
            "LineWidth": self.line_width,
            "FillColor": self.fill_color,
            "FillAlpha": self.fill_alpha,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ShapeRecord":
        """
        Parse one record.

        Null LineColor, LineWidth, FillColor and FillAlpha take their
        defaults. Colors must be "#RRGGBB" and numbers finite, so a record
        that parses can always be rendered.

        Raises:
            KeyError, TypeError, ValueError: record is malformed
        """
        if not isinstance(data, dict):
            raise TypeError(f"Record must be an object, got {type(data).__name__}")

        line_color = data.get("LineColor")
        fill_color = data.get("FillColor")
        return cls(
            shape_type=str(data["ShapeType"]),
            x1=_finite(data, "X1"),
            y1=_finite(data, "Y1"),
            x2=_finite(data, "X2"),
            y2=_finite(data, "Y2"),
            line_color=_color(line_color, "LineColor") if line_color is not None else "#808080",
            line_width=_finite(data, "LineWidth", 1.0),
            fill_color=_color(fill_color, "FillColor") if fill_color else None,
            fill_alpha=int(_finite(data, "FillAlpha", 25)),
        )

    @property
    def style(self) -> Style:
        return Style(
            line_color=self.line_color,
            line_width=self.line_width,
            fill_color=self.fill_color,
            fill_alpha=max(0, min(255, self.fill_alpha)),
        )


@dataclass
class ChartAnnotations:
    """
    Persisted document.

    Decoding keeps every well-formed record in order. A malformed record is
    logged and dropped on its own; only a document that is not an object
    with a `Shapes` list fails as a whole.
    """
    version: int = CURRENT_VERSION
    shapes: List[ShapeRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "Version": self.version,
            "Shapes": [record.to_dict() for record in self.shapes],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, allow_nan=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChartAnnotations":
        if not isinstance(data, dict):
            raise ValueError("Annotations document must be a JSON object")
        try:
            version = int(data.get("Version", CURRENT_VERSION))
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid document version: {data.get('Version')!r}") from exc
        raw = data.get("Shapes") or []
        if not isinstance(raw, list):
            raise ValueError("'Shapes' must be a list")

        logger = logging.getLogger("ChartAnnotations")
        records = []
        for i, item in enumerate(raw):
            try:
                records.append(ShapeRecord.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed record #{i}: {e}")
        return cls(version=version, shapes=records)

    @classmethod
    def from_json(cls, text: str) -> "ChartAnnotations":
        """Raises ValueError (json.JSONDecodeError included) on unparseable text."""
        return cls.from_dict(json.loads(text))


def write_annotations(path: PathLike, document: ChartAnnotations):
    Path(path).write_text(document.to_json(), encoding="utf-8")


def read_annotations(path: PathLike) -> ChartAnnotations:
    """
    Read and parse a document.

    Raises:
        FileNotFoundError: `path` does not exist
        ValueError: the file is not a valid annotations document
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise FileNotFoundError(f"Annotations file not found: {file_path}")
    return ChartAnnotations.from_json(file_path.read_text(encoding="utf-8"))


class AnnotationCodec:
    """Converts between DrawnShapes and ChartAnnotations via the strategy registry."""

    def __init__(self, registry: Optional[StrategyRegistry] = None):
        self.registry = registry or default_registry()
        self.logger = logging.getLogger("AnnotationCodec")

    def save(self, shapes: Sequence[DrawnShape]) -> ChartAnnotations:
        """One record per shape, in order."""
        return ChartAnnotations(
            version=CURRENT_VERSION,
            shapes=[ShapeRecord.from_shape(shape) for shape in shapes],
        )

    def load(self, document: ChartAnnotations) -> List[DrawnShape]:
        """
        Rebuild shapes from a document.

        Unregistered shape types are skipped. The returned shapes are not yet
        managed or attached to any canvas.
        """
        if document.version > CURRENT_VERSION:
            self.logger.warning(
                f"Document version {document.version} is newer than {CURRENT_VERSION}; "
                f"unknown shapes will be skipped"
            )

        shapes = []
        for record in document.shapes:
            kind = self.registry.resolve(record.shape_type)
            if kind is None:
                self.logger.warning(f"Skipping unrecognized shape type: {record.shape_type!r}")
                continue

            start = Point(record.x1, record.y1)
            end = Point(record.x2, record.y2)
            style = record.style
            visual = self.registry.get(kind).create_final(start, end, style)
            if visual is None:
                self.logger.warning(f"Strategy for {kind.value} produced no visual; skipped")
                continue

            shapes.append(DrawnShape(
                kind=kind,
                anchor_start=start,
                anchor_end=end,
                style=style,
                visual=visual,
            ))
        return shapes
