"""
ChartMark Snapping - Magnet anchors to the price grid or to candle values

Snapping quantizes a chart coordinate before it becomes an anchor or a
preview/final endpoint. It is active when the snapper is enabled, or for a
single event when the caller forces it (Shift held).
"""

import logging
from enum import Enum
from typing import Optional, Sequence

import numpy as np

from .geometry import Point


class SnapMode(Enum):
    NONE = "none"
    PRICE = "price"              # Round y to the price grid
    CANDLE_OHLC = "candle_ohlc"  # Nearest candle time + closest of O/H/L/C


# Column layout of the candle array
CANDLE_COLUMNS = ("time", "open", "high", "low", "close")


class Snapper:
    """
    Applies the configured snap mode to chart coordinates.

    Candles are held as an (N, 5) float array: time, open, high, low, close.
    """

    def __init__(
        self,
        mode: SnapMode = SnapMode.NONE,
        enabled: bool = False,
        price_step: float = 1.0
    ):
        if price_step <= 0:
            raise ValueError(f"price_step must be positive, got {price_step}")
        self.mode = mode
        self.enabled = enabled
        self.price_step = price_step
        self._candles = np.empty((0, len(CANDLE_COLUMNS)), dtype=np.float64)
        self.logger = logging.getLogger("Snapper")

    # Candle binding

    def bind_candles(self, candles: Sequence[Sequence[float]]):
        """Replace the bound candles. Each row is (time, open, high, low, close)."""
        array = np.asarray(candles, dtype=np.float64)
        if array.size == 0:
            array = array.reshape(0, len(CANDLE_COLUMNS))
        if array.ndim != 2 or array.shape[1] != len(CANDLE_COLUMNS):
            raise ValueError(f"Candles must have shape (N, {len(CANDLE_COLUMNS)}), got {array.shape}")
        self._candles = array
        self.logger.debug(f"Bound {len(array)} candles")

    def add_candle(self, candle: Sequence[float]):
        row = self._as_row(candle)
        self._candles = np.vstack([self._candles, row])

    def update_last_candle(self, candle: Sequence[float]):
        """Overwrite the most recent candle (live update). Ignored when none are bound."""
        if len(self._candles) == 0:
            return
        self._candles[-1] = self._as_row(candle)

    @property
    def candles(self) -> np.ndarray:
        return self._candles

    def _as_row(self, candle: Sequence[float]) -> np.ndarray:
        row = np.asarray(candle, dtype=np.float64)
        if row.shape != (len(CANDLE_COLUMNS),):
            raise ValueError(f"Candle must have {len(CANDLE_COLUMNS)} values, got {row.shape}")
        return row

    # Snapping

    def apply(self, point: Point, force: bool = False) -> Point:
        """
        Snap a chart coordinate.

        Args:
            point: Raw coordinate
            force: Snap even when the snapper is disabled (Shift held)

        Returns:
            Snapped coordinate, or `point` unchanged when snapping is off
        """
        if not (self.enabled or force) or self.mode == SnapMode.NONE:
            return point

        if self.mode == SnapMode.PRICE:
            return Point(point.x, self._snap_price(point.y))

        snapped = self._snap_candle(point)
        if snapped is None:
            return point
        return snapped

    def _snap_price(self, y: float) -> float:
        return round(y / self.price_step) * self.price_step

    def _snap_candle(self, point: Point) -> Optional[Point]:
        if len(self._candles) == 0:
            return None

        idx = int(np.argmin(np.abs(self._candles[:, 0] - point.x)))
        candle = self._candles[idx]
        ohlc = candle[1:]
        nearest = ohlc[int(np.argmin(np.abs(ohlc - point.y)))]
        return Point(float(candle[0]), float(nearest))
