#!/usr/bin/env python3
"""
ChartMark Engine - Interactive Demo

Draws a synthetic candlestick chart in an OpenCV window and lets you
annotate it:
1. Pick a drawing tool with the number keys
2. Drag on the chart to place the shape (a gray preview follows the mouse)
3. Click shapes to select them, Ctrl+click to multi-select
4. Undo/redo, delete, save and reload annotations

Usage:
    python main_demo.py

Controls:
    - 1..6: Trend line, horizontal line, vertical line, rectangle, circle, Fibonacci
    - LEFT DRAG: Draw with the armed tool
    - LEFT CLICK: Select shape (CTRL: add/remove from selection)
    - SHIFT (hold): Snap to the price grid / candle values
    - ESC: Cancel drawing, back to selection mode
    - U / R: Undo / redo
    - X: Delete selected shapes
    - A: Select all
    - G: Toggle snapping, M: cycle snap mode
    - S / L: Save / load annotations
    - Q: Quit
"""

import sys
import logging
import argparse
from typing import Optional

import cv2  # pyright: ignore[reportMissingImports]
import numpy as np  # pyright: ignore[reportMissingImports]

# Add src to path
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent / "src"))

from chartmark import (
    ChartInteractions,
    EngineConfig,
    Modifier,
    OpenCVCanvas,
    Point,
    ShapeKind,
    ShapeManager,
    SnapMode,
    Snapper,
)

SNAP_MODE_CYCLE = [SnapMode.PRICE, SnapMode.CANDLE_OHLC, SnapMode.NONE]


def generate_candles(count: int = 80, seed: int = 7, start_price: float = 100.0) -> np.ndarray:
    """Random-walk OHLC candles as an (N, 5) array: time, open, high, low, close."""
    rng = np.random.default_rng(seed)
    closes = start_price + np.cumsum(rng.normal(0.0, 1.5, count))
    opens = np.concatenate([[start_price], closes[:-1]])
    spread = np.abs(rng.normal(0.0, 1.0, count)) + 0.3
    highs = np.maximum(opens, closes) + spread
    lows = np.minimum(opens, closes) - spread
    times = np.arange(count, dtype=np.float64)
    return np.column_stack([times, opens, highs, lows, closes])


class ChartMarkDemo:
    """
    Interactive demo of the ChartMark annotation engine.
    """

    WINDOW_NAME = "ChartMark Demo"

    def __init__(
            self,
            config: EngineConfig,
            width: int = 1280,
            height: int = 720,
            candle_count: int = 80,
            annotations_path: Optional[str] = None
    ):
        self.config = config
        self.annotations_path = annotations_path or config.annotations_path
        self.logger = logging.getLogger("ChartMarkDemo")

        self.candles = generate_candles(candle_count)
        pad = (self.candles[:, 2].max() - self.candles[:, 3].min()) * 0.1
        self.canvas = OpenCVCanvas(
            width=width,
            height=height,
            x_range=(-1.0, float(candle_count)),
            y_range=(float(self.candles[:, 3].min() - pad), float(self.candles[:, 2].max() + pad)),
        )

        snapper = Snapper(
            mode=config.snap_mode if config.snap_mode != SnapMode.NONE else SnapMode.PRICE,
            enabled=config.snap_enabled,
            price_step=config.snap_price_step,
        )
        snapper.bind_candles(self.candles)

        self.interactions = ChartInteractions(
            ShapeManager(),
            snapper=snapper,
            config=config,
            on_draw_mode_changed=self._on_draw_mode_changed,
            on_shape_info_changed=self._on_shape_info_changed,
        )

        self._chart_frame = self._render_chart()
        self._status = ""
        self._running = False

    # Callbacks

    def _on_draw_mode_changed(self, kind: ShapeKind):
        self._status = "" if kind == ShapeKind.NONE else f"Drawing {kind.value}"

    def _on_shape_info_changed(self, text: str):
        self.logger.debug(f"Shape info: {text}")

    # Chart rendering

    def _render_chart(self) -> np.ndarray:
        """Candlestick base frame; annotations are rendered over it each frame."""
        frame = np.full((self.canvas.height, self.canvas.width, 3), self.canvas.background, dtype=np.uint8)

        # Price grid
        y0, y1 = self.canvas.y_range
        for price in np.linspace(y0, y1, 8)[1:-1]:
            _, py = self.canvas.coordinate_to_pixel(Point(0.0, float(price)))
            cv2.line(frame, (0, int(py)), (self.canvas.width - 1, int(py)), (45, 45, 45), 1)
            cv2.putText(frame, f"{price:.2f}", (self.canvas.width - 70, int(py) - 4),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.4, (120, 120, 120), 1, cv2.LINE_AA)

        half_width = max(1, int(self.canvas.width / len(self.candles) * 0.35))
        for t, o, h, l, c in self.candles:
            color = (80, 180, 60) if c >= o else (60, 60, 200)
            px, high_py = self.canvas.coordinate_to_pixel(Point(t, h))
            _, low_py = self.canvas.coordinate_to_pixel(Point(t, l))
            _, open_py = self.canvas.coordinate_to_pixel(Point(t, o))
            _, close_py = self.canvas.coordinate_to_pixel(Point(t, c))
            cv2.line(frame, (int(px), int(high_py)), (int(px), int(low_py)), color, 1, cv2.LINE_AA)
            cv2.rectangle(
                frame,
                (int(px) - half_width, int(min(open_py, close_py))),
                (int(px) + half_width, int(max(open_py, close_py))),
                color,
                -1
            )
        return frame

    def _draw_status_bar(self, frame: np.ndarray):
        interactions = self.interactions
        snapper = interactions.snapper
        coords = interactions.current_coordinates

        parts = [f"Mode: {interactions.draw_mode.value}"]
        if interactions.shape_info:
            parts.append(interactions.shape_info)
        if coords is not None:
            parts.append(f"T: {coords.x:.2f}  P: {coords.y:.2f}")
        parts.append(f"Snap: {snapper.mode.value if snapper.enabled else 'off'}")
        parts.append(f"Shapes: {len(interactions.shape_manager.shapes)}")
        if self._status:
            parts.append(self._status)
        text = "  |  ".join(parts)

        overlay = frame.copy()
        cv2.rectangle(overlay, (0, 0), (frame.shape[1], 28), (0, 0, 0), -1)
        cv2.addWeighted(overlay, 0.6, frame, 0.4, 0, frame)
        cv2.putText(frame, text, (10, 19), cv2.FONT_HERSHEY_DUPLEX, 0.5, (230, 240, 255), 1, cv2.LINE_AA)
        return frame

    # Input

    @staticmethod
    def _modifiers(flags: int) -> Modifier:
        modifiers = Modifier.NONE
        if flags & cv2.EVENT_FLAG_SHIFTKEY:
            modifiers |= Modifier.SHIFT
        if flags & cv2.EVENT_FLAG_CTRLKEY:
            modifiers |= Modifier.CTRL
        if flags & cv2.EVENT_FLAG_ALTKEY:
            modifiers |= Modifier.ALT
        return modifiers

    def _mouse_callback(self, event, x, y, flags, param):
        modifiers = self._modifiers(flags)

        if event == cv2.EVENT_LBUTTONDOWN:
            self.interactions.pointer_down(x, y, modifiers)
        elif event == cv2.EVENT_MOUSEMOVE:
            self.interactions.pointer_move(x, y, modifiers)
        elif event == cv2.EVENT_LBUTTONUP:
            shape = self.interactions.pointer_up(x, y, modifiers)
            if shape is not None:
                self._status = f"Added {shape.kind.value}"

    def _handle_key(self, key: int):
        if key == 255:
            return

        if key == ord('q'):
            self._running = False
        elif key == 27:
            self.interactions.handle_key("escape")
        elif key == ord('u'):
            self._status = "Undo" if self.interactions.undo() else "Nothing to undo"
        elif key == ord('r'):
            self._status = "Redo" if self.interactions.redo() else "Nothing to redo"
        elif key == ord('x'):
            self._status = f"Deleted {self.interactions.delete_selected_shapes()} shape(s)"
        elif key == ord('a'):
            self.interactions.select_all()
        elif key == ord('g'):
            self.interactions.snapper.enabled = not self.interactions.snapper.enabled
        elif key == ord('m'):
            self._cycle_snap_mode()
        elif key == ord('s'):
            self._save()
        elif key == ord('l'):
            self._load()
        else:
            self.interactions.handle_key(chr(key))

    def _cycle_snap_mode(self):
        snapper = self.interactions.snapper
        idx = SNAP_MODE_CYCLE.index(snapper.mode) if snapper.mode in SNAP_MODE_CYCLE else -1
        snapper.mode = SNAP_MODE_CYCLE[(idx + 1) % len(SNAP_MODE_CYCLE)]
        self.logger.info(f"Snap mode: {snapper.mode.value}")

    def _save(self):
        try:
            count = self.interactions.save_to_file(self.annotations_path)
        except (OSError, ValueError) as e:
            self._status = "Could not save annotations"
            self.logger.error(f"Failed to save {self.annotations_path}: {e}")
            return
        self._status = f"Saved {count} shape(s)"

    def _load(self):
        try:
            shapes = self.interactions.load_from_file(self.annotations_path)
        except FileNotFoundError:
            self._status = f"No file at {self.annotations_path}"
            self.logger.warning(self._status)
            return
        except ValueError as e:
            self._status = "Could not read annotations"
            self.logger.error(f"Failed to load {self.annotations_path}: {e}")
            return
        self._status = f"Loaded {len(shapes)} shape(s)"

    def run(self):
        """Run the demo."""
        self.logger.info("Starting ChartMark Demo...")

        cv2.namedWindow(self.WINDOW_NAME)
        cv2.setMouseCallback(self.WINDOW_NAME, self._mouse_callback)

        self._running = True
        self.logger.info("Demo running. Press 1-6 to pick a tool.")

        self.interactions.attach(self.canvas)

        try:
            with self.interactions:
                while self._running:
                    output = self.canvas.render(self._chart_frame)
                    output = self._draw_status_bar(output)
                    cv2.imshow(self.WINDOW_NAME, output)

                    key = cv2.waitKey(15) & 0xFF
                    self._handle_key(key)
        except KeyboardInterrupt:
            self.logger.info("Interrupted by user")
        finally:
            cv2.destroyAllWindows()
            self.logger.info("Demo stopped.")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="ChartMark Annotation Engine Demo",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Controls:
  1..6         Arm a tool (trend, horizontal, vertical, rectangle, circle, Fibonacci)
  LEFT DRAG    Draw with the armed tool
  LEFT CLICK   Select shape (CTRL+click: multi-select)
  SHIFT        Snap while drawing (hold)
  ESC          Cancel drawing
  U / R        Undo / redo
  X            Delete selected shapes
  A            Select all
  G / M        Toggle snapping / cycle snap mode
  S / L        Save / load annotations
  Q            Quit

Configuration:
  Settings are read from CHARTMARK_* environment variables or a .env file,
  e.g. CHARTMARK_SNAP_PRICE_STEP=0.5

Examples:
  python main_demo.py                          # Default settings
  python main_demo.py --file my_marks.json     # Save/load a specific file
  python main_demo.py --resolution 1600x900
        """
    )

    parser.add_argument(
        "--file", "-f",
        default=None,
        help="Annotations file for save/load (default: CHARTMARK_ANNOTATIONS_PATH)"
    )
    parser.add_argument(
        "--resolution", "-r",
        type=str,
        default="1280x720",
        help="Window size as WxH (e.g., 1280x720)"
    )
    parser.add_argument(
        "--candles",
        type=int,
        default=80,
        help="Number of synthetic candles"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: CHARTMARK_LOG_LEVEL or INFO)"
    )

    args = parser.parse_args()

    try:
        config = EngineConfig.from_env()
    except ValueError as e:
        print(f"Invalid configuration: {e}")
        sys.exit(1)

    # Setup logging
    logging.basicConfig(
        level=getattr(logging, args.log_level or config.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # Parse resolution
    try:
        w, h = args.resolution.lower().split('x')
        width, height = int(w), int(h)
    except ValueError:
        print(f"Invalid resolution format: {args.resolution}")
        sys.exit(1)

    # Print banner
    print("\n" + "=" * 60)
    print("  ChartMark Annotation Engine")
    print("  Interactive Demo")
    print("=" * 60)
    print(f"  Annotations: {args.file or config.annotations_path}")
    print(f"  Snap: {config.snap_mode.value} ({'on' if config.snap_enabled else 'hold SHIFT'})")
    print("=" * 60)
    print("\n  Press 1-6 to pick a tool, then drag on the chart.")
    print("  Click shapes to select, X to delete, U/R to undo/redo.\n")

    demo = ChartMarkDemo(
        config=config,
        width=width,
        height=height,
        candle_count=args.candles,
        annotations_path=args.file
    )
    demo.run()


if __name__ == "__main__":
    main()
