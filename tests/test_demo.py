"""
Demo wiring tests: save/load failures become status messages.
"""

from chartmark import EngineConfig, ShapeKind

from main_demo import ChartMarkDemo

from helpers import drag


def _demo(path):
    demo = ChartMarkDemo(
        config=EngineConfig(),
        width=200,
        height=150,
        candle_count=10,
        annotations_path=str(path),
    )
    demo.interactions.attach(demo.canvas)
    return demo


def test_failed_save_reports_status(tmp_path):
    """Saving onto a directory fails with an OSError; the demo keeps running."""
    demo = _demo(tmp_path)

    demo._save()

    assert demo._status == "Could not save annotations"


def test_save_and_load_status(tmp_path):
    demo = _demo(tmp_path / "marks.json")
    drag(demo.interactions, demo.canvas, ShapeKind.RECTANGLE, (2, 100), (6, 104))

    demo._save()
    assert demo._status == "Saved 1 shape(s)"

    demo._load()
    assert demo._status == "Loaded 1 shape(s)"


def test_missing_file_load_reports_status(tmp_path):
    demo = _demo(tmp_path / "missing.json")

    demo._load()

    assert demo._status.startswith("No file at")
