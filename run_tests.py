#!/usr/bin/env python3
"""
Scenario Tests for the ChartMark Annotation Engine

Walks through three end-to-end scenarios without a test framework:
A. Draw & History (undo/redo of drawn shapes)
B. Save & Load (round trip, unknown shape types skipped)
C. Select & Delete (hit testing, multi-select, undoable delete)

The full unit suite lives in tests/ and runs with pytest.
"""

import sys
import os
import json
import tempfile
import traceback

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from chartmark import (
    ChartInteractions,
    InteractionState,
    Modifier,
    OpenCVCanvas,
    Point,
    ShapeKind,
    ShapeManager,
)


def _setup():
    canvas = OpenCVCanvas(width=400, height=300, x_range=(0.0, 100.0), y_range=(50.0, 80.0))
    interactions = ChartInteractions(ShapeManager())
    interactions.attach(canvas)
    return interactions, canvas


def _drag(interactions, canvas, kind, start, end, modifiers=Modifier.NONE):
    interactions.set_draw_mode(kind)
    interactions.pointer_down(*canvas.coordinate_to_pixel(Point(*start)), modifiers)
    for i in range(1, 6):
        x = start[0] + (end[0] - start[0]) * i / 5
        y = start[1] + (end[1] - start[1]) * i / 5
        interactions.pointer_move(*canvas.coordinate_to_pixel(Point(x, y)), modifiers)
    return interactions.pointer_up(*canvas.coordinate_to_pixel(Point(*end)), modifiers)


def test_draw_and_history():
    """
    Test Case A: Draw & History

    Scenario:
    - Draw a TrendLine, then a Rectangle
    - Undo both, redo both

    Assertions:
    - Exactly one preview exists while dragging, none afterwards
    - Counts go 2 -> 1 -> 0 -> 2 and order is restored
    - Canvas holds exactly the managed visuals at every step
    """
    print("\n" + "="*60)
    print("TEST A: Draw & History")
    print("="*60)

    interactions, canvas = _setup()
    manager = interactions.shape_manager

    interactions.set_draw_mode(ShapeKind.TREND_LINE)
    interactions.pointer_down(*canvas.coordinate_to_pixel(Point(10, 60)))
    for i in range(10):
        interactions.pointer_move(*canvas.coordinate_to_pixel(Point(12 + i * 3, 61 + i)))
        assert len(canvas.visuals) == 1, "Exactly one preview while dragging"
    line = interactions.pointer_up(*canvas.coordinate_to_pixel(Point(40, 70)))
    print(f"  Drew {line.kind.value}: state={interactions.state.value}, mode={interactions.draw_mode.value}")

    rect = _drag(interactions, canvas, ShapeKind.RECTANGLE, (50, 55), (70, 65))
    print(f"  Drew {rect.kind.value}: shapes={len(manager.shapes)}")

    counts = [len(manager.shapes)]
    interactions.undo()
    counts.append(len(manager.shapes))
    remaining = list(manager.shapes)
    interactions.undo()
    counts.append(len(manager.shapes))
    interactions.redo()
    interactions.redo()
    counts.append(len(manager.shapes))
    print(f"  Counts through undo/undo/redo/redo: {counts}")

    print("\n" + "-"*60)
    print("ASSERTIONS:")
    print(f"  ✓ Back to IDLE after commit: {interactions.state == InteractionState.IDLE}")
    print(f"  ✓ Counts 2 -> 1 -> 0 -> 2: {counts == [2, 1, 0, 2]}")
    print(f"  ✓ Canvas matches manager: {len(canvas.visuals) == len(manager.shapes)}")

    assert interactions.state == InteractionState.IDLE, "Committing a shape should disarm the tool"
    assert counts == [2, 1, 0, 2], f"Unexpected counts: {counts}"
    assert remaining == [line], "TrendLine should remain after the first undo"
    assert list(manager.shapes) == [line, rect], "Redo should restore the original order"
    assert [v for v in canvas.visuals] == [line.visual, rect.visual], "Canvas should hold exactly the shape visuals"

    print("\n✓ TEST A PASSED: Draw & History")
    return True


def test_save_and_load():
    """
    Test Case B: Save & Load

    Scenario:
    - Draw one shape of every supported kind and save
    - Load the file back into the same chart
    - Load a hand-written file with one unknown and one valid record

    Assertions:
    - Reloaded shapes match (kind, anchors, style) in order, with empty history
    - The unknown record is skipped, the valid one loads
    """
    print("\n" + "="*60)
    print("TEST B: Save & Load")
    print("="*60)

    interactions, canvas = _setup()
    manager = interactions.shape_manager
    kinds = [
        ShapeKind.TREND_LINE,
        ShapeKind.HORIZONTAL_LINE,
        ShapeKind.VERTICAL_LINE,
        ShapeKind.RECTANGLE,
        ShapeKind.CIRCLE,
        ShapeKind.FIBONACCI_RETRACEMENT,
    ]
    for i, kind in enumerate(kinds):
        _drag(interactions, canvas, kind, (5 + i * 10, 55 + i), (12 + i * 10, 75 - i))

    def signature(shape):
        return (shape.kind, shape.anchor_start, shape.anchor_end, shape.style)

    before = [signature(s) for s in manager.shapes]

    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "chart_annotations.json")
        saved = interactions.save_to_file(path)
        print(f"  Saved {saved} shapes")

        loaded = interactions.load_from_file(path)
        print(f"  Loaded {len(loaded)} shapes, can_undo={manager.can_undo}")
        after = [signature(s) for s in manager.shapes]

        mixed_path = os.path.join(tmp, "mixed.json")
        with open(mixed_path, "w", encoding="utf-8") as f:
            json.dump({
                "Version": 1,
                "Shapes": [
                    {"ShapeType": "Unsupported", "X1": 0, "Y1": 0, "X2": 1, "Y2": 1,
                     "LineColor": "#FFFFFF", "LineWidth": 1, "FillColor": None, "FillAlpha": 0},
                    {"ShapeType": "Rectangle", "X1": 10, "Y1": 60, "X2": 20, "Y2": 70,
                     "LineColor": "#800080", "LineWidth": 2, "FillColor": "#800080", "FillAlpha": 25},
                ],
            }, f)
        mixed = interactions.load_from_file(mixed_path)
        print(f"  Mixed file: {[s.kind.value for s in mixed]}")

    print("\n" + "-"*60)
    print("ASSERTIONS:")
    print(f"  ✓ Round trip identical: {before == after}")
    print(f"  ✓ Unknown record skipped: {len(mixed) == 1}")

    assert saved == len(kinds), f"Expected {len(kinds)} saved shapes, got {saved}"
    assert before == after, "Reloaded shapes should match the saved ones"
    assert len(mixed) == 1 and mixed[0].kind == ShapeKind.RECTANGLE, "Only the Rectangle should load"
    assert not manager.can_undo, "Loading should start with an empty history"
    assert len(canvas.visuals) == 1, "Previous visuals should be detached on load"

    print("\n✓ TEST B PASSED: Save & Load")
    return True


def test_select_and_delete():
    """
    Test Case C: Select & Delete

    Scenario:
    - Draw two rectangles and a horizontal line
    - Click the first rectangle, Ctrl+click the line
    - Delete selected, then undo

    Assertions:
    - Plain click selects one shape, Ctrl+click adds a second
    - Delete removes exactly the selected shapes
    - Undo restores them
    """
    print("\n" + "="*60)
    print("TEST C: Select & Delete")
    print("="*60)

    interactions, canvas = _setup()
    manager = interactions.shape_manager

    first = _drag(interactions, canvas, ShapeKind.RECTANGLE, (10, 55), (30, 65))
    second = _drag(interactions, canvas, ShapeKind.RECTANGLE, (60, 55), (80, 65))
    level = _drag(interactions, canvas, ShapeKind.HORIZONTAL_LINE, (40, 75), (40, 75))

    interactions.pointer_down(*canvas.coordinate_to_pixel(Point(20, 60)))
    interactions.pointer_up(*canvas.coordinate_to_pixel(Point(20, 60)))
    single = [s for s in manager.shapes if s.is_selected]
    print(f"  After click: {[s.kind.value for s in single]}")

    # Anywhere along the horizontal line, 2px off
    px, py = canvas.coordinate_to_pixel(Point(95, 75))
    interactions.pointer_down(px, py + 2, Modifier.CTRL)
    interactions.pointer_up(px, py + 2, Modifier.CTRL)
    multi = [s for s in manager.shapes if s.is_selected]
    print(f"  After Ctrl+click: {[s.kind.value for s in multi]}")

    deleted = interactions.delete_selected_shapes()
    remaining = list(manager.shapes)
    print(f"  Deleted {deleted}, remaining {len(remaining)}")

    interactions.undo()
    interactions.undo()
    restored = set(manager.shapes)

    print("\n" + "-"*60)
    print("ASSERTIONS:")
    print(f"  ✓ Click selected one shape: {single == [first]}")
    print(f"  ✓ Ctrl+click added the line: {set(multi) == {first, level}}")
    print(f"  ✓ Delete left the other rectangle: {remaining == [second]}")

    assert single == [first], "Plain click should select only the first rectangle"
    assert set(multi) == {first, level}, "Ctrl+click should add the horizontal line"
    assert deleted == 2 and remaining == [second], "Only the selected shapes should be deleted"
    assert restored == {first, second, level}, "Undo should restore deleted shapes"
    assert len(canvas.visuals) == 3, "Restored shapes should be back on the canvas"

    print("\n✓ TEST C PASSED: Select & Delete")
    return True


def main():
    """Run all tests."""
    print("\n" + "="*60)
    print("ChartMark Annotation Engine - Scenario Tests")
    print("="*60)

    scenarios = [
        ("Test A: Draw & History", test_draw_and_history),
        ("Test B: Save & Load", test_save_and_load),
        ("Test C: Select & Delete", test_select_and_delete),
    ]

    results = []
    for name, scenario in scenarios:
        try:
            results.append((name, scenario()))
        except AssertionError as e:
            print(f"\n✗ {name} FAILED: {e}")
            results.append((name, False))
        except Exception as e:
            print(f"\n✗ {name} ERROR: {e}")
            traceback.print_exc()
            results.append((name, False))

    # Summary
    print("\n" + "="*60)
    print("TEST SUMMARY")
    print("="*60)
    for name, passed in results:
        status = "✓ PASSED" if passed else "✗ FAILED"
        print(f"  {name}: {status}")

    all_passed = all(result for _, result in results)
    print("\n" + ("="*60))
    if all_passed:
        print("✓ ALL TESTS PASSED")
    else:
        print("✗ SOME TESTS FAILED")
    print("="*60 + "\n")

    return 0 if all_passed else 1


if __name__ == "__main__":
    sys.exit(main())
