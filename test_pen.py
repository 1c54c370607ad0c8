import math

import pytest

from svg_path_extended.pen import PenState, arc_box, arc_end_direction
from svg_path_extended.segments import PathOp


def run(*ops: tuple[str, tuple[float, ...]]) -> PenState:
    pen = PenState()
    for letter, args in ops:
        pen.advance(PathOp(letter, tuple(float(a) for a in args)))
    return pen


class TestPenState:
    def test_move_sets_subpath_start_and_keeps_direction(self) -> None:
        pen = run(("L", (0, 10)), ("M", (5, 5)))
        assert pen.position == (5, 5)
        assert pen.start == (5, 5)
        assert pen.direction == pytest.approx(math.pi / 2)

    def test_line_direction_clockwise_on_screen(self) -> None:
        pen = run(("M", (0, 0)), ("L", (0, 10)))
        assert pen.direction == pytest.approx(math.pi / 2)

    def test_relative_commands(self) -> None:
        pen = run(("M", (10, 10)), ("l", (5, 0)), ("v", (-3,)), ("h", (2,)))
        assert pen.position == (17, 7)
        assert pen.direction == 0

    def test_implicit_repetitions(self) -> None:
        pen = run(("M", (0, 0, 10, 0, 10, 10)))
        # Extra pairs after the first M are line-tos.
        assert pen.start == (0, 0)
        assert pen.position == (10, 10)
        assert pen.direction == pytest.approx(math.pi / 2)

    def test_close_returns_to_start(self) -> None:
        pen = run(("M", (1, 1)), ("L", (5, 1)), ("L", (5, 5)), ("z", ()))
        assert pen.position == (1, 1)
        assert pen.direction == pytest.approx(math.atan2(-4, -4))

    def test_cubic_direction_from_last_control(self) -> None:
        pen = run(("M", (0, 0)), ("C", (0, 10, 10, 10, 10, 0)))
        assert pen.position == (10, 0)
        assert pen.direction == pytest.approx(-math.pi / 2)

    def test_smooth_cubic_reflects_control(self) -> None:
        pen = run(("M", (0, 0)), ("C", (0, 10, 10, 10, 10, 0)), ("S", (20, 0, 20, 0)))
        assert pen.control == (20, 0)
        assert pen.position == (20, 0)
        # Second control coincides with the end point, so the reflected first
        # control (10, -10) gives the heading.
        assert pen.direction == pytest.approx(math.atan2(10, 10))

    def test_zero_length_segment_keeps_direction(self) -> None:
        pen = run(("M", (0, 0)), ("L", (0, 5)), ("L", (0, 5)))
        assert pen.direction == pytest.approx(math.pi / 2)

    def test_history(self) -> None:
        pen = run(("M", (0, 0)), ("L", (3, 4)))
        assert [r.command for r in pen.history] == ["M", "L"]
        assert pen.history[1].start == (0, 0)
        assert pen.history[1].end == (3, 4)

    def test_arc_end_direction(self) -> None:
        # Upper half circle from (-10, 0) to (10, 0) drawn clockwise on screen.
        pen = run(("M", (-10, 0)), ("A", (10, 10, 0, 0, 1, 10, 0)))
        assert pen.position == (10, 0)
        assert pen.direction == pytest.approx(math.pi / 2)

    def test_degenerate_arc_is_a_line(self) -> None:
        assert arc_end_direction((0, 0), 0, 5, 0, False, True, (5, 5)) == (
            pytest.approx(math.pi / 4)
        )

    def test_extent_includes_control_points(self) -> None:
        pen = run(("M", (0, 0)), ("C", (0, 10, 10, 10, 10, 0)), ("q", (5, -8, 10, 0)))
        assert (0, 10) in pen.extent
        assert (10, 10) in pen.extent
        assert (15, -8) in pen.extent
        assert pen.extent[-1] == (20, 0)

    def test_extent_skips_position_before_first_move(self) -> None:
        pen = run(("M", (5, 5)), ("L", (6, 6)))
        assert pen.extent == [(5, 5), (5, 5), (6, 6)]

    def test_arc_box(self) -> None:
        corners = arc_box((-10, 0), 10, 10, 0, False, True, (10, 0))
        assert corners[0] == (pytest.approx(-10), pytest.approx(-10))
        assert corners[1] == (pytest.approx(10), pytest.approx(10))
        assert arc_box((0, 0), 0, 5, 0, False, True, (5, 5)) == []

    def test_copy_is_independent(self) -> None:
        pen = run(("M", (1, 1)))
        scratch = pen.copy()
        scratch.advance(PathOp("L", (4.0, 5.0)))
        assert pen.position == (1, 1)
        assert len(pen.history) == 1
        assert len(pen.extent) == 1
