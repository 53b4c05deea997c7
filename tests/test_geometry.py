"""Tests for stroke smoothing and simplification."""

import math

import pytest

from inkshare.geometry import (
    catmull_rom,
    distance,
    path_length,
    perpendicular_distance,
    simplify_points,
    smooth_points,
)
from inkshare.types import Point


def pts(*coords: tuple[float, float]) -> list[Point]:
    return [Point(x=x, y=y) for x, y in coords]


class TestDistance:
    def test_distance(self) -> None:
        assert distance(Point(x=0, y=0), Point(x=3, y=4)) == 5

    def test_path_length(self) -> None:
        assert path_length(pts((0, 0), (3, 4), (3, 10))) == pytest.approx(11)

    def test_path_length_short(self) -> None:
        assert path_length([]) == 0
        assert path_length(pts((5, 5))) == 0


class TestCatmullRom:
    def test_starts_at_p1(self) -> None:
        p0, p1, p2, p3 = pts((0, 0), (1, 1), (2, 0), (3, 1))
        result = catmull_rom(p0, p1, p2, p3, 0)
        assert result.x == pytest.approx(1)
        assert result.y == pytest.approx(1)

    def test_ends_at_p2(self) -> None:
        p0, p1, p2, p3 = pts((0, 0), (1, 1), (2, 0), (3, 1))
        result = catmull_rom(p0, p1, p2, p3, 1)
        assert result.x == pytest.approx(2)
        assert result.y == pytest.approx(0)

    def test_collinear_midpoint(self) -> None:
        p0, p1, p2, p3 = pts((0, 0), (1, 0), (2, 0), (3, 0))
        result = catmull_rom(p0, p1, p2, p3, 0.5)
        assert result.x == pytest.approx(1.5)
        assert result.y == pytest.approx(0)


class TestSmoothPoints:
    def test_zigzag(self) -> None:
        """Five raw points produce a curve from the second to the fourth point."""
        raw = pts((0, 0), (1, 1), (2, 0), (3, 1), (4, 0))

        smoothed = smooth_points(raw)

        assert len(smoothed) > 5
        assert smoothed[0] == Point(x=1, y=1)
        assert smoothed[-1] == Point(x=3, y=1)

    def test_output_length(self) -> None:
        raw = pts((0, 0), (1, 1), (2, 0), (3, 1), (4, 0), (5, 1))
        assert len(smooth_points(raw, steps=10)) == 2 + 10 * 3
        assert len(smooth_points(raw, steps=4)) == 2 + 4 * 3

    def test_four_points(self) -> None:
        raw = pts((0, 0), (1, 1), (2, 0), (3, 1))
        smoothed = smooth_points(raw, steps=5)
        assert len(smoothed) == 7
        assert smoothed[0] == raw[1]
        assert smoothed[-1] == raw[2]

    @pytest.mark.parametrize("count", [0, 1, 2, 3])
    def test_fewer_than_four_points_unchanged(self, count: int) -> None:
        raw = pts(*[(i, i * 2) for i in range(count)])
        result = smooth_points(raw)
        assert result == raw
        assert result is not raw

    def test_samples_stay_finite(self) -> None:
        raw = pts((0, 0), (1e6, -1e6), (2e6, 1e6), (3e6, 0), (4e6, 5))
        assert all(math.isfinite(p.x) and math.isfinite(p.y) for p in smooth_points(raw))

    def test_invalid_steps(self) -> None:
        with pytest.raises(ValueError):
            smooth_points(pts((0, 0), (1, 1), (2, 2), (3, 3)), steps=0)


class TestPerpendicularDistance:
    def test_point_above_line(self) -> None:
        d = perpendicular_distance(Point(x=5, y=3), Point(x=0, y=0), Point(x=10, y=0))
        assert d == pytest.approx(3)

    def test_degenerate_segment_uses_point_distance(self) -> None:
        d = perpendicular_distance(Point(x=3, y=4), Point(x=0, y=0), Point(x=0, y=0))
        assert d == pytest.approx(5)


class TestSimplifyPoints:
    def test_collinear_middle_point_removed(self) -> None:
        result = simplify_points(pts((0, 0), (1, 0), (2, 0)), tolerance=0.1)
        assert result == pts((0, 0), (2, 0))

    def test_corner_kept(self) -> None:
        raw = pts((0, 0), (5, 5), (10, 0))
        assert simplify_points(raw, tolerance=1.0) == raw

    def test_deviation_equal_to_tolerance_is_dropped(self) -> None:
        """Only points strictly farther than the tolerance are kept."""
        raw = pts((0, 0), (5, 1), (10, 0))
        assert simplify_points(raw, tolerance=1.0) == pts((0, 0), (10, 0))

    def test_endpoints_always_kept(self) -> None:
        raw = pts((0, 0), (1, 0.1), (2, -0.1), (3, 0.05), (4, 0))
        result = simplify_points(raw, tolerance=100)
        assert result == pts((0, 0), (4, 0))

    def test_result_is_subsequence(self) -> None:
        raw = pts(*[(i, math.sin(i / 3) * 10) for i in range(60)])
        result = simplify_points(raw, tolerance=0.5)

        assert len(result) < len(raw)
        remaining = iter(raw)
        assert all(any(p == q for q in remaining) for p in result)

    def test_zero_tolerance_drops_only_exactly_collinear_points(self) -> None:
        raw = pts((0, 0), (1, 0), (2, 1), (3, 1))
        assert simplify_points(raw, tolerance=0) == pts((0, 0), (1, 0), (2, 1), (3, 1))

    @pytest.mark.parametrize("count", [0, 1, 2])
    def test_short_input_unchanged(self, count: int) -> None:
        raw = pts(*[(i, i) for i in range(count)])
        assert simplify_points(raw, tolerance=0.1) == raw

    def test_long_stroke_does_not_recurse(self) -> None:
        raw = pts(*[(i, (i % 2) * 10) for i in range(1500)])
        result = simplify_points(raw, tolerance=1.0)
        assert len(result) == len(raw)

    def test_negative_tolerance(self) -> None:
        with pytest.raises(ValueError):
            simplify_points(pts((0, 0), (1, 1), (2, 2)), tolerance=-1)
