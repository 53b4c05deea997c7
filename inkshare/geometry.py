"""Pure functions for stroke geometry.

This module contains stateless, pure mathematical functions for smoothing
raw pointer samples into curves and simplifying point sequences. No side
effects or I/O. Callers are expected to reject non-finite input with
`ensure_finite` before reaching these functions.
"""

import math
from collections.abc import Sequence

from inkshare.types import Point

# Interpolated samples generated per Catmull-Rom window
SMOOTHING_STEPS = 10

# Default Ramer-Douglas-Peucker tolerance in canvas units
SIMPLIFY_TOLERANCE = 2.0


def distance(p1: Point, p2: Point) -> float:
    """Calculate Euclidean distance between two points."""
    dx = p2.x - p1.x
    dy = p2.y - p1.y
    return math.sqrt(dx * dx + dy * dy)


def path_length(points: Sequence[Point]) -> float:
    """Total length of the polyline through `points`."""
    if len(points) < 2:
        return 0.0
    return sum(distance(points[i], points[i + 1]) for i in range(len(points) - 1))


def catmull_rom(p0: Point, p1: Point, p2: Point, p3: Point, t: float) -> Point:
    """Evaluate the Catmull-Rom segment between p1 and p2 at t in [0, 1].

    q(t) = 0.5 * [2*p1 + (-p0 + p2)*t + (2*p0 - 5*p1 + 4*p2 - p3)*t^2
                  + (-p0 + 3*p1 - 3*p2 + p3)*t^3]
    """
    t2 = t * t
    t3 = t2 * t
    return Point(
        x=0.5
        * (
            (2 * p1.x)
            + (-p0.x + p2.x) * t
            + (2 * p0.x - 5 * p1.x + 4 * p2.x - p3.x) * t2
            + (-p0.x + 3 * p1.x - 3 * p2.x + p3.x) * t3
        ),
        y=0.5
        * (
            (2 * p1.y)
            + (-p0.y + p2.y) * t
            + (2 * p0.y - 5 * p1.y + 4 * p2.y - p3.y) * t2
            + (-p0.y + 3 * p1.y - 3 * p2.y + p3.y) * t3
        ),
    )


def smooth_points(raw_points: Sequence[Point], steps: int = SMOOTHING_STEPS) -> list[Point]:
    """Smooth raw pointer samples with Catmull-Rom spline interpolation.

    Fewer than 4 points are returned unchanged: the spline basis needs four
    control points. Otherwise every overlapping window (p0, p1, p2, p3)
    contributes `steps` samples between p1 and p2. The curve starts at the
    second raw point and is closed by appending the second-to-last raw point,
    so no virtual trailing control point is needed.

    Output length is 2 + steps * (len(raw_points) - 3).
    """
    if steps < 1:
        raise ValueError(f"steps must be at least 1, got {steps}")

    if len(raw_points) < 4:
        return list(raw_points)

    smoothed: list[Point] = [raw_points[1]]
    for i in range(len(raw_points) - 3):
        p0, p1, p2, p3 = raw_points[i : i + 4]
        smoothed.extend(catmull_rom(p0, p1, p2, p3, step / steps) for step in range(1, steps + 1))

    smoothed.append(raw_points[-2])
    return smoothed


def perpendicular_distance(point: Point, line_start: Point, line_end: Point) -> float:
    """Distance from `point` to the line through line_start and line_end.

    A zero-length segment falls back to point-to-point distance.
    """
    dx = line_end.x - line_start.x
    dy = line_end.y - line_start.y

    if dx == 0 and dy == 0:
        return distance(point, line_start)

    numerator = abs((point.x - line_start.x) * dy - (point.y - line_start.y) * dx)
    return numerator / distance(line_start, line_end)


def simplify_points(
    points: Sequence[Point], tolerance: float = SIMPLIFY_TOLERANCE
) -> list[Point]:
    """Simplify a point sequence with the Ramer-Douglas-Peucker algorithm.

    Both endpoints are always retained and the result is a subsequence of the
    input. Sequences with fewer than 3 points are returned unchanged.

    Uses an explicit work stack instead of recursion so long strokes cannot
    hit the interpreter recursion limit.
    """
    if tolerance < 0:
        raise ValueError(f"tolerance must be non-negative, got {tolerance}")

    if len(points) < 3:
        return list(points)

    keep = [False] * len(points)
    keep[0] = keep[-1] = True
    stack: list[tuple[int, int]] = [(0, len(points) - 1)]

    while stack:
        start, end = stack.pop()
        if end - start < 2:
            continue

        max_distance = 0.0
        max_index = start
        for i in range(start + 1, end):
            d = perpendicular_distance(points[i], points[start], points[end])
            if d > max_distance:
                max_distance = d
                max_index = i

        if max_distance > tolerance:
            keep[max_index] = True
            stack.append((max_index, end))
            stack.append((start, max_index))

    return [p for p, kept in zip(points, keep, strict=True) if kept]
