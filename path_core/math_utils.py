from __future__ import annotations

import math
from typing import List, Sequence, Tuple

from .types import Point


def clamp_int(x: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, x))


def clamp(value: float, lo: float, hi: float) -> float:
    return min(max(value, lo), hi)


def lerp(ratio: float, start: float, end: float) -> float:
    # ratio outside [0, 1] extrapolates
    return start + (end - start) * ratio


def lerp2d(ratio: float, start: Point, end: Point) -> Point:
    return Point(lerp(ratio, start.x, end.x), lerp(ratio, start.y, end.y))


def distance(a: Point, b: Point) -> float:
    return math.hypot(b.x - a.x, b.y - a.y)


def path_length(points: Sequence[Point]) -> float:
    return sum(distance(points[i - 1], points[i]) for i in range(1, len(points)))


def degrees_to_radians(deg: float) -> float:
    return deg * math.pi / 180.0


def radians_to_degrees(rad: float) -> float:
    return rad * 180.0 / math.pi


def transform_angle(angle: float) -> float:
    """Normalize any angle in degrees to (-180, 180]."""
    a = math.fmod(float(angle), 360.0)
    if a <= -180.0:
        a += 360.0
    elif a > 180.0:
        a -= 360.0
    return a


def shortest_rotation(start_angle: float, end_angle: float, fraction: float) -> float:
    """
    Interpolate a heading from start_angle toward end_angle along the shorter arc.
    Result is reported in [0, 360).
    """
    start = float(start_angle) % 360.0
    end = float(end_angle) % 360.0

    difference = end - start
    if difference > 180.0:
        difference -= 360.0
    elif difference <= -180.0:
        difference += 360.0

    return (start + difference * fraction) % 360.0


def get_curve_point(t: float, control_points: Sequence[Point]) -> Point:
    """De Casteljau evaluation of a Bezier curve of any degree. t is not clamped; no points gives the origin."""
    if not control_points:
        return Point(0.0, 0.0)
    if len(control_points) == 1:
        return control_points[0]
    reduced = [lerp2d(t, control_points[i], control_points[i + 1]) for i in range(len(control_points) - 1)]
    return get_curve_point(t, reduced)


def quadratic_to_cubic(p0: Point, p1: Point, p2: Point) -> Tuple[Point, Point]:
    q1 = Point(p0.x + (2.0 / 3.0) * (p1.x - p0.x), p0.y + (2.0 / 3.0) * (p1.y - p0.y))
    q2 = Point(p2.x + (2.0 / 3.0) * (p1.x - p2.x), p2.y + (2.0 / 3.0) * (p1.y - p2.y))
    return q1, q2


def catmull_rom_spline(points: Sequence[Point], samples_per_segment: int = 20) -> List[Point]:
    """
    Smooth curve through every input point. Endpoints are duplicated as phantom
    neighbors so the curve starts and ends on the first/last point.
    """
    if len(points) < 3:
        return list(points)

    steps = max(1, int(samples_per_segment))
    extended = [points[0]] + list(points) + [points[-1]]
    out: List[Point] = []

    for i in range(1, len(extended) - 2):
        p0, p1, p2, p3 = extended[i - 1], extended[i], extended[i + 1], extended[i + 2]
        for j in range(steps):
            t = j / float(steps)
            t2 = t * t
            t3 = t2 * t
            x = 0.5 * (
                (2.0 * p1.x)
                + (-p0.x + p2.x) * t
                + (2.0 * p0.x - 5.0 * p1.x + 4.0 * p2.x - p3.x) * t2
                + (-p0.x + 3.0 * p1.x - 3.0 * p2.x + p3.x) * t3
            )
            y = 0.5 * (
                (2.0 * p1.y)
                + (-p0.y + p2.y) * t
                + (2.0 * p0.y - 5.0 * p1.y + 4.0 * p2.y - p3.y) * t2
                + (-p0.y + 3.0 * p1.y - 3.0 * p2.y + p3.y) * t3
            )
            out.append(Point(x, y))

    out.append(points[-1])
    return out
