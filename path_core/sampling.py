from __future__ import annotations

import math
from typing import List, Sequence

from .math_utils import clamp_int, lerp
from .types import OrientedPoint, Point


MIN_SAMPLES = 2
MAX_SAMPLES = 10000


def clamp_samples(samples: float) -> int:
    """Sample count floored into [MIN_SAMPLES, MAX_SAMPLES]; NaN counts as the minimum."""
    s = float(samples)
    if math.isnan(s):
        return MIN_SAMPLES
    if math.isinf(s):
        return MAX_SAMPLES if s > 0 else MIN_SAMPLES
    return clamp_int(int(math.floor(s)), MIN_SAMPLES, MAX_SAMPLES)


def sample_polyline(points: Sequence[Point], samples: float) -> List[Point]:
    """
    Resample a polyline into exactly `samples` points spaced evenly by arc length.

    Fewer than two points, or a polyline of zero total length, yields `samples`
    copies of the first point. An empty input yields an empty list.
    """
    n = clamp_samples(samples)
    if not points:
        return []
    first = Point(points[0].x, points[0].y)
    if len(points) < 2:
        return [first for _ in range(n)]

    seg_lengths = [math.hypot(points[i].x - points[i - 1].x, points[i].y - points[i - 1].y) for i in range(1, len(points))]
    total = sum(seg_lengths)
    if total <= 0.0:
        return [first for _ in range(n)]

    out: List[Point] = []
    seg_idx = 0
    covered = 0.0
    last_seg = len(seg_lengths) - 1

    for i in range(n):
        target = total * i / float(n - 1)
        while seg_idx < last_seg and covered + seg_lengths[seg_idx] < target:
            covered += seg_lengths[seg_idx]
            seg_idx += 1

        start = points[seg_idx]
        end = points[seg_idx + 1]
        seg_len = seg_lengths[seg_idx]
        t = 0.0 if seg_len == 0.0 else min(1.0, max(0.0, target - covered) / seg_len)
        out.append(Point(lerp(t, start.x, end.x), lerp(t, start.y, end.y)))

    return out


def sample_cubic_bezier(p0: Point, p1: Point, p2: Point, p3: Point, samples: float) -> List[Point]:
    n = clamp_samples(samples)
    out: List[Point] = []
    for i in range(n):
        t = i / float(n - 1)
        u = 1.0 - t
        uu = u * u
        tt = t * t
        uuu = uu * u
        ttt = tt * t
        x = uuu * p0.x + 3.0 * uu * t * p1.x + 3.0 * u * tt * p2.x + ttt * p3.x
        y = uuu * p0.y + 3.0 * uu * t * p1.y + 3.0 * u * tt * p2.y + ttt * p3.y
        out.append(Point(x, y))
    return out


def orient_path(points: Sequence[Point]) -> List[OrientedPoint]:
    """Attach a direction-of-travel heading (degrees) to every sample."""
    if not points:
        return []
    if len(points) == 1:
        return [OrientedPoint(points[0].x, points[0].y, 0.0)]

    last = len(points) - 1
    out: List[OrientedPoint] = []
    for i, p in enumerate(points):
        prev = points[max(0, i - 1)]
        nxt = points[min(last, i + 1)]
        angle = math.degrees(math.atan2(nxt.y - prev.y, nxt.x - prev.x))
        out.append(OrientedPoint(p.x, p.y, angle))
    return out
