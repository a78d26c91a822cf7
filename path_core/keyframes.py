from __future__ import annotations

import bisect
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from .math_utils import clamp, lerp, shortest_rotation, transform_angle
from .sampling import orient_path, sample_cubic_bezier, sample_polyline
from .types import OrientedPoint, Point

logger = logging.getLogger(__name__)

DEFAULT_HANDOFF_PAUSE = 0.6
DEFAULT_BASELINE_SAMPLES = 46
DEFAULT_OPTIMIZED_SAMPLES = 35
DEFAULT_BASELINE_FRACTION = 0.58
DEFAULT_REVEAL_START = 0.64


@dataclass(frozen=True)
class KeyframeTrack:
    """
    Four parallel animation channels plus the normalized time of each frame.
    All lists share one length; times are non-decreasing in [0, 1].
    """
    x: List[float] = field(default_factory=list)
    y: List[float] = field(default_factory=list)
    rotate: List[float] = field(default_factory=list)
    opacity: List[float] = field(default_factory=list)
    times: List[float] = field(default_factory=list)

    @classmethod
    def empty(cls) -> "KeyframeTrack":
        return cls(x=[0.0, 0.0], y=[0.0, 0.0], rotate=[0.0, 0.0], opacity=[0.0, 0.0], times=[0.0, 1.0])

    def __len__(self) -> int:
        return len(self.times)

    def is_empty(self) -> bool:
        return not any(self.opacity)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "keyframes": {
                "x": list(self.x),
                "y": list(self.y),
                "rotate": list(self.rotate),
                "opacity": list(self.opacity),
            },
            "times": list(self.times),
        }

    def sample(self, t: float) -> Dict[str, float]:
        """Pose at normalized time t. Heading takes the shorter arc between frames."""
        n = len(self.times)
        if n == 0:
            return {"x": 0.0, "y": 0.0, "rotate": 0.0, "opacity": 0.0}

        tt = clamp(float(t), self.times[0], self.times[-1])
        hi = bisect.bisect_right(self.times, tt)
        if hi >= n:
            i = n - 1
            return {"x": self.x[i], "y": self.y[i], "rotate": self.rotate[i], "opacity": self.opacity[i]}
        lo = max(0, hi - 1)

        span = self.times[hi] - self.times[lo]
        alpha = 0.0 if span <= 0.0 else (tt - self.times[lo]) / span
        return {
            "x": lerp(alpha, self.x[lo], self.x[hi]),
            "y": lerp(alpha, self.y[lo], self.y[hi]),
            "rotate": transform_angle(shortest_rotation(self.rotate[lo], self.rotate[hi], alpha)),
            "opacity": lerp(alpha, self.opacity[lo], self.opacity[hi]),
        }


def _spread(count: int, start: float, end: float) -> List[float]:
    denom = float(max(1, count - 1))
    return [start + (i / denom) * (end - start) for i in range(count)]


def _finite_or_default(value: float, default: float, name: str) -> float:
    v = float(value)
    if not math.isfinite(v):
        logger.warning("%s %r is not finite; using %.3f", name, value, default)
        return default
    return v


def _bounded(value: float, lo: float, hi: float, name: str) -> float:
    out = clamp(value, lo, hi)
    if out != value:
        logger.warning("%s %.3f outside [%.3f, %.3f]; clamped to %.3f", name, value, lo, hi, out)
    return out


def build_robot_keyframes(
    baseline: Sequence[OrientedPoint],
    optimized: Sequence[OrientedPoint],
    baseline_fraction: float,
    reveal_start: float,
    handoff_pause: float = DEFAULT_HANDOFF_PAUSE,
) -> KeyframeTrack:
    """
    Baseline frames play over [0, baseline_fraction], optimized frames over
    [reveal_start, 1]. Between them the robot fades out at its baseline end pose
    (at handoff_pause) and reappears, still transparent, at the optimized start
    pose (at reveal_start).

    Timing parameters are forced into 0 <= baseline_fraction <= handoff_pause
    <= reveal_start <= 1; non-finite values fall back to
    the module defaults. Every adjustment is logged as a warning.
    """
    if not baseline or not optimized:
        return KeyframeTrack.empty()

    fraction = _finite_or_default(baseline_fraction, DEFAULT_BASELINE_FRACTION, "baseline_fraction")
    fraction = _bounded(fraction, 0.0, 1.0, "baseline_fraction")
    reveal = _finite_or_default(reveal_start, DEFAULT_REVEAL_START, "reveal_start")
    reveal = _bounded(reveal, fraction, 1.0, "reveal_start")
    handoff = _finite_or_default(handoff_pause, DEFAULT_HANDOFF_PAUSE, "handoff_pause")
    handoff = _bounded(handoff, fraction, reveal, "handoff_pause")

    baseline_times = _spread(len(baseline), 0.0, fraction)
    optimized_times = _spread(len(optimized), reveal, 1.0)

    baseline_end = baseline[-1]
    optimized_start = optimized[0]
    tail = list(optimized[1:])

    return KeyframeTrack(
        x=[p.x for p in baseline] + [baseline_end.x, optimized_start.x] + [p.x for p in tail],
        y=[p.y for p in baseline] + [baseline_end.y, optimized_start.y] + [p.y for p in tail],
        rotate=[p.angle for p in baseline] + [baseline_end.angle, optimized_start.angle] + [p.angle for p in tail],
        opacity=[1.0 for _ in baseline] + [0.0, 0.0] + [1.0 for _ in tail],
        times=baseline_times + [handoff, reveal] + optimized_times[1:],
    )


def build_path_preview(
    baseline_waypoints: Sequence[Point],
    optimized_controls: Sequence[Point],
    *,
    baseline_samples: int = DEFAULT_BASELINE_SAMPLES,
    optimized_samples: int = DEFAULT_OPTIMIZED_SAMPLES,
    baseline_fraction: float = DEFAULT_BASELINE_FRACTION,
    reveal_start: float = DEFAULT_REVEAL_START,
    handoff_pause: float = DEFAULT_HANDOFF_PAUSE,
) -> KeyframeTrack:
    """
    Resample the baseline polyline, sample the optimized cubic (four control
    points), orient both and compose them into one track.
    """
    if len(optimized_controls) != 4:
        raise ValueError("optimized_controls must hold exactly 4 points")

    baseline = orient_path(sample_polyline(baseline_waypoints, baseline_samples))
    p0, p1, p2, p3 = optimized_controls
    optimized = orient_path(sample_cubic_bezier(p0, p1, p2, p3, optimized_samples))
    return build_robot_keyframes(
        baseline,
        optimized,
        baseline_fraction=baseline_fraction,
        reveal_start=reveal_start,
        handoff_pause=handoff_pause,
    )
