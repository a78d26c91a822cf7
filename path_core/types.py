from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Point:
    x: float
    y: float

    def to_dict(self) -> Dict[str, float]:
        return {"x": float(self.x), "y": float(self.y)}


@dataclass(frozen=True)
class OrientedPoint(Point):
    angle: float

    def to_dict(self) -> Dict[str, float]:
        return {"x": float(self.x), "y": float(self.y), "angle": float(self.angle)}


@dataclass(frozen=True)
class Waypoint(Point):
    heading: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"x": float(self.x), "y": float(self.y)}
        if self.heading is not None:
            out["heading"] = float(self.heading)
        return out


def _finite(v: Any, name: str) -> float:
    f = float(v)
    if not math.isfinite(f):
        raise ValueError(f"{name} must be finite")
    return f


def point_from_raw(raw: Any) -> Point:
    """
    Accepts {"x": .., "y": ..} mappings, (x, y) pairs or Point instances.
    Raises ValueError / TypeError on malformed input.
    """
    if isinstance(raw, Point):
        return Point(raw.x, raw.y)
    if isinstance(raw, dict):
        return Point(_finite(raw["x"], "x"), _finite(raw["y"], "y"))
    x, y = raw
    return Point(_finite(x, "x"), _finite(y, "y"))


def waypoint_from_raw(raw: Any) -> Waypoint:
    if isinstance(raw, Waypoint):
        return raw
    if isinstance(raw, dict):
        heading = raw.get("heading", None)
        return Waypoint(
            _finite(raw["x"], "x"),
            _finite(raw["y"], "y"),
            None if heading is None else _finite(heading, "heading"),
        )
    p = point_from_raw(raw)
    return Waypoint(p.x, p.y)
