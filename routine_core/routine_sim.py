from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from path_core.math_utils import clamp, degrees_to_radians, lerp, path_length, transform_angle
from path_core.types import OrientedPoint, Point

from .graph import RoutineGraph
from .node_models import (
    ArcParams,
    ContinuousServoParams,
    DriveParams,
    HeadingParams,
    MotorParams,
    PATH_NODE_TYPES,
    PositionParams,
    RoutineNode,
    TurnParams,
    WaitForSensorParams,
    WaitParams,
)
from .path_projection import node_path_points

logger = logging.getLogger(__name__)

DEFAULT_FIELD_SIZE = 144.0
DEFAULT_ROBOT_HALF_SIZE = 9.0
DEFAULT_MAX_VELOCITY = 50.0  # in/s
DEFAULT_TURN_RATE = 180.0  # deg/s
STEPS_PER_SEGMENT = 20
RAMP_FRACTION = 0.3

# travel direction relative to the robot heading; screen coordinates, y down
_DRIVE_OFFSETS = {"forward": 0.0, "backward": 180.0, "strafeLeft": -90.0, "strafeRight": 90.0}


def trapezoid_velocity(t: float, max_velocity: float, ramp: float = RAMP_FRACTION) -> float:
    """Velocity at normalized progress t of a move that ramps up and down over `ramp` of the path."""
    tt = clamp(float(t), 0.0, 1.0)
    if ramp <= 0.0:
        return float(max_velocity)
    if tt < ramp:
        return (tt / ramp) * max_velocity
    if tt > 1.0 - ramp:
        return ((1.0 - tt) / ramp) * max_velocity
    return float(max_velocity)


@dataclass(frozen=True)
class MotionSegment:
    node_id: str
    node_type: str
    samples: List[OrientedPoint]
    velocities: List[float]
    distance: float
    duration: float

    @property
    def start(self) -> OrientedPoint:
        return self.samples[0]

    @property
    def end(self) -> OrientedPoint:
        return self.samples[-1]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodeId": self.node_id,
            "type": self.node_type,
            "start": self.start.to_dict(),
            "end": self.end.to_dict(),
            "samples": [p.to_dict() for p in self.samples],
            "velocities": list(self.velocities),
            "distance": float(self.distance),
            "duration": float(self.duration),
        }


@dataclass(frozen=True)
class RoutineMotion:
    start: OrientedPoint
    segments: List[MotionSegment] = field(default_factory=list)
    path: List[OrientedPoint] = field(default_factory=list)

    @property
    def total_duration(self) -> float:
        return sum(s.duration for s in self.segments)

    @property
    def total_distance(self) -> float:
        return sum(s.distance for s in self.segments)

    @property
    def end(self) -> OrientedPoint:
        return self.path[-1] if self.path else self.start

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.start.to_dict(),
            "end": self.end.to_dict(),
            "segments": [s.to_dict() for s in self.segments],
            "path": [p.to_dict() for p in self.path],
            "totalDuration": float(self.total_duration),
            "totalDistance": float(self.total_distance),
        }


class _Estimator:
    def __init__(self, field_size: float, robot_half_size: float, max_velocity: float, turn_rate: float) -> None:
        self.lo = float(robot_half_size)
        self.hi = float(field_size) - float(robot_half_size)
        self.max_velocity = float(max_velocity)
        self.turn_rate = float(turn_rate)

    def clamp_point(self, x: float, y: float) -> Point:
        return Point(clamp(x, self.lo, self.hi), clamp(y, self.lo, self.hi))

    def travel_time(self, dist: float, power: float) -> float:
        speed = self.max_velocity * power
        return 0.0 if dist <= 0.0 or speed <= 0.0 else dist / speed

    def turn_time(self, degrees: float, power: float) -> float:
        rate = self.turn_rate * power
        return 0.0 if degrees <= 0.0 or rate <= 0.0 else abs(degrees) / rate

    def segment(self, node: RoutineNode, pose: OrientedPoint) -> MotionSegment:
        params = node.params
        if node.type in _DRIVE_OFFSETS and isinstance(params, DriveParams):
            return self._drive(node, pose, params)
        if isinstance(params, TurnParams):
            delta = -params.angle if node.type == "turnLeft" else params.angle
            return self._turn(node, pose, delta, params.power)
        if isinstance(params, HeadingParams):
            delta = transform_angle(params.target_heading - pose.angle)
            return self._turn(node, pose, delta, params.power)
        if isinstance(params, ArcParams):
            return self._arc(node, pose, params)
        if node.type in PATH_NODE_TYPES and isinstance(params, PositionParams):
            return self._follow(node, pose, params)
        return MotionSegment(node.id, node.type, [pose], [0.0], 0.0, self._hold_time(params))

    def _hold_time(self, params: Any) -> float:
        if isinstance(params, (WaitParams, ContinuousServoParams, WaitForSensorParams)):
            return float(params.duration)
        if isinstance(params, MotorParams) and params.duration is not None:
            return float(params.duration)
        return 0.0

    def _moving(self, node: RoutineNode, samples: List[OrientedPoint], power: float) -> MotionSegment:
        dist = path_length(samples)
        top = self.max_velocity * power
        n = len(samples)
        velocities = [trapezoid_velocity(i / float(max(1, n - 1)), top) for i in range(n)] if dist > 0.0 else [0.0] * n
        return MotionSegment(node.id, node.type, samples, velocities, dist, self.travel_time(dist, power))

    def _drive(self, node: RoutineNode, pose: OrientedPoint, params: DriveParams) -> MotionSegment:
        direction = degrees_to_radians(pose.angle + _DRIVE_OFFSETS[node.type])
        end = self.clamp_point(
            pose.x + params.distance * math.cos(direction),
            pose.y + params.distance * math.sin(direction),
        )
        if params.power <= 0.0:
            end = Point(pose.x, pose.y)
        samples = [
            OrientedPoint(lerp(i / STEPS_PER_SEGMENT, pose.x, end.x), lerp(i / STEPS_PER_SEGMENT, pose.y, end.y), pose.angle)
            for i in range(STEPS_PER_SEGMENT + 1)
        ]
        return self._moving(node, samples, params.power)

    def _turn(self, node: RoutineNode, pose: OrientedPoint, delta: float, power: float) -> MotionSegment:
        if power <= 0.0:
            delta = 0.0
        samples = [
            OrientedPoint(pose.x, pose.y, pose.angle + delta * i / STEPS_PER_SEGMENT)
            for i in range(STEPS_PER_SEGMENT + 1)
        ]
        return MotionSegment(node.id, node.type, samples, [0.0] * len(samples), 0.0, self.turn_time(abs(delta), power))

    def _arc(self, node: RoutineNode, pose: OrientedPoint, params: ArcParams) -> MotionSegment:
        length = params.distance if params.power > 0.0 else 0.0
        sweep = params.angle if params.power > 0.0 else 0.0
        h0 = degrees_to_radians(pose.angle)
        samples: List[OrientedPoint] = []
        for i in range(STEPS_PER_SEGMENT + 1):
            t = i / STEPS_PER_SEGMENT
            heading = pose.angle + sweep * t
            if sweep == 0.0:
                x = pose.x + length * t * math.cos(h0)
                y = pose.y + length * t * math.sin(h0)
            else:
                radius = length / degrees_to_radians(sweep)
                h = degrees_to_radians(heading)
                x = pose.x + radius * (math.sin(h) - math.sin(h0))
                y = pose.y - radius * (math.cos(h) - math.cos(h0))
            p = self.clamp_point(x, y)
            samples.append(OrientedPoint(p.x, p.y, heading))
        return self._moving(node, samples, params.power)

    def _follow(self, node: RoutineNode, pose: OrientedPoint, params: PositionParams) -> MotionSegment:
        points = [self.clamp_point(p.x, p.y) for p in node_path_points(node, pose)]
        if params.power <= 0.0 or len(points) < 2:
            points = [Point(pose.x, pose.y)]
        end_heading = pose.angle
        if params.target_heading is not None:
            end_heading = pose.angle + transform_angle(params.target_heading - pose.angle)

        total = path_length(points)
        samples: List[OrientedPoint] = [OrientedPoint(points[0].x, points[0].y, pose.angle)]
        covered = 0.0
        for prev, cur in zip(points, points[1:]):
            covered += math.hypot(cur.x - prev.x, cur.y - prev.y)
            frac = 1.0 if total <= 0.0 else covered / total
            samples.append(OrientedPoint(cur.x, cur.y, lerp(frac, pose.angle, end_heading)))
        if len(samples) == 1 and end_heading != pose.angle:
            samples.append(OrientedPoint(pose.x, pose.y, end_heading))
        return self._moving(node, samples, params.power)


def estimate_routine_motion(
    graph: RoutineGraph,
    start_pose: Optional[OrientedPoint] = None,
    *,
    field_size: float = DEFAULT_FIELD_SIZE,
    robot_half_size: float = DEFAULT_ROBOT_HALF_SIZE,
    max_velocity: float = DEFAULT_MAX_VELOCITY,
    turn_rate: float = DEFAULT_TURN_RATE,
) -> RoutineMotion:
    """
    Dead-reckon the robot pose through the routine's execution order.

    Headings are degrees in screen coordinates (x right, y down, 0 = +x,
    positive = clockwise). Every position is kept inside the field inset by
    the robot half size. Loop bodies are walked once.
    """
    if start_pose is None:
        start_pose = OrientedPoint(field_size / 2.0, field_size / 2.0, 0.0)
    return estimate_motion_for_nodes(
        graph.execution_order(),
        start_pose,
        field_size=field_size,
        robot_half_size=robot_half_size,
        max_velocity=max_velocity,
        turn_rate=turn_rate,
    )


def estimate_motion_for_nodes(
    nodes: Sequence[RoutineNode],
    start_pose: OrientedPoint,
    *,
    field_size: float = DEFAULT_FIELD_SIZE,
    robot_half_size: float = DEFAULT_ROBOT_HALF_SIZE,
    max_velocity: float = DEFAULT_MAX_VELOCITY,
    turn_rate: float = DEFAULT_TURN_RATE,
) -> RoutineMotion:
    if field_size <= 2.0 * robot_half_size:
        raise ValueError("field_size must exceed the robot footprint")

    est = _Estimator(field_size, robot_half_size, max_velocity, turn_rate)
    start_xy = est.clamp_point(start_pose.x, start_pose.y)
    pose = OrientedPoint(start_xy.x, start_xy.y, start_pose.angle)

    segments: List[MotionSegment] = []
    path: List[OrientedPoint] = [pose]
    for node in nodes:
        seg = est.segment(node, pose)
        segments.append(seg)
        path.extend(seg.samples[1:])
        pose = seg.end

    logger.debug("estimated %d segments, %.2fs total", len(segments), sum(s.duration for s in segments))
    return RoutineMotion(start=OrientedPoint(start_xy.x, start_xy.y, start_pose.angle), segments=segments, path=path)
