from __future__ import annotations

from typing import List

from path_core.math_utils import catmull_rom_spline
from path_core.sampling import sample_cubic_bezier
from path_core.types import Point

from .node_models import PATH_NODE_TYPES, PositionParams, RoutineNode

BEZIER_SAMPLES = 20
SPLINE_SAMPLES_PER_SEGMENT = 20


def node_path_points(node: RoutineNode, start_pose: Point) -> List[Point]:
    """
    Points traced by a position node starting from start_pose, shaped by
    curveType:
      linear -> polyline start, waypoints..., target
      spline -> Catmull-Rom through the same points
      bezier -> one cubic from start to target bent by the two control points
    Nodes that do not carry a path give [].
    """
    if node.type not in PATH_NODE_TYPES or not isinstance(node.params, PositionParams):
        return []

    params = node.params
    start = Point(start_pose.x, start_pose.y)
    via: List[Point] = [Point(p.x, p.y) for p in params.waypoints]
    target = params.target()
    if target is not None:
        via.append(target)
    if not via:
        return [start]

    if params.curve_type == "bezier" and len(params.control_points) == 2:
        c1, c2 = params.control_points
        return sample_cubic_bezier(start, c1, c2, via[-1], BEZIER_SAMPLES)

    points = [start] + via
    if params.curve_type == "spline":
        return catmull_rom_spline(points, SPLINE_SAMPLES_PER_SEGMENT)
    return points
