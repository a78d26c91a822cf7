from .keyframe_npz import load_keyframes_npz, save_keyframes_npz
from .keyframes import KeyframeTrack, build_path_preview, build_robot_keyframes
from .math_utils import (
    catmull_rom_spline,
    clamp,
    clamp_int,
    degrees_to_radians,
    distance,
    get_curve_point,
    lerp,
    lerp2d,
    path_length,
    quadratic_to_cubic,
    radians_to_degrees,
    shortest_rotation,
    transform_angle,
)
from .sampling import orient_path, sample_cubic_bezier, sample_polyline
from .types import OrientedPoint, Point, Waypoint, point_from_raw, waypoint_from_raw

__all__ = [
    "KeyframeTrack",
    "OrientedPoint",
    "Point",
    "Waypoint",
    "build_path_preview",
    "build_robot_keyframes",
    "catmull_rom_spline",
    "clamp",
    "clamp_int",
    "degrees_to_radians",
    "distance",
    "get_curve_point",
    "lerp",
    "lerp2d",
    "load_keyframes_npz",
    "orient_path",
    "path_length",
    "point_from_raw",
    "quadratic_to_cubic",
    "radians_to_degrees",
    "sample_cubic_bezier",
    "sample_polyline",
    "save_keyframes_npz",
    "shortest_rotation",
    "transform_angle",
    "waypoint_from_raw",
]
