from __future__ import annotations

import math
import uuid
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from hardware.drivetrains import node_type_supported
from hardware.hardware_config import HardwareConfig
from path_core.types import Point, point_from_raw

from .node_models import (
    ArcParams,
    ConditionParams,
    ContinuousServoParams,
    CustomParams,
    DriveParams,
    EmptyParams,
    HeadingParams,
    LoopParams,
    MotorParams,
    NODE_TYPES,
    PARAMS_BY_NODE_TYPE,
    PositionParams,
    RoutineNode,
    SensorParams,
    ServoParams,
    StopMotorParams,
    TurnParams,
    VALID_CURVE_TYPES,
    WaitForSensorParams,
    WaitParams,
)

# sensor read node -> I2C device types it can read (CUSTOM devices accept any read)
_SENSOR_DEVICE_TYPES = {
    "readIMU": {"IMU", "CUSTOM"},
    "readDistance": {"DISTANCE_SENSOR", "CUSTOM"},
    "readColor": {"COLOR_SENSOR", "CUSTOM"},
    "waitForSensor": {"IMU", "DISTANCE_SENSOR", "COLOR_SENSOR", "CUSTOM"},
}

_Result = Tuple[bool, Any, str]


class _FieldError(Exception):
    pass


def _number(raw: Mapping[str, Any], key: str, default: Optional[float], *, lo: Optional[float] = None, hi: Optional[float] = None) -> Optional[float]:
    if key not in raw or raw[key] is None:
        return default
    try:
        v = float(raw[key])
    except Exception:
        raise _FieldError(f"{key} must be numeric") from None
    if not math.isfinite(v):
        raise _FieldError(f"{key} must be finite")
    if lo is not None and v < lo:
        raise _FieldError(f"{key} must be >= {lo:g}" if hi is None else f"{key} must be in {lo:g}..{hi:g}")
    if hi is not None and v > hi:
        raise _FieldError(f"{key} must be <= {hi:g}" if lo is None else f"{key} must be in {lo:g}..{hi:g}")
    return v


def _required_number(raw: Mapping[str, Any], key: str, **bounds: Any) -> float:
    v = _number(raw, key, None, **bounds)
    if v is None:
        raise _FieldError(f"{key} is required")
    return v


def _name(raw: Mapping[str, Any], key: str) -> str:
    v = str(raw.get(key, "") or "").strip()
    if not v:
        raise _FieldError(f"{key} is required")
    return v


def _text(raw: Mapping[str, Any], key: str) -> str:
    v = raw.get(key, "")
    return "" if v is None else str(v)


def _points(raw: Mapping[str, Any], key: str) -> Tuple[Point, ...]:
    items = raw.get(key, None)
    if items is None:
        return ()
    if not isinstance(items, list):
        raise _FieldError(f"{key} must be an array of points")
    out: List[Point] = []
    for i, item in enumerate(items):
        try:
            out.append(point_from_raw(item))
        except (KeyError, TypeError, ValueError):
            raise _FieldError(f"{key}[{i}] must be a point with finite x and y") from None
    return tuple(out)


def _parse_position(node_type: str, raw: Mapping[str, Any]) -> PositionParams:
    default_curve = "spline" if node_type == "splineTo" else "linear"
    curve_type = str(raw.get("curveType", default_curve) or default_curve).strip().lower()
    if curve_type not in VALID_CURVE_TYPES:
        raise _FieldError("curveType must be one of linear, spline, bezier")

    params = PositionParams(
        target_x=_number(raw, "targetX", None),
        target_y=_number(raw, "targetY", None),
        target_heading=_number(raw, "targetHeading", None),
        power=_number(raw, "power", 0.5, lo=0.0, hi=1.0),
        curve_type=curve_type,
        waypoints=_points(raw, "waypoints"),
        control_points=_points(raw, "controlPoints"),
    )
    if (params.target_x is None) != (params.target_y is None):
        raise _FieldError("targetX and targetY must be given together")
    if node_type == "followPath":
        if not params.waypoints:
            raise _FieldError("followPath requires at least one waypoint")
    elif params.target() is None:
        raise _FieldError(f"{node_type} requires targetX and targetY")
    if curve_type == "bezier" and len(params.control_points) != 2:
        raise _FieldError("curveType 'bezier' requires exactly 2 controlPoints")
    if curve_type != "bezier" and params.control_points:
        raise _FieldError("controlPoints are only valid with curveType 'bezier'")
    return params


def _parse_loop(raw: Mapping[str, Any]) -> LoopParams:
    count = _number(raw, "loopCount", 1.0, lo=1.0)
    if count != int(count):
        raise _FieldError("loopCount must be an integer")
    return LoopParams(loop_count=int(count))


_PARSERS: Dict[type, Callable[[str, Mapping[str, Any]], Any]] = {
    EmptyParams: lambda t, r: EmptyParams(),
    DriveParams: lambda t, r: DriveParams(
        distance=_number(r, "distance", 24.0, lo=0.0),
        power=_number(r, "power", 0.5, lo=0.0, hi=1.0),
    ),
    TurnParams: lambda t, r: TurnParams(
        angle=_number(r, "angle", 90.0, lo=0.0),
        power=_number(r, "power", 0.5, lo=0.0, hi=1.0),
    ),
    HeadingParams: lambda t, r: HeadingParams(
        target_heading=_required_number(r, "targetHeading"),
        power=_number(r, "power", 0.5, lo=0.0, hi=1.0),
    ),
    PositionParams: _parse_position,
    ArcParams: lambda t, r: ArcParams(
        distance=_number(r, "distance", 24.0, lo=0.0),
        angle=_number(r, "angle", 90.0),
        power=_number(r, "power", 0.5, lo=0.0, hi=1.0),
    ),
    ServoParams: lambda t, r: ServoParams(
        servo_name=_name(r, "servoName"),
        position=_number(r, "position", 0.5, lo=0.0, hi=1.0),
    ),
    ContinuousServoParams: lambda t, r: ContinuousServoParams(
        servo_name=_name(r, "servoName"),
        power=_number(r, "power", 1.0, lo=-1.0, hi=1.0),
        duration=_number(r, "duration", 1.0, lo=0.0),
    ),
    MotorParams: lambda t, r: MotorParams(
        motor_name=_name(r, "motorName"),
        power=_number(r, "power", 0.5, lo=-1.0, hi=1.0),
        duration=_number(r, "duration", None, lo=0.0),
    ),
    StopMotorParams: lambda t, r: StopMotorParams(motor_name=_name(r, "motorName")),
    SensorParams: lambda t, r: SensorParams(sensor_name=_name(r, "sensorName")),
    WaitForSensorParams: lambda t, r: WaitForSensorParams(
        sensor_name=_name(r, "sensorName"),
        condition=_name(r, "condition"),
        duration=_number(r, "duration", 5.0, lo=0.0),
    ),
    WaitParams: lambda t, r: WaitParams(duration=_number(r, "duration", 1.0, lo=0.0)),
    ConditionParams: lambda t, r: ConditionParams(condition=_name(r, "condition")),
    LoopParams: lambda t, r: _parse_loop(r),
    CustomParams: lambda t, r: CustomParams(custom_code=_text(r, "customCode")),
}


def build_node_params(node_type: str, raw: Mapping[str, Any]) -> _Result:
    """
    Returns (ok, params, msg). Keys outside the node type's parameter set are
    rejected rather than dropped.
    """
    if node_type not in PARAMS_BY_NODE_TYPE:
        return False, None, f"node type '{node_type}' is unknown"
    if not isinstance(raw, Mapping):
        return False, None, "node data must be an object"

    params_cls = PARAMS_BY_NODE_TYPE[node_type]
    allowed = set(params_cls.wire_keys())
    for key in raw.keys():
        if key not in allowed:
            return False, None, f"parameter '{key}' is not valid for node type '{node_type}'"

    try:
        params = _PARSERS[params_cls](node_type, raw)
    except _FieldError as e:
        return False, None, f"{node_type}: {e}"
    return True, params, "ok"


def check_hardware_refs(node_type: str, params: Any, hardware: HardwareConfig) -> Tuple[bool, str]:
    if isinstance(params, (ServoParams, ContinuousServoParams)):
        servo = hardware.servo_by_name(params.servo_name)
        if servo is None:
            return False, f"servo '{params.servo_name}' is not in the hardware config"
        if isinstance(params, ServoParams) and not (servo.min_position <= params.position <= servo.max_position):
            return False, (
                f"servo '{servo.name}' position {params.position:g} is outside "
                f"{servo.min_position:g}..{servo.max_position:g}"
            )
        return True, "ok"

    if isinstance(params, (MotorParams, StopMotorParams)):
        if hardware.motor_by_name(params.motor_name) is None:
            return False, f"motor '{params.motor_name}' is not in the hardware config"
        return True, "ok"

    if isinstance(params, (SensorParams, WaitForSensorParams)) and node_type in _SENSOR_DEVICE_TYPES:
        device = hardware.i2c_by_name(params.sensor_name)
        if device is None:
            return False, f"sensor '{params.sensor_name}' is not in the hardware config"
        if device.type not in _SENSOR_DEVICE_TYPES[node_type]:
            return False, f"sensor '{device.name}' of type {device.type} cannot serve {node_type}"
        return True, "ok"

    return True, "ok"


def build_node(
    raw: Mapping[str, Any],
    *,
    hardware: Optional[HardwareConfig] = None,
    drivetrain_id: Optional[str] = None,
) -> Tuple[bool, Optional[RoutineNode], str]:
    """
    Build a RoutineNode from its wire form:
      {"id": str?, "type": str, "position": {"x", "y"}?, "data": {"label": str?, ...params}}
    Hardware cross-references are checked when a config is given; drivetrain
    capability when a drivetrain id is given.
    """
    if not isinstance(raw, Mapping):
        return False, None, "node must be an object"

    node_type = str(raw.get("type", "")).strip()
    if node_type not in NODE_TYPES:
        return False, None, f"node type '{node_type}' is unknown"

    node_id = str(raw.get("id", "") or "").strip() or uuid.uuid4().hex

    data = raw.get("data", {})
    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        return False, None, "node data must be an object"
    data = dict(data)
    label = str(data.pop("label", "") or "").strip() or node_type
    data_type = data.pop("type", None)
    if data_type is not None and str(data_type) != node_type:
        return False, None, f"data.type '{data_type}' does not match node type '{node_type}'"

    position_raw = raw.get("position", None)
    if position_raw is None:
        position = Point(0.0, 0.0)
    else:
        try:
            position = point_from_raw(position_raw)
        except (KeyError, TypeError, ValueError):
            return False, None, "position must be a point with finite x and y"

    ok, params, msg = build_node_params(node_type, data)
    if not ok:
        return False, None, msg

    if drivetrain_id is not None and not node_type_supported(drivetrain_id, node_type):
        return False, None, f"{node_type} is not supported by drivetrain '{drivetrain_id}'"

    if hardware is not None:
        ok, msg = check_hardware_refs(node_type, params, hardware)
        if not ok:
            return False, None, msg

    return True, RoutineNode(id=node_id, type=node_type, params=params, label=label, position=position), "ok"


def validate_node_against(
    node: RoutineNode, hardware: Optional[HardwareConfig], drivetrain_id: Optional[str]
) -> Tuple[bool, str]:
    if drivetrain_id is not None and not node_type_supported(drivetrain_id, node.type):
        return False, f"node '{node.id}': {node.type} is not supported by drivetrain '{drivetrain_id}'"
    if hardware is None:
        return True, "ok"
    ok, msg = check_hardware_refs(node.type, node.params, hardware)
    if not ok:
        return False, f"node '{node.id}': {msg}"
    return True, "ok"
