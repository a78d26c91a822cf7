from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, ClassVar, Dict, Optional, Tuple

from path_core.types import Point

VALID_CURVE_TYPES = {"linear", "spline", "bezier"}

MOVEMENT_TYPES = (
    "moveToPosition",
    "splineTo",
    "forward",
    "backward",
    "strafeLeft",
    "strafeRight",
    "turnLeft",
    "turnRight",
    "turnToHeading",
    "arcMove",
    "pivotTurn",
    "followPath",
)
MECHANISM_TYPES = ("setServo", "continuousServo", "runMotor", "stopMotor", "setMotorPower")
SENSOR_TYPES = ("readIMU", "readDistance", "readColor", "waitForSensor", "readTouch")
CONTROL_TYPES = ("start", "end", "wait", "waitUntil", "loop", "if", "parallel")
CUSTOM_TYPES = ("custom",)

NODE_TYPES = MOVEMENT_TYPES + MECHANISM_TYPES + SENSOR_TYPES + CONTROL_TYPES + CUSTOM_TYPES

# Named outlets of the node types allowed to fan out
BRANCH_OUTLETS: Dict[str, Tuple[str, ...]] = {
    "if": ("true", "false"),
    "loop": ("loop", "next"),
    "parallel": ("action1", "action2", "action3", "next"),
}

# Every cycle in a routine must pass through one of these
CYCLE_MEDIATOR_TYPES = {"loop", "if"}

PATH_NODE_TYPES = {"moveToPosition", "splineTo", "followPath"}


def node_category(node_type: str) -> str:
    if node_type in MOVEMENT_TYPES:
        return "movement"
    if node_type in MECHANISM_TYPES:
        return "mechanism"
    if node_type in SENSOR_TYPES:
        return "sensor"
    if node_type in CONTROL_TYPES:
        return "control"
    if node_type in CUSTOM_TYPES:
        return "custom"
    raise ValueError(f"Unknown node type '{node_type}'")


class _Params:
    # attribute name -> wire key
    WIRE_KEYS: ClassVar[Dict[str, str]] = {}

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for f in fields(self):  # type: ignore[arg-type]
            value = getattr(self, f.name)
            if value is None:
                continue
            if isinstance(value, tuple):
                value = [p.to_dict() for p in value]
            out[self.WIRE_KEYS[f.name]] = value
        return out

    @classmethod
    def wire_keys(cls) -> Tuple[str, ...]:
        return tuple(cls.WIRE_KEYS.values())


@dataclass(frozen=True)
class EmptyParams(_Params):
    WIRE_KEYS: ClassVar[Dict[str, str]] = {}


@dataclass(frozen=True)
class DriveParams(_Params):
    distance: float = 24.0
    power: float = 0.5

    WIRE_KEYS: ClassVar[Dict[str, str]] = {"distance": "distance", "power": "power"}


@dataclass(frozen=True)
class TurnParams(_Params):
    angle: float = 90.0
    power: float = 0.5

    WIRE_KEYS: ClassVar[Dict[str, str]] = {"angle": "angle", "power": "power"}


@dataclass(frozen=True)
class HeadingParams(_Params):
    target_heading: float = 0.0
    power: float = 0.5

    WIRE_KEYS: ClassVar[Dict[str, str]] = {"target_heading": "targetHeading", "power": "power"}


@dataclass(frozen=True)
class PositionParams(_Params):
    target_x: Optional[float] = None
    target_y: Optional[float] = None
    target_heading: Optional[float] = None
    power: float = 0.5
    curve_type: str = "linear"
    waypoints: Tuple[Point, ...] = field(default_factory=tuple)
    control_points: Tuple[Point, ...] = field(default_factory=tuple)

    WIRE_KEYS: ClassVar[Dict[str, str]] = {
        "target_x": "targetX",
        "target_y": "targetY",
        "target_heading": "targetHeading",
        "power": "power",
        "curve_type": "curveType",
        "waypoints": "waypoints",
        "control_points": "controlPoints",
    }

    def target(self) -> Optional[Point]:
        if self.target_x is None or self.target_y is None:
            return None
        return Point(self.target_x, self.target_y)


@dataclass(frozen=True)
class ArcParams(_Params):
    distance: float = 24.0
    angle: float = 90.0
    power: float = 0.5

    WIRE_KEYS: ClassVar[Dict[str, str]] = {"distance": "distance", "angle": "angle", "power": "power"}


@dataclass(frozen=True)
class ServoParams(_Params):
    servo_name: str = ""
    position: float = 0.5

    WIRE_KEYS: ClassVar[Dict[str, str]] = {"servo_name": "servoName", "position": "position"}


@dataclass(frozen=True)
class ContinuousServoParams(_Params):
    servo_name: str = ""
    power: float = 1.0
    duration: float = 1.0

    WIRE_KEYS: ClassVar[Dict[str, str]] = {"servo_name": "servoName", "power": "power", "duration": "duration"}


@dataclass(frozen=True)
class MotorParams(_Params):
    motor_name: str = ""
    power: float = 0.5
    duration: Optional[float] = None

    WIRE_KEYS: ClassVar[Dict[str, str]] = {"motor_name": "motorName", "power": "power", "duration": "duration"}


@dataclass(frozen=True)
class StopMotorParams(_Params):
    motor_name: str = ""

    WIRE_KEYS: ClassVar[Dict[str, str]] = {"motor_name": "motorName"}


@dataclass(frozen=True)
class SensorParams(_Params):
    sensor_name: str = ""

    WIRE_KEYS: ClassVar[Dict[str, str]] = {"sensor_name": "sensorName"}


@dataclass(frozen=True)
class WaitForSensorParams(_Params):
    sensor_name: str = ""
    condition: str = ""
    duration: float = 5.0

    WIRE_KEYS: ClassVar[Dict[str, str]] = {"sensor_name": "sensorName", "condition": "condition", "duration": "duration"}


@dataclass(frozen=True)
class WaitParams(_Params):
    duration: float = 1.0

    WIRE_KEYS: ClassVar[Dict[str, str]] = {"duration": "duration"}


@dataclass(frozen=True)
class ConditionParams(_Params):
    condition: str = ""

    WIRE_KEYS: ClassVar[Dict[str, str]] = {"condition": "condition"}


@dataclass(frozen=True)
class LoopParams(_Params):
    loop_count: int = 1

    WIRE_KEYS: ClassVar[Dict[str, str]] = {"loop_count": "loopCount"}


@dataclass(frozen=True)
class CustomParams(_Params):
    custom_code: str = ""

    WIRE_KEYS: ClassVar[Dict[str, str]] = {"custom_code": "customCode"}


PARAMS_BY_NODE_TYPE: Dict[str, type] = {
    "start": EmptyParams,
    "end": EmptyParams,
    "parallel": EmptyParams,
    "forward": DriveParams,
    "backward": DriveParams,
    "strafeLeft": DriveParams,
    "strafeRight": DriveParams,
    "turnLeft": TurnParams,
    "turnRight": TurnParams,
    "pivotTurn": TurnParams,
    "turnToHeading": HeadingParams,
    "moveToPosition": PositionParams,
    "splineTo": PositionParams,
    "followPath": PositionParams,
    "arcMove": ArcParams,
    "setServo": ServoParams,
    "continuousServo": ContinuousServoParams,
    "runMotor": MotorParams,
    "setMotorPower": MotorParams,
    "stopMotor": StopMotorParams,
    "readIMU": SensorParams,
    "readDistance": SensorParams,
    "readColor": SensorParams,
    "readTouch": SensorParams,
    "waitForSensor": WaitForSensorParams,
    "wait": WaitParams,
    "waitUntil": ConditionParams,
    "if": ConditionParams,
    "loop": LoopParams,
    "custom": CustomParams,
}


@dataclass(frozen=True)
class RoutineNode:
    id: str
    type: str
    params: Any
    label: str = ""
    position: Point = field(default_factory=lambda: Point(0.0, 0.0))

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"label": self.label}
        data.update(self.params.to_dict())
        return {
            "id": self.id,
            "type": self.type,
            "position": self.position.to_dict(),
            "data": data,
        }


@dataclass(frozen=True)
class RoutineEdge:
    id: str
    source: str
    target: str
    source_handle: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"id": self.id, "source": self.source, "target": self.target}
        if self.source_handle is not None:
            out["sourceHandle"] = self.source_handle
        return out
