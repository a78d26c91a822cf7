from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Mapping, Tuple

DRIVETRAIN_IDS = (
    "tank-drive",
    "omni-wheel",
    "mecanum-wheel",
    "x-drive",
    "h-drive",
    "swerve-drive",
)

VALID_COMPLEXITY = {"beginner", "intermediate", "advanced"}

# front-left, front-right, back-left, back-right, center-left, center-right
VALID_MOTOR_POSITIONS = {"fl", "fr", "bl", "br", "cl", "cr"}

# Roles past this index share a position code with a drive role (swerve steering)
STEER_ROLE_START = 4


@dataclass(frozen=True)
class MotorRole:
    position: str
    default_name: str
    required: bool = True


@dataclass(frozen=True)
class MovementCapabilities:
    forward: bool
    backward: bool
    strafe: bool
    rotate: bool
    diagonal: bool

    def to_dict(self) -> Dict[str, bool]:
        return {
            "forward": self.forward,
            "backward": self.backward,
            "strafe": self.strafe,
            "rotate": self.rotate,
            "diagonal": self.diagonal,
        }


@dataclass(frozen=True)
class DriveTrainDefinition:
    id: str
    name: str
    description: str
    motor_count: int
    motors: Tuple[MotorRole, ...]
    capabilities: MovementCapabilities
    complexity: str

    def __post_init__(self) -> None:
        if len(self.motors) != self.motor_count:
            raise ValueError(f"{self.id}: motor_count {self.motor_count} does not match {len(self.motors)} motor roles")
        if self.complexity not in VALID_COMPLEXITY:
            raise ValueError(f"{self.id}: complexity '{self.complexity}' is invalid")
        for role in self.motors:
            if role.position not in VALID_MOTOR_POSITIONS:
                raise ValueError(f"{self.id}: motor position '{role.position}' is invalid")

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "motorCount": self.motor_count,
            "motors": [
                {"position": m.position, "defaultName": m.default_name, "required": m.required}
                for m in self.motors
            ],
            "movementCapabilities": self.capabilities.to_dict(),
            "complexity": self.complexity,
        }


_HOLONOMIC = MovementCapabilities(forward=True, backward=True, strafe=True, rotate=True, diagonal=True)

_FOUR_CORNER = (
    MotorRole("fl", "frontLeft"),
    MotorRole("fr", "frontRight"),
    MotorRole("bl", "backLeft"),
    MotorRole("br", "backRight"),
)


def _build_definitions() -> Mapping[str, DriveTrainDefinition]:
    defs = [
        DriveTrainDefinition(
            id="tank-drive",
            name="Tank Drive",
            description="Simple 2-motor drive system - left and right side motors",
            motor_count=2,
            motors=(MotorRole("fl", "leftMotor"), MotorRole("fr", "rightMotor")),
            capabilities=MovementCapabilities(forward=True, backward=True, strafe=False, rotate=True, diagonal=False),
            complexity="beginner",
        ),
        DriveTrainDefinition(
            id="omni-wheel",
            name="Omni-Wheel Drive",
            description="4-wheel omnidirectional drive with holonomic movement",
            motor_count=4,
            motors=_FOUR_CORNER,
            capabilities=_HOLONOMIC,
            complexity="intermediate",
        ),
        DriveTrainDefinition(
            id="mecanum-wheel",
            name="Mecanum Wheel Drive",
            description="4-wheel mecanum drive with omnidirectional movement",
            motor_count=4,
            motors=_FOUR_CORNER,
            capabilities=_HOLONOMIC,
            complexity="intermediate",
        ),
        DriveTrainDefinition(
            id="x-drive",
            name="X-Drive (Holonomic)",
            description="4-wheel X-configuration for holonomic movement",
            motor_count=4,
            motors=_FOUR_CORNER,
            capabilities=_HOLONOMIC,
            complexity="intermediate",
        ),
        DriveTrainDefinition(
            id="h-drive",
            name="H-Drive",
            description="5-motor drive with center strafe wheel for enhanced lateral movement",
            motor_count=5,
            motors=_FOUR_CORNER + (MotorRole("cl", "centerStrafe"),),
            capabilities=_HOLONOMIC,
            complexity="advanced",
        ),
        DriveTrainDefinition(
            id="swerve-drive",
            name="Swerve Drive",
            description="Advanced 8-motor system with independent wheel steering (4 drive + 4 steering motors)",
            motor_count=8,
            motors=(
                MotorRole("fl", "frontLeftDrive"),
                MotorRole("fr", "frontRightDrive"),
                MotorRole("bl", "backLeftDrive"),
                MotorRole("br", "backRightDrive"),
                MotorRole("fl", "frontLeftSteer"),
                MotorRole("fr", "frontRightSteer"),
                MotorRole("bl", "backLeftSteer"),
                MotorRole("br", "backRightSteer"),
            ),
            capabilities=_HOLONOMIC,
            complexity="advanced",
        ),
    ]
    return MappingProxyType({d.id: d for d in defs})


DRIVETRAIN_DEFINITIONS: Mapping[str, DriveTrainDefinition] = _build_definitions()


def is_drivetrain_id(drivetrain_id: object) -> bool:
    return isinstance(drivetrain_id, str) and drivetrain_id in DRIVETRAIN_DEFINITIONS


def get_drivetrain(drivetrain_id: str) -> DriveTrainDefinition:
    try:
        return DRIVETRAIN_DEFINITIONS[drivetrain_id]
    except KeyError:
        raise ValueError(f"Unknown drivetrain '{drivetrain_id}'") from None


def get_motor_config_for_drive_train_type(drivetrain_id: str) -> Tuple[MotorRole, ...]:
    return get_drivetrain(drivetrain_id).motors


def get_default_motor_names(drivetrain_id: str) -> Dict[str, str]:
    """
    Role key -> default hardware name. Roles after the fourth get a `_steer`
    suffix so swerve drive/steer motors on the same corner do not collide.
    """
    out: Dict[str, str] = {}
    for index, role in enumerate(get_drivetrain(drivetrain_id).motors):
        key = role.position + ("_steer" if index >= STEER_ROLE_START else "")
        out[key] = role.default_name
    return out


# node type -> capability flag it depends on
_CAPABILITY_BY_NODE_TYPE = {
    "forward": "forward",
    "backward": "backward",
    "strafeLeft": "strafe",
    "strafeRight": "strafe",
    "turnLeft": "rotate",
    "turnRight": "rotate",
    "turnToHeading": "rotate",
    "pivotTurn": "rotate",
}


def node_type_supported(drivetrain_id: str, node_type: str) -> bool:
    cap = _CAPABILITY_BY_NODE_TYPE.get(node_type, None)
    if cap is None:
        return True
    return bool(getattr(get_drivetrain(drivetrain_id).capabilities, cap))
