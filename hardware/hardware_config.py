from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .drivetrains import get_drivetrain

MOTOR_PORTS_PER_HUB = 4
SERVO_PORTS_PER_HUB = 6
I2C_ADDRESS_MAX = 0x7F

VALID_MOTOR_DIRECTIONS = {"FORWARD", "REVERSE"}
VALID_MOTOR_TYPES = {"DC_MOTOR", "ENCODED_MOTOR"}
VALID_I2C_TYPES = {"IMU", "COLOR_SENSOR", "DISTANCE_SENSOR", "CUSTOM"}

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{1,2}$")


@dataclass(frozen=True)
class Motor:
    id: str
    name: str
    port: int
    direction: str = "FORWARD"
    type: str = "DC_MOTOR"

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "port": int(self.port), "direction": self.direction, "type": self.type}


@dataclass(frozen=True)
class Servo:
    id: str
    name: str
    port: int
    min_position: float = 0.0
    max_position: float = 1.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "port": int(self.port),
            "minPosition": float(self.min_position),
            "maxPosition": float(self.max_position),
        }


@dataclass(frozen=True)
class I2CDevice:
    id: str
    name: str
    type: str
    address: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "type": self.type, "address": self.address}


@dataclass(frozen=True)
class HardwareConfig:
    motors: List[Motor] = field(default_factory=list)
    servos: List[Servo] = field(default_factory=list)
    i2c_devices: List[I2CDevice] = field(default_factory=list)
    expansion_hub: bool = False

    @property
    def motor_port_count(self) -> int:
        return MOTOR_PORTS_PER_HUB * (2 if self.expansion_hub else 1)

    @property
    def servo_port_count(self) -> int:
        return SERVO_PORTS_PER_HUB * (2 if self.expansion_hub else 1)

    def motor_by_name(self, name: str) -> Optional[Motor]:
        for m in self.motors:
            if m.name == name:
                return m
        return None

    def servo_by_name(self, name: str) -> Optional[Servo]:
        for s in self.servos:
            if s.name == name:
                return s
        return None

    def i2c_by_name(self, name: str) -> Optional[I2CDevice]:
        for d in self.i2c_devices:
            if d.name == name:
                return d
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "motors": [m.to_dict() for m in self.motors],
            "servos": [s.to_dict() for s in self.servos],
            "i2cDevices": [d.to_dict() for d in self.i2c_devices],
            "expansionHub": bool(self.expansion_hub),
        }


def _coerce_int(v: Any, fallback: int) -> int:
    try:
        return int(v)
    except Exception:
        return int(fallback)


def _coerce_float(v: Any) -> Optional[float]:
    try:
        return float(v)
    except Exception:
        return None


def _check_name(raw: Mapping[str, Any], where: str, seen_names: Dict[str, str]) -> Tuple[bool, str, str]:
    name = str(raw.get("name", "")).strip()
    if not name:
        return False, "", f"{where}.name is required"
    if name in seen_names:
        return False, "", f"{where}.name '{name}' is already used by {seen_names[name]}"
    seen_names[name] = where
    return True, name, "ok"


def validate_and_build_hardware_config(raw: Mapping[str, Any]) -> Tuple[bool, Optional[HardwareConfig], str]:
    if not isinstance(raw, Mapping):
        return False, None, "hardware config must be an object"

    expansion_hub = bool(raw.get("expansionHub", False))
    motor_ports = MOTOR_PORTS_PER_HUB * (2 if expansion_hub else 1)
    servo_ports = SERVO_PORTS_PER_HUB * (2 if expansion_hub else 1)
    seen_names: Dict[str, str] = {}

    motors_raw = raw.get("motors", [])
    if not isinstance(motors_raw, list):
        return False, None, "motors must be an array"
    motors: List[Motor] = []
    used_motor_ports: Dict[int, str] = {}
    for i, m in enumerate(motors_raw):
        where = f"motors[{i}]"
        if not isinstance(m, Mapping):
            return False, None, f"{where} must be an object"
        ok, name, msg = _check_name(m, where, seen_names)
        if not ok:
            return False, None, msg

        port = _coerce_int(m.get("port", None), -1)
        if not (0 <= port < motor_ports):
            return False, None, f"{where}.port must be in 0..{motor_ports - 1}"
        if port in used_motor_ports:
            return False, None, f"Duplicate motor port {port} assigned to '{used_motor_ports[port]}' and '{name}'"
        used_motor_ports[port] = name

        direction = str(m.get("direction", "FORWARD")).strip().upper() or "FORWARD"
        if direction not in VALID_MOTOR_DIRECTIONS:
            return False, None, f"{where}.direction is invalid"
        mtype = str(m.get("type", "DC_MOTOR")).strip().upper() or "DC_MOTOR"
        if mtype not in VALID_MOTOR_TYPES:
            return False, None, f"{where}.type is invalid"

        motor_id = str(m.get("id", "")).strip() or name
        motors.append(Motor(id=motor_id, name=name, port=port, direction=direction, type=mtype))

    servos_raw = raw.get("servos", [])
    if not isinstance(servos_raw, list):
        return False, None, "servos must be an array"
    servos: List[Servo] = []
    used_servo_ports: Dict[int, str] = {}
    for i, s in enumerate(servos_raw):
        where = f"servos[{i}]"
        if not isinstance(s, Mapping):
            return False, None, f"{where} must be an object"
        ok, name, msg = _check_name(s, where, seen_names)
        if not ok:
            return False, None, msg

        port = _coerce_int(s.get("port", None), -1)
        if not (0 <= port < servo_ports):
            return False, None, f"{where}.port must be in 0..{servo_ports - 1}"
        if port in used_servo_ports:
            return False, None, f"Duplicate servo port {port} assigned to '{used_servo_ports[port]}' and '{name}'"
        used_servo_ports[port] = name

        lo = _coerce_float(s.get("minPosition", 0.0))
        hi = _coerce_float(s.get("maxPosition", 1.0))
        if lo is None or hi is None:
            return False, None, f"{where}.minPosition/maxPosition must be numeric"
        if not (0.0 <= lo <= hi <= 1.0):
            return False, None, f"{where} requires 0 <= minPosition <= maxPosition <= 1"

        servo_id = str(s.get("id", "")).strip() or name
        servos.append(Servo(id=servo_id, name=name, port=port, min_position=lo, max_position=hi))

    devices_raw = raw.get("i2cDevices", [])
    if not isinstance(devices_raw, list):
        return False, None, "i2cDevices must be an array"
    devices: List[I2CDevice] = []
    used_addresses: Dict[int, str] = {}
    for i, d in enumerate(devices_raw):
        where = f"i2cDevices[{i}]"
        if not isinstance(d, Mapping):
            return False, None, f"{where} must be an object"
        ok, name, msg = _check_name(d, where, seen_names)
        if not ok:
            return False, None, msg

        dtype = str(d.get("type", "")).strip().upper()
        if dtype not in VALID_I2C_TYPES:
            return False, None, f"{where}.type is invalid"

        address = str(d.get("address", "")).strip()
        if not _ADDRESS_RE.match(address):
            return False, None, f"{where}.address must be a hex string like 0x68"
        addr_i = int(address, 16)
        if addr_i > I2C_ADDRESS_MAX:
            return False, None, f"{where}.address must be a 7-bit address (<= 0x7F)"
        if addr_i in used_addresses:
            return False, None, f"Duplicate I2C address {address} assigned to '{used_addresses[addr_i]}' and '{name}'"
        used_addresses[addr_i] = name

        device_id = str(d.get("id", "")).strip() or name
        devices.append(I2CDevice(id=device_id, name=name, type=dtype, address=address))

    return True, HardwareConfig(motors=motors, servos=servos, i2c_devices=devices, expansion_hub=expansion_hub), "ok"


def build_default_hardware_config(drivetrain_id: str) -> HardwareConfig:
    """One drive motor per catalog role on sequential ports."""
    roles = get_drivetrain(drivetrain_id).motors
    motors = [
        Motor(id=f"{drivetrain_id}-{i}", name=role.default_name, port=i)
        for i, role in enumerate(roles)
    ]
    return HardwareConfig(motors=motors, expansion_hub=len(roles) > MOTOR_PORTS_PER_HUB)


def validate_drivetrain_wiring(drivetrain_id: str, config: HardwareConfig) -> Tuple[bool, str]:
    missing = [
        role.default_name
        for role in get_drivetrain(drivetrain_id).motors
        if role.required and config.motor_by_name(role.default_name) is None
    ]
    if missing:
        return False, f"{drivetrain_id} requires motors: {', '.join(missing)}"
    return True, "ok"
