from .drivetrains import (
    DRIVETRAIN_DEFINITIONS,
    DRIVETRAIN_IDS,
    DriveTrainDefinition,
    MotorRole,
    MovementCapabilities,
    get_default_motor_names,
    get_drivetrain,
    get_motor_config_for_drive_train_type,
    is_drivetrain_id,
    node_type_supported,
)
from .hardware_config import (
    HardwareConfig,
    I2CDevice,
    Motor,
    Servo,
    build_default_hardware_config,
    validate_and_build_hardware_config,
    validate_drivetrain_wiring,
)

__all__ = [
    "DRIVETRAIN_DEFINITIONS",
    "DRIVETRAIN_IDS",
    "DriveTrainDefinition",
    "HardwareConfig",
    "I2CDevice",
    "Motor",
    "MotorRole",
    "MovementCapabilities",
    "Servo",
    "build_default_hardware_config",
    "get_default_motor_names",
    "get_drivetrain",
    "get_motor_config_for_drive_train_type",
    "is_drivetrain_id",
    "node_type_supported",
    "validate_and_build_hardware_config",
    "validate_drivetrain_wiring",
]
