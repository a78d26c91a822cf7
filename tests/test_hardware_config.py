from __future__ import annotations

import unittest

from hardware import (
    build_default_hardware_config,
    validate_and_build_hardware_config,
    validate_drivetrain_wiring,
)


def _raw(**overrides):
    raw = {
        "motors": [
            {"name": "leftMotor", "port": 0},
            {"name": "rightMotor", "port": 1, "direction": "REVERSE"},
            {"name": "arm", "port": 2, "type": "ENCODED_MOTOR"},
        ],
        "servos": [{"name": "claw", "port": 0, "minPosition": 0.2, "maxPosition": 0.8}],
        "i2cDevices": [{"name": "imu", "type": "IMU", "address": "0x28"}],
    }
    raw.update(overrides)
    return raw


class HardwareConfigTests(unittest.TestCase):
    def test_valid_config_builds(self) -> None:
        ok, cfg, msg = validate_and_build_hardware_config(_raw())
        self.assertTrue(ok, msg)
        assert cfg is not None
        self.assertEqual(len(cfg.motors), 3)
        self.assertEqual(cfg.motor_by_name("rightMotor").direction, "REVERSE")
        self.assertEqual(cfg.motor_by_name("arm").id, "arm")
        self.assertEqual(cfg.servo_by_name("claw").max_position, 0.8)
        self.assertEqual(cfg.i2c_by_name("imu").address, "0x28")
        self.assertIsNone(cfg.motor_by_name("claw"))

    def test_to_dict_builds_back_to_same_config(self) -> None:
        ok, cfg, _ = validate_and_build_hardware_config(_raw())
        assert cfg is not None
        ok2, cfg2, msg2 = validate_and_build_hardware_config(cfg.to_dict())
        self.assertTrue(ok2, msg2)
        self.assertEqual(cfg, cfg2)

    def test_duplicate_motor_port_rejected(self) -> None:
        ok, cfg, msg = validate_and_build_hardware_config(
            _raw(motors=[{"name": "a", "port": 0}, {"name": "b", "port": 0}])
        )
        self.assertFalse(ok)
        self.assertIsNone(cfg)
        self.assertIn("Duplicate motor port", msg)

    def test_motor_port_range_depends_on_expansion_hub(self) -> None:
        raw = _raw(motors=[{"name": "a", "port": 5}])
        ok, _, msg = validate_and_build_hardware_config(raw)
        self.assertFalse(ok)
        self.assertIn("0..3", msg)
        raw["expansionHub"] = True
        ok, cfg, msg = validate_and_build_hardware_config(raw)
        self.assertTrue(ok, msg)
        assert cfg is not None
        self.assertEqual(cfg.motor_port_count, 8)
        self.assertEqual(cfg.servo_port_count, 12)

    def test_names_unique_across_collections(self) -> None:
        ok, _, msg = validate_and_build_hardware_config(
            _raw(servos=[{"name": "arm", "port": 0}])
        )
        self.assertFalse(ok)
        self.assertIn("already used", msg)

    def test_servo_limits_checked(self) -> None:
        ok, _, msg = validate_and_build_hardware_config(
            _raw(servos=[{"name": "claw", "port": 0, "minPosition": 0.9, "maxPosition": 0.1}])
        )
        self.assertFalse(ok)
        self.assertIn("minPosition", msg)

    def test_i2c_address_rules(self) -> None:
        for address in ("68", "0x", "0xZZ", "0x100"):
            ok, _, _ = validate_and_build_hardware_config(
                _raw(i2cDevices=[{"name": "d", "type": "IMU", "address": address}])
            )
            self.assertFalse(ok, address)
        ok, _, msg = validate_and_build_hardware_config(
            _raw(i2cDevices=[{"name": "d", "type": "IMU", "address": "0x80"}])
        )
        self.assertFalse(ok)
        self.assertIn("7-bit", msg)
        ok, _, msg = validate_and_build_hardware_config(
            _raw(
                i2cDevices=[
                    {"name": "d1", "type": "IMU", "address": "0x28"},
                    {"name": "d2", "type": "COLOR_SENSOR", "address": "0x28"},
                ]
            )
        )
        self.assertFalse(ok)
        self.assertIn("Duplicate I2C address", msg)

    def test_bad_enums_rejected(self) -> None:
        ok, _, _ = validate_and_build_hardware_config(_raw(motors=[{"name": "a", "port": 0, "direction": "UP"}]))
        self.assertFalse(ok)
        ok, _, _ = validate_and_build_hardware_config(_raw(i2cDevices=[{"name": "d", "type": "LIDAR", "address": "0x10"}]))
        self.assertFalse(ok)

    def test_default_config_wires_every_role(self) -> None:
        cfg = build_default_hardware_config("swerve-drive")
        self.assertEqual(len(cfg.motors), 8)
        self.assertTrue(cfg.expansion_hub)
        self.assertEqual([m.port for m in cfg.motors], list(range(8)))
        ok, msg = validate_drivetrain_wiring("swerve-drive", cfg)
        self.assertTrue(ok, msg)

        tank = build_default_hardware_config("tank-drive")
        self.assertFalse(tank.expansion_hub)

    def test_wiring_reports_missing_motors(self) -> None:
        ok, cfg, _ = validate_and_build_hardware_config({"motors": [{"name": "leftMotor", "port": 0}]})
        assert cfg is not None
        ok, msg = validate_drivetrain_wiring("tank-drive", cfg)
        self.assertFalse(ok)
        self.assertIn("rightMotor", msg)


if __name__ == "__main__":
    unittest.main()
