from __future__ import annotations

import unittest

from hardware import validate_and_build_hardware_config
from routine_core import (
    RoutineGraph,
    build_project_payload,
    graph_from_project_payload,
    graph_from_workflow_data,
    graph_to_workflow_data,
    hardware_config_from_motor_config,
    hardware_config_to_motor_config,
)


def _graph() -> RoutineGraph:
    ok, hw, msg = validate_and_build_hardware_config(
        {
            "motors": [
                {"name": "frontLeft", "port": 0},
                {"name": "frontRight", "port": 1, "direction": "REVERSE"},
                {"name": "backLeft", "port": 2},
                {"name": "backRight", "port": 3},
            ],
            "servos": [{"name": "claw", "port": 0, "minPosition": 0.1, "maxPosition": 0.9}],
        }
    )
    assert ok and hw is not None, msg
    g = RoutineGraph(hardware=hw, drivetrain_id="mecanum-wheel")
    edits = [
        {"op": "addNode", "node": {"id": "s", "type": "start", "position": {"x": 0, "y": 0}}},
        {"op": "addNode", "node": {"id": "l", "type": "loop", "data": {"loopCount": 2}}, "connectFrom": "s"},
        {
            "op": "addNode",
            "node": {"id": "m", "type": "splineTo", "data": {"targetX": 30, "targetY": 40, "targetHeading": 90}},
            "connectFrom": "l",
            "sourceHandle": "loop",
        },
        {"op": "addEdge", "source": "m", "target": "l"},
        {
            "op": "addNode",
            "node": {"id": "c", "type": "setServo", "data": {"label": "Open claw", "servoName": "claw", "position": 0.8}},
            "connectFrom": "l",
            "sourceHandle": "next",
        },
        {"op": "addNode", "node": {"id": "e", "type": "end"}, "connectFrom": "c"},
    ]
    ok, _, msg = g.apply_edits(edits)
    assert ok, msg
    return g


class RoutineCoreWorkflowCodecTests(unittest.TestCase):
    def test_workflow_data_round_trip(self) -> None:
        g = _graph()
        data = graph_to_workflow_data(g)
        self.assertEqual(data["version"], 1)
        ok, g2, msg = graph_from_workflow_data(data, g.hardware, g.drivetrain_id)
        self.assertTrue(ok, msg)
        assert g2 is not None
        self.assertEqual(graph_to_workflow_data(g2), data)
        self.assertEqual(g2.nodes(), g.nodes())
        self.assertEqual(g2.edges(), g.edges())

    def test_empty_workflow_is_empty_graph(self) -> None:
        ok, g, msg = graph_from_workflow_data({})
        self.assertTrue(ok, msg)
        assert g is not None
        self.assertEqual(g.nodes(), [])

    def test_invalid_workflow_rejected(self) -> None:
        ok, g, msg = graph_from_workflow_data({"version": 2})
        self.assertFalse(ok)
        self.assertIsNone(g)
        ok, _, msg = graph_from_workflow_data({"nodes": [{"id": "a", "type": "start"}, {"id": "b", "type": "start"}]})
        self.assertFalse(ok)
        self.assertIn("entry node", msg)
        ok, _, msg = graph_from_workflow_data({"nodes": [{"id": "a", "type": "warp"}]})
        self.assertFalse(ok)
        self.assertIn("nodes[0]", msg)

    def test_servo_nodes_need_matching_hardware(self) -> None:
        data = graph_to_workflow_data(_graph())
        ok, empty, _ = validate_and_build_hardware_config({})
        ok, _, msg = graph_from_workflow_data(data, empty, None)
        self.assertFalse(ok)
        self.assertIn("claw", msg)

    def test_motor_config_round_trip(self) -> None:
        g = _graph()
        raw = hardware_config_to_motor_config(g.hardware, g.drivetrain_id)
        self.assertEqual(raw["drivetrain"], "mecanum-wheel")
        ok, out, msg = hardware_config_from_motor_config(raw)
        self.assertTrue(ok, msg)
        assert out is not None
        self.assertEqual(out, (g.hardware, "mecanum-wheel"))

    def test_motor_config_without_wiring(self) -> None:
        raw = hardware_config_to_motor_config(None, None)
        self.assertEqual(raw, {"version": 1, "drivetrain": None})
        ok, out, msg = hardware_config_from_motor_config(raw)
        self.assertTrue(ok, msg)
        self.assertEqual(out, (None, None))
        ok, out, _ = hardware_config_from_motor_config({"motors": [], "wheels": []})
        self.assertFalse(ok)

    def test_legacy_motor_config(self) -> None:
        ok, out, msg = hardware_config_from_motor_config({"fl": "lf", "fr": "rf", "bl": "lb", "br": "rb"})
        self.assertTrue(ok, msg)
        assert out is not None
        cfg, drivetrain = out
        self.assertIsNone(drivetrain)
        self.assertEqual([(m.name, m.port) for m in cfg.motors], [("lf", 0), ("rf", 1), ("lb", 2), ("rb", 3)])

    def test_project_payload_round_trip(self) -> None:
        g = _graph()
        payload = build_project_payload(g, name="Auto Left", project_hash="abc123", user_id="u1")
        self.assertEqual(payload["name"], "Auto Left")
        self.assertEqual(payload["projectHash"], "abc123")
        self.assertEqual(payload["workflowData"]["version"], 1)
        self.assertTrue(payload["createdAt"])

        ok, g2, msg = graph_from_project_payload(payload)
        self.assertTrue(ok, msg)
        assert g2 is not None
        self.assertEqual(g2.drivetrain_id, "mecanum-wheel")
        self.assertEqual(g2.hardware, g.hardware)
        self.assertEqual(graph_to_workflow_data(g2), payload["workflowData"])


if __name__ == "__main__":
    unittest.main()
