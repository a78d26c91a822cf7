from __future__ import annotations

import importlib
import unittest

from hardware import DRIVETRAIN_IDS
from routine_core import NODE_TYPES, PARAMS_BY_NODE_TYPE
from routine_core.node_models import BRANCH_OUTLETS

try:
    import flask  # noqa: F401
    HAVE_FLASK = True
except Exception:
    HAVE_FLASK = False


class NamingAndSchemaContracts(unittest.TestCase):
    def test_every_node_type_has_one_param_shape(self) -> None:
        self.assertEqual(set(NODE_TYPES), set(PARAMS_BY_NODE_TYPE.keys()))
        self.assertEqual(len(NODE_TYPES), len(set(NODE_TYPES)))

    def test_wire_keys_are_camel_case(self) -> None:
        for params_cls in set(PARAMS_BY_NODE_TYPE.values()):
            for key in params_cls.wire_keys():
                self.assertNotIn("_", key, f"{params_cls.__name__}.{key}")

    def test_branch_outlets_only_on_branch_types(self) -> None:
        self.assertEqual(set(BRANCH_OUTLETS.keys()), {"if", "loop", "parallel"})
        self.assertEqual(BRANCH_OUTLETS["parallel"][-1], "next")

    def test_drivetrain_ids_are_kebab_case(self) -> None:
        for drivetrain_id in DRIVETRAIN_IDS:
            self.assertEqual(drivetrain_id, drivetrain_id.lower())
            self.assertNotIn("_", drivetrain_id)


@unittest.skipUnless(HAVE_FLASK, "Flask not installed in this environment")
class RoutineApiContracts(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls.routine_app = importlib.import_module("routine_app")

    def setUp(self) -> None:
        self.routine_app.state = self.routine_app.RoutineState()
        self.client = self.routine_app.app.test_client()

    def _add(self, node, **extra):
        body = {"node": node}
        body.update(extra)
        return self.client.post("/api/graph/nodes", json=body)

    def test_status_shape(self) -> None:
        resp = self.client.get("/api/status")
        self.assertEqual(resp.status_code, 200)
        data = resp.get_json()
        self.assertEqual(data["graph"]["num_nodes"], 0)
        self.assertIsNone(data["last_preview"])

    def test_node_lifecycle(self) -> None:
        resp = self._add({"id": "s", "type": "start"})
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.get_json()["ok"])

        resp = self._add({"id": "f", "type": "forward", "data": {"distance": 12}}, connectFrom="s")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()["node"]["data"]["distance"], 12.0)

        resp = self._add({"id": "s2", "type": "start"})
        self.assertEqual(resp.status_code, 400)
        body = resp.get_json()
        self.assertFalse(body["ok"])
        self.assertIn("entry node", body["error"])

        resp = self.client.patch("/api/graph/nodes/f", json={"params": {"power": 0.9}, "position": {"x": 5, "y": 6}})
        self.assertEqual(resp.status_code, 200)
        node = resp.get_json()["node"]
        self.assertEqual(node["data"]["power"], 0.9)
        self.assertEqual(node["position"], {"x": 5.0, "y": 6.0})

        resp = self.client.patch("/api/graph/nodes/f", json={"params": {"speed": 1}})
        self.assertEqual(resp.status_code, 400)
        resp = self.client.patch("/api/graph/nodes/nope", json={"params": {}})
        self.assertEqual(resp.status_code, 404)

        graph = self.client.get("/api/graph").get_json()
        self.assertTrue(graph["valid"])
        self.assertEqual([n["id"] for n in graph["graph"]["nodes"]], ["s", "f"])

        resp = self.client.delete("/api/graph/nodes/f")
        self.assertEqual(resp.status_code, 200)
        resp = self.client.delete("/api/graph/nodes/f")
        self.assertEqual(resp.status_code, 404)

    def test_edges_and_batch(self) -> None:
        self._add({"id": "s", "type": "start"})
        self._add({"id": "e", "type": "end"}, connectFrom="s")

        resp = self.client.post("/api/graph/edges", json={"source": "s", "target": "ghost"})
        self.assertEqual(resp.status_code, 404)
        resp = self.client.delete("/api/graph/edges/ghost")
        self.assertEqual(resp.status_code, 404)

        resp = self.client.post(
            "/api/graph/edits",
            json={
                "edits": [
                    {"op": "deleteEdge", "id": "es-e"},
                    {"op": "addNode", "node": {"id": "w", "type": "wait"}, "connectFrom": "s"},
                    {"op": "addEdge", "source": "w", "target": "e"},
                ]
            },
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(len(resp.get_json()["graph"]["edges"]), 2)

        resp = self.client.post("/api/graph/edits", json={"edits": "nope"})
        self.assertEqual(resp.status_code, 400)

    def test_hardware_and_drivetrain(self) -> None:
        resp = self.client.get("/api/drivetrains")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(len(resp.get_json()["drivetrains"]), len(DRIVETRAIN_IDS))

        resp = self.client.put("/api/drivetrain", json={"drivetrain": "tank-drive", "applyDefaultWiring": True})
        self.assertEqual(resp.status_code, 200)
        hw = self.client.get("/api/hardware").get_json()
        self.assertEqual(hw["drivetrain"], "tank-drive")
        self.assertEqual([m["name"] for m in hw["hardware"]["motors"]], ["leftMotor", "rightMotor"])
        status = self.client.get("/api/status").get_json()["graph"]
        self.assertTrue(status["wiring_valid"])

        resp = self.client.put("/api/drivetrain", json={"drivetrain": "hover-drive"})
        self.assertEqual(resp.status_code, 400)

        resp = self.client.put(
            "/api/hardware",
            json={"hardware": {"motors": [{"name": "a", "port": 0}, {"name": "b", "port": 0}]}},
        )
        self.assertEqual(resp.status_code, 400)
        self.assertIn("Duplicate motor port", resp.get_json()["error"])

        resp = self.client.put("/api/hardware", json={"hardware": {"servos": [{"name": "claw", "port": 2}]}})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()["hardware"]["servos"][0]["name"], "claw")
        status = self.client.get("/api/status").get_json()["graph"]
        self.assertFalse(status["wiring_valid"])
        self.assertIn("leftMotor", status["wiring_message"])

    def test_preview_keyframes(self) -> None:
        resp = self.client.post(
            "/api/preview/keyframes",
            json={
                "baseline": [{"x": 10, "y": 10}, {"x": 60, "y": 10}, {"x": 60, "y": 80}],
                "optimized": [{"x": 10, "y": 10}, {"x": 40, "y": 0}, {"x": 80, "y": 40}, {"x": 60, "y": 80}],
            },
        )
        self.assertEqual(resp.status_code, 200)
        data = resp.get_json()
        self.assertEqual(len(data["times"]), 82)
        self.assertEqual(set(data["keyframes"].keys()), {"x", "y", "rotate", "opacity"})
        self.assertEqual(data["summary"]["num_frames"], 82)
        self.assertFalse(data["summary"]["empty"])

        resp = self.client.post("/api/preview/keyframes", json={"baseline": [], "optimized": [{"x": 0, "y": 0}]})
        self.assertEqual(resp.status_code, 400)

    def test_preview_keyframes_rejects_bad_numbers(self) -> None:
        body = {
            "baseline": [{"x": 10, "y": 10}, {"x": 60, "y": 10}],
            "optimized": [{"x": 10, "y": 10}, {"x": 40, "y": 0}, {"x": 80, "y": 40}, {"x": 60, "y": 80}],
        }
        for key, value, fragment in (
            ("baselineSamples", "nan", "finite"),
            ("optimizedSamples", "inf", "finite"),
            ("baselineSamples", 10 ** 6, "within"),
            ("optimizedSamples", 1, "within"),
            ("revealStart", 1.3, "within"),
            ("baselineFraction", -0.1, "within"),
            ("handoffPause", "soon", "numeric"),
        ):
            resp = self.client.post("/api/preview/keyframes", json=dict(body, **{key: value}))
            self.assertEqual(resp.status_code, 400, key)
            self.assertIn(key, resp.get_json()["error"])
            self.assertIn(fragment, resp.get_json()["error"])

        resp = self.client.post("/api/preview/keyframes", json=dict(body, baselineSamples=10, optimizedSamples=8))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(len(resp.get_json()["times"]), 10 + 2 + 7)

    def test_preview_routine(self) -> None:
        self._add({"id": "s", "type": "start"})
        self._add({"id": "f", "type": "forward", "data": {"distance": 24, "power": 1.0}}, connectFrom="s")
        resp = self.client.get("/api/preview/routine?x=20&y=20&heading=0")
        self.assertEqual(resp.status_code, 200)
        data = resp.get_json()
        self.assertAlmostEqual(data["end"]["x"], 44.0)
        self.assertEqual(len(data["segments"]), 2)

        resp = self.client.get("/api/preview/routine?x=abc&y=1")
        self.assertEqual(resp.status_code, 400)

    def test_workflow_round_trip(self) -> None:
        self._add({"id": "s", "type": "start"})
        self._add({"id": "e", "type": "end"}, connectFrom="s")
        project = self.client.get("/api/workflow").get_json()["project"]
        project["name"] = "Auto Right"

        self.routine_app.state = self.routine_app.RoutineState()
        resp = self.client.put("/api/workflow", json={"project": project})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()["status"]["project_name"], "Auto Right")
        graph = self.client.get("/api/graph").get_json()["graph"]
        self.assertEqual(graph, {"nodes": project["workflowData"]["nodes"], "edges": project["workflowData"]["edges"]})

        resp = self.client.put("/api/workflow", json={"project": {"workflowData": {"version": 9}}})
        self.assertEqual(resp.status_code, 400)


if __name__ == "__main__":
    unittest.main()
