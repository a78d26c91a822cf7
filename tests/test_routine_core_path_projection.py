from __future__ import annotations

import unittest

from path_core import OrientedPoint, Point
from routine_core import build_node, node_path_points


def _node(node_type: str, **data):
    ok, node, msg = build_node({"id": "n", "type": node_type, "data": data})
    assert ok and node is not None, msg
    return node


START = OrientedPoint(0.0, 0.0, 0.0)


class RoutineCorePathProjectionTests(unittest.TestCase):
    def test_linear_is_polyline_through_waypoints_and_target(self) -> None:
        node = _node("moveToPosition", targetX=30, targetY=40, waypoints=[{"x": 10, "y": 10}])
        self.assertEqual(node_path_points(node, START), [Point(0, 0), Point(10, 10), Point(30, 40)])

    def test_spline_passes_through_every_point(self) -> None:
        node = _node("splineTo", targetX=40, targetY=0, waypoints=[{"x": 20, "y": 20}])
        pts = node_path_points(node, START)
        self.assertEqual(len(pts), 2 * 20 + 1)
        self.assertEqual(pts[0], Point(0, 0))
        self.assertAlmostEqual(pts[20].x, 20.0)
        self.assertAlmostEqual(pts[20].y, 20.0)
        self.assertEqual(pts[-1], Point(40, 0))

    def test_bezier_uses_control_points(self) -> None:
        node = _node(
            "moveToPosition",
            targetX=30,
            targetY=0,
            curveType="bezier",
            controlPoints=[{"x": 10, "y": 20}, {"x": 20, "y": 20}],
        )
        pts = node_path_points(node, START)
        self.assertEqual(pts[0], Point(0, 0))
        self.assertEqual(pts[-1], Point(30, 0))
        self.assertGreater(max(p.y for p in pts), 10.0)

    def test_follow_path_without_target(self) -> None:
        node = _node("followPath", waypoints=[{"x": 5, "y": 0}, {"x": 5, "y": 5}])
        self.assertEqual(node_path_points(node, START), [Point(0, 0), Point(5, 0), Point(5, 5)])

    def test_non_path_nodes_have_no_points(self) -> None:
        self.assertEqual(node_path_points(_node("forward"), START), [])
        self.assertEqual(node_path_points(_node("wait"), START), [])


if __name__ == "__main__":
    unittest.main()
