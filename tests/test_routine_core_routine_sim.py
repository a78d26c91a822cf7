from __future__ import annotations

import math
import unittest

from path_core import OrientedPoint
from routine_core import RoutineGraph, estimate_routine_motion, trapezoid_velocity


def _routine(*steps) -> RoutineGraph:
    g = RoutineGraph()
    prev = None
    for i, (node_type, data) in enumerate((("start", {}),) + steps + (("end", {}),)):
        ok, _, msg = g.add_node({"id": f"n{i}", "type": node_type, "data": data}, connect_from=prev)
        assert ok, msg
        prev = f"n{i}"
    return g


START = OrientedPoint(72.0, 72.0, 0.0)


class RoutineCoreRoutineSimTests(unittest.TestCase):
    def test_forward_moves_along_heading(self) -> None:
        motion = estimate_routine_motion(_routine(("forward", {"distance": 24, "power": 0.5})), START)
        seg = motion.segments[1]
        self.assertAlmostEqual(seg.end.x, 96.0)
        self.assertAlmostEqual(seg.end.y, 72.0)
        self.assertAlmostEqual(seg.distance, 24.0)
        self.assertAlmostEqual(seg.duration, 24.0 / 25.0)
        self.assertEqual(len(motion.segments), 3)
        self.assertAlmostEqual(motion.total_duration, 0.96)

    def test_turns_and_strafes(self) -> None:
        motion = estimate_routine_motion(
            _routine(
                ("turnRight", {"angle": 90, "power": 1.0}),
                ("forward", {"distance": 10}),
                ("turnLeft", {"angle": 90}),
                ("strafeRight", {"distance": 12}),
            ),
            START,
        )
        turn = motion.segments[1]
        self.assertAlmostEqual(turn.end.angle, 90.0)
        self.assertAlmostEqual(turn.duration, 0.5)
        fwd = motion.segments[2]
        self.assertAlmostEqual(fwd.end.x, 72.0)
        self.assertAlmostEqual(fwd.end.y, 82.0)
        self.assertAlmostEqual(motion.segments[3].end.angle, 0.0)
        strafe = motion.segments[4]
        self.assertAlmostEqual(strafe.end.x, 72.0)
        self.assertAlmostEqual(strafe.end.y, 94.0)

    def test_turn_to_heading_takes_short_way(self) -> None:
        motion = estimate_routine_motion(_routine(("turnToHeading", {"targetHeading": 270})), START)
        seg = motion.segments[1]
        self.assertAlmostEqual(seg.end.angle, -90.0)
        self.assertAlmostEqual(seg.duration, 90.0 / 90.0)

    def test_positions_are_clamped_to_field(self) -> None:
        motion = estimate_routine_motion(_routine(("forward", {"distance": 500})), START)
        self.assertAlmostEqual(motion.end.x, 135.0)
        self.assertTrue(all(9.0 <= p.x <= 135.0 and 9.0 <= p.y <= 135.0 for p in motion.path))

    def test_arc_move(self) -> None:
        radius = 20.0
        motion = estimate_routine_motion(
            _routine(("arcMove", {"distance": radius * math.pi / 2.0, "angle": 90, "power": 1.0})), START
        )
        seg = motion.segments[1]
        self.assertAlmostEqual(seg.end.x, 92.0)
        self.assertAlmostEqual(seg.end.y, 92.0)
        self.assertAlmostEqual(seg.end.angle, 90.0)

    def test_move_to_position_and_heading(self) -> None:
        motion = estimate_routine_motion(
            _routine(("moveToPosition", {"targetX": 100, "targetY": 100, "targetHeading": 45, "power": 1.0})),
            START,
        )
        seg = motion.segments[1]
        self.assertAlmostEqual(seg.end.x, 100.0)
        self.assertAlmostEqual(seg.end.y, 100.0)
        self.assertAlmostEqual(seg.end.angle, 45.0)
        self.assertAlmostEqual(seg.distance, math.hypot(28.0, 28.0))

    def test_waits_and_mechanisms_hold_pose(self) -> None:
        motion = estimate_routine_motion(
            _routine(("wait", {"duration": 2}), ("custom", {"customCode": "telemetry.update();"})),
            START,
        )
        self.assertAlmostEqual(motion.segments[1].duration, 2.0)
        self.assertEqual(motion.segments[1].end, START)
        self.assertEqual(motion.segments[2].duration, 0.0)
        self.assertEqual(motion.path, [START])

    def test_default_start_is_field_center(self) -> None:
        motion = estimate_routine_motion(RoutineGraph())
        self.assertEqual(motion.start, OrientedPoint(72.0, 72.0, 0.0))
        self.assertEqual(motion.segments, [])
        data = motion.to_dict()
        self.assertEqual(data["totalDuration"], 0.0)

    def test_trapezoid_velocity_profile(self) -> None:
        self.assertEqual(trapezoid_velocity(0.0, 50.0), 0.0)
        self.assertAlmostEqual(trapezoid_velocity(0.15, 50.0), 25.0)
        self.assertEqual(trapezoid_velocity(0.5, 50.0), 50.0)
        self.assertAlmostEqual(trapezoid_velocity(1.0, 50.0), 0.0)


if __name__ == "__main__":
    unittest.main()
