"""
Tests for drivetrain math.

These tests validate:
- wheel travel and power mixes for drives, strafes, turns and pivots
- motion planning per movement action for both drivetrain kinds
"""

import math

import pytest

from autoflow.kinematics import (
    Motion, counts_per_inch, drive_time_ms, plan_motion, robot_frame,
    turn_arc_in, turn_time_ms, wheel_deltas, wheel_powers,
)
from autoflow.nodes import (
    FollowPath, Forward, MoveToPosition, PivotTurn, SetServo, TurnLeft,
    TurnToHeading,
)
from autoflow.waypoints import Waypoint


ORIGIN = Waypoint(0.0, 0.0, 0.0)


class TestConversions:
    """Tests for unit conversions."""

    def test_counts_per_inch(self):
        assert counts_per_inch(537.7, 1.0, 4.0) == pytest.approx(537.7 / (4 * math.pi))

    def test_turn_arc(self):
        assert turn_arc_in(90, 12) == pytest.approx(9.4248, abs=1e-4)

    def test_times(self):
        assert drive_time_ms(24, 24) == 1000
        assert drive_time_ms(-12, 24) == 500
        assert turn_time_ms(90, 800) == 800
        assert turn_time_ms(-45, 800) == 400

    def test_robot_frame(self):
        assert robot_frame(0, 10, 0) == pytest.approx((0, 10))
        assert robot_frame(0, 10, 90) == pytest.approx((10, 0))


class TestWheelMix:
    """Tests for wheel_deltas and wheel_powers."""

    def test_forward(self):
        assert wheel_deltas(Motion(forward=24)) == (24, 24, 24, 24)
        assert wheel_powers(Motion(forward=24), 0.5) == (0.5, 0.5, 0.5, 0.5)

    def test_strafe_right(self):
        assert wheel_deltas(Motion(strafe=10)) == (10, -10, -10, 10)

    def test_strafe_ignored_on_differential(self):
        assert wheel_deltas(Motion(strafe=10), holonomic=False) == (0, 0, 0, 0)
        assert wheel_powers(Motion(strafe=10), 0.5, holonomic=False) == (0, 0, 0, 0)

    def test_left_turn_runs_left_side_backward(self):
        assert wheel_powers(Motion(turn=-90), 0.5) == (-0.5, 0.5, -0.5, 0.5)

    def test_pivots_hold_one_side(self):
        fl, fr, bl, br = wheel_deltas(Motion(turn=-90, pivot="left"))
        assert fl == 0 and bl == 0
        assert fr == pytest.approx(2 * 9.4248, abs=1e-3)
        fl, fr, bl, br = wheel_deltas(Motion(turn=90, pivot="right"))
        assert fr == 0 and br == 0
        assert fl > 0


class TestPlanMotion:
    """Tests for plan_motion."""

    def test_forward(self):
        motions, end = plan_motion(ORIGIN, Forward(distance=24))
        assert motions == [Motion(24.0, 0.0, 0.0)]
        assert end == (24, 0, 0)

    def test_turn_left(self):
        motions, end = plan_motion(ORIGIN, TurnLeft(angle=90))
        assert motions == [Motion(0.0, 0.0, -90.0)]
        assert motions[0].is_turn
        assert end.heading == -90

    def test_move_to_position_holonomic(self):
        motions, end = plan_motion(ORIGIN, MoveToPosition(target_x=0, target_y=10, target_heading=90))
        assert [tuple(m)[:3] for m in motions] == [pytest.approx((0, 10, 0)), pytest.approx((0, 0, 90))]
        assert end == (0, 10, 90)

    def test_move_to_position_differential(self):
        motions, end = plan_motion(ORIGIN, MoveToPosition(target_x=0, target_y=10), holonomic=False)
        assert len(motions) == 2
        assert motions[0].is_turn and motions[0].turn == pytest.approx(90)
        assert motions[1].forward == pytest.approx(10) and motions[1].turn == 0
        assert end == pytest.approx((0, 10, 90))

    def test_turn_to_heading_takes_short_way(self):
        motions, _ = plan_motion(Waypoint(0, 0, 170), TurnToHeading(target_heading=-170))
        assert motions == [Motion(turn=pytest.approx(20.0))]

    def test_pivot(self):
        motions, end = plan_motion(ORIGIN, PivotTurn(angle=30, direction="left"))
        assert motions == [Motion(turn=-30, pivot="left")]
        assert end.heading == -30

    def test_follow_path(self):
        motions, end = plan_motion(ORIGIN, FollowPath(points=((10, 0), (10, 10))))
        assert len(motions) == 2
        assert motions[0].forward == pytest.approx(10)
        assert motions[1].strafe == pytest.approx(10)
        assert end == (10, 10, 0)

    def test_non_movement(self):
        assert plan_motion(ORIGIN, SetServo()) == ([], ORIGIN)
