# autoflow/kinematics.py
"""
Drivetrain math shared by the open-loop and encoder backends.

A motion is expressed in the robot frame as (forward, strafe, turn):
forward and strafe in inches (strafe positive to the right), turn in
degrees (positive clockwise, matching turnRight).
"""
from __future__ import annotations

import math
from typing import List, NamedTuple, Optional, Tuple

from .nodes import FollowPath, MoveToPosition, PivotTurn, SplineTo, TurnToHeading
from .waypoints import Waypoint, advance_pose, normalize_heading

EPS = 1e-6


class Motion(NamedTuple):
    forward: float = 0.0
    strafe: float = 0.0
    turn: float = 0.0
    pivot: Optional[str] = None  # "left" | "right" keeps that side still

    @property
    def is_turn(self) -> bool:
        return abs(self.forward) < EPS and abs(self.strafe) < EPS

    @property
    def distance(self) -> float:
        return math.hypot(self.forward, self.strafe)


def counts_per_inch(counts_per_rev: float, gear_reduction: float, wheel_diameter_in: float) -> float:
    return (counts_per_rev * gear_reduction) / (wheel_diameter_in * math.pi)


def turn_arc_in(angle_deg: float, track_width_in: float = 12.0) -> float:
    """Wheel travel for an in-place turn of angle_deg."""
    return angle_deg / 360.0 * math.pi * track_width_in


def drive_time_ms(distance_in: float, speed_ips: float = 24.0) -> int:
    return int(round(abs(distance_in) / max(speed_ips, EPS) * 1000.0))


def turn_time_ms(angle_deg: float, ms_per_90: float = 800.0) -> int:
    return int(round(abs(angle_deg) / 90.0 * ms_per_90))


def robot_frame(dx: float, dy: float, heading_deg: float) -> Tuple[float, float]:
    """Field displacement -> (forward, strafe) relative to heading."""
    th = math.radians(heading_deg)
    forward = dx * math.cos(th) + dy * math.sin(th)
    strafe = -dx * math.sin(th) + dy * math.cos(th)
    return forward, strafe


def wheel_deltas(motion: Motion, track_width_in: float = 12.0,
                 holonomic: bool = True) -> Tuple[float, float, float, float]:
    """Per-wheel travel in inches as (frontLeft, frontRight, backLeft, backRight)."""
    arc = turn_arc_in(motion.turn, track_width_in)
    if motion.pivot == "left":
        return (0.0, -2 * arc, 0.0, -2 * arc)
    if motion.pivot == "right":
        return (2 * arc, 0.0, 2 * arc, 0.0)
    f = motion.forward
    s = motion.strafe if holonomic else 0.0
    return (f + s + arc, f - s - arc, f - s + arc, f + s - arc)


def wheel_powers(motion: Motion, power: float, holonomic: bool = True) -> Tuple[float, float, float, float]:
    """Open-loop powers: the wheel_deltas mix scaled so the largest is |power|."""
    mix = wheel_deltas(motion, track_width_in=12.0, holonomic=holonomic)
    peak = max(abs(v) for v in mix)
    if peak < EPS:
        return (0.0, 0.0, 0.0, 0.0)
    scale = abs(power) / peak
    return tuple(round(v * scale, 4) for v in mix)


def _travel(pose: Waypoint, x: float, y: float, heading: Optional[float],
            holonomic: bool) -> Tuple[List[Motion], Waypoint]:
    """Motions taking pose to (x, y) then to heading."""
    dx, dy = x - pose.x, y - pose.y
    motions: List[Motion] = []
    h = pose.heading
    if math.hypot(dx, dy) > EPS:
        if holonomic:
            fwd, strafe = robot_frame(dx, dy, h)
            motions.append(Motion(fwd, strafe))
        else:
            bearing = math.degrees(math.atan2(dy, dx))
            turn = normalize_heading(bearing - h)
            if abs(turn) > EPS:
                motions.append(Motion(turn=turn))
            h = h + turn
            motions.append(Motion(forward=math.hypot(dx, dy)))
    target_h = h if heading is None else heading
    turn = normalize_heading(target_h - h)
    if abs(turn) > EPS:
        motions.append(Motion(turn=turn))
    return motions, Waypoint(x, y, target_h if heading is not None else h)


def plan_motion(pose: Waypoint, action, holonomic: bool = True) -> Tuple[List[Motion], Waypoint]:
    """
    Robot-frame motions for one movement action from pose, plus the pose
    the robot ends at. Non-movement actions give ([], pose).
    """
    if isinstance(action, (MoveToPosition, SplineTo)):
        end = advance_pose(pose, action)
        return _travel(pose, end.x, end.y, action.target_heading, holonomic)
    if isinstance(action, TurnToHeading):
        end = advance_pose(pose, action)
        turn = normalize_heading(end.heading - pose.heading)
        return ([Motion(turn=turn)] if abs(turn) > EPS else []), end
    if isinstance(action, PivotTurn):
        turn = -action.angle if action.direction == "left" else action.angle
        return [Motion(turn=turn, pivot=action.direction)], pose._replace(heading=pose.heading + turn)
    if isinstance(action, FollowPath):
        motions: List[Motion] = []
        for x, y in action.points:
            step, pose = _travel(pose, x, y, None, holonomic)
            motions.extend(step)
        return motions, pose

    end = advance_pose(pose, action)
    if end is None:
        return [], pose
    fwd, strafe = robot_frame(end.x - pose.x, end.y - pose.y, pose.heading)
    turn = end.heading - pose.heading
    if abs(fwd) < EPS:
        fwd = 0.0
    if abs(strafe) < EPS:
        strafe = 0.0
    return [Motion(fwd, strafe, turn)], end
