# autoflow/waypoints.py
"""
Pose simulation over the program graph.

Field frame is inches on a 144 x 144 square with heading in degrees,
0 along +X. Turning left subtracts from the heading, turning right adds.
"""
from __future__ import annotations

import math
from typing import List, NamedTuple, Optional, Sequence

from .config import DEFAULT_CONFIG, _flatten
from .geometry import generate_spline, linear_interpolate
from .nodes import (
    Action, Backward, Forward, MoveToPosition, SplineTo, StrafeLeft,
    StrafeRight, TurnLeft, TurnRight, TurnToHeading,
)


class Waypoint(NamedTuple):
    x: float
    y: float
    heading: float


def normalize_heading(deg: float) -> float:
    """Wrap an angle into (-180, 180]."""
    h = math.fmod(float(deg), 360.0)
    if h <= -180.0:
        h += 360.0
    elif h > 180.0:
        h -= 360.0
    return h


def as_pose(pose=None) -> Waypoint:
    """Accept a Waypoint, (x, y, heading) sequence, {"x","y","heading"} dict or None."""
    if pose is None:
        flat = _flatten(DEFAULT_CONFIG["initial_pose"])
        return Waypoint(float(flat["x"]), float(flat["y"]), float(flat["heading"]))
    if isinstance(pose, dict):
        return Waypoint(float(pose.get("x", 0.0)), float(pose.get("y", 0.0)),
                        float(pose.get("heading", 0.0)))
    x, y = pose[0], pose[1]
    heading = pose[2] if len(pose) > 2 else 0.0
    return Waypoint(float(x), float(y), float(heading))


def _offset(pose: Waypoint, distance: float, bearing_deg: float) -> Waypoint:
    th = math.radians(bearing_deg)
    return Waypoint(pose.x + distance * math.cos(th),
                    pose.y + distance * math.sin(th),
                    pose.heading)


def advance_pose(pose: Waypoint, action: Optional[Action]) -> Optional[Waypoint]:
    """
    Pose after one action, or None when the action does not move the
    simulated robot.
    """
    if action is None or not action.pose_simulated:
        return None
    h = pose.heading
    if isinstance(action, (MoveToPosition, SplineTo)):
        return Waypoint(
            pose.x if action.target_x is None else action.target_x,
            pose.y if action.target_y is None else action.target_y,
            h if action.target_heading is None else action.target_heading,
        )
    if isinstance(action, Forward):
        return _offset(pose, action.distance, h)
    if isinstance(action, Backward):
        return _offset(pose, -action.distance, h)
    if isinstance(action, StrafeLeft):
        return _offset(pose, action.distance, h - 90.0)
    if isinstance(action, StrafeRight):
        return _offset(pose, action.distance, h + 90.0)
    if isinstance(action, TurnLeft):
        return pose._replace(heading=h - action.angle)
    if isinstance(action, TurnRight):
        return pose._replace(heading=h + action.angle)
    if isinstance(action, TurnToHeading):
        return pose._replace(heading=h if action.target_heading is None else action.target_heading)
    raise TypeError(f"No pose update for {action.type}")


def _simulate(nodes, initial_pose) -> List[Waypoint]:
    pose = as_pose(initial_pose)
    out = [pose]
    for node in nodes:
        nxt = advance_pose(pose, node.action)
        if nxt is not None:
            pose = nxt
            out.append(pose)
    return out


def derive_waypoints(graph, initial_pose=None) -> List[Waypoint]:
    """Initial pose followed by one waypoint per movement node in execution order."""
    return _simulate(graph.execution_order(), initial_pose)


def waypoint_node_ids(graph) -> List[str]:
    """Node id behind each waypoint from index 1 on."""
    return [n.id for n in graph.execution_order()
            if n.action is not None and n.action.pose_simulated]


def waypoints_up_to(graph, initial_pose, node_index: int) -> List[Waypoint]:
    """Waypoints for a step preview that has executed nodes 0..node_index."""
    if node_index < 0:
        return [as_pose(initial_pose)]
    return _simulate(graph.execution_order()[:node_index + 1], initial_pose)


def preview_path(waypoints: Sequence[Sequence[float]], use_curves: bool = True,
                 spline_steps: int = 100, linear_steps: int = 20) -> List[Waypoint]:
    """Dense (x, y, heading) samples through the waypoints, for display only."""
    if len(waypoints) < 2:
        return [as_pose(w) for w in waypoints]
    if use_curves and len(waypoints) > 2:
        return [Waypoint(*p) for p in generate_spline(waypoints, spline_steps)]

    out: List[Waypoint] = []
    for a, b in zip(waypoints, waypoints[1:]):
        samples = linear_interpolate(a, b, linear_steps)
        if out:
            samples = samples[1:]
        out.extend(Waypoint(*p) for p in samples)
    return out
