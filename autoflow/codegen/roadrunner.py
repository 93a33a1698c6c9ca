# autoflow/codegen/roadrunner.py
"""
RoadRunner trajectory-sequence export.

Top-level nodes lower into one trajectorySequenceBuilder chain. Motion
becomes builder calls; every other action becomes an addTemporalMarker
callback at that point of the chain, so mechanisms interleave with motion.
If / Loop / Parallel markers hold their bodies as ordinary Java statements,
where motion runs as its own short trajectory sequence.
"""
from __future__ import annotations

import math
from typing import List, Optional, Tuple

from ..config import codegen_flat, default_config, initial_pose_flat
from ..devices import DeviceRegistry, collect_references, default_registry
from ..nodes import (
    Backward, FollowPath, Forward, MoveToPosition, PivotTurn, SplineTo,
    StrafeLeft, StrafeRight, TurnLeft, TurnRight, TurnToHeading,
)
from ..waypoints import Waypoint, advance_pose, as_pose, normalize_heading
from .lowering import LinearOpModeEmitter, Lowerer, StatementEmitter
from .source import SourceBuilder, class_name, declare_devices, file_header, fmt, init_devices, java_string

RR_IMPORTS = (
    "com.acmerobotics.roadrunner.geometry.Pose2d",
    "com.acmerobotics.roadrunner.geometry.Vector2d",
    "org.firstinspires.ftc.teamcode.drive.SampleMecanumDrive",
    "org.firstinspires.ftc.teamcode.trajectorysequence.TrajectorySequence",
)


def _radians(deg: float) -> str:
    return f"Math.toRadians({fmt(deg)})"


def trajectory_calls(pose: Waypoint, action) -> Tuple[List[str], Waypoint]:
    """Builder calls for one movement action from pose, and the pose after it."""
    if isinstance(action, MoveToPosition):
        end = advance_pose(pose, action)
        if action.target_heading is None:
            return [f".lineTo(new Vector2d({fmt(end.x)}, {fmt(end.y)}))"], end
        return [f".lineToLinearHeading(new Pose2d({fmt(end.x)}, {fmt(end.y)}, {_radians(end.heading)}))"], end
    if isinstance(action, SplineTo):
        end = advance_pose(pose, action)
        return [f".splineTo(new Vector2d({fmt(end.x)}, {fmt(end.y)}), {_radians(end.heading)})"], end
    if isinstance(action, Forward):
        return [f".forward({fmt(action.distance)})"], advance_pose(pose, action)
    if isinstance(action, Backward):
        return [f".back({fmt(action.distance)})"], advance_pose(pose, action)
    if isinstance(action, StrafeLeft):
        return [f".strafeLeft({fmt(action.distance)})"], advance_pose(pose, action)
    if isinstance(action, StrafeRight):
        return [f".strafeRight({fmt(action.distance)})"], advance_pose(pose, action)
    if isinstance(action, TurnLeft):
        return [f".turn({_radians(-action.angle)})"], advance_pose(pose, action)
    if isinstance(action, TurnRight):
        return [f".turn({_radians(action.angle)})"], advance_pose(pose, action)
    if isinstance(action, TurnToHeading):
        end = advance_pose(pose, action)
        delta = normalize_heading(end.heading - pose.heading)
        return ([f".turn({_radians(delta)})"] if abs(delta) > 1e-9 else []), end
    if isinstance(action, PivotTurn):
        turn = -action.angle if action.direction == "left" else action.angle
        return [f".turn({_radians(turn)})"], pose._replace(heading=pose.heading + turn)
    if isinstance(action, FollowPath):
        calls = []
        for x, y in action.points:
            if math.hypot(x - pose.x, y - pose.y) < 1e-9:
                continue
            tangent = math.degrees(math.atan2(y - pose.y, x - pose.x))
            calls.append(f".splineTo(new Vector2d({fmt(x)}, {fmt(y)}), {_radians(tangent)})")
            pose = Waypoint(x, y, tangent)
        return calls, pose
    return [], pose


class RoadRunnerStatementEmitter(LinearOpModeEmitter):
    """Statement form used inside temporal marker bodies."""

    def move(self, node, action) -> None:
        calls, self.pose = trajectory_calls(self.pose, action)
        if not calls:
            self.out.comment("Already there, nothing to do")
            return
        self.out.line("drive.followTrajectorySequence(drive.trajectorySequenceBuilder(drive.getPoseEstimate())")
        with self.out.indent(2):
            for call in calls:
                self.out.line(call)
            self.out.line(".build());")


class RoadRunnerEmitter(StatementEmitter):
    """Builder-chain form for the top-level sequence."""

    def __init__(self, out: SourceBuilder, pose: Waypoint):
        super().__init__(out, pose)
        self.stmt = RoadRunnerStatementEmitter(out, pose)
        self.count = 0

    def _motion(self, node, action) -> None:
        calls, self.pose = trajectory_calls(self.pose, action)
        for call in calls:
            self.out.line(call)
            self.count += 1
        sec = action.secondary_action
        if sec is not None:
            self._marker_body(lambda: self.stmt.secondary(node, sec))

    lower_move_to_position = _motion
    lower_spline_to = _motion
    lower_forward = _motion
    lower_backward = _motion
    lower_strafe_left = _motion
    lower_strafe_right = _motion
    lower_turn_left = _motion
    lower_turn_right = _motion
    lower_turn_to_heading = _motion
    lower_pivot_turn = _motion
    lower_follow_path = _motion

    def lower_wait(self, node, action) -> None:
        self.out.line(f".waitSeconds({fmt(max(0.0, action.duration))})")
        self.count += 1

    def _marker(self, node, action, branches=None) -> None:
        self.stmt.pose = self.pose
        handler = getattr(self.stmt, action.handler)
        if branches is None:
            self._marker_body(lambda: handler(node, action))
        else:
            rebound = {h: b.using(self.stmt) for h, b in branches.items()}
            self._marker_body(lambda: handler(node, action, rebound))

    def _marker_body(self, body) -> None:
        self.out.line(".addTemporalMarker(() -> {")
        with self.out.indent():
            body()
        self.out.line("})")
        self.count += 1

    lower_set_servo = _marker
    lower_continuous_servo = _marker
    lower_run_motor = _marker
    lower_stop_motor = _marker
    lower_set_motor_power = _marker
    lower_read_imu = _marker
    lower_read_distance = _marker
    lower_read_color = _marker
    lower_read_touch = _marker
    lower_wait_for_sensor = _marker
    lower_wait_until = _marker
    lower_everynode = _marker
    lower_custom = _marker
    lower_if = _marker
    lower_loop = _marker
    lower_parallel = _marker


def build_export_lines(graph, registry: Optional[DeviceRegistry] = None, initial_pose=None,
                       cfg: Optional[dict] = None, project_name: str = "Auto") -> List[str]:
    cfg = cfg or default_config()
    registry = registry or default_registry()
    codegen = codegen_flat(cfg)
    pose = as_pose(initial_pose if initial_pose is not None else initial_pose_flat(cfg))

    chain = SourceBuilder(level=4)
    emitter = RoadRunnerEmitter(chain, pose)
    Lowerer(graph).run(emitter)
    refs = collect_references(graph, registry)

    out = SourceBuilder()
    out.use("Autonomous", "LinearOpMode", *RR_IMPORTS)
    out.line(f"@Autonomous(name = {java_string(f'{project_name} (RoadRunner)')}, "
             f"group = {java_string(codegen['group'])})")
    with out.block(f"public class {class_name(project_name, 'RR')} extends LinearOpMode"):
        declare_devices(out, refs)
        out.line("@Override")
        with out.block("public void runOpMode()"):
            out.line("SampleMecanumDrive drive = new SampleMecanumDrive(hardwareMap);")
            if refs:
                init_devices(out, refs)
            out.blank()
            out.line(f"Pose2d startPose = new Pose2d({fmt(pose.x)}, {fmt(pose.y)}, {_radians(pose.heading)});")
            out.line("drive.setPoseEstimate(startPose);")
            out.blank()
            if emitter.count:
                out.line("TrajectorySequence trajSeq = drive.trajectorySequenceBuilder(startPose)")
                out.extend(chain.lines)
                with out.indent(2):
                    out.line(".build();")
            else:
                out.extend(chain.lines)
                out.comment("No trajectory commands")
            out.blank()
            out.line('telemetry.addData("Status", "Initialized");')
            out.line("telemetry.update();")
            out.line("waitForStart();")
            out.blank()
            with out.block("if (isStopRequested())"):
                out.line("return;")
            if emitter.count:
                out.blank()
                out.line("drive.followTrajectorySequence(trajSeq);")
    return file_header(codegen["package"], out.imports | chain.imports) + out.lines
