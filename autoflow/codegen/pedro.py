# autoflow/codegen/pedro.py
"""
PedroPathing follower export.

All motion is built once into a single PathChain, one BezierLine per
consecutive waypoint pair with linear heading interpolation. Everything
else runs afterwards in the second phase of a three state machine:
0 following the path, 1 running mechanisms, 2 complete.
"""
from __future__ import annotations

from typing import List, Optional

from ..config import codegen_flat, default_config, initial_pose_flat
from ..devices import DeviceRegistry, collect_references, default_registry
from ..waypoints import Waypoint, advance_pose, as_pose
from .lowering import LinearOpModeEmitter, Lowerer
from .source import SourceBuilder, class_name, declare_devices, file_header, fmt, init_devices, java_string

PEDRO_IMPORTS = (
    "com.pedropathing.follower.Follower",
    "com.pedropathing.geometry.BezierLine",
    "com.pedropathing.geometry.Pose",
    "com.pedropathing.paths.PathChain",
    "com.pedropathing.util.Timer",
)


def _pose(w: Waypoint) -> str:
    return f"new Pose({fmt(w.x)}, {fmt(w.y)}, Math.toRadians({fmt(w.heading)}))"


class PedroEmitter(LinearOpModeEmitter):
    """Mechanism phase statements. OpMode has no sleep() or idle()."""

    idle_call = "Thread.yield();"
    active_guard = ""

    def __init__(self, out: SourceBuilder, pose: Waypoint, drivetrain=None):
        super().__init__(out, pose, drivetrain)
        # path chain poses, gathered from the same top-level walk as the statements
        self.waypoints: List[Waypoint] = [pose]

    def sleep(self, ms: int) -> None:
        self.out.line("try {")
        with self.out.indent():
            self.out.line(f"Thread.sleep({ms});")
        self.out.line("} catch (InterruptedException e) {")
        with self.out.indent():
            self.out.line("Thread.currentThread().interrupt();")
        self.out.line("}")

    def move(self, node, action) -> None:
        if self.depth:
            self.out.comment("Movement inside a branch is not part of the path chain")
        elif action.pose_simulated:
            self.pose = advance_pose(self.pose, action)
            self.waypoints.append(self.pose)
            self.out.comment("Driven by the path chain")
        else:
            self.out.comment("Not part of the path chain")


def path_chain_lines(waypoints: List[Waypoint]) -> List[str]:
    """pathBuilder() calls, one BezierLine per consecutive waypoint pair."""
    lines = []
    for a, b in zip(waypoints, waypoints[1:]):
        lines.append(f".addPath(new BezierLine({_pose(a)}, {_pose(b)}))")
        lines.append(f".setLinearHeadingInterpolation(Math.toRadians({fmt(a.heading)}), "
                     f"Math.toRadians({fmt(b.heading)}))")
    return lines


def build_export_lines(graph, registry: Optional[DeviceRegistry] = None, initial_pose=None,
                       cfg: Optional[dict] = None, project_name: str = "Auto") -> List[str]:
    cfg = cfg or default_config()
    registry = registry or default_registry()
    codegen = codegen_flat(cfg)
    pose = as_pose(initial_pose if initial_pose is not None else initial_pose_flat(cfg))

    phase2 = SourceBuilder(level=4)
    emitter = PedroEmitter(phase2, pose, registry.drivetrain)
    Lowerer(graph).run(emitter)
    waypoints = emitter.waypoints
    chain = path_chain_lines(waypoints)
    refs = collect_references(graph, registry)

    out = SourceBuilder()
    out.use("Autonomous", "OpMode", *PEDRO_IMPORTS)
    out.line(f"@Autonomous(name = {java_string(f'{project_name} (PedroPathing)')}, "
             f"group = {java_string(codegen['group'])})")
    with out.block(f"public class {class_name(project_name, 'Pedro')} extends OpMode"):
        out.line("private Follower follower;")
        out.line("private PathChain pathChain;")
        out.line("private int pathState = 0;")
        out.line("private final Timer timer = new Timer();")
        out.blank()
        declare_devices(out, refs)
        out.line("@Override")
        with out.block("public void init()"):
            out.line("follower = new Follower(hardwareMap);")
            if refs:
                init_devices(out, refs)
            out.blank()
            out.comment("Set start pose")
            out.line(f"Pose startPose = {_pose(pose)};")
            out.line("follower.setStartingPose(startPose);")
            if chain:
                out.blank()
                out.comment(f"Build autonomous path ({len(waypoints) - 1} segments)")
                out.line("pathChain = follower.pathBuilder()")
                with out.indent(2):
                    for line in chain:
                        out.line(line)
                    out.line(".build();")
            out.blank()
            out.line('telemetry.addData("Status", "Initialized");')
            out.line("telemetry.update();")
        out.blank()
        out.line("@Override")
        with out.block("public void start()"):
            if chain:
                out.line("follower.followPath(pathChain);")
            out.line("timer.resetTimer();")
        out.blank()
        out.line("@Override")
        with out.block("public void loop()"):
            out.line("follower.update();")
            out.blank()
            out.comment("State machine for autonomous")
            with out.block("switch (pathState)"):
                out.line("case 0: // Following path")
                with out.indent():
                    with out.block("if (!follower.isBusy())"):
                        out.line("pathState = 1;")
                    out.line("break;")
                out.line("case 1: // Path complete, run mechanisms")
                out.extend(phase2.lines)
                with out.indent():
                    out.line("pathState = 2;")
                    out.line("break;")
                out.line("case 2: // Autonomous complete")
                with out.indent():
                    out.line("break;")
            out.blank()
            out.line('telemetry.addData("Path State", pathState);')
            out.line('telemetry.addData("X", follower.getPose().getX());')
            out.line('telemetry.addData("Y", follower.getPose().getY());')
            out.line('telemetry.addData("Heading (deg)", Math.toDegrees(follower.getPose().getHeading()));')
            out.line("telemetry.update();")
    return file_header(codegen["package"], out.imports | phase2.imports) + out.lines
