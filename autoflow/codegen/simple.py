# autoflow/codegen/simple.py
"""
Open-loop, time based LinearOpMode export.

Movement sets drivetrain powers, sleeps for the time the configured robot
speed needs (24 in/s and 800 ms per 90 degrees by default), then stops.
"""
from __future__ import annotations

from typing import Callable, List, Optional

from ..config import codegen_flat, default_config, initial_pose_flat, physics_flat
from ..devices import DeviceRegistry, Drivetrain, collect_references, default_registry, java_identifier
from ..kinematics import EPS, Motion, drive_time_ms, plan_motion, turn_time_ms, wheel_powers
from ..nodes import DEFAULT_POWER
from ..waypoints import as_pose
from .lowering import LinearOpModeEmitter, Lowerer
from .source import SourceBuilder, class_name, declare_devices, file_header, fmt, init_devices, java_string


class SimpleEmitter(LinearOpModeEmitter):
    def __init__(self, out, pose, drivetrain: Optional[Drivetrain] = None, physics: Optional[dict] = None):
        super().__init__(out, pose, drivetrain)
        physics = physics or physics_flat(default_config())
        self.speed_ips = float(physics["drive_speed_ips"])
        self.ms_per_90 = float(physics["turn_ms_per_90"])

    def move(self, node, action) -> None:
        motions, self.pose = plan_motion(self.pose, action, self.drivetrain.holonomic)
        if not motions:
            self.out.comment("Already there, nothing to do")
        power = getattr(action, "power", DEFAULT_POWER)
        for motion in motions:
            self._run(motion, power)

    def _run(self, motion: Motion, power: float) -> None:
        holonomic = self.drivetrain.holonomic
        if not holonomic and abs(motion.forward) < EPS and abs(motion.turn) < EPS:
            self.out.comment("Strafe skipped: a differential drive cannot move sideways")
            return
        if motion.is_turn:
            ms = turn_time_ms(motion.turn, self.ms_per_90)
        else:
            ms = drive_time_ms(motion.distance if holonomic else motion.forward, self.speed_ips)
        powers = wheel_powers(motion, power, holonomic)
        for name, p in zip(self.drivetrain.motors, powers):
            self.out.line(f"{java_identifier(name)}.setPower({fmt(p)});")
        self.sleep(ms)
        for name in self.drivetrain.motors:
            self.out.line(f"{java_identifier(name)}.setPower(0);")
        self.elapsed_ms += ms


def init_drive_motors(out: SourceBuilder, drivetrain: Drivetrain, encoders: bool = False) -> None:
    out.comment("Initialize drivetrain motors")
    for name in drivetrain.motors:
        var = java_identifier(name)
        out.line(f"{var} = hardwareMap.get(DcMotor.class, {java_string(name)});")
        if name in drivetrain.reversed:
            out.line(f"{var}.setDirection(DcMotor.Direction.REVERSE);")
        out.line(f"{var}.setZeroPowerBehavior(DcMotor.ZeroPowerBehavior.BRAKE);")
        if encoders:
            out.line(f"{var}.setMode(DcMotor.RunMode.STOP_AND_RESET_ENCODER);")
            out.line(f"{var}.setMode(DcMotor.RunMode.RUN_USING_ENCODER);")


def linear_opmode_lines(graph, registry: DeviceRegistry, cfg: dict, project_name: str,
                        suffix: str, label: str, emitter: LinearOpModeEmitter,
                        fields: Optional[Callable[[SourceBuilder], None]] = None,
                        helpers: Optional[Callable[[SourceBuilder], None]] = None,
                        encoders: bool = False) -> List[str]:
    """
    Lower the graph through emitter and wrap it in a LinearOpMode class:
    fields, hardware init, waitForStart, then the lowered body.
    """
    Lowerer(graph).run(emitter)
    body = emitter.out
    codegen = codegen_flat(cfg)
    drivetrain = registry.drivetrain
    wheels = {java_identifier(name) for name in drivetrain.motors}
    refs = [r for r in collect_references(graph, registry) if r.var not in wheels]

    out = SourceBuilder()
    out.use("Autonomous", "LinearOpMode", "DcMotor")
    out.line(f"@Autonomous(name = {java_string(f'{project_name} ({label})')}, "
             f"group = {java_string(codegen['group'])})")
    with out.block(f"public class {class_name(project_name, suffix)} extends LinearOpMode"):
        if fields is not None:
            fields(out)
        out.comment("Drivetrain motors")
        for name in drivetrain.motors:
            out.line(f"private DcMotor {java_identifier(name)};")
        out.blank()
        declare_devices(out, refs)
        out.line("@Override")
        with out.block("public void runOpMode()"):
            init_drive_motors(out, drivetrain, encoders)
            if refs:
                out.blank()
                out.comment("Initialize mechanisms and sensors")
                init_devices(out, refs)
            out.blank()
            out.line('telemetry.addData("Status", "Initialized");')
            out.line("telemetry.update();")
            out.blank()
            out.line("waitForStart();")
            out.blank()
            with out.block("if (opModeIsActive())"):
                out.extend(body.lines)
                out.blank()
                out.comment(f"Estimated total time: {emitter.elapsed_ms / 1000.0:.2f} s")
        if helpers is not None:
            out.blank()
            helpers(out)
    return file_header(codegen["package"], out.imports | body.imports) + out.lines


def build_export_lines(graph, registry: Optional[DeviceRegistry] = None, initial_pose=None,
                       cfg: Optional[dict] = None, project_name: str = "Auto") -> List[str]:
    cfg = cfg or default_config()
    registry = registry or default_registry()
    pose = as_pose(initial_pose if initial_pose is not None else initial_pose_flat(cfg))
    emitter = SimpleEmitter(SourceBuilder(level=3), pose, registry.drivetrain, physics_flat(cfg))
    return linear_opmode_lines(graph, registry, cfg, project_name, "Simple", "Simple", emitter)
