# autoflow/codegen/encoder.py
"""
Closed-loop, encoder position LinearOpMode export.

Every motion becomes one encoderDrive(speed, fl, fr, bl, br, timeout) call
with per-wheel inches from the drivetrain kinematics. The encoderDrive
method itself is appended to the class.
"""
from __future__ import annotations

from typing import List, Optional

from ..config import default_config, encoder_flat, initial_pose_flat, physics_flat
from ..devices import DeviceRegistry, Drivetrain, default_registry, java_identifier
from ..kinematics import EPS, drive_time_ms, plan_motion, turn_time_ms, wheel_deltas
from ..waypoints import as_pose
from .lowering import LinearOpModeEmitter
from .simple import linear_opmode_lines
from .source import SourceBuilder, fmt

WHEEL_LABELS = ("frontLeft", "frontRight", "backLeft", "backRight")


class EncoderEmitter(LinearOpModeEmitter):
    def __init__(self, out, pose, drivetrain: Optional[Drivetrain] = None, physics: Optional[dict] = None):
        super().__init__(out, pose, drivetrain)
        physics = physics or physics_flat(default_config())
        self.track_width = float(physics["track_width_in"])
        self.speed_ips = float(physics["drive_speed_ips"])
        self.ms_per_90 = float(physics["turn_ms_per_90"])

    def move(self, node, action) -> None:
        holonomic = self.drivetrain.holonomic
        motions, self.pose = plan_motion(self.pose, action, holonomic)
        if not motions:
            self.out.comment("Already there, nothing to do")
        for motion in motions:
            if not holonomic and abs(motion.forward) < EPS and abs(motion.turn) < EPS:
                self.out.comment("Strafe skipped: a differential drive cannot move sideways")
                continue
            deltas = wheel_deltas(motion, self.track_width, holonomic)
            speed = "TURN_SPEED" if motion.is_turn else "DRIVE_SPEED"
            args = ", ".join(fmt(d) for d in deltas)
            self.out.line(f"encoderDrive({speed}, {args}, TIMEOUT_S);")
            if motion.is_turn:
                self.elapsed_ms += turn_time_ms(motion.turn, self.ms_per_90)
            else:
                self.elapsed_ms += drive_time_ms(motion.distance, self.speed_ips)


def _constants(physics: dict, enc: dict):
    def write(out: SourceBuilder) -> None:
        out.use("ElapsedTime")
        out.comment("Encoder constants (goBILDA 5202/5203 series by default)")
        out.line(f"static final double COUNTS_PER_MOTOR_REV = {fmt(physics['counts_per_motor_rev'])};")
        out.line(f"static final double DRIVE_GEAR_REDUCTION = {fmt(physics['gear_reduction'])};")
        out.line(f"static final double WHEEL_DIAMETER_INCHES = {fmt(physics['wheel_diameter_in'])};")
        out.line("static final double COUNTS_PER_INCH = (COUNTS_PER_MOTOR_REV * DRIVE_GEAR_REDUCTION) /")
        out.line("        (WHEEL_DIAMETER_INCHES * Math.PI);")
        out.line(f"static final double DRIVE_SPEED = {fmt(enc['drive_speed'])};")
        out.line(f"static final double TURN_SPEED = {fmt(enc['turn_speed'])};")
        out.line(f"static final double TIMEOUT_S = {fmt(enc['timeout_s'])};")
        out.line(f"static final long SETTLE_MS = {int(enc['settle_ms'])};")
        out.blank()
        out.line("private final ElapsedTime runtime = new ElapsedTime();")
        out.blank()
    return write


def _encoder_drive(drivetrain: Drivetrain):
    wheels = [(java_identifier(name), label) for name, label in zip(drivetrain.motors, WHEEL_LABELS)]

    def write(out: SourceBuilder) -> None:
        out.line("public void encoderDrive(double speed, double frontLeftInches, double frontRightInches,")
        out.line("                         double backLeftInches, double backRightInches, double timeoutS) {")
        with out.indent():
            with out.block("if (!opModeIsActive())"):
                out.line("return;")
            out.blank()
            for var, label in wheels:
                target = f"new{label[0].upper()}{label[1:]}Target"
                out.line(f"int {target} = {var}.getCurrentPosition() + (int) ({label}Inches * COUNTS_PER_INCH);")
            for var, label in wheels:
                out.line(f"{var}.setTargetPosition(new{label[0].upper()}{label[1:]}Target);")
            for var, _ in wheels:
                out.line(f"{var}.setMode(DcMotor.RunMode.RUN_TO_POSITION);")
            out.blank()
            out.line("runtime.reset();")
            for var, _ in wheels:
                out.line(f"{var}.setPower(Math.abs(speed));")
            out.blank()
            busy = " || ".join(f"{var}.isBusy()" for var, _ in wheels)
            out.line("while (opModeIsActive() && runtime.seconds() < timeoutS")
            out.line(f"        && ({busy})) {{")
            with out.indent():
                targets = ", ".join(f"new{label[0].upper()}{label[1:]}Target" for _, label in wheels)
                current = ", ".join(f"{var}.getCurrentPosition()" for var, _ in wheels)
                out.line(f'telemetry.addData("Target", "%7d :%7d :%7d :%7d", {targets});')
                out.line(f'telemetry.addData("Current", "%7d :%7d :%7d :%7d", {current});')
                out.line("telemetry.update();")
            out.line("}")
            out.blank()
            for var, _ in wheels:
                out.line(f"{var}.setPower(0);")
            for var, _ in wheels:
                out.line(f"{var}.setMode(DcMotor.RunMode.RUN_USING_ENCODER);")
            out.line("sleep(SETTLE_MS);")
        out.line("}")
    return write


def build_export_lines(graph, registry: Optional[DeviceRegistry] = None, initial_pose=None,
                       cfg: Optional[dict] = None, project_name: str = "Auto") -> List[str]:
    cfg = cfg or default_config()
    registry = registry or default_registry()
    physics = physics_flat(cfg)
    pose = as_pose(initial_pose if initial_pose is not None else initial_pose_flat(cfg))
    emitter = EncoderEmitter(SourceBuilder(level=3), pose, registry.drivetrain, physics)
    return linear_opmode_lines(
        graph, registry, cfg, project_name, "Encoder", "Encoder", emitter,
        fields=_constants(physics, encoder_flat(cfg)),
        helpers=_encoder_drive(registry.drivetrain),
        encoders=True,
    )
