"""
Tests for the code generation backends.

These tests validate:
- every backend produces one well-formed class for the same graph
- turn direction agrees across backends
- device declarations follow what the graph references
- control flow lowering (if, loop, parallel, cycles, fan-out)
"""

import logging
import re

import pytest

from autoflow.codegen import (
    BACKENDS, build_export_lines, generate_code, output_filename, resolve_style,
)
from autoflow.codegen.lowering import StatementEmitter
from autoflow.codegen.source import class_name, fmt, java_string
from autoflow.devices import Drivetrain, Motor, default_registry
from autoflow.errors import NoRouteError
from autoflow.graph import ProgramGraph
from autoflow.nodes import (
    Custom, EveryNode, Forward, If, Loop, Parallel, RunMotor, SetServo,
    StrafeRight, TurnLeft, Wait, action_node, end_node,
)


def _chain(*actions):
    g = ProgramGraph()
    prev = "start"
    for i, action in enumerate(actions):
        g.add_node(action_node(f"n{i}", action))
        g.add_edge(prev, f"n{i}")
        prev = f"n{i}"
    g.add_node(end_node())
    g.add_edge(prev, "end")
    return g


def _balanced(source):
    depth = 0
    for ch in source:
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth < 0:
                return False
    return depth == 0


class TestAllBackends:
    """Structural checks shared by every backend."""

    @pytest.mark.parametrize("style", list(BACKENDS))
    def test_one_balanced_class(self, style, rich_graph, registry):
        source = generate_code(style, rich_graph, registry, project_name="Red Left")
        assert len(re.findall(r"^public class \w+", source, re.MULTILINE)) == 1
        assert _balanced(source)
        assert source.startswith("package org.firstinspires.ftc.teamcode;")
        assert f"public class {output_filename(style, 'Red Left')[:-5]} " in source

    @pytest.mark.parametrize("style", list(BACKENDS))
    def test_no_route(self, style):
        g = ProgramGraph()
        g.add_node(action_node("orphan", Forward()))
        with pytest.raises(NoRouteError):
            generate_code(style, g)

    def test_unknown_style(self, forward_graph):
        with pytest.raises(ValueError):
            generate_code("blocks", forward_graph)

    def test_aliases(self):
        assert resolve_style("RR") == "roadrunner"
        assert resolve_style("pedro") == "pedropathing"
        assert resolve_style("Simple") == "simple"

    def test_output_filename(self):
        assert output_filename("rr", "Red Left") == "RedLeftRR.java"
        assert output_filename("encoder") == "AutoEncoder.java"
        assert output_filename("pedro", "2024 auto") == "Auto2024autoPedro.java"

    def test_build_export_lines_is_list(self, forward_graph):
        lines = build_export_lines("simple", forward_graph)
        assert isinstance(lines, list)
        assert "package org.firstinspires.ftc.teamcode;" == lines[0]

    @pytest.mark.parametrize("style", list(BACKENDS))
    def test_imu_initialized_when_read(self, style, rich_graph, registry):
        source = generate_code(style, rich_graph, registry)
        assert 'imu = hardwareMap.get(IMU.class, "imu");' in source
        assert "import com.qualcomm.hardware.rev.RevHubOrientationOnRobot;" in source


class TestTurnDirection:
    """turnLeft must rotate counter-clockwise in every backend."""

    def test_simple(self):
        source = generate_code("simple", _chain(TurnLeft(angle=90)))
        assert "frontLeft.setPower(-0.5);" in source
        assert "frontRight.setPower(0.5);" in source
        assert "sleep(800);" in source

    def test_encoder(self):
        source = generate_code("encoder", _chain(TurnLeft(angle=90)))
        assert "encoderDrive(TURN_SPEED, -9.4248, 9.4248, -9.4248, 9.4248, TIMEOUT_S);" in source

    def test_roadrunner(self):
        source = generate_code("roadrunner", _chain(TurnLeft(angle=90)))
        assert ".turn(Math.toRadians(-90))" in source

    def test_pedro(self):
        source = generate_code("pedropathing", _chain(TurnLeft(angle=90)))
        assert "Math.toRadians(-90)" in source


class TestSimple:
    """Tests for the open-loop backend."""

    def test_forward(self, forward_graph):
        source = generate_code("simple", forward_graph)
        assert "// Move forward 24 inches" in source
        assert source.count("setPower(0.5);") == 4
        assert "sleep(1000);" in source
        assert "// Estimated total time: 1.00 s" in source
        assert "waitForStart();" in source

    def test_secondary_before_motion(self, rich_graph, registry):
        source = generate_code("simple", rich_graph, registry)
        assert source.index("claw.setPosition(1);") < source.index("frontLeft.setPower(")

    def test_control_flow(self, rich_graph, registry):
        source = generate_code("simple", rich_graph, registry)
        assert "if (gamepad1.a) {" in source
        assert "} else {" in source
        assert "for (int loopIndex = 0; loopIndex < 3; loopIndex++) {" in source
        assert "intake.setPower(0.8);" in source
        assert "wrist.setPosition(0.7);" in source
        assert 'telemetry.addData("intake", intake.getPower());' in source
        assert "frontLeft.setDirection(DcMotor.Direction.REVERSE);" in source
        assert "frontRight.setDirection" not in source

    def test_strafe_skipped_on_differential(self):
        registry = default_registry(Drivetrain(kind="differential"))
        source = generate_code("simple", _chain(StrafeRight(distance=10)), registry)
        assert "Strafe skipped" in source

    def test_servo_position_clamped(self, caplog):
        with caplog.at_level(logging.WARNING):
            source = generate_code("simple", _chain(SetServo(servo_name="claw", position=1.5)))
        assert "claw.setPosition(1);" in source
        assert "clamped" in caplog.text

    def test_nested_loops(self):
        g = ProgramGraph()
        g.add_node(action_node("outer", Loop(loop_count=2)))
        g.add_node(action_node("inner", Loop(loop_count=3)))
        g.add_node(action_node("w", Wait(duration=0.1)))
        g.add_edge("start", "outer")
        g.add_edge("outer", "inner", "loop")
        g.add_edge("inner", "w", "loop")
        source = generate_code("simple", g)
        assert "for (int loopIndex = 0; loopIndex < 2; loopIndex++) {" in source
        assert "for (int loopIndex1 = 0; loopIndex1 < 3; loopIndex1++) {" in source
        assert "sleep(100);" in source

    def test_everynode(self):
        source = generate_code("simple", _chain(
            EveryNode(collection_type="range", start_range=2, end_range=5),
            EveryNode(iterator_variable="item", collection_type="array", collection_name="targets"),
        ))
        assert "for (int i = 2; i < 5; i++) {" in source
        assert "for (Object item : targets) {" in source

    def test_shared_branch_target_is_not_a_cycle(self):
        g = ProgramGraph()
        g.add_node(action_node("cond", If(condition="x > 0")))
        g.add_node(action_node("w", Wait(duration=0.5)))
        g.add_edge("start", "cond")
        g.add_edge("cond", "w", "true")
        g.add_edge("cond", "w", "false")
        source = generate_code("simple", g)
        assert source.count("sleep(500);") == 2
        assert "Cycle detected" not in source

    def test_cycle_comment(self, caplog):
        data = {
            "nodes": [
                {"id": "start", "type": "startNode", "data": {}},
                {"id": "a", "type": "blockNode", "data": {"type": "wait", "duration": 1}},
                {"id": "b", "type": "blockNode", "data": {"type": "wait", "duration": 2}},
            ],
            "edges": [
                {"id": "e1", "source": "start", "target": "a"},
                {"id": "e2", "source": "a", "target": "b"},
                {"id": "e3", "source": "b", "target": "a"},
            ],
        }
        g = ProgramGraph.from_dict(data, validate=False)
        with caplog.at_level(logging.WARNING):
            source = generate_code("simple", g)
        assert "// Cycle detected at a, skipping" in source
        assert source.count("sleep(1000);") == 1
        assert "Cycle detected" in caplog.text

    def test_fan_out_follows_first_edge(self, caplog):
        g = _chain(Wait(duration=1))
        g.add_node(action_node("other", Wait(duration=3)))
        g.add_edge("n0", "other")
        with caplog.at_level(logging.WARNING):
            source = generate_code("simple", g)
        assert "sleep(3000);" not in source
        assert "continuation edges" in caplog.text


class TestEncoder:
    """Tests for the encoder backend."""

    def test_forward(self, forward_graph):
        source = generate_code("encoder", forward_graph)
        assert "encoderDrive(DRIVE_SPEED, 24, 24, 24, 24, TIMEOUT_S);" in source
        assert "static final double COUNTS_PER_MOTOR_REV = 537.7;" in source
        assert "frontLeft.setMode(DcMotor.RunMode.STOP_AND_RESET_ENCODER);" in source
        assert "public void encoderDrive(double speed" in source
        assert "frontLeft.isBusy() || frontRight.isBusy()" in source

    def test_strafe_mix(self):
        source = generate_code("encoder", _chain(StrafeRight(distance=10)))
        assert "encoderDrive(DRIVE_SPEED, 10, -10, -10, 10, TIMEOUT_S);" in source


class TestParallel:
    """Tests for Parallel lowering in the statement backends."""

    DRIVE_LINES = {
        "simple": "frontLeft.setPower(0.5);",
        "encoder": "encoderDrive(DRIVE_SPEED, 48",
        "roadrunner": ".forward(48)",
    }

    @staticmethod
    def _drive_then_servo():
        g = ProgramGraph()
        g.add_node(action_node("par", Parallel()))
        g.add_node(action_node("go", Forward(distance=48)))
        g.add_node(action_node("grip", SetServo(servo_name="claw", position=1.0)))
        g.add_node(end_node())
        g.add_edge("start", "par")
        g.add_edge("par", "go", "action1")
        g.add_edge("par", "grip", "action2")
        g.add_edge("par", "end", "next")
        return g

    @pytest.mark.parametrize("style", ["simple", "encoder", "roadrunner"])
    def test_mechanism_starts_before_drive(self, style):
        """A servo on a later handle is still written before the blocking drive."""
        source = generate_code(style, self._drive_then_servo())
        assert source.index("claw.setPosition(1);") < source.index(self.DRIVE_LINES[style])

    def test_mechanisms_keep_handle_order(self):
        g = ProgramGraph()
        g.add_node(action_node("par", Parallel()))
        g.add_node(action_node("a", SetServo(servo_name="claw", position=0.1)))
        g.add_node(action_node("b", Forward(distance=12)))
        g.add_node(action_node("c", SetServo(servo_name="wrist", position=0.9)))
        g.add_edge("start", "par")
        g.add_edge("par", "a", "action1")
        g.add_edge("par", "b", "action2")
        g.add_edge("par", "c", "action3")
        source = generate_code("simple", g)
        assert (source.index("claw.setPosition(0.1);") < source.index("wrist.setPosition(0.9);")
                < source.index("frontLeft.setPower(0.5);"))


class TestRoadRunner:
    """Tests for the trajectory sequence backend."""

    def test_forward(self, forward_graph):
        source = generate_code("roadrunner", forward_graph)
        assert "Pose2d startPose = new Pose2d(72, 72, Math.toRadians(0));" in source
        assert "TrajectorySequence trajSeq = drive.trajectorySequenceBuilder(startPose)" in source
        assert ".forward(24)" in source
        assert "drive.followTrajectorySequence(trajSeq);" in source
        assert "if (isStopRequested()) {" in source

    def test_markers(self, rich_graph, registry):
        source = generate_code("roadrunner", rich_graph, registry)
        assert ".lineToLinearHeading(new Pose2d(96, 48, Math.toRadians(90)))" in source
        assert ".addTemporalMarker(() -> {" in source
        assert "claw.setPosition(0.2);" in source
        assert "if (gamepad1.a) {" in source
        # motion inside a marker runs as its own sequence
        assert "drive.followTrajectorySequence(drive.trajectorySequenceBuilder(drive.getPoseEstimate())" in source
        assert ".forward(12)" in source

    def test_secondary_marker_after_motion(self, rich_graph, registry):
        source = generate_code("roadrunner", rich_graph, registry)
        assert source.index(".lineToLinearHeading(") < source.index("claw.setPosition(1);")

    def test_wait(self):
        source = generate_code("roadrunner", _chain(Wait(duration=1.5)))
        assert ".waitSeconds(1.5)" in source

    def test_empty_sequence(self):
        g = ProgramGraph()
        g.add_node(end_node())
        g.add_edge("start", "end")
        source = generate_code("roadrunner", g)
        assert "// No trajectory commands" in source
        assert "followTrajectorySequence" not in source


class TestPedro:
    """Tests for the PedroPathing backend."""

    def test_path_chain(self, forward_graph):
        source = generate_code("pedropathing", forward_graph)
        assert ("new BezierLine(new Pose(72, 72, Math.toRadians(0)), "
                "new Pose(96, 72, Math.toRadians(0)))") in source
        assert "follower.followPath(pathChain);" in source
        assert "case 1: // Path complete, run mechanisms" in source
        assert "extends OpMode" in source

    def test_mechanisms_in_second_phase(self, rich_graph, registry):
        source = generate_code("pedropathing", rich_graph, registry)
        case1 = source.index("case 1:")
        case2 = source.index("case 2:")
        assert case1 < source.index("claw.setPosition(0.2);") < case2
        assert "Thread.sleep(500);" in source

    def test_fan_out_drives_first_edge_only(self):
        """The path chain holds the same motion the other backends lower."""
        g = ProgramGraph()
        g.add_node(action_node("a", Forward(distance=24)))
        g.add_node(action_node("b", Forward(distance=10)))
        g.add_node(action_node("c", StrafeRight(distance=10)))
        g.add_edge("start", "a")
        g.add_edge("a", "b")
        g.add_edge("a", "c")
        source = generate_code("pedropathing", g)
        assert source.count("new BezierLine(") == 2
        assert "new Pose(106, 72, Math.toRadians(0))" in source
        assert "(2 segments)" in source
        assert "encoderDrive(DRIVE_SPEED, 10, -10, -10, 10" not in generate_code("encoder", g)

    def test_branch_motion_not_in_chain(self, rich_graph, registry):
        source = generate_code("pedropathing", rich_graph, registry)
        assert source.count("new BezierLine(") == 1
        assert "// Movement inside a branch is not part of the path chain" in source

    def test_no_motion_no_chain(self):
        source = generate_code("pedropathing", _chain(SetServo(servo_name="claw")))
        assert "pathBuilder" not in source
        assert "followPath" not in source


class TestDevices:
    """Tests for device declarations in generated code."""

    def test_missing_device_degrades(self, caplog):
        with caplog.at_level(logging.WARNING):
            source = generate_code("simple", _chain(SetServo(servo_name="ghost")))
        assert "private Servo ghost;" in source
        assert 'ghost = hardwareMap.get(Servo.class, "ghost");' in source
        assert "ghost" in caplog.text

    def test_custom_code_pulls_in_devices(self):
        registry = default_registry()
        registry.motors[1] = Motor("arm", 1, enabled=True, reversed=True)
        source = generate_code("simple", _chain(Custom(custom_code="arm.setPower(1);")), registry)
        assert "private DcMotor arm;" in source
        assert "arm.setDirection(DcMotor.Direction.REVERSE);" in source

    def test_same_java_name_declared_once(self):
        registry = default_registry()
        registry.motors[1] = Motor("arm motor", 1, enabled=True)
        registry.motors[2] = Motor("arm_motor", 2, enabled=True)
        g = _chain(RunMotor(motor_name="arm motor", power=0.4), RunMotor(motor_name="arm_motor", power=0.6))
        for style in BACKENDS:
            source = generate_code(style, g, registry)
            assert source.count("private DcMotor arm_motor;") == 1
            assert source.count("arm_motor = hardwareMap.get(") == 1

    def test_device_named_like_drive_handle(self):
        """A motor called drive must not collide with the RoadRunner drive."""
        registry = default_registry()
        registry.motors[1] = Motor("drive", 1, enabled=True)
        g = _chain(Forward(), RunMotor(motor_name="drive", power=0.3))
        source = generate_code("roadrunner", g, registry)
        assert "SampleMecanumDrive drive = new SampleMecanumDrive(hardwareMap);" in source
        assert "private DcMotor driveDevice;" in source
        assert 'driveDevice = hardwareMap.get(DcMotor.class, "drive");' in source
        assert "driveDevice.setPower(0.3);" in source
        assert "drive.setZeroPowerBehavior" not in source

    def test_unreferenced_devices_not_declared(self, forward_graph, registry):
        source = generate_code("simple", forward_graph, registry)
        assert "intake" not in source
        assert "IMU" not in source


class TestExhaustiveness:
    """A backend must handle every action type."""

    def test_missing_handler_rejected(self):
        with pytest.raises(TypeError, match="lower_"):
            class Partial(StatementEmitter):
                def lower_forward(self, node, action):
                    pass

    def test_abstract_subclass_allowed(self):
        class Base(StatementEmitter):
            abstract = True

        assert Base.abstract


class TestSourceHelpers:
    """Tests for literal formatting."""

    @pytest.mark.parametrize("value, text", [
        (24, "24"), (0.5, "0.5"), (-90, "-90"), (40 / 3, "13.3333"), (-0.00001, "0"), (0, "0"),
    ])
    def test_fmt(self, value, text):
        assert fmt(value) == text

    def test_java_string(self):
        assert java_string('say "hi"') == '"say \\"hi\\""'

    def test_class_name(self):
        assert class_name("Blue-Right!", "Simple") == "BlueRightSimple"
        assert class_name("", "RR") == "AutoRR"
