"""Shared fixtures for the autoflow test suite."""

import pytest

from autoflow.devices import Drivetrain, Motor, Servo, default_registry
from autoflow.graph import ProgramGraph
from autoflow.nodes import (
    Custom, Forward, If, Loop, MoveToPosition, Parallel, ReadIMU, RunMotor,
    SecondaryAction, SetServo, TurnLeft, Wait, action_node, end_node,
)


@pytest.fixture
def forward_graph():
    """start -> forward(24) -> end"""
    g = ProgramGraph()
    g.add_node(action_node("fwd", Forward(distance=24)))
    g.add_node(end_node())
    g.add_edge("start", "fwd")
    g.add_edge("fwd", "end")
    return g


@pytest.fixture
def rich_graph():
    """Straight-line motion, mechanisms, an If, a Loop and a Parallel."""
    g = ProgramGraph()
    nodes = [
        action_node("move", MoveToPosition(target_x=96, target_y=48, target_heading=90,
                                           secondary=SecondaryAction(kind="servo", servo_name="claw",
                                                                     servo_position=1.0))),
        action_node("grab", SetServo(servo_name="claw", position=0.2)),
        action_node("check", If(condition="gamepad1.a")),
        action_node("left", TurnLeft(angle=90)),
        action_node("pause", Wait(duration=0.5)),
        action_node("repeat", Loop(loop_count=3)),
        action_node("spin", RunMotor(motor_name="intake", power=0.8)),
        action_node("both", Parallel()),
        action_node("lift", SetServo(servo_name="wrist", position=0.7)),
        action_node("drive", Forward(distance=12)),
        action_node("imu", ReadIMU()),
        action_node("extra", Custom(custom_code='telemetry.addData("intake", intake.getPower());')),
        end_node(),
    ]
    for n in nodes:
        g.add_node(n)
    g.add_edge("start", "move")
    g.add_edge("move", "grab")
    g.add_edge("grab", "check")
    g.add_edge("check", "left", "true")
    g.add_edge("check", "pause", "false")
    g.add_edge("check", "repeat")
    g.add_edge("repeat", "spin", "loop")
    g.add_edge("repeat", "both", "next")
    g.add_edge("both", "lift", "action1")
    g.add_edge("both", "drive", "action2")
    g.add_edge("both", "imu", "next")
    g.add_edge("imu", "extra")
    g.add_edge("extra", "end")
    return g


@pytest.fixture
def registry():
    reg = default_registry(Drivetrain(reversed=frozenset({"frontLeft", "backLeft"})))
    reg.motors[0] = Motor("intake", 0, enabled=True)
    reg.servos[0] = Servo("claw", 0, enabled=True)
    reg.servos[1] = Servo("wrist", 1, enabled=True)
    return reg
