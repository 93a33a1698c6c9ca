# autoflow/nodes.py
"""
Node, edge and action model for autonomous routine graphs.

Every block the authoring surface offers is one frozen dataclass below, each
carrying only its own parameters. The classes register themselves in
ACTION_TYPES under their wire discriminant ("forward", "setServo", ...), so
parsing, validation and every code generation backend share one table.

Wire format matches the editor's saved workflow data:

    {"id": "forward-1", "type": "blockNode",
     "data": {"type": "forward", "distance": 24, "power": 0.5}}
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass, field, fields, replace
from typing import Any, ClassVar, Dict, Optional, Tuple, Type

# Node kinds
START = "start"
END = "end"
ACTION = "action"

# Action categories (the editor's block palette tabs)
MOVEMENT = "movement"
MECHANISMS = "mechanisms"
SENSORS = "sensors"
CONTROL = "control"

# Source handles
HANDLE_TRUE = "true"
HANDLE_FALSE = "false"
HANDLE_LOOP = "loop"
HANDLE_NEXT = "next"
PARALLEL_ACTION_HANDLES = ("action1", "action2", "action3")

# Missing-parameter defaults
DEFAULT_DISTANCE_IN = 24.0
DEFAULT_ANGLE_DEG = 90.0
DEFAULT_DURATION_S = 1.0
DEFAULT_POWER = 0.5
DEFAULT_SERVO_POSITION = 0.5

_NODE_TYPE_TO_KIND = {"startNode": START, "endNode": END, "blockNode": ACTION}
_KIND_TO_NODE_TYPE = {v: k for k, v in _NODE_TYPE_TO_KIND.items()}

ACTION_TYPES: Dict[str, Type["Action"]] = {}


def _snake(name: str) -> str:
    return re.sub(r"(?<=[a-z0-9])([A-Z])", r"_\1", name).lower()


# ---------------- parameter parsing ----------------

def _float(raw, default):
    if raw is None or isinstance(raw, bool):
        return default
    try:
        val = float(raw)
    except (TypeError, ValueError):
        return default
    return val if math.isfinite(val) else default

def _int(raw, default):
    val = _float(raw, None)
    return default if val is None else int(val)

def _text(raw, default):
    if raw is None:
        return default
    raw = str(raw)
    return raw if raw.strip() else default

def _name(raw, default):
    text = _text(raw, default)
    return text.strip() if isinstance(text, str) else text

def _points(raw, default):
    if not isinstance(raw, (list, tuple)):
        return default
    out = []
    for p in raw:
        if isinstance(p, dict):
            x, y = _float(p.get("x"), None), _float(p.get("y"), None)
        elif isinstance(p, (list, tuple)) and len(p) >= 2:
            x, y = _float(p[0], None), _float(p[1], None)
        else:
            continue
        if x is not None and y is not None:
            out.append((x, y))
    return tuple(out)


def _param(key: str, default: Any = None, parse=_float, alias: Optional[str] = None):
    return field(default=default, metadata={"key": key, "parse": parse, "alias": alias})


@dataclass(frozen=True)
class SecondaryAction:
    """A mechanism action that starts together with a movement ("combined action")."""
    kind: str = "servo"  # servo | motor | sensor
    servo_name: Optional[str] = None
    servo_position: float = DEFAULT_SERVO_POSITION
    motor_name: Optional[str] = None
    motor_power: float = DEFAULT_POWER

    @classmethod
    def from_data(cls, data: dict) -> Optional["SecondaryAction"]:
        if not data.get("enableSecondaryAction"):
            return None
        return cls(
            kind=_text(data.get("secondaryActionType"), "servo"),
            servo_name=_name(data.get("secondaryServoName"), None),
            servo_position=_float(data.get("secondaryServoPosition"), DEFAULT_SERVO_POSITION),
            motor_name=_name(data.get("secondaryMotorName"), None),
            motor_power=_float(data.get("secondaryMotorPower"), DEFAULT_POWER),
        )

    def to_data(self) -> dict:
        data = {"enableSecondaryAction": True, "secondaryActionType": self.kind,
                "secondaryServoPosition": self.servo_position,
                "secondaryMotorPower": self.motor_power}
        if self.servo_name:
            data["secondaryServoName"] = self.servo_name
        if self.motor_name:
            data["secondaryMotorName"] = self.motor_name
        return data


def _secondary():
    return field(default=None, metadata={"key": None, "parse": "secondary"})


class Action:
    """Base of the action tagged union; subclasses register by wire type."""

    type: ClassVar[str] = ""
    category: ClassVar[str] = ""
    handler: ClassVar[str] = ""
    pose_simulated: ClassVar[bool] = False

    def __init_subclass__(cls, type_name: str = "", category: str = "",
                          pose_simulated: bool = False, **kwargs):
        super().__init_subclass__(**kwargs)
        if not type_name:
            return
        cls.type = type_name
        cls.category = category
        cls.handler = "lower_" + _snake(type_name)
        cls.pose_simulated = pose_simulated
        ACTION_TYPES[type_name] = cls

    @classmethod
    def from_data(cls, data: dict) -> "Action":
        kwargs = {}
        for f in fields(cls):
            parse = f.metadata.get("parse")
            if parse == "secondary":
                kwargs[f.name] = SecondaryAction.from_data(data)
                continue
            raw = data.get(f.metadata.get("key") or f.name)
            alias = f.metadata.get("alias")
            if raw is None and alias:
                raw = data.get(alias)
            kwargs[f.name] = parse(raw, f.default) if parse else raw
        return cls(**kwargs)

    def to_data(self) -> dict:
        data: Dict[str, Any] = {"type": self.type}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            if f.metadata.get("parse") == "secondary":
                data.update(value.to_data())
            elif isinstance(value, tuple):
                data[f.metadata["key"]] = [{"x": x, "y": y} for x, y in value]
            else:
                data[f.metadata["key"]] = value
        return data

    def with_params(self, **params) -> "Action":
        return replace(self, **params)

    @property
    def secondary_action(self) -> Optional[SecondaryAction]:
        return getattr(self, "secondary", None)


# ---------------- movement ----------------

@dataclass(frozen=True)
class MoveToPosition(Action, type_name="moveToPosition", category=MOVEMENT, pose_simulated=True):
    target_x: Optional[float] = _param("targetX")
    target_y: Optional[float] = _param("targetY")
    target_heading: Optional[float] = _param("targetHeading")
    curve_type: str = _param("curveType", "linear", _text)
    secondary: Optional[SecondaryAction] = _secondary()


@dataclass(frozen=True)
class SplineTo(Action, type_name="splineTo", category=MOVEMENT, pose_simulated=True):
    target_x: Optional[float] = _param("targetX")
    target_y: Optional[float] = _param("targetY")
    target_heading: Optional[float] = _param("targetHeading")
    curve_type: str = _param("curveType", "spline", _text)
    secondary: Optional[SecondaryAction] = _secondary()


@dataclass(frozen=True)
class Forward(Action, type_name="forward", category=MOVEMENT, pose_simulated=True):
    distance: float = _param("distance", DEFAULT_DISTANCE_IN)
    power: float = _param("power", DEFAULT_POWER)
    secondary: Optional[SecondaryAction] = _secondary()


@dataclass(frozen=True)
class Backward(Action, type_name="backward", category=MOVEMENT, pose_simulated=True):
    distance: float = _param("distance", DEFAULT_DISTANCE_IN)
    power: float = _param("power", DEFAULT_POWER)
    secondary: Optional[SecondaryAction] = _secondary()


@dataclass(frozen=True)
class StrafeLeft(Action, type_name="strafeLeft", category=MOVEMENT, pose_simulated=True):
    distance: float = _param("distance", DEFAULT_DISTANCE_IN)
    power: float = _param("power", DEFAULT_POWER)
    secondary: Optional[SecondaryAction] = _secondary()


@dataclass(frozen=True)
class StrafeRight(Action, type_name="strafeRight", category=MOVEMENT, pose_simulated=True):
    distance: float = _param("distance", DEFAULT_DISTANCE_IN)
    power: float = _param("power", DEFAULT_POWER)
    secondary: Optional[SecondaryAction] = _secondary()


@dataclass(frozen=True)
class TurnLeft(Action, type_name="turnLeft", category=MOVEMENT, pose_simulated=True):
    angle: float = _param("angle", DEFAULT_ANGLE_DEG)
    power: float = _param("power", DEFAULT_POWER)
    secondary: Optional[SecondaryAction] = _secondary()


@dataclass(frozen=True)
class TurnRight(Action, type_name="turnRight", category=MOVEMENT, pose_simulated=True):
    angle: float = _param("angle", DEFAULT_ANGLE_DEG)
    power: float = _param("power", DEFAULT_POWER)
    secondary: Optional[SecondaryAction] = _secondary()


@dataclass(frozen=True)
class TurnToHeading(Action, type_name="turnToHeading", category=MOVEMENT, pose_simulated=True):
    target_heading: Optional[float] = _param("targetHeading")
    power: float = _param("power", DEFAULT_POWER)
    secondary: Optional[SecondaryAction] = _secondary()


@dataclass(frozen=True)
class PivotTurn(Action, type_name="pivotTurn", category=MOVEMENT):
    angle: float = _param("angle", DEFAULT_ANGLE_DEG)
    direction: str = _param("direction", "left", _text)
    power: float = _param("power", DEFAULT_POWER)


@dataclass(frozen=True)
class FollowPath(Action, type_name="followPath", category=MOVEMENT):
    points: Tuple[Tuple[float, float], ...] = _param("points", (), _points)


# ---------------- mechanisms ----------------

@dataclass(frozen=True)
class SetServo(Action, type_name="setServo", category=MECHANISMS):
    servo_name: Optional[str] = _param("servoName", None, _name, alias="servo")
    position: float = _param("position", DEFAULT_SERVO_POSITION)


@dataclass(frozen=True)
class ContinuousServo(Action, type_name="continuousServo", category=MECHANISMS):
    servo_name: Optional[str] = _param("servoName", None, _name, alias="servo")
    power: float = _param("power", DEFAULT_POWER)


@dataclass(frozen=True)
class RunMotor(Action, type_name="runMotor", category=MECHANISMS):
    motor_name: Optional[str] = _param("motorName", None, _name)
    power: float = _param("power", DEFAULT_POWER)


@dataclass(frozen=True)
class StopMotor(Action, type_name="stopMotor", category=MECHANISMS):
    motor_name: Optional[str] = _param("motorName", None, _name)


@dataclass(frozen=True)
class SetMotorPower(Action, type_name="setMotorPower", category=MECHANISMS):
    motor_name: Optional[str] = _param("motorName", None, _name)
    power: float = _param("power", DEFAULT_POWER)


# ---------------- sensors ----------------

@dataclass(frozen=True)
class ReadIMU(Action, type_name="readIMU", category=SENSORS):
    sensor_name: Optional[str] = _param("sensorName", None, _name)


@dataclass(frozen=True)
class ReadDistance(Action, type_name="readDistance", category=SENSORS):
    sensor_name: Optional[str] = _param("sensorName", None, _name)


@dataclass(frozen=True)
class ReadColor(Action, type_name="readColor", category=SENSORS):
    sensor_name: Optional[str] = _param("sensorName", None, _name)


@dataclass(frozen=True)
class WaitForSensor(Action, type_name="waitForSensor", category=SENSORS):
    sensor_name: Optional[str] = _param("sensorName", None, _name)
    condition: str = _param("condition", "true", _text)


@dataclass(frozen=True)
class ReadTouch(Action, type_name="readTouch", category=SENSORS):
    sensor_name: Optional[str] = _param("sensorName", None, _name)


# ---------------- control ----------------

@dataclass(frozen=True)
class Wait(Action, type_name="wait", category=CONTROL):
    duration: float = _param("duration", DEFAULT_DURATION_S)


@dataclass(frozen=True)
class WaitUntil(Action, type_name="waitUntil", category=CONTROL):
    condition: str = _param("condition", "true", _text)


@dataclass(frozen=True)
class Loop(Action, type_name="loop", category=CONTROL):
    loop_count: int = _param("loopCount", 1, _int)


@dataclass(frozen=True)
class If(Action, type_name="if", category=CONTROL):
    condition: str = _param("condition", "true", _text)


@dataclass(frozen=True)
class Parallel(Action, type_name="parallel", category=CONTROL):
    pass


@dataclass(frozen=True)
class EveryNode(Action, type_name="everynode", category=CONTROL):
    iterator_variable: str = _param("iteratorVariable", "i", _name)
    collection_type: str = _param("collectionType", "waypoints", _text)
    start_range: int = _param("startRange", 0, _int)
    end_range: int = _param("endRange", 10, _int)
    collection_name: str = _param("collectionName", "items", _name)


@dataclass(frozen=True)
class Custom(Action, type_name="custom", category=CONTROL):
    custom_code: str = _param("customCode", "", _text)


# ---------------- graph elements ----------------

# Single-use handles per branching action type.
RESTRICTED_HANDLES: Dict[str, Tuple[str, ...]] = {
    If.type: (HANDLE_TRUE, HANDLE_FALSE),
    Loop.type: (HANDLE_LOOP, HANDLE_NEXT),
    Parallel.type: PARALLEL_ACTION_HANDLES,
}

# Handles that continue straight-line execution (None = unlabeled).
CONTINUATION_HANDLES: Tuple[Optional[str], ...] = (None, HANDLE_NEXT)


@dataclass
class Node:
    id: str
    kind: str = ACTION
    action: Optional[Action] = None
    position: Tuple[float, float] = (0.0, 0.0)
    label: str = ""

    @property
    def type(self) -> str:
        return self.action.type if self.action is not None else self.kind

    @property
    def category(self) -> Optional[str]:
        return self.action.category if self.action is not None else None

    def to_dict(self) -> dict:
        data = self.action.to_data() if self.action is not None else {"type": self.kind}
        if self.label:
            data["label"] = self.label
        return {
            "id": self.id,
            "type": _KIND_TO_NODE_TYPE[self.kind],
            "position": {"x": self.position[0], "y": self.position[1]},
            "data": data,
        }


@dataclass(frozen=True)
class Edge:
    id: str
    source: str
    target: str
    handle: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"id": self.id, "source": self.source, "target": self.target}
        if self.handle:
            data["sourceHandle"] = self.handle
        return data


def start_node(node_id: str = "start") -> Node:
    return Node(node_id, START, label="Start")

def end_node(node_id: str = "end") -> Node:
    return Node(node_id, END, label="End")

def action_node(node_id: str, action: Action, position=(0.0, 0.0)) -> Node:
    return Node(node_id, ACTION, action, tuple(position))

def action_from_data(data: dict) -> Action:
    """Build the action variant named by data["type"]."""
    type_name = data.get("type")
    cls = ACTION_TYPES.get(type_name)
    if cls is None:
        raise ValueError(f"Unknown action type: {type_name!r}")
    return cls.from_data(data)

def node_from_dict(raw: dict) -> Node:
    data = raw.get("data") or {}
    kind = _NODE_TYPE_TO_KIND.get(raw.get("type"))
    if kind is None:
        kind = data.get("type") if data.get("type") in (START, END) else ACTION
    pos = raw.get("position") or {}
    position = (_float(pos.get("x"), 0.0), _float(pos.get("y"), 0.0))
    action = action_from_data(data) if kind == ACTION else None
    return Node(str(raw["id"]), kind, action, position, str(data.get("label", "")))

def edge_from_dict(raw: dict) -> Edge:
    handle = raw.get("sourceHandle") or raw.get("handle") or None
    source, target = str(raw["source"]), str(raw["target"])
    return Edge(str(raw.get("id") or f"{source}-{target}"), source, target, handle)
