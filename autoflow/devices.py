# autoflow/devices.py
"""
Read-only hardware registry for code generation.

Mirrors the Control Hub / Expansion Hub port layout: each hub has 4 motor
ports, 6 servo ports, 4 I2C buses (bus 0 carries the built-in IMU), 8
digital and 4 analog ports. Expansion hub devices only count when the
expansion hub is present.
"""
from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass, field
from typing import Dict, FrozenSet, List, NamedTuple, Optional, Tuple

from .nodes import (
    ContinuousServo, Custom, ReadColor, ReadDistance, ReadIMU, ReadTouch,
    RunMotor, SetMotorPower, SetServo, StopMotor, WaitForSensor,
)

logger = logging.getLogger(__name__)

CONTROL_HUB = "control"
EXPANSION_HUB = "expansion"

MOTOR_PORTS = 4
SERVO_PORTS = 6
I2C_BUSES = 4
DIGITAL_PORTS = 8
ANALOG_PORTS = 4

JAVA_IMPORTS = {
    "DcMotor": "com.qualcomm.robotcore.hardware.DcMotor",
    "Servo": "com.qualcomm.robotcore.hardware.Servo",
    "CRServo": "com.qualcomm.robotcore.hardware.CRServo",
    "IMU": "com.qualcomm.robotcore.hardware.IMU",
    "DistanceSensor": "com.qualcomm.robotcore.hardware.DistanceSensor",
    "ColorSensor": "com.qualcomm.robotcore.hardware.ColorSensor",
    "ColorRangeSensor": "com.qualcomm.robotcore.hardware.ColorRangeSensor",
    "ServoController": "com.qualcomm.robotcore.hardware.ServoController",
    "TouchSensor": "com.qualcomm.robotcore.hardware.TouchSensor",
    "DigitalChannel": "com.qualcomm.robotcore.hardware.DigitalChannel",
    "LED": "com.qualcomm.robotcore.hardware.LED",
    "AnalogInput": "com.qualcomm.robotcore.hardware.AnalogInput",
    "HardwareDevice": "com.qualcomm.robotcore.hardware.HardwareDevice",
}

_I2C_TYPES = {"imu": "IMU", "distance": "DistanceSensor", "color": "ColorSensor",
              "color-range": "ColorRangeSensor", "servo-controller": "ServoController"}
_DIGITAL_TYPES = {"touch": "TouchSensor", "limit-switch": "DigitalChannel",
                  "magnetic": "DigitalChannel", "led": "LED"}

# Name and Java type used when a node leaves its device unnamed
DEFAULT_DEVICES = {
    "motor": ("motor", "DcMotor"),
    "servo": ("servo", "Servo"),
    "crservo": ("servo", "CRServo"),
    "imu": ("imu", "IMU"),
    "distance": ("distance", "DistanceSensor"),
    "color": ("color", "ColorSensor"),
    "touch": ("touch", "TouchSensor"),
    "sensor": ("sensor", "HardwareDevice"),
}


# names the generated OpModes already use, plus Java keywords
RESERVED_IDENTIFIERS = frozenset({
    "drive", "runtime", "follower", "pathChain", "pathState", "timer",
    "startPose", "trajSeq", "telemetry", "hardwareMap", "gamepad1", "gamepad2",
    "speed", "timeoutS", "frontLeftInches", "frontRightInches",
    "backLeftInches", "backRightInches",
    "abstract", "boolean", "break", "byte", "case", "catch", "char", "class",
    "continue", "default", "do", "double", "else", "enum", "extends", "final",
    "float", "for", "if", "import", "int", "long", "new", "null", "package",
    "private", "public", "return", "short", "static", "super", "switch",
    "this", "throw", "true", "false", "try", "void", "while",
})


def java_identifier(name: str) -> str:
    """Turn a configured device name into a usable Java variable name."""
    ident = re.sub(r"\W", "_", name.strip()) or "device"
    if ident[0].isdigit():
        ident = "_" + ident
    if ident in RESERVED_IDENTIFIERS or ident.startswith("loopIndex"):
        ident += "Device"
    return ident


@dataclass
class Motor:
    name: str
    port: int
    hub: str = CONTROL_HUB
    enabled: bool = False
    reversed: bool = False
    encoder_enabled: bool = False

    java_type = "DcMotor"


@dataclass
class Servo:
    name: str
    port: int
    hub: str = CONTROL_HUB
    enabled: bool = False
    type: str = "standard"  # standard | continuous

    @property
    def java_type(self) -> str:
        return "CRServo" if self.type == "continuous" else "Servo"


@dataclass
class I2CDevice:
    name: str
    bus: int
    hub: str = CONTROL_HUB
    enabled: bool = False
    type: str = "distance"
    address: str = "0x00"

    @property
    def java_type(self) -> str:
        return _I2C_TYPES.get(self.type, "HardwareDevice")


@dataclass
class DigitalDevice:
    name: str
    port: int
    hub: str = CONTROL_HUB
    enabled: bool = False
    type: str = "touch"

    @property
    def java_type(self) -> str:
        return _DIGITAL_TYPES.get(self.type, "DigitalChannel")


@dataclass
class AnalogDevice:
    name: str
    port: int
    hub: str = CONTROL_HUB
    enabled: bool = False
    type: str = "potentiometer"

    java_type = "AnalogInput"


@dataclass(frozen=True)
class Drivetrain:
    kind: str = "mecanum"  # mecanum | omni | differential
    front_left: str = "frontLeft"
    front_right: str = "frontRight"
    back_left: str = "backLeft"
    back_right: str = "backRight"
    reversed: FrozenSet[str] = frozenset()

    @property
    def motors(self) -> Tuple[str, str, str, str]:
        return (self.front_left, self.front_right, self.back_left, self.back_right)

    @property
    def holonomic(self) -> bool:
        return self.kind in ("mecanum", "omni")

    @classmethod
    def from_dict(cls, data: dict) -> "Drivetrain":
        base = cls()
        return cls(
            kind=str(data.get("kind", data.get("type", base.kind))),
            front_left=str(data.get("frontLeft", base.front_left)),
            front_right=str(data.get("frontRight", base.front_right)),
            back_left=str(data.get("backLeft", base.back_left)),
            back_right=str(data.get("backRight", base.back_right)),
            reversed=frozenset(data.get("reversed") or ()),
        )

    def to_dict(self) -> dict:
        return {"kind": self.kind, "frontLeft": self.front_left,
                "frontRight": self.front_right, "backLeft": self.back_left,
                "backRight": self.back_right, "reversed": sorted(self.reversed)}


class DeviceRef(NamedTuple):
    name: str
    java_type: str
    device: Optional[object] = None

    @property
    def var(self) -> str:
        return java_identifier(self.name)


_KINDS = (
    ("motors", Motor, "Motors"),
    ("servos", Servo, "Servos"),
    ("i2c", I2CDevice, "I2C"),
    ("digital", DigitalDevice, "Digital"),
    ("analog", AnalogDevice, "Analog"),
)

_KEY_MAP = {"encoderEnabled": "encoder_enabled"}


def _device_from_dict(cls, raw: dict, hub: Optional[str]):
    kwargs = {_KEY_MAP.get(k, k): v for k, v in raw.items()}
    if hub and "hub" not in kwargs:
        kwargs["hub"] = hub
    known = cls.__dataclass_fields__
    return cls(**{k: v for k, v in kwargs.items() if k in known})


@dataclass
class DeviceRegistry:
    motors: List[Motor] = field(default_factory=list)
    servos: List[Servo] = field(default_factory=list)
    i2c: List[I2CDevice] = field(default_factory=list)
    digital: List[DigitalDevice] = field(default_factory=list)
    analog: List[AnalogDevice] = field(default_factory=list)
    has_expansion_hub: bool = False
    drivetrain: Drivetrain = field(default_factory=Drivetrain)

    def _present(self, device) -> bool:
        return device.enabled and (device.hub != EXPANSION_HUB or self.has_expansion_hub)

    def enabled_devices(self) -> list:
        out = []
        for attr, _, _ in _KINDS:
            out.extend(d for d in getattr(self, attr) if self._present(d))
        return out

    def enabled(self, attr: str) -> list:
        return [d for d in getattr(self, attr) if self._present(d)]

    def find(self, name: str):
        """Enabled device with this name, or None."""
        for device in self.enabled_devices():
            if device.name == name:
                return device
        return None

    @classmethod
    def from_dict(cls, data: dict) -> "DeviceRegistry":
        """
        Accepts flat per-kind lists ("motors": [...]) where each device names
        its hub, and the editor's per-hub lists ("controlMotors",
        "expansionMotors", ...).
        """
        reg = cls(has_expansion_hub=bool(data.get("hasExpansionHub", data.get("has_expansion_hub", False))))
        for attr, dev_cls, suffix in _KINDS:
            devices = [_device_from_dict(dev_cls, raw, None) for raw in data.get(attr) or []]
            for hub in (CONTROL_HUB, EXPANSION_HUB):
                for raw in data.get(f"{hub}{suffix}") or []:
                    devices.append(_device_from_dict(dev_cls, raw, hub))
            setattr(reg, attr, devices)
        if isinstance(data.get("drivetrain"), dict):
            reg.drivetrain = Drivetrain.from_dict(data["drivetrain"])
        return reg

    def to_dict(self) -> dict:
        out = {attr: [asdict(d) for d in getattr(self, attr)] for attr, _, _ in _KINDS}
        out["hasExpansionHub"] = self.has_expansion_hub
        out["drivetrain"] = self.drivetrain.to_dict()
        return out


def default_registry(drivetrain: Optional[Drivetrain] = None) -> DeviceRegistry:
    """Every port on both hubs, all disabled except the built-in IMU on I2C bus 0."""
    reg = DeviceRegistry(drivetrain=drivetrain or Drivetrain())
    for hub in (CONTROL_HUB, EXPANSION_HUB):
        reg.motors += [Motor(f"motor{i}", i, hub) for i in range(MOTOR_PORTS)]
        reg.servos += [Servo(f"servo{i}", i, hub) for i in range(SERVO_PORTS)]
        reg.i2c += [I2CDevice("imu" if i == 0 else f"i2c{i}", i, hub, enabled=(i == 0),
                              type="imu" if i == 0 else "distance",
                              address="0x28" if i == 0 else "0x00")
                    for i in range(I2C_BUSES)]
        reg.digital += [DigitalDevice(f"digital{i}", i, hub) for i in range(DIGITAL_PORTS)]
        reg.analog += [AnalogDevice(f"analog{i}", i, hub) for i in range(ANALOG_PORTS)]
    return reg


# ---------------- referenced devices ----------------

def _action_refs(action) -> List[Tuple[Optional[str], str]]:
    """(name, role) pairs an action talks to directly."""
    refs: List[Tuple[Optional[str], str]] = []
    if isinstance(action, SetServo):
        refs.append((action.servo_name, "servo"))
    elif isinstance(action, ContinuousServo):
        refs.append((action.servo_name, "crservo"))
    elif isinstance(action, (RunMotor, StopMotor, SetMotorPower)):
        refs.append((action.motor_name, "motor"))
    elif isinstance(action, ReadIMU):
        refs.append((action.sensor_name, "imu"))
    elif isinstance(action, ReadDistance):
        refs.append((action.sensor_name, "distance"))
    elif isinstance(action, ReadColor):
        refs.append((action.sensor_name, "color"))
    elif isinstance(action, ReadTouch):
        refs.append((action.sensor_name, "touch"))
    elif isinstance(action, WaitForSensor) and action.sensor_name:
        refs.append((action.sensor_name, "sensor"))

    secondary = action.secondary_action
    if secondary is not None:
        if secondary.kind == "servo":
            refs.append((secondary.servo_name, "servo"))
        elif secondary.kind == "motor":
            refs.append((secondary.motor_name, "motor"))
    return refs


def default_device_name(name: Optional[str], role: str) -> str:
    return name or DEFAULT_DEVICES[role][0]


def collect_references(graph, registry: Optional[DeviceRegistry] = None) -> List[DeviceRef]:
    """
    Devices used by nodes reachable from start, in first-use order.

    Custom code nodes pull in every enabled device whose name appears in
    their text. A name missing from the registry is still returned (with
    device=None and the role's default Java type) so generated code stays
    complete. Names that map to the same Java identifier share one field;
    the first name seen wins.
    """
    registry = registry or DeviceRegistry()
    enabled = registry.enabled_devices()
    refs: Dict[str, DeviceRef] = {}

    def add(name: str, java_type: str):
        var = java_identifier(name)
        if var in refs:
            if refs[var].name != name:
                logger.warning("Devices %r and %r both map to Java name %s; declaring it once",
                               refs[var].name, name, var)
            return
        device = registry.find(name)
        if device is None:
            logger.warning("Device %r is not enabled in the registry; declaring it as %s",
                           name, java_type)
            refs[var] = DeviceRef(name, java_type, None)
        else:
            refs[var] = DeviceRef(name, device.java_type, device)

    for node_id in graph.reachable_from(graph.start_id):
        action = graph.nodes[node_id].action
        if action is None:
            continue
        for name, role in _action_refs(action):
            add(default_device_name(name, role), DEFAULT_DEVICES[role][1])
        if isinstance(action, Custom) and action.custom_code:
            for device in enabled:
                if re.search(rf"\b{re.escape(device.name)}\b", action.custom_code):
                    add(device.name, device.java_type)
    return list(refs.values())
