# autoflow/codegen/source.py
"""Indented Java source assembly shared by every backend."""
from __future__ import annotations

import re
from contextlib import contextmanager
from typing import Iterable, List, Set

from ..devices import JAVA_IMPORTS, DeviceRef

INDENT = "    "

OPMODE_IMPORTS = {
    "Autonomous": "com.qualcomm.robotcore.eventloop.opmode.Autonomous",
    "LinearOpMode": "com.qualcomm.robotcore.eventloop.opmode.LinearOpMode",
    "OpMode": "com.qualcomm.robotcore.eventloop.opmode.OpMode",
    "ElapsedTime": "com.qualcomm.robotcore.util.ElapsedTime",
    "AngleUnit": "org.firstinspires.ftc.robotcore.external.navigation.AngleUnit",
    "DistanceUnit": "org.firstinspires.ftc.robotcore.external.navigation.DistanceUnit",
    "RevHubOrientationOnRobot": "com.qualcomm.hardware.rev.RevHubOrientationOnRobot",
}


def fmt(value: float) -> str:
    """Shortest readable Java numeric literal (24, 0.5, -90, 13.3333)."""
    text = f"{float(value):.4f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def java_string(text: str) -> str:
    return '"' + str(text).replace("\\", "\\\\").replace('"', '\\"') + '"'


def class_name(project_name: str, suffix: str) -> str:
    base = re.sub(r"[^A-Za-z0-9]", "", project_name or "") or "Auto"
    if base[0].isdigit():
        base = "Auto" + base
    return base + suffix


class SourceBuilder:
    def __init__(self, level: int = 0):
        self.lines: List[str] = []
        self.level = level
        self.imports: Set[str] = set()

    def line(self, text: str = "") -> None:
        self.lines.append(INDENT * self.level + text if text else "")

    def comment(self, text: str) -> None:
        self.line(f"// {text}")

    def blank(self) -> None:
        last = self.lines[-1].rstrip() if self.lines else ""
        if last and not last.endswith("{"):
            self.lines.append("")

    def extend(self, lines: Iterable[str]) -> None:
        """Append lines that are already indented."""
        self.lines.extend(lines)

    def code(self, text: str) -> None:
        """Append free-form multi-line code at the current indent."""
        for raw in str(text).splitlines():
            self.line(raw.rstrip())

    def use(self, *names: str) -> None:
        """Record imports by simple class name."""
        for name in names:
            full = JAVA_IMPORTS.get(name) or OPMODE_IMPORTS.get(name) or name
            self.imports.add(full)

    @contextmanager
    def indent(self, n: int = 1):
        self.level += n
        try:
            yield self
        finally:
            self.level -= n

    @contextmanager
    def block(self, header: str, footer: str = "}"):
        self.line(header + " {")
        with self.indent():
            yield self
        self.line(footer)

    def text(self) -> str:
        return "\n".join(self.lines).rstrip() + "\n"


def file_header(package: str, imports: Iterable[str]) -> List[str]:
    lines = [f"package {package};", ""]
    lines += [f"import {imp};" for imp in sorted(set(imports))]
    lines.append("")
    return lines


def declare_devices(out: SourceBuilder, refs: List[DeviceRef], title: str = "Mechanisms and sensors") -> None:
    if not refs:
        return
    out.comment(title)
    for ref in refs:
        out.use(ref.java_type)
        out.line(f"private {ref.java_type} {ref.var};")
    out.blank()


def init_devices(out: SourceBuilder, refs: List[DeviceRef]) -> None:
    """hardwareMap lookups plus per-kind setup (motor direction, IMU orientation)."""
    for ref in refs:
        out.line(f"{ref.var} = hardwareMap.get({ref.java_type}.class, {java_string(ref.name)});")
        if ref.java_type == "DcMotor":
            if getattr(ref.device, "reversed", False):
                out.line(f"{ref.var}.setDirection(DcMotor.Direction.REVERSE);")
            out.line(f"{ref.var}.setZeroPowerBehavior(DcMotor.ZeroPowerBehavior.BRAKE);")
        elif ref.java_type == "IMU":
            out.use("RevHubOrientationOnRobot")
            out.line(f"{ref.var}.initialize(new IMU.Parameters(new RevHubOrientationOnRobot(")
            with out.indent(2):
                out.line("RevHubOrientationOnRobot.LogoFacingDirection.UP,")
                out.line("RevHubOrientationOnRobot.UsbFacingDirection.FORWARD)));")
