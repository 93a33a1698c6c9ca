# autoflow/storage.py
"""
Project files.

    {"name": "Red Left", "initial": {"x": 72, "y": 72, "heading": 0},
     "nodes": [...], "edges": [...], "devices": {...}}

nodes/edges use the editor's workflow format (see autoflow.nodes).
"""
from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Iterable, Union

from .devices import DeviceRegistry, default_registry
from .errors import GraphError, ProjectFileError
from .graph import ProgramGraph
from .waypoints import Waypoint, as_pose


@dataclass
class Project:
    name: str = "Auto"
    graph: ProgramGraph = field(default_factory=ProgramGraph)
    registry: DeviceRegistry = field(default_factory=default_registry)
    initial_pose: Waypoint = field(default_factory=as_pose)

    def to_dict(self) -> dict:
        data = {"name": self.name, "initial": as_pose(self.initial_pose)._asdict()}
        data.update(self.graph.to_dict())
        data["devices"] = self.registry.to_dict()
        return data


def project_from_dict(data: dict, validate: bool = True) -> Project:
    if not isinstance(data, dict):
        raise ProjectFileError("Project data must be a JSON object")
    try:
        graph = ProgramGraph.from_dict(data, validate=validate)
    except GraphError as e:
        raise ProjectFileError(f"Invalid graph: {e}") from e
    except (KeyError, TypeError, ValueError) as e:
        raise ProjectFileError(f"Malformed node or edge: {e}") from e
    devices = data.get("devices")
    registry = DeviceRegistry.from_dict(devices) if isinstance(devices, dict) else default_registry()
    return Project(
        name=str(data.get("name") or "Auto"),
        graph=graph,
        registry=registry,
        initial_pose=as_pose(data.get("initial")),
    )


def load_project(path: str, validate: bool = True) -> Project:
    """Load a project file."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise ProjectFileError(f"Cannot read {path}: {e}") from e
    except ValueError as e:
        raise ProjectFileError(f"{path} is not valid JSON: {e}") from e
    return project_from_dict(data, validate=validate)


def save_project(project: Project, path: str) -> str:
    """Save project to JSON file."""
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(project.to_dict(), f, indent=4)
    return path


def write_source(source: Union[str, Iterable[str]], path: str) -> str:
    """Write generated source (text or list of lines) to path."""
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    text = source if isinstance(source, str) else "\n".join(source) + "\n"
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)
    return path
