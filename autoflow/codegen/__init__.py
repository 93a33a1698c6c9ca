# autoflow/codegen/__init__.py
"""
Code generation backends.

    generate_code("roadrunner", graph, registry, initial_pose=(72, 72, 0))

Each backend turns the program graph into one Java OpMode source file.
"""
from __future__ import annotations

from typing import List, Optional

from ..errors import NoRouteError
from . import encoder, pedro, roadrunner, simple
from .source import class_name

BACKENDS = {
    "simple": simple,
    "encoder": encoder,
    "pedropathing": pedro,
    "roadrunner": roadrunner,
}

CLASS_SUFFIXES = {
    "simple": "Simple",
    "encoder": "Encoder",
    "pedropathing": "Pedro",
    "roadrunner": "RR",
}

ALIASES = {"pedro": "pedropathing", "rr": "roadrunner"}


def resolve_style(style: str) -> str:
    key = ALIASES.get(str(style).lower(), str(style).lower())
    if key not in BACKENDS:
        raise ValueError(f"Unknown code style {style!r}; choose from {', '.join(BACKENDS)}")
    return key


def build_export_lines(style: str, graph, registry=None, initial_pose=None,
                       cfg: Optional[dict] = None, project_name: str = "Auto") -> List[str]:
    backend = BACKENDS[resolve_style(style)]
    if not graph.has_route():
        raise NoRouteError("No node is connected to the start node")
    return backend.build_export_lines(graph, registry=registry, initial_pose=initial_pose,
                                      cfg=cfg, project_name=project_name)


def generate_code(style: str, graph, registry=None, initial_pose=None,
                  cfg: Optional[dict] = None, project_name: str = "Auto") -> str:
    """Java source for one backend; raises NoRouteError when start has no edge."""
    lines = build_export_lines(style, graph, registry, initial_pose, cfg, project_name)
    return "\n".join(lines).rstrip() + "\n"


def output_filename(style: str, project_name: str = "Auto") -> str:
    return class_name(project_name, CLASS_SUFFIXES[resolve_style(style)]) + ".java"
