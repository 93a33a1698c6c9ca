# autoflow/__init__.py
"""Node graph autonomous routine compiler for FTC robots."""

from .errors import (
    CategoryConflictError, CodegenError, CycleError, DuplicateEdgeError,
    GraphError, HandleOccupiedError, NoRouteError, ProjectFileError,
    SelfLoopError, UnknownNodeError,
)
from .graph import ProgramGraph
from .waypoints import Waypoint, derive_waypoints

__version__ = "1.0.0"
