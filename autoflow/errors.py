# autoflow/errors.py
"""
Errors surfaced by graph mutation, code generation and project loading.

Graph errors are raised by ProgramGraph.add_edge before anything is mutated,
so a caught error always leaves the graph as it was.
"""
from __future__ import annotations


class GraphError(ValueError):
    """Structural problem with the program graph."""


class UnknownNodeError(GraphError):
    pass


class SelfLoopError(GraphError):
    pass


class DuplicateEdgeError(GraphError):
    pass


class CycleError(GraphError):
    pass


class HandleOccupiedError(GraphError):
    pass


class CategoryConflictError(GraphError):
    pass


class CodegenError(ValueError):
    """A single compilation attempt could not produce source."""


class NoRouteError(CodegenError):
    pass


class ProjectFileError(ValueError):
    """Project file is missing, unreadable or malformed."""
