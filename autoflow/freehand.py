# autoflow/freehand.py
"""Convert a freehand-drawn field path into a chain of moveToPosition nodes."""
from __future__ import annotations

import logging
from typing import List, Sequence

from .geometry import simplify_path
from .nodes import ACTION, MoveToPosition, action_node

logger = logging.getLogger(__name__)


def _chain_tail(graph) -> str:
    """Last action node with no outgoing edge, else the start node."""
    tail = graph.start_id
    for node in graph.nodes.values():
        if node.kind == ACTION and not graph.edges_from(node.id):
            tail = node.id
    return tail


def _fresh_id(graph, stem: str) -> str:
    n = 1
    while f"{stem}-{n}" in graph:
        n += 1
    return f"{stem}-{n}"


def append_drawn_path(graph, points: Sequence[Sequence[float]], heading: float,
                      use_curves: bool = True, epsilon: float = 2.0) -> List[str]:
    """
    Simplify drawn points and append one moveToPosition per kept point.

    Returns the ids of the created nodes (empty when fewer than two points
    were drawn, in which case the graph is left alone).
    """
    if len(points) < 2:
        return []
    simplified = simplify_path([(float(p[0]), float(p[1])) for p in points], epsilon)
    logger.debug("Simplified %d drawn points to %d", len(points), len(simplified))

    curve = "spline" if use_curves else "linear"
    prev = _chain_tail(graph)
    created = []
    for i, (x, y) in enumerate(simplified):
        node_id = _fresh_id(graph, "moveToPosition")
        action = MoveToPosition(target_x=round(x, 2), target_y=round(y, 2),
                                target_heading=heading, curve_type=curve)
        graph.add_node(action_node(node_id, action, position=(250.0, 150.0 + 100.0 * i)))
        graph.add_edge(prev, node_id)
        created.append(node_id)
        prev = node_id
    return created
