# autoflow/graph.py
"""
Program graph: nodes, handle-labelled edges and one start node.

All structural rules are enforced by add_edge at mutation time. A rejected
edge raises one of the GraphError subclasses and leaves the graph untouched,
so every graph built through this API is acyclic and its branching handles
are bound at most once.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Optional, Set

from .errors import (
    CategoryConflictError, CycleError, DuplicateEdgeError, GraphError,
    HandleOccupiedError, SelfLoopError, UnknownNodeError,
)
from .nodes import (
    ACTION, CONTINUATION_HANDLES, PARALLEL_ACTION_HANDLES, RESTRICTED_HANDLES,
    START, Edge, Node, Parallel, edge_from_dict, node_from_dict, start_node,
)

logger = logging.getLogger(__name__)

ANY_HANDLE = object()


class ProgramGraph:
    def __init__(self, start_id: str = "start", create_start: bool = True):
        self.start_id = start_id
        self.nodes: Dict[str, Node] = {}
        self.edges: List[Edge] = []
        if create_start:
            self.add_node(start_node(start_id))

    # ---------------- nodes ----------------

    def __contains__(self, node_id: str) -> bool:
        return node_id in self.nodes

    def __iter__(self) -> Iterator[Node]:
        return iter(self.nodes.values())

    def get(self, node_id: str) -> Node:
        try:
            return self.nodes[node_id]
        except KeyError:
            raise UnknownNodeError(f"Unknown node: {node_id!r}") from None

    @property
    def start(self) -> Node:
        return self.get(self.start_id)

    def add_node(self, node: Node) -> Node:
        if node.id in self.nodes:
            raise GraphError(f"Node id already in use: {node.id!r}")
        if node.kind == START:
            if any(n.kind == START for n in self.nodes.values()):
                raise GraphError("Graph already has a start node")
            self.start_id = node.id
        self.nodes[node.id] = node
        return node

    def remove_node(self, node_id: str) -> Node:
        """Delete a node and every edge touching it."""
        node = self.get(node_id)
        if node.kind == START:
            raise GraphError("The start node cannot be removed")
        del self.nodes[node_id]
        self.edges = [e for e in self.edges if node_id not in (e.source, e.target)]
        return node

    def update_node(self, node_id: str, **params) -> Node:
        """Replace an action node's parameters (field names, e.g. distance=12)."""
        node = self.get(node_id)
        if node.action is None:
            raise GraphError(f"Node {node_id!r} has no editable parameters")
        node.action = node.action.with_params(**params)
        return node

    def action_nodes(self) -> List[Node]:
        return [n for n in self.nodes.values() if n.kind == ACTION]

    # ---------------- edges ----------------

    def edges_from(self, node_id: str, handle=ANY_HANDLE) -> List[Edge]:
        if handle is ANY_HANDLE:
            return [e for e in self.edges if e.source == node_id]
        return [e for e in self.edges if e.source == node_id and e.handle == handle]

    def continuation_edges(self, node_id: str) -> List[Edge]:
        """Unlabeled and "next" edges out of a node, in insertion order."""
        return [e for e in self.edges
                if e.source == node_id and e.handle in CONTINUATION_HANDLES]

    def next_edge(self, node_id: str) -> Optional[Edge]:
        edges = self.continuation_edges(node_id)
        return edges[0] if edges else None

    def add_edge(self, source: str, target: str, handle: Optional[str] = None,
                 edge_id: Optional[str] = None) -> Edge:
        """Validate and append one edge, returning it."""
        handle = handle or None
        src = self.get(source)
        dst = self.get(target)

        if source == target:
            raise SelfLoopError(f"Node {source!r} cannot connect to itself")

        for e in self.edges:
            if e.source == source and e.target == target and e.handle == handle:
                raise DuplicateEdgeError(
                    f"Edge {source!r} -> {target!r} ({handle or 'unlabeled'}) already exists")

        if source in self.reachable_from(target):
            raise CycleError(f"Edge {source!r} -> {target!r} would create a cycle")

        if handle in RESTRICTED_HANDLES.get(src.type, ()) and self.edges_from(source, handle):
            raise HandleOccupiedError(f"Handle {handle!r} of {source!r} is already connected")

        if src.type == Parallel.type and handle in PARALLEL_ACTION_HANDLES and dst.category:
            for e in self.edges:
                if e.source != source or e.handle not in PARALLEL_ACTION_HANDLES:
                    continue
                other = self.nodes.get(e.target)
                if other is not None and other.category == dst.category:
                    raise CategoryConflictError(
                        f"Parallel {source!r} already runs a {dst.category} action "
                        f"on {e.handle!r}")

        edge = Edge(edge_id or self._edge_id(source, target, handle), source, target, handle)
        self.edges.append(edge)
        return edge

    def remove_edge(self, edge_id: str) -> Edge:
        for i, e in enumerate(self.edges):
            if e.id == edge_id:
                return self.edges.pop(i)
        raise GraphError(f"Unknown edge: {edge_id!r}")

    def _edge_id(self, source: str, target: str, handle: Optional[str]) -> str:
        base = f"e{source}-{target}" + (f"-{handle}" if handle else "")
        taken = {e.id for e in self.edges}
        edge_id, n = base, 1
        while edge_id in taken:
            n += 1
            edge_id = f"{base}-{n}"
        return edge_id

    # ---------------- traversal ----------------

    def reachable_from(self, node_id: str) -> List[str]:
        """Depth-first closure over all edges, node_id first."""
        order: List[str] = []
        seen: Set[str] = set()
        stack = [node_id]
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            order.append(current)
            stack.extend(e.target for e in reversed(self.edges_from(current)))
        return order

    def execution_order(self) -> List[Node]:
        """
        Action nodes in depth-first order from start, following only
        unlabeled and "next" edges. Each node appears at most once.
        """
        order: List[Node] = []
        seen: Set[str] = set()
        stack = [self.start_id]
        while stack:
            current = stack.pop()
            if current in seen or current not in self.nodes:
                continue
            seen.add(current)
            node = self.nodes[current]
            if node.kind == ACTION:
                order.append(node)
            stack.extend(e.target for e in reversed(self.continuation_edges(current)))
        return order

    def unreachable_nodes(self) -> List[Node]:
        reachable = set(self.reachable_from(self.start_id))
        return [n for n in self.nodes.values() if n.id not in reachable]

    def has_route(self) -> bool:
        return bool(self.edges_from(self.start_id))

    # ---------------- serialization ----------------

    def to_dict(self) -> dict:
        return {
            "nodes": [n.to_dict() for n in self.nodes.values()],
            "edges": [e.to_dict() for e in self.edges],
        }

    @classmethod
    def from_dict(cls, data: dict, validate: bool = True) -> "ProgramGraph":
        """
        Build a graph from saved {"nodes": [...], "edges": [...]} data.

        With validate=True every edge is replayed through add_edge and the
        first violation propagates. With validate=False edges are stored as
        given (dangling endpoints are still dropped), which lets callers load
        legacy data that predates the structural checks.
        """
        graph = cls(create_start=False)
        for raw in data.get("nodes") or []:
            graph.add_node(node_from_dict(raw))
        if not any(n.kind == START for n in graph.nodes.values()):
            graph.add_node(start_node(graph.start_id if graph.start_id not in graph.nodes else "__start__"))

        for raw in data.get("edges") or []:
            edge = edge_from_dict(raw)
            if validate:
                graph.add_edge(edge.source, edge.target, edge.handle, edge_id=edge.id)
            elif edge.source in graph.nodes and edge.target in graph.nodes:
                graph.edges.append(edge)
            else:
                logger.warning("Dropping edge %s with unknown endpoint", edge.id)
        return graph
