"""Errors raised by the template graph."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ._ids import NodeId


class GraphError(Exception):
    """Base class for template graph errors."""


class NotFoundError(GraphError):
    """Raised when no node occupies the requested address."""

    def __init__(self, node_id: NodeId) -> None:
        self.node_id = node_id
        super().__init__(f"Node '{node_id}' does not exist")


class AlreadyExistsError(GraphError):
    """Raised when the requested address is already occupied by another node."""

    def __init__(self, node_id: NodeId) -> None:
        self.node_id = node_id
        super().__init__(f"Node '{node_id}' already exists")


class DanglingEdgeError(GraphError):
    """Raised when an edge is added with an endpoint that is not in the graph."""

    def __init__(self, source: NodeId, target: NodeId, missing: Sequence[NodeId]) -> None:
        self.source = source
        self.target = target
        self.missing = tuple(missing)
        missing_str = ", ".join(f"'{node_id}'" for node_id in self.missing)
        super().__init__(f"Cannot add edge '{source}' -> '{target}': missing node(s) {missing_str}")


class CycleDetectedError(GraphError):
    """Raised when topological ordering finds a dependency cycle."""

    def __init__(self, cycle: Sequence[NodeId]) -> None:
        self.cycle = tuple(cycle)
        cycle_str = " -> ".join(str(node_id) for node_id in self.cycle)
        super().__init__(f"Circular dependency detected: {cycle_str}")
