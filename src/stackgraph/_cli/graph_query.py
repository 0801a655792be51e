"""Graph query functions for CLI commands.

This module provides pure functions for querying the template graph.
These are the functional core - no I/O, no Rich rendering.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from stackgraph._errors import NotFoundError
from stackgraph._graph import EdgeKind

if TYPE_CHECKING:
    from stackgraph._graph import Edge, TemplateGraph
    from stackgraph._ids import NodeId


@dataclass(frozen=True, slots=True)
class StackSummary:
    """Summary of a stack's contents."""

    name: str
    resource_count: int
    export_count: int
    import_count: int


@dataclass(frozen=True, slots=True)
class NodeDetail:
    """Detailed information about a resource."""

    id: NodeId
    kind: str
    dependencies: tuple[Edge, ...]
    dependents: tuple[Edge, ...]
    exports: tuple[str, ...]


def get_stack_summaries(graph: TemplateGraph, extra_stacks: tuple[str, ...] = ()) -> list[StackSummary]:
    """Get summary information for every stack.

    Args:
        graph: The graph to analyze.
        extra_stacks: Stacks to list even if they own no resources.

    Returns:
        List of StackSummary, one per stack.

    """
    counts: dict[str, dict[str, int]] = {}
    for stack in [*graph.get_groups(), *extra_stacks]:
        counts.setdefault(stack, {"resources": 0, "exports": 0, "imports": 0})

    for node in graph.get_all_nodes():
        counts[node.group]["resources"] += 1
    for export in graph.get_exports().values():
        counts[export.node_id.group]["exports"] += 1
    for edge in graph.get_edges():
        if edge.kind is EdgeKind.IMPORTED_VALUE:
            counts[edge.source.group]["imports"] += 1

    return [
        StackSummary(
            name=name,
            resource_count=stack_counts["resources"],
            export_count=stack_counts["exports"],
            import_count=stack_counts["imports"],
        )
        for name, stack_counts in counts.items()
    ]


def get_deployment_order(graph: TemplateGraph) -> list[NodeId]:
    """Get resource ids in dependency order.

    Raises:
        CycleDetectedError: If the graph has a dependency cycle.

    """
    return [node.id for node in graph.sorted_nodes()]


def get_node_detail(graph: TemplateGraph, node_id: NodeId) -> NodeDetail:
    """Get the edges and exports of one resource.

    Raises:
        NotFoundError: If the resource does not exist.

    """
    node = graph.get_node(node_id)
    if node is None:
        raise NotFoundError(node_id)

    edges = graph.get_edges(node_id)
    return NodeDetail(
        id=node.id,
        kind=node.kind,
        dependencies=tuple(edge for edge in edges if edge.source == node_id),
        dependents=tuple(edge for edge in edges if edge.target == node_id),
        exports=tuple(name for name, export in graph.get_exports().items() if export.node_id == node_id),
    )
