"""Mutable dependency graph of template resources."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from stackgraph._errors import AlreadyExistsError, DanglingEdgeError, NotFoundError
from stackgraph._values import copy_tree

from ._algorithms import depth_first_order
from ._relocation import relocate
from ._types import Edge, EdgeKind, ExportRegistration, Node

if TYPE_CHECKING:
    from stackgraph._ids import NodeId
    from stackgraph._values import PropertyValue

logger = logging.getLogger(__name__)


def _copy_node(node: Node) -> Node:
    return replace(node, properties=copy_tree(node.properties), metadata=copy_tree(node.metadata))


class TemplateGraph:
    """Graph of resources grouped into stacks, with their edges and exports.

    The graph exclusively owns its nodes, edges and export registrations.
    Readers get copies (nodes) or immutable values (edges, registrations),
    so nothing returned by a query can change the graph behind its back.

    Edges point from the dependent node to the node it depends on: an edge
    ``a -> b`` means "a depends on b".

    The graph is not safe for concurrent mutation; callers serialize access.
    """

    def __init__(self) -> None:
        self._nodes: dict[NodeId, Node] = {}
        self._edges: list[Edge] = []
        self._exports: dict[str, ExportRegistration] = {}

    # -------------------------------------------------------------------------
    # Nodes
    # -------------------------------------------------------------------------

    def add_node(self, node: Node) -> None:
        """Add a node.

        Raises:
            AlreadyExistsError: If a node with the same id exists.

        """
        if node.id in self._nodes:
            raise AlreadyExistsError(node.id)
        self._nodes[node.id] = _copy_node(node)

    def remove_node(self, node_id: NodeId) -> None:
        """Remove a node with its incident edges and the exports it sources.

        Raises:
            NotFoundError: If the node does not exist.

        """
        if node_id not in self._nodes:
            raise NotFoundError(node_id)

        del self._nodes[node_id]
        self._edges = [edge for edge in self._edges if node_id not in (edge.source, edge.target)]
        for name in [name for name, export in self._exports.items() if export.node_id == node_id]:
            logger.debug(f"Dropping export '{name}' sourced from removed node {node_id}")
            del self._exports[name]

    def get_node(self, node_id: NodeId) -> Node | None:
        """Get a copy of the node at ``node_id``, or None if absent."""
        node = self._nodes.get(node_id)
        return None if node is None else _copy_node(node)

    def get_all_nodes(self) -> list[Node]:
        """Get copies of all nodes in insertion order."""
        return [_copy_node(node) for node in self._nodes.values()]

    def get_nodes_by_group(self, group: str) -> list[Node]:
        """Get copies of all nodes owned by ``group`` in insertion order."""
        return [_copy_node(node) for node in self._nodes.values() if node.group == group]

    def get_groups(self) -> list[str]:
        """Get the groups that own at least one node, in first-seen order."""
        return list(dict.fromkeys(node_id.group for node_id in self._nodes))

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    # -------------------------------------------------------------------------
    # Edges
    # -------------------------------------------------------------------------

    def add_edge(
        self,
        source: NodeId,
        target: NodeId,
        kind: EdgeKind,
        *,
        attribute: str | None = None,
    ) -> Edge:
        """Add an edge meaning ``source`` depends on ``target``.

        The cross-group flag is derived: always set for IMPORTED_VALUE,
        otherwise set iff the endpoints belong to different groups.

        Raises:
            DanglingEdgeError: If either endpoint does not exist.

        """
        missing = [node_id for node_id in (source, target) if node_id not in self._nodes]
        if missing:
            raise DanglingEdgeError(source, target, missing)

        cross_group = kind is EdgeKind.IMPORTED_VALUE or source.group != target.group
        edge = Edge(source=source, target=target, kind=kind, cross_group=cross_group, attribute=attribute)
        self._edges.append(edge)
        return edge

    def remove_edge(self, source: NodeId, target: NodeId, kind: EdgeKind | None = None) -> None:
        """Remove every edge from ``source`` to ``target`` (of ``kind``, if given)."""
        self._edges = [
            edge
            for edge in self._edges
            if not (edge.source == source and edge.target == target and (kind is None or edge.kind is kind))
        ]

    def get_edges(self, node_id: NodeId | None = None) -> list[Edge]:
        """Get all edges, or only the edges touching ``node_id``."""
        if node_id is None:
            return list(self._edges)
        return [edge for edge in self._edges if node_id in (edge.source, edge.target)]

    def get_dependencies(self, node_id: NodeId) -> list[NodeId]:
        """Get the nodes ``node_id`` depends on (targets of its out-edges)."""
        return list(dict.fromkeys(edge.target for edge in self._edges if edge.source == node_id))

    def get_dependents(self, node_id: NodeId) -> list[NodeId]:
        """Get the nodes that depend on ``node_id`` (sources of its in-edges)."""
        return list(dict.fromkeys(edge.source for edge in self._edges if edge.target == node_id))

    def get_cross_group_edges(self) -> list[Edge]:
        return [edge for edge in self._edges if edge.cross_group]

    # -------------------------------------------------------------------------
    # Exports
    # -------------------------------------------------------------------------

    def register_export(
        self,
        name: str,
        node_id: NodeId,
        output_id: str | None = None,
        value: PropertyValue = None,
        description: str | None = None,
    ) -> ExportRegistration:
        """Register (or overwrite) an export published by ``node_id``.

        A registration under an existing name replaces the previous one
        (last write wins).

        Raises:
            NotFoundError: If the node does not exist.

        """
        if node_id not in self._nodes:
            raise NotFoundError(node_id)
        if name in self._exports:
            logger.debug(f"Overwriting export '{name}' (was {self._exports[name].node_id}, now {node_id})")

        export = ExportRegistration(
            name=name,
            node_id=node_id,
            output_id=output_id if output_id is not None else node_id.name,
            value=value,
            description=description,
        )
        self._exports[name] = export
        return export

    def remove_export(self, name: str) -> None:
        self._exports.pop(name, None)

    def resolve_export(self, name: str) -> NodeId | None:
        """Get the id of the node publishing export ``name``, or None."""
        export = self._exports.get(name)
        return None if export is None else export.node_id

    def get_export(self, name: str) -> ExportRegistration | None:
        return self._exports.get(name)

    def get_exports(self) -> dict[str, ExportRegistration]:
        return dict(self._exports)

    # -------------------------------------------------------------------------
    # Ordering and views
    # -------------------------------------------------------------------------

    def sorted_nodes(self) -> list[Node]:
        """Return all nodes so that each appears after everything it depends on.

        Nodes with no ordering constraint between them keep insertion order.

        Raises:
            CycleDetectedError: If the graph has a dependency cycle.

        """
        order = depth_first_order(self._nodes, self.get_dependencies)
        return [_copy_node(self._nodes[node_id]) for node_id in order]

    def opposite(self) -> TemplateGraph:
        """Return a graph sharing this graph's nodes with every edge reversed.

        The node table is shared, not copied. Export registrations are
        carried over verbatim.
        """
        reversed_graph = TemplateGraph()
        reversed_graph._nodes = self._nodes
        reversed_graph._edges = [edge.reversed() for edge in self._edges]
        reversed_graph._exports = dict(self._exports)
        return reversed_graph

    # -------------------------------------------------------------------------
    # Relocation
    # -------------------------------------------------------------------------

    def move_node(self, source: NodeId, destination: NodeId) -> None:
        """Move the node at ``source`` to ``destination``, keeping references valid.

        Moving across groups turns references that now cross a group
        boundary into imports of (reused or newly synthesized) exports and
        drops ordering hints that can no longer be expressed; imports whose
        endpoints end up in one group turn back into plain references.
        Renaming within a group rewrites the references of the group's
        other nodes.

        The move is applied as a whole or not at all.

        Raises:
            NotFoundError: If no node occupies ``source``.
            AlreadyExistsError: If ``destination`` is occupied by another node.

        """
        if source not in self._nodes:
            raise NotFoundError(source)
        if source == destination:
            return
        if destination in self._nodes:
            raise AlreadyExistsError(destination)

        logger.debug(f"Moving {source} -> {destination}")
        nodes, edges, exports = relocate(self._nodes, self._edges, self._exports, source, destination)

        # Commit; the node table is updated in place so views from opposite() keep sharing it
        self._nodes.clear()
        self._nodes.update(nodes)
        self._edges = edges
        self._exports = exports
