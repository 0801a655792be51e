"""Node relocation: moving a node to another group or renaming it.

Relocation works on staged copies of the node table, the edge list and the
export registry, and returns the new state for the caller to commit in one
step. Nothing passed in is mutated, so a failure halfway leaves the graph
as it was.

Rules applied to every edge touching the moved node, judged by where both
endpoints live *after* the move:

- STRUCTURAL_DEPENDENCY crossing groups: dropped (no cross-group form).
- VALUE_REFERENCE / ATTRIBUTE_REFERENCE crossing groups: becomes
  IMPORTED_VALUE, backed by an export of the target (reused if one already
  publishes the same target and attribute).
- IMPORTED_VALUE no longer crossing groups: becomes a plain reference again,
  gets a STRUCTURAL_DEPENDENCY twin if it has none, and the export it
  consumed is pruned once nothing else imports it.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from stackgraph._values import (
    Ref,
    find_imports,
    find_references,
    map_references,
    rename_references,
    replace_imports,
)

from ._types import Edge, EdgeKind, ExportRegistration, Node

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    from stackgraph._ids import NodeId
    from stackgraph._values import PropertyValue

logger = logging.getLogger(__name__)


def export_name_for(target: NodeId, attribute: str | None) -> str:
    """Deterministic export name for a target node and optional attribute.

    Example:
        >>> export_name_for(NodeId("infra", "Table"), "Stream.Arn")
        'infra-Table-Stream-Arn'

    """
    name = f"{target.group}-{target.name}"
    if attribute is not None:
        name += "-" + attribute.replace(".", "-")
    return name


def _output_id_for(target: NodeId, attribute: str | None) -> str:
    if attribute is None:
        return target.name
    return target.name + "".join(ch for ch in attribute if ch.isalnum())


def _unique_output_id(exports: Mapping[str, ExportRegistration], group: str, output_id: str, *, skip: str = "") -> str:
    taken = {
        export.output_id for name, export in exports.items() if export.node_id.group == group and name != skip
    }
    candidate = output_id
    suffix = 2
    while candidate in taken:
        candidate = f"{output_id}{suffix}"
        suffix += 1
    return candidate


def materialize_export(
    exports: dict[str, ExportRegistration],
    target: NodeId,
    attribute: str | None,
) -> ExportRegistration:
    """Find or create the export publishing ``target`` (and ``attribute``).

    Every conversion against the same target and attribute resolves to one
    shared export. A new export gets a name derived from the target's group,
    local name and attribute; if that name is held by an export of
    something else, a numeric suffix is appended.

    Args:
        exports: Staged export registry, updated in place.
        target: The node whose value is published.
        attribute: The published attribute, or None for the whole node.

    Returns:
        The existing or newly registered export.

    """
    for export in exports.values():
        if export.exposes(target, attribute):
            logger.debug(f"Reusing export '{export.name}' for {target} ({attribute or 'Ref'})")
            return export

    base = export_name_for(target, attribute)
    name = base
    suffix = 2
    while name in exports:
        name = f"{base}-{suffix}"
        suffix += 1

    export = ExportRegistration(
        name=name,
        node_id=target,
        output_id=_unique_output_id(exports, target.group, _output_id_for(target, attribute)),
        value=Ref(target.name, attribute),
    )
    exports[name] = export
    logger.debug(f"Registered export '{name}' for {target} ({attribute or 'Ref'})")
    return export


def is_export_consumed(
    export: ExportRegistration,
    nodes: Mapping[NodeId, Node],
    edges: Sequence[Edge],
) -> bool:
    """Check whether any IMPORTED_VALUE edge still consumes ``export``.

    An edge consumes an export when it targets the export's source node and
    either the export publishes exactly the edge's attribute, or the
    consuming node imports the export by name.
    """
    for edge in edges:
        if edge.kind is not EdgeKind.IMPORTED_VALUE or edge.target != export.node_id:
            continue
        if export.exposes(edge.target, edge.attribute):
            return True
        consumer = nodes.get(edge.source)
        if consumer is not None and export.name in find_imports(consumer.properties):
            return True
    return False


def _consumed_exports(
    consumer: Node,
    target: NodeId,
    attribute: str | None,
    exports: Mapping[str, ExportRegistration],
) -> list[ExportRegistration]:
    """Exports an IMPORTED_VALUE edge from ``consumer`` to ``target`` draws on."""
    imported = set(find_imports(consumer.properties))
    return [
        export
        for export in exports.values()
        if export.node_id == target and (export.name in imported or export.exposes(target, attribute))
    ]


def _restore_value(export: ExportRegistration) -> PropertyValue:
    """The in-group expression equivalent to importing ``export``."""
    if export.value is None:
        return Ref(export.node_id.name)
    return export.value


def _rewrite_properties(node: Node, fn: Callable[[PropertyValue], PropertyValue]) -> Node:
    return replace(node, properties={key: fn(value) for key, value in node.properties.items()})


def _shadowed_refs(referrer: NodeId, moved: NodeId, edges: Sequence[Edge]) -> set[Ref]:
    """Refs of ``referrer`` that resolve to some node other than ``moved``.

    A consumer may hold ``Ref(name)`` for an imported node of another group
    that shares the moved node's local name; such refs must not follow the
    rename.
    """
    return {
        Ref(edge.target.name, edge.attribute)
        for edge in edges
        if edge.source == referrer
        and edge.target != moved
        and (edge.kind.is_reference or edge.kind is EdgeKind.IMPORTED_VALUE)
    }


def _rename_refs(node: Node, old_name: str, new_name: str, shadowed: set[Ref]) -> Node | None:
    """Rename the node's refs to ``old_name``, or return None if none apply."""
    renamable = [ref for ref in find_references(node.properties) if ref.target == old_name and ref not in shadowed]
    if not renamable:
        return None

    def rename(ref: Ref) -> PropertyValue:
        if ref.target == old_name and ref not in shadowed:
            return Ref(new_name, ref.attribute)
        return ref

    return _rewrite_properties(node, lambda value: map_references(value, rename))


def relocate(  # noqa: C901, PLR0912, PLR0915
    nodes: Mapping[NodeId, Node],
    edges: Sequence[Edge],
    exports: Mapping[str, ExportRegistration],
    source: NodeId,
    destination: NodeId,
) -> tuple[dict[NodeId, Node], list[Edge], dict[str, ExportRegistration]]:
    """Compute the graph state after moving ``source`` to ``destination``.

    Preconditions (source exists, destination free and different) are the
    caller's to check.

    Returns:
        The new node table, edge list and export registry.

    """
    old_name = source.name
    new_name = destination.name
    crosses_groups = source.group != destination.group
    renamed = old_name != new_name

    def rekey(node_id: NodeId) -> NodeId:
        return destination if node_id == source else node_id

    # Re-key the node, keeping its position in insertion order
    new_nodes: dict[NodeId, Node] = {}
    for node_id, node in nodes.items():
        if node_id == source:
            new_nodes[destination] = replace(node, id=destination)
        else:
            new_nodes[node_id] = node

    # Exports sourced from the moved node follow it
    new_exports: dict[str, ExportRegistration] = dict(exports)
    for name, export in exports.items():
        if export.node_id != source:
            continue
        value = export.value
        if renamed and value is not None:
            value = rename_references(value, old_name, new_name)
        moved_export = replace(export, node_id=destination, value=value)
        if crosses_groups:
            moved_export = replace(
                moved_export,
                output_id=_unique_output_id(new_exports, destination.group, export.output_id, skip=name),
            )
        new_exports[name] = moved_export
        logger.debug(f"Export '{name}' now sourced from {destination}")

    new_edges: list[Edge] = []
    restored_pairs: list[tuple[NodeId, NodeId]] = []
    lost_consumer: dict[str, None] = {}
    import_rewrites: dict[NodeId, dict[str, PropertyValue]] = {}

    for edge in edges:
        if source not in (edge.source, edge.target):
            new_edges.append(edge)
            continue

        edge_source = rekey(edge.source)
        edge_target = rekey(edge.target)
        crosses_now = new_nodes[edge_source].group != new_nodes[edge_target].group

        match edge.kind:
            case EdgeKind.STRUCTURAL_DEPENDENCY:
                if crosses_now:
                    logger.debug(f"Dropping cross-group ordering hint {edge_source} -> {edge_target}")
                    continue
                new_edges.append(replace(edge, source=edge_source, target=edge_target, cross_group=False))

            case EdgeKind.VALUE_REFERENCE | EdgeKind.ATTRIBUTE_REFERENCE:
                if not crosses_now:
                    new_edges.append(replace(edge, source=edge_source, target=edge_target, cross_group=False))
                    continue
                export = materialize_export(new_exports, edge_target, edge.attribute)
                logger.debug(f"Reference {edge_source} -> {edge_target} becomes import of '{export.name}'")
                new_edges.append(
                    Edge(
                        source=edge_source,
                        target=edge_target,
                        kind=EdgeKind.IMPORTED_VALUE,
                        cross_group=True,
                        attribute=edge.attribute,
                    ),
                )

            case EdgeKind.IMPORTED_VALUE:
                if crosses_now:
                    new_edges.append(replace(edge, source=edge_source, target=edge_target, cross_group=True))
                    continue
                consumer = new_nodes[edge_source]
                for export in _consumed_exports(consumer, edge_target, edge.attribute, new_exports):
                    lost_consumer[export.name] = None
                    import_rewrites.setdefault(edge_source, {})[export.name] = _restore_value(export)
                logger.debug(f"Import {edge_source} -> {edge_target} becomes an in-group reference")
                new_edges.append(
                    Edge(
                        source=edge_source,
                        target=edge_target,
                        kind=EdgeKind.reference_kind(edge.attribute),
                        cross_group=False,
                        attribute=edge.attribute,
                    ),
                )
                restored_pairs.append((edge_source, edge_target))

            case EdgeKind.EXPORT_LINK:
                new_edges.append(replace(edge, source=edge_source, target=edge_target, cross_group=crosses_now))

    # Ordering that was implied by the import relationship becomes explicit
    for pair in restored_pairs:
        has_ordering = any(
            edge.kind is EdgeKind.STRUCTURAL_DEPENDENCY and (edge.source, edge.target) == pair for edge in new_edges
        )
        if not has_ordering:
            new_edges.append(Edge(source=pair[0], target=pair[1], kind=EdgeKind.STRUCTURAL_DEPENDENCY))

    # Consumers that imported by name now reference the value directly
    for consumer_id, replacements in import_rewrites.items():
        new_nodes[consumer_id] = _rewrite_properties(
            new_nodes[consumer_id],
            lambda value, replacements=replacements: replace_imports(value, replacements),
        )

    for name in lost_consumer:
        export = new_exports.get(name)
        if export is not None and not is_export_consumed(export, new_nodes, new_edges):
            logger.debug(f"Pruning export '{name}': no remaining importers")
            del new_exports[name]

    if renamed:
        # Nodes holding an edge to the moved node, in any group, plus the rest of its group on a pure rename
        referrers = {
            edge.source
            for edge in new_edges
            if edge.target == destination and edge.source != destination and edge.kind is not EdgeKind.EXPORT_LINK
        }
        if not crosses_groups:
            referrers.update(node_id for node_id in new_nodes if node_id.group == source.group)
        referrers.discard(destination)

        for node_id in [node_id for node_id in new_nodes if node_id in referrers]:
            renamed_node = _rename_refs(
                new_nodes[node_id],
                old_name,
                new_name,
                _shadowed_refs(node_id, destination, new_edges),
            )
            if renamed_node is not None:
                logger.debug(f"Renaming references {old_name} -> {new_name} in {node_id}")
                new_nodes[node_id] = renamed_node

    return new_nodes, new_edges, new_exports
