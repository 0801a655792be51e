"""Build a template graph from CloudFormation templates."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from stackgraph._graph import EdgeKind, Node, TemplateGraph
from stackgraph._ids import NodeId
from stackgraph._values import find_imports, find_references

from ._intrinsics import decode_tree, decode_value, resolve_export_name
from ._models import SIDE_CHANNEL_ATTRIBUTES, OutputDocument, ResourceDocument, TemplateDocument
from ._stacks import StackSet

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)


def _as_document(document: TemplateDocument | Mapping[str, Any]) -> TemplateDocument:
    if isinstance(document, TemplateDocument):
        return document
    return TemplateDocument.from_dict(document)


def _resource_to_node(node_id: NodeId, resource: ResourceDocument) -> Node:
    metadata = {}
    for key, field_name in SIDE_CHANNEL_ATTRIBUTES.items():
        value = getattr(resource, field_name)
        if value is not None:
            metadata[key] = decode_value(value)
    for key, value in (resource.model_extra or {}).items():
        metadata[key] = decode_value(value)

    return Node(
        id=node_id,
        kind=resource.type,
        properties=decode_tree(resource.properties),
        metadata=metadata,
    )


def _register_output(graph: TemplateGraph, group: str, output_id: str, output: OutputDocument) -> bool:
    """Register an exported output of a resource. Returns False if it stays a plain output."""
    if output.export is None:
        return False

    export_name = resolve_export_name(output.export.name)
    if export_name is None:
        logger.warning(f"Cannot resolve export name of output '{output_id}' in stack '{group}'; kept as is")
        return False

    value = decode_value(output.value)
    sources = [NodeId(group, ref.target) for ref in find_references(value) if NodeId(group, ref.target) in graph]
    if not sources:
        logger.debug(f"Output '{output_id}' in stack '{group}' exports no resource; kept as is")
        return False

    if output.condition is not None:
        logger.warning(f"Condition '{output.condition}' of exported output '{output_id}' in stack '{group}' is dropped")

    graph.register_export(export_name, sources[0], output_id, value, output.description)
    logger.debug(f"Registered export '{export_name}' from {sources[0]}")
    return True


def _add_resource_edges(graph: TemplateGraph, node_id: NodeId, resource: ResourceDocument) -> None:
    for dep_name in resource.depends_on_names():
        graph.add_edge(node_id, NodeId(node_id.group, dep_name), EdgeKind.STRUCTURAL_DEPENDENCY)

    node = graph.get_node(node_id)
    if node is None:
        return

    for ref in find_references(node.properties):
        target = NodeId(node_id.group, ref.target)
        # Parameters and pseudo parameters are not nodes
        if target == node_id or target not in graph:
            continue
        graph.add_edge(node_id, target, EdgeKind.reference_kind(ref.attribute), attribute=ref.attribute)

    for export_name in find_imports(node.properties):
        export = graph.get_export(export_name)
        if export is None:
            logger.debug(f"{node_id} imports unknown export '{export_name}'")
            continue
        graph.add_edge(node_id, export.node_id, EdgeKind.IMPORTED_VALUE, attribute=export.attribute)


def parse_stacks(
    stacks: Mapping[str, TemplateDocument | Mapping[str, Any]],
    graph: TemplateGraph | None = None,
) -> StackSet:
    """Parse templates of several stacks into one graph.

    All resources and exports are loaded before any edge is added, so an
    ``Fn::ImportValue`` resolves regardless of stack order.

    Args:
        stacks: Mapping from stack name to its template (document or raw dict).
        graph: Graph to add to. A new graph is created if omitted.

    Returns:
        A StackSet holding the graph and each stack's non-resource sections.

    Raises:
        TemplateError: If a template is structurally invalid.
        DanglingEdgeError: If a ``DependsOn`` names a missing resource.
        AlreadyExistsError: If a resource is already in the graph.

    """
    if graph is None:
        graph = TemplateGraph()
    documents = {group: _as_document(document) for group, document in stacks.items()}

    for group, document in documents.items():
        for name, resource in document.resources.items():
            graph.add_node(_resource_to_node(NodeId(group, name), resource))
        logger.debug(f"Loaded {len(document.resources)} resource(s) into stack '{group}'")

    sections: dict[str, TemplateDocument] = {}
    for group, document in documents.items():
        plain_outputs = {
            output_id: output
            for output_id, output in (document.outputs or {}).items()
            if not _register_output(graph, group, output_id, output)
        }
        sections[group] = document.model_copy(update={"resources": {}, "outputs": plain_outputs or None})

    for group, document in documents.items():
        for name, resource in document.resources.items():
            _add_resource_edges(graph, NodeId(group, name), resource)

    return StackSet(graph=graph, sections=sections)


def parse_template(
    document: TemplateDocument | Mapping[str, Any],
    group: str = "default",
    graph: TemplateGraph | None = None,
) -> StackSet:
    """Parse a single stack's template.

    Imports resolve against exports already registered in ``graph``.
    """
    return parse_stacks({group: document}, graph)
