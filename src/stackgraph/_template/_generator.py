"""Generate CloudFormation templates from a template graph."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from stackgraph._graph import EdgeKind, ExportRegistration, Node, TemplateGraph
from stackgraph._values import ImportValue, PropertyValue, Ref, find_references, map_references

from ._intrinsics import encode_value
from ._models import ExportDocument, OutputDocument, ResourceDocument, TemplateDocument

if TYPE_CHECKING:
    from collections.abc import Mapping

    from stackgraph._ids import NodeId

logger = logging.getLogger(__name__)

DEFAULT_FORMAT_VERSION = "2010-09-09"


def _find_export(
    exports: Mapping[str, ExportRegistration],
    target: NodeId,
    attribute: str | None,
) -> ExportRegistration | None:
    for export in exports.values():
        if export.exposes(target, attribute):
            return export
    return None


def _import_map(graph: TemplateGraph, node: Node, exports: Mapping[str, ExportRegistration]) -> dict[Ref, str]:
    """Map each cross-group reference of ``node`` to the export name it must import."""
    import_map: dict[Ref, str] = {}
    local_refs = set(find_references(node.properties))
    for edge in graph.get_edges(node.id):
        if edge.source != node.id or edge.kind is not EdgeKind.IMPORTED_VALUE:
            continue
        ref = Ref(edge.target.name, edge.attribute)
        export = _find_export(exports, edge.target, edge.attribute)
        if export is None:
            if ref in local_refs:
                logger.warning(f"No export publishes {edge.target} for {node.id}; reference to '{ref}' left as is")
            continue
        import_map[ref] = export.name
    return import_map


def _depends_on(graph: TemplateGraph, node: Node) -> str | list[str] | None:
    names = list(
        dict.fromkeys(
            edge.target.name
            for edge in graph.get_edges(node.id)
            if edge.source == node.id and edge.kind is EdgeKind.STRUCTURAL_DEPENDENCY and not edge.cross_group
        ),
    )
    if not names:
        return None
    if len(names) == 1:
        return names[0]
    return names


def _node_to_resource(graph: TemplateGraph, node: Node, exports: Mapping[str, ExportRegistration]) -> ResourceDocument:
    import_map = _import_map(graph, node, exports)

    def to_import(ref: Ref) -> PropertyValue:
        if ref in import_map:
            return ImportValue(import_map[ref])
        return ref

    properties = map_references(node.properties, to_import) if import_map else node.properties

    data: dict[str, Any] = {"Type": node.kind}
    if properties:
        data["Properties"] = encode_value(properties)
    depends_on = _depends_on(graph, node)
    if depends_on is not None:
        data["DependsOn"] = depends_on
    for key, value in node.metadata.items():
        data[key] = encode_value(value)
    return ResourceDocument.model_validate(data)


def _export_to_output(export: ExportRegistration) -> OutputDocument:
    value = export.value if export.value is not None else Ref(export.node_id.name)
    return OutputDocument(
        value=encode_value(value),
        export=ExportDocument(name=export.name),
        description=export.description,
    )


def generate_template(
    graph: TemplateGraph,
    group: str,
    sections: TemplateDocument | None = None,
) -> TemplateDocument:
    """Generate the template of one stack.

    Resources come from the stack's nodes. References matched by an
    IMPORTED_VALUE edge become ``Fn::ImportValue`` of the export publishing
    their target; ``DependsOn`` lists the remaining in-stack ordering hints.
    Outputs are the exports sourced from the stack's nodes, after any plain
    outputs carried in ``sections``.

    Args:
        graph: The graph to generate from.
        group: The stack to generate.
        sections: The stack's non-resource sections (description, parameters,
            plain outputs, ...), as kept by the parser.

    Returns:
        The generated template.

    """
    exports = graph.get_exports()
    base = sections if sections is not None else TemplateDocument()

    resources = {node.name: _node_to_resource(graph, node, exports) for node in graph.get_nodes_by_group(group)}

    outputs: dict[str, OutputDocument] = dict(base.outputs or {})
    for export in exports.values():
        if export.node_id.group == group:
            if export.output_id in outputs:
                logger.warning(f"Output '{export.output_id}' of stack '{group}' replaced by export '{export.name}'")
            outputs[export.output_id] = _export_to_output(export)

    logger.debug(f"Generated stack '{group}': {len(resources)} resource(s), {len(outputs)} output(s)")
    return base.model_copy(
        update={
            "format_version": base.format_version or DEFAULT_FORMAT_VERSION,
            "resources": resources,
            "outputs": outputs or None,
        },
    )


def generate_templates(
    graph: TemplateGraph,
    sections: Mapping[str, TemplateDocument] | None = None,
) -> dict[str, TemplateDocument]:
    """Generate one template per stack.

    Stacks are those owning nodes in the graph, followed by stacks that only
    have sections (for example a stack whose resources were all moved away).
    """
    sections = sections or {}
    groups = list(dict.fromkeys([*graph.get_groups(), *sections]))
    return {group: generate_template(graph, group, sections.get(group)) for group in groups}
