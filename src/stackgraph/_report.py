"""TOML report of a template graph."""

import logging
from pathlib import Path
from typing import Any

import tomli_w

from ._graph import TemplateGraph
from ._template import encode_value

logger = logging.getLogger(__name__)


def graph_to_dict(graph: TemplateGraph) -> dict[str, Any]:
    """Convert a graph to a nested dictionary suitable for TOML export.

    The structure is::

        {
            "stacks": {"<stack>": {"resources": {"<name>": "<type>"}}},
            "edges": [{"source": ..., "target": ..., "kind": ..., "cross_stack": ...}],
            "exports": {"<export name>": {"node": ..., "output": ..., "value": ...}},
        }

    TOML has no null, so absent values are left out.
    """
    stacks: dict[str, Any] = {}
    for node in graph.get_all_nodes():
        stack = stacks.setdefault(node.group, {"resources": {}})
        stack["resources"][node.name] = node.kind

    edges: list[dict[str, Any]] = []
    for edge in graph.get_edges():
        entry: dict[str, Any] = {
            "source": str(edge.source),
            "target": str(edge.target),
            "kind": str(edge.kind),
            "cross_stack": edge.cross_group,
        }
        if edge.attribute is not None:
            entry["attribute"] = edge.attribute
        edges.append(entry)

    exports: dict[str, Any] = {}
    for name, export in graph.get_exports().items():
        entry = {"node": str(export.node_id), "output": export.output_id}
        if export.value is not None:
            entry["value"] = encode_value(export.value)
        if export.description is not None:
            entry["description"] = export.description
        exports[name] = entry

    return {"stacks": stacks, "edges": edges, "exports": exports}


def export_report_to_toml(graph: TemplateGraph, output_path: Path | str) -> None:
    """Write ``graph_to_dict(graph)`` to a TOML file."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("wb") as f:
        tomli_w.dump(graph_to_dict(graph), f)

    logger.debug(f"Exported graph report to {output_path}")
