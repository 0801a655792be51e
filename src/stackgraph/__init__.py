"""Cross-stack dependency graph for CloudFormation templates."""

__all__ = [
    "DEFAULT_FORMAT_VERSION",
    "AlreadyExistsError",
    "CycleDetectedError",
    "DanglingEdgeError",
    "Edge",
    "EdgeKind",
    "ExportRegistration",
    "GraphError",
    "ImportValue",
    "Node",
    "NodeId",
    "NotFoundError",
    "PropertyValue",
    "Ref",
    "StackSet",
    "TemplateDocument",
    "TemplateError",
    "TemplateGraph",
    "create_node_id",
    "decode_value",
    "depth_first_order",
    "dump_template",
    "dump_template_text",
    "encode_value",
    "export_name_for",
    "export_report_to_toml",
    "find_imports",
    "find_references",
    "generate_template",
    "generate_templates",
    "graph_to_dict",
    "load_stacks",
    "load_template",
    "parse_node_id",
    "parse_stacks",
    "parse_template",
    "parse_template_text",
    "rename_references",
    "replace_imports",
    "write_templates",
]

from ._errors import AlreadyExistsError, CycleDetectedError, DanglingEdgeError, GraphError, NotFoundError
from ._graph import Edge, EdgeKind, ExportRegistration, Node, TemplateGraph, depth_first_order, export_name_for
from ._ids import NodeId, create_node_id, parse_node_id
from ._io import dump_template, dump_template_text, load_stacks, load_template, parse_template_text, write_templates
from ._report import export_report_to_toml, graph_to_dict
from ._template import (
    DEFAULT_FORMAT_VERSION,
    StackSet,
    TemplateDocument,
    TemplateError,
    decode_value,
    encode_value,
    generate_template,
    generate_templates,
    parse_stacks,
    parse_template,
)
from ._values import ImportValue, PropertyValue, Ref, find_imports, find_references, rename_references, replace_imports
