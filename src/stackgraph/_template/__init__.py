"""CloudFormation template adapter.

Translates templates into template graph insertions and regenerates
templates from the graph:
- TemplateDocument and friends: pydantic models of the document structure
- parse_template / parse_stacks: templates -> StackSet (graph + sections)
- generate_template / generate_templates: graph -> templates
- decode_value / encode_value: raw intrinsics <-> property trees
"""

from ._generator import DEFAULT_FORMAT_VERSION, generate_template, generate_templates
from ._intrinsics import decode_tree, decode_value, encode_value, resolve_export_name
from ._models import ExportDocument, OutputDocument, ResourceDocument, TemplateDocument, TemplateError
from ._parser import parse_stacks, parse_template
from ._stacks import StackSet

__all__ = [
    "DEFAULT_FORMAT_VERSION",
    "ExportDocument",
    "OutputDocument",
    "ResourceDocument",
    "StackSet",
    "TemplateDocument",
    "TemplateError",
    "decode_tree",
    "decode_value",
    "encode_value",
    "generate_template",
    "generate_templates",
    "parse_stacks",
    "parse_template",
    "resolve_export_name",
]
