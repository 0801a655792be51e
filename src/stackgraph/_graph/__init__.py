"""Graph module holding the template dependency graph.

This module contains:
- TemplateGraph: the mutable graph of resources, edges and exports
- Node, Edge, EdgeKind, ExportRegistration: the values it stores
- depth_first_order: dependency ordering with cycle detection
"""

from ._algorithms import depth_first_order
from ._relocation import export_name_for
from ._store import TemplateGraph
from ._types import Edge, EdgeKind, ExportRegistration, Node

__all__ = [
    "Edge",
    "EdgeKind",
    "ExportRegistration",
    "Node",
    "TemplateGraph",
    "depth_first_order",
    "export_name_for",
]
