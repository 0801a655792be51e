"""Node, edge and export value types of the template graph."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from stackgraph._ids import NodeId
from stackgraph._values import PropertyValue, Ref


class EdgeKind(StrEnum):
    """The kind of relationship an edge records."""

    STRUCTURAL_DEPENDENCY = "DependsOn"  # Ordering hint, carries no data
    VALUE_REFERENCE = "Ref"  # Whole-node reference
    ATTRIBUTE_REFERENCE = "GetAtt"  # Reference to a named attribute of the target
    IMPORTED_VALUE = "ImportValue"  # Cross-group consumption of a published export
    EXPORT_LINK = "Export"  # Export artifact -> underlying source node

    @classmethod
    def reference_kind(cls, attribute: str | None) -> EdgeKind:
        """Return the in-group reference kind matching an optional attribute."""
        return cls.VALUE_REFERENCE if attribute is None else cls.ATTRIBUTE_REFERENCE

    @property
    def is_reference(self) -> bool:
        return self in (EdgeKind.VALUE_REFERENCE, EdgeKind.ATTRIBUTE_REFERENCE)


@dataclass(slots=True, frozen=True)
class Node:
    """A declared resource.

    Attributes:
        id: Composite id (owning group, local name).
        kind: The resource type, e.g. ``AWS::SNS::Topic``.
        properties: The resource's property tree.
        metadata: Side-channel resource attributes that live outside the
            property tree (``Metadata``, ``Condition``, ``DeletionPolicy``, ...).

    """

    id: NodeId
    kind: str
    properties: dict[str, PropertyValue] = field(default_factory=dict)
    metadata: dict[str, PropertyValue] = field(default_factory=dict)

    @property
    def group(self) -> str:
        return self.id.group

    @property
    def name(self) -> str:
        return self.id.name


@dataclass(slots=True, frozen=True)
class Edge:
    """A directed relationship; ``source`` depends on ``target``."""

    source: NodeId
    target: NodeId
    kind: EdgeKind
    cross_group: bool = False
    attribute: str | None = None

    def reversed(self) -> Edge:
        return Edge(
            source=self.target,
            target=self.source,
            kind=self.kind,
            cross_group=self.cross_group,
            attribute=self.attribute,
        )


@dataclass(slots=True, frozen=True)
class ExportRegistration:
    """A named, globally resolvable value published by a node.

    Attributes:
        name: Export name, unique across the graph.
        node_id: The node whose value is published.
        output_id: Key of the output entry carrying the export.
        value: Captured value expression. ``Ref(name)`` publishes the whole
            node, ``Ref(name, attribute)`` one attribute; None means the
            whole node.
        description: Optional description of the output entry.

    """

    name: str
    node_id: NodeId
    output_id: str
    value: PropertyValue = None
    description: str | None = None

    @property
    def attribute(self) -> str | None:
        if isinstance(self.value, Ref):
            return self.value.attribute
        return None

    def exposes(self, node_id: NodeId, attribute: str | None) -> bool:
        """Check whether this export publishes exactly ``node_id`` (and ``attribute``)."""
        if node_id != self.node_id:
            return False
        if self.value is None:
            return attribute is None
        return self.value == Ref(node_id.name, attribute)
