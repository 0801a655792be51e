"""A set of stacks: the template graph plus each stack's non-resource sections."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from stackgraph._graph import TemplateGraph
from stackgraph._values import find_references, rename_references

from ._generator import generate_template, generate_templates
from ._intrinsics import decode_value, encode_value
from ._models import OutputDocument, TemplateDocument

if TYPE_CHECKING:
    from stackgraph._ids import NodeId

logger = logging.getLogger(__name__)


def _rename_in_output(output: OutputDocument, old_name: str, new_name: str) -> OutputDocument:
    value = rename_references(decode_value(output.value), old_name, new_name)
    return output.model_copy(update={"value": encode_value(value)})


@dataclass(slots=True)
class StackSet:
    """Parsed stacks ready to be reorganized and regenerated.

    Attributes:
        graph: Graph of all stacks' resources.
        sections: Per stack, the template without resources and with only
            the outputs that are not exports of a resource (description,
            parameters, mappings, conditions, plain outputs, ...).

    """

    graph: TemplateGraph = field(default_factory=TemplateGraph)
    sections: dict[str, TemplateDocument] = field(default_factory=dict)

    def groups(self) -> list[str]:
        return list(dict.fromkeys([*self.graph.get_groups(), *self.sections]))

    def move_node(self, source: NodeId, destination: NodeId) -> None:
        """Move a resource and keep the stacks' plain outputs pointing at it.

        See ``TemplateGraph.move_node``. A rename within a stack also renames
        references in that stack's plain outputs; plain outputs left behind
        by a move to another stack are reported.
        """
        self.graph.move_node(source, destination)

        sections = self.sections.get(source.group)
        if sections is None or not sections.outputs or source == destination:
            return

        if source.group == destination.group:
            outputs = {
                output_id: _rename_in_output(output, source.name, destination.name)
                for output_id, output in sections.outputs.items()
            }
            self.sections[source.group] = sections.model_copy(update={"outputs": outputs})
            return

        for output_id, output in sections.outputs.items():
            if any(ref.target == source.name for ref in find_references(decode_value(output.value))):
                logger.warning(
                    f"Output '{output_id}' of stack '{source.group}' still references '{source.name}', "
                    f"which moved to {destination}",
                )

    def generate(self, group: str) -> TemplateDocument:
        return generate_template(self.graph, group, self.sections.get(group))

    def generate_all(self) -> dict[str, TemplateDocument]:
        return generate_templates(self.graph, self.sections)
