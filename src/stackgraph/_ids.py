from dataclasses import dataclass
from typing import ClassVar, Self


@dataclass(slots=True, frozen=True, order=True)
class NodeId:
    """Address of a node: the owning group (stack) and its local (logical) name."""

    group: str
    name: str

    SEPARATOR: ClassVar[str] = "::"

    def __str__(self) -> str:
        return f"{self.group}{self.SEPARATOR}{self.name}"

    @classmethod
    def parse(cls, text: str) -> Self:
        group, sep, name = text.strip().partition(cls.SEPARATOR)
        if not sep or not group or not name:
            msg = f"Invalid node id '{text}'. Expected format: 'group{cls.SEPARATOR}name'"
            raise ValueError(msg)
        return cls(group=group, name=name)


def parse_node_id(text: str) -> NodeId:
    """Parse a ``group::name`` string into a NodeId.

    The text is split at the first separator, so local names may themselves
    contain ``::``.

    Raises:
        ValueError: If the text has no separator or an empty part.

    """
    return NodeId.parse(text)


def create_node_id(group: str, name: str) -> str:
    """Return the ``group::name`` text form of a node id."""
    return str(NodeId(group=group, name=name))
