"""Property trees and the reference constructs found inside them.

A property tree is a recursive value made of JSON-like data (None, bool,
int, float, str, list, dict with string keys) plus two reference leaves:

- Ref: a reference naming a node by its local name, either the whole node
  (``attribute is None``) or one of its attributes.
- ImportValue: a cross-group consumption of a published export.

Reference constructs are recognized once, when a document is decoded, so
every function here can pattern-match on the closed set of shapes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Mapping


@dataclass(slots=True, frozen=True)
class Ref:
    target: str
    attribute: str | None = None

    def __str__(self) -> str:
        if self.attribute is None:
            return self.target
        return f"{self.target}.{self.attribute}"


@dataclass(slots=True, frozen=True)
class ImportValue:
    export_name: str


type PropertyValue = (
    None | bool | int | float | str | Ref | ImportValue | list[PropertyValue] | dict[str, PropertyValue]
)


def _walk(value: PropertyValue) -> Iterator[Ref | ImportValue]:
    """Yield every reference leaf in document order."""
    match value:
        case Ref() | ImportValue():
            yield value
        case list():
            for item in value:
                yield from _walk(item)
        case dict():
            for item in value.values():
                yield from _walk(item)
        case None | bool() | int() | float() | str():
            return
        case _:
            msg = f"Unsupported property value type: {type(value)}"
            raise TypeError(msg)


def find_references(value: PropertyValue) -> list[Ref]:
    """Return every distinct Ref in the tree, in document order."""
    refs: dict[Ref, None] = {}
    for leaf in _walk(value):
        if isinstance(leaf, Ref):
            refs.setdefault(leaf, None)
    return list(refs)


def find_imports(value: PropertyValue) -> list[str]:
    """Return every distinct imported export name in the tree, in document order."""
    names: dict[str, None] = {}
    for leaf in _walk(value):
        if isinstance(leaf, ImportValue):
            names.setdefault(leaf.export_name, None)
    return list(names)


def _transform(
    value: PropertyValue,
    on_ref: Callable[[Ref], PropertyValue],
    on_import: Callable[[ImportValue], PropertyValue],
) -> PropertyValue:
    match value:
        case Ref():
            return on_ref(value)
        case ImportValue():
            return on_import(value)
        case list():
            return [_transform(item, on_ref, on_import) for item in value]
        case dict():
            return {key: _transform(item, on_ref, on_import) for key, item in value.items()}
        case None | bool() | int() | float() | str():
            return value
        case _:
            msg = f"Unsupported property value type: {type(value)}"
            raise TypeError(msg)


def _keep[T](value: T) -> T:
    return value


def copy_value(value: PropertyValue) -> PropertyValue:
    """Return a deep copy of a property tree (reference leaves are immutable and shared)."""
    return _transform(value, _keep, _keep)


def map_references(value: PropertyValue, fn: Callable[[Ref], PropertyValue]) -> PropertyValue:
    """Return a new tree with every Ref replaced by ``fn(ref)``."""
    return _transform(value, fn, _keep)


def rename_references(value: PropertyValue, old_name: str, new_name: str) -> PropertyValue:
    """Return a new tree where every Ref naming ``old_name`` names ``new_name`` instead.

    Attribute references keep their attribute.

    Example:
        >>> rename_references({"Arn": Ref("Old", "Arn")}, "Old", "New")
        {'Arn': Ref(target='New', attribute='Arn')}

    """

    def rename(ref: Ref) -> PropertyValue:
        if ref.target == old_name:
            return Ref(new_name, ref.attribute)
        return ref

    return map_references(value, rename)


def replace_imports(value: PropertyValue, replacements: Mapping[str, PropertyValue]) -> PropertyValue:
    """Return a new tree where imports of the given export names are substituted.

    Each ``ImportValue(name)`` with ``name`` in ``replacements`` becomes a copy
    of ``replacements[name]``; other imports are left alone.
    """

    def substitute(leaf: ImportValue) -> PropertyValue:
        if leaf.export_name in replacements:
            return copy_value(replacements[leaf.export_name])
        return leaf

    return _transform(value, _keep, substitute)


def copy_tree(tree: Mapping[str, PropertyValue]) -> dict[str, PropertyValue]:
    """Deep copy a top-level key -> value mapping such as a node's properties."""
    return {key: copy_value(item) for key, item in tree.items()}
