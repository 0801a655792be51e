"""Graph algorithms for template graph operations."""

from collections.abc import Callable, Hashable, Iterable
from enum import Enum, auto

from stackgraph._errors import CycleDetectedError


class _Mark(Enum):
    IN_PROGRESS = auto()
    DONE = auto()


def depth_first_order[T: Hashable](
    nodes: Iterable[T],
    dependencies: Callable[[T], Iterable[T]],
) -> list[T]:
    """Order nodes so that every node appears after everything it depends on.

    Three-state depth-first traversal: unvisited, in progress, done. Roots
    are visited in the order of ``nodes`` and each node's dependencies in
    the order ``dependencies`` yields them, so nodes with no ordering
    constraint between them keep their input order.

    Args:
        nodes: All nodes of the graph.
        dependencies: Returns the nodes a node depends on (its out-edges).

    Returns:
        List of nodes in dependency order.

    Raises:
        CycleDetectedError: If a cycle is reachable. No partial order is returned.

    Example:
        >>> # c depends on b, b depends on a
        >>> deps = {"a": [], "b": ["a"], "c": ["b"]}
        >>> depth_first_order(["c", "b", "a"], deps.__getitem__)
        ['a', 'b', 'c']

    """
    marks: dict[T, _Mark] = {}
    order: list[T] = []

    for root in nodes:
        if root in marks:
            continue

        # Explicit stack of (node, iterator over its dependencies) so long chains do not hit the recursion limit
        marks[root] = _Mark.IN_PROGRESS
        path: list[T] = [root]
        stack = [iter(dependencies(root))]

        while stack:
            for dep in stack[-1]:
                mark = marks.get(dep)
                if mark is _Mark.IN_PROGRESS:
                    cycle = [*path[path.index(dep) :], dep]
                    raise CycleDetectedError(cycle)
                if mark is None:
                    marks[dep] = _Mark.IN_PROGRESS
                    path.append(dep)
                    stack.append(iter(dependencies(dep)))
                    break
            else:
                stack.pop()
                done = path.pop()
                marks[done] = _Mark.DONE
                order.append(done)

    return order
