"""
Dependency graph construction and topological ordering.

The graph is built from the descriptors of a single scope. Edges point from
a dependency to the descriptors that declare it, and Kahn's algorithm turns
the graph into an instantiation order that is deterministic for a given
registration order.
"""

from collections import deque
from typing import Dict, List, Sequence

import structlog

from scopekit.core.domain.descriptor import Descriptor
from scopekit.shared.exceptions import CyclicDependencyError, UnresolvedDependencyError
from scopekit.shared.types import Key, key_name

logger = structlog.get_logger(__name__)


class DependencyGraph:
    """Adjacency map and in-degrees over the descriptors of one scope."""

    def __init__(self, descriptors: Sequence[Descriptor]):
        self._descriptors: Dict[Key, Descriptor] = {}
        for descriptor in descriptors:
            self._descriptors[descriptor.key] = descriptor

        self.adjacency: Dict[Key, List[Key]] = {key: [] for key in self._descriptors}
        self.in_degrees: Dict[Key, int] = {key: 0 for key in self._descriptors}

    @classmethod
    def from_descriptors(cls, descriptors: Sequence[Descriptor]) -> "DependencyGraph":
        """
        Build the graph, validating that every declared dependency exists.

        Args:
            descriptors: Descriptors in registration order; a later descriptor
                for the same key replaces an earlier one

        Returns:
            Populated dependency graph

        Raises:
            UnresolvedDependencyError: If a declared key has no descriptor
        """
        graph = cls(descriptors)

        for descriptor in graph._descriptors.values():
            for dependency in descriptor.depends_on:
                if dependency not in graph.adjacency:
                    raise UnresolvedDependencyError(key_name(dependency), descriptor.name)

                graph.adjacency[dependency].append(descriptor.key)
                graph.in_degrees[descriptor.key] += 1

        return graph

    def __len__(self) -> int:
        return len(self._descriptors)

    def topological_order(self) -> List[Descriptor]:
        """
        Order descriptors so each one follows everything it depends on.

        Ties between descriptors that become ready together are resolved in
        the order they reached in-degree zero, which for the initial batch is
        registration order.

        Raises:
            CyclicDependencyError: If some descriptors can never become ready
        """
        in_degrees = dict(self.in_degrees)
        queue = deque(key for key, degree in in_degrees.items() if degree == 0)
        ordered: List[Descriptor] = []

        while queue:
            current = queue.popleft()
            ordered.append(self._descriptors[current])

            for neighbor in self.adjacency[current]:
                in_degrees[neighbor] -= 1
                if in_degrees[neighbor] == 0:
                    queue.append(neighbor)

        if len(ordered) != len(self._descriptors):
            remaining = [key for key, degree in in_degrees.items() if degree > 0]
            cycle = self._find_cycle(remaining)
            logger.error(
                "Cyclic dependency detected",
                remaining=[key_name(key) for key in remaining],
                cycle=cycle
            )
            raise CyclicDependencyError([key_name(key) for key in remaining], cycle)

        return ordered

    def _find_cycle(self, remaining: List[Key]) -> List[str]:
        # Every unsorted key still waits on another unsorted key, so walking
        # dependency edges inside the remainder must revisit a key.
        pending = set(remaining)
        path: List[Key] = []
        seen: Dict[Key, int] = {}
        current = remaining[0]

        while current not in seen:
            seen[current] = len(path)
            path.append(current)
            current = next(
                dep for dep in self._descriptors[current].depends_on if dep in pending
            )

        cycle = path[seen[current]:] + [current]
        return [key_name(key) for key in cycle]


def sort_descriptors(descriptors: Sequence[Descriptor]) -> List[Descriptor]:
    """Validate and topologically sort the descriptors of a scope."""
    return DependencyGraph.from_descriptors(descriptors).topological_order()
