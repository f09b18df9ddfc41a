"""
Dependency resolution between conditionally visible fields.

A field depends on every field its visibility conditions target. The
reverse map built here tells a form runtime which fields to re-evaluate
when a value changes. Dependencies are configuration supplied by users,
so cycles are possible; both cascading recursions guard against them with
``DependencyPath``.
"""

import logging
from typing import Iterable

from fieldvis.core.schema import FormField

logger = logging.getLogger(__name__)


class VisibilityCycleError(ValueError):
    """Raised when visibility conditions form a dependency cycle."""

    def __init__(self, cycle: list[str]):
        self.cycle = cycle
        super().__init__(
            "Cyclic visibility dependency: " + " -> ".join(cycle)
        )


def index_fields(fields: Iterable[FormField]) -> dict[str, FormField]:
    """Key fields by code (the first definition of a code wins)."""
    indexed: dict[str, FormField] = {}
    for field in fields:
        indexed.setdefault(field.code, field)
    return indexed


def get_dependent_fields(field: FormField) -> list[str]:
    """Return the distinct field codes this field's visibility depends on."""
    if field.visibility is None:
        return []
    return field.visibility.dependent_fields()


def calculate_dependencies(all_fields: Iterable[FormField]) -> dict[str, list[str]]:
    """Build the reverse dependency map.

    Args:
        all_fields: Every field of the form.

    Returns:
        A mapping of field code -> codes of the fields whose visibility
        depends on it. Targets that are not part of ``all_fields`` are
        left out.
    """
    fields = list(all_fields)
    known = index_fields(fields)
    dependencies: dict[str, list[str]] = {}

    for field in fields:
        for target_code in get_dependent_fields(field):
            if target_code in known:
                dependencies.setdefault(target_code, []).append(field.code)

    return dependencies


def find_dependency_cycle(all_fields: Iterable[FormField]) -> list[str] | None:
    """Find one dependency cycle, if any.

    Walks the forward graph (field -> fields it depends on) depth-first
    with an explicit stack.

    Returns:
        The cycle as a path that starts and ends on the same code, e.g.
        ``["a", "b", "a"]``, or None if the graph is acyclic.
    """
    known = index_fields(all_fields)
    finished: set[str] = set()

    for start in known:
        if start in finished:
            continue

        path: list[str] = [start]
        on_path = {start}
        stack = [iter(_known_targets(known[start], known))]

        while stack:
            target = next(stack[-1], None)
            if target is None:
                stack.pop()
                finished.add(path[-1])
                on_path.discard(path.pop())
                continue
            if target in on_path:
                return path[path.index(target):] + [target]
            if target in finished:
                continue
            path.append(target)
            on_path.add(target)
            stack.append(iter(_known_targets(known[target], known)))

    return None


def _known_targets(field: FormField, known: dict[str, FormField]) -> list[str]:
    return [code for code in get_dependent_fields(field) if code in known]


class DependencyPath:
    """Tracks the chain of fields a cascading recursion is currently inside.

    Usage:
        with path.enter(field.code):
            ...recurse into parents...

    Entering a code that is already on the path raises VisibilityCycleError.
    """

    def __init__(self):
        self._codes: list[str] = []

    def enter(self, code: str) -> "_PathEntry":
        if code in self._codes:
            cycle = self._codes[self._codes.index(code):] + [code]
            logger.error("Visibility dependency cycle detected: %s", " -> ".join(cycle))
            raise VisibilityCycleError(cycle)
        return _PathEntry(self, code)


class _PathEntry:
    def __init__(self, path: DependencyPath, code: str):
        self._path = path
        self._code = code

    def __enter__(self) -> None:
        self._path._codes.append(self._code)

    def __exit__(self, exc_type, exc, tb) -> None:
        self._path._codes.pop()
