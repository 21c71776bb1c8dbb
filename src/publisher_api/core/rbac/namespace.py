"""Hierarchical namespace matching for legacy resource grants.

Namespaces look like ``/division/resource-type/resource-id``. A ``*``
segment covers everything at and below its position, so ``/t2/*`` covers
``/t2/games/civ6`` and ``/*`` covers every valid resource.
"""

from __future__ import annotations

from publisher_api.core.rbac.errors import InvalidInput

SEPARATOR = "/"
WILDCARD = "*"


def is_contained(resource: str, namespace: str) -> bool:
    """Return whether ``resource`` is covered by the ``namespace`` pattern.

    Segments are compared left to right from the division level. A pattern
    that runs out of segments before the resource does covers it as a prefix.
    """
    if not resource.startswith(SEPARATOR) or not namespace.startswith(SEPARATOR):
        raise InvalidInput("Resource and namespace must start with '/'")

    resource_segments = resource.split(SEPARATOR)
    pattern_segments = namespace.split(SEPARATOR)

    for index in range(1, len(pattern_segments)):
        expected = pattern_segments[index]
        if expected == WILDCARD:
            return True
        if index >= len(resource_segments) or resource_segments[index] != expected:
            return False
    return True


__all__ = ["SEPARATOR", "WILDCARD", "is_contained"]
