from __future__ import annotations

import pytest

from publisher_api.core.rbac.errors import InvalidInput, InvalidRequest
from publisher_api.core.rbac.namespace import is_contained


@pytest.mark.parametrize(
    "resource",
    ["/t2", "/t2/games", "/t2/games/civ6", "/a/b/c/d"],
)
def test_resource_is_contained_in_itself(resource: str) -> None:
    assert is_contained(resource, resource)


@pytest.mark.parametrize(
    "resource",
    ["/t2", "/t2/games/civ6", "/x/y/z"],
)
def test_root_wildcard_covers_every_resource(resource: str) -> None:
    assert is_contained(resource, "/*")


@pytest.mark.parametrize(
    ("resource", "pattern", "expected"),
    [
        ("/a/b/c", "/a/*", True),
        ("/a/b/c", "/x/*", False),
        ("/a/b/c", "/a/b/*", True),
        ("/a/b/c", "/a/x/*", False),
        ("/a/b/c", "/a/b/c/*", True),
        ("/a/b", "/a/b/c/*", False),
        ("/a/b/c", "/a/b", True),
        ("/a/b", "/a/b/c", False),
        ("/a/b/c", "/a/*/x", True),
    ],
)
def test_wildcard_covers_everything_below_its_position(
    resource: str,
    pattern: str,
    expected: bool,
) -> None:
    assert is_contained(resource, pattern) is expected


@pytest.mark.parametrize(
    ("resource", "pattern"),
    [
        ("a/b", "/a/*"),
        ("/a/b", "a/*"),
        ("", "/*"),
    ],
)
def test_paths_without_leading_separator_are_rejected(resource: str, pattern: str) -> None:
    with pytest.raises(InvalidInput):
        is_contained(resource, pattern)


def test_invalid_input_is_an_invalid_request() -> None:
    assert issubclass(InvalidInput, InvalidRequest)
