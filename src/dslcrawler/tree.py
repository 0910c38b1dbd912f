"""Generic queries over parsed markup trees.

The helpers take either a single :class:`bs4.Tag` or an iterable of tags (the
result of a previous query) so lookups can be chained, each step searching
within the nodes found by the one before it::

    rows = by_attribute(by_attribute(by_id(soup, "body"), "cellspacing", "10"),
                        "bgcolor", "#ffffff")

Text leaves are never matched; only element nodes reach the predicate.
"""

from __future__ import annotations

from typing import Callable, Iterable, List, Union

from bs4 import Tag

from dslcrawler.exceptions import MissingField

Nodes = Union[Tag, Iterable[Tag]]
Predicate = Callable[[Tag], bool]

_ANY = object()


def _roots(nodes: Nodes) -> List[Tag]:
    if isinstance(nodes, Tag):
        return [nodes]
    return [node for node in nodes if isinstance(node, Tag)]


def find_all(nodes: Nodes, predicate: Predicate) -> List[Tag]:
    """Return every element under ``nodes`` (roots included) satisfying ``predicate``.

    Each root is walked depth-first in document pre-order. A node reachable from
    more than one root, because the roots overlap, is visited only once.
    """

    seen: set[int] = set()
    found: List[Tag] = []
    for root in _roots(nodes):
        stack = [root]
        while stack:
            node = stack.pop()
            if id(node) in seen:
                continue
            seen.add(id(node))
            if predicate(node):
                found.append(node)
            children = [child for child in node.children if isinstance(child, Tag)]
            stack.extend(reversed(children))
    return found


def attribute_value(node: Tag, name: str) -> str | None:
    """Return attribute ``name`` as a string (multi-valued attributes are space joined)."""

    value = node.attrs.get(name)
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return " ".join(value)
    return value


def by_tag(nodes: Nodes, name: str) -> List[Tag]:
    return find_all(nodes, lambda node: node.name == name)


def by_attribute(nodes: Nodes, name: str, value: object = _ANY) -> List[Tag]:
    """Return nodes carrying attribute ``name``, or carrying it with exactly ``value``."""

    if value is _ANY:
        return find_all(nodes, lambda node: name in node.attrs)
    return find_all(nodes, lambda node: attribute_value(node, name) == value)


def by_class(nodes: Nodes, name: str) -> List[Tag]:
    """Return nodes whose ``class`` attribute lists ``name``."""

    def has_class(node: Tag) -> bool:
        classes = node.attrs.get("class") or []
        if isinstance(classes, str):
            classes = classes.split()
        return name in classes

    return find_all(nodes, has_class)


def by_id(nodes: Nodes, value: str) -> List[Tag]:
    return by_attribute(nodes, "id", value)


def first(nodes: List[Tag], field: str) -> Tag:
    """Return the first node of a query result or raise :class:`MissingField`."""

    if not nodes:
        raise MissingField(field, {"matches": 0})
    return nodes[0]


def text_content(node: Tag) -> str:
    """Concatenate all text leaves below ``node`` in document order."""

    return "".join(node.strings)


__all__ = [
    "Nodes",
    "Predicate",
    "attribute_value",
    "by_attribute",
    "by_class",
    "by_id",
    "by_tag",
    "find_all",
    "first",
    "text_content",
]
