"""
Row mapper: flattened join rows back into nested entities.

A row such as::

    {"id": 1, "user_addresses.city": "NY,LA", "user_addresses.zip": "10001,90001"}

becomes::

    {"id": 1, "user_addresses": [{"city": "NY", "zip": "10001"},
                                 {"city": "LA", "zip": "90001"}]}

Segments are zipped by index; the statement builder orders every aggregate
of a link by the same unique key, which keeps the zip aligned.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Dict, Iterable, List, Optional, Sequence

from autocrud.domain.query_builder import AGGREGATE_SEPARATOR

PATH_SEPARATOR = "."
_ESCAPE = "\\"


def split_aggregate(value: Any) -> List[str]:
    """
    Split a comma-joined aggregate, honouring backslash escapes.

    >>> split_aggregate("a\\\\,b,c")
    ['a,b', 'c']
    """
    text = value if isinstance(value, str) else str(value)
    segments: List[str] = []
    current: List[str] = []
    escaped = False

    for char in text:
        if escaped:
            current.append(char)
            escaped = False
        elif char == _ESCAPE:
            escaped = True
        elif char == AGGREGATE_SEPARATOR:
            segments.append("".join(current))
            current = []
        else:
            current.append(char)

    segments.append("".join(current))
    return segments


def set_path(target: Dict[str, Any], path: Sequence[str], value: Any) -> Dict[str, Any]:
    """Assign ``value`` at ``path``, creating intermediate dicts as needed."""
    node = target
    for segment in path[:-1]:
        child = node.get(segment)
        if not isinstance(child, dict):
            child = {}
            node[segment] = child
        node = child
    node[path[-1]] = value
    return target


def parse_relation_collection(relationship: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """
    Turn ``{"id": "1,2", "role": {"name": "a,b"}}`` into
    ``[{"id": "1", "role": {"name": "a"}}, {"id": "2", "role": {"name": "b"}}]``.
    """
    result: List[Dict[str, Any]] = []

    for key, value in relationship.items():
        parsed: Sequence[Any]
        if isinstance(value, Mapping):
            parsed = parse_relation_collection(value)
        else:
            parsed = split_aggregate(value or "")

        for index, entry in enumerate(parsed):
            while len(result) <= index:
                result.append({})
            result[index][key] = _or_none(entry)

    return result


def _or_none(entry: Any) -> Optional[Any]:
    return None if entry is None or entry == "" else entry


def map_row(raw: Mapping[str, Any], link_names: Iterable[str]) -> Dict[str, Any]:
    """
    Rebuild one entity from a flattened join row.

    Dotted keys with an empty value are dropped, so a link with no rows
    maps to an empty list rather than a single all-None row.
    """
    model: Dict[str, Any] = {}

    for key, value in raw.items():
        path = key.split(PATH_SEPARATOR)
        if len(path) > 1 and not value:
            continue
        set_path(model, path, value)

    for name in link_names:
        collection = model.get(name)
        model[name] = parse_relation_collection(
            collection if isinstance(collection, Mapping) else {}
        )

    return model


__all__ = ["map_row", "parse_relation_collection", "set_path", "split_aggregate"]
