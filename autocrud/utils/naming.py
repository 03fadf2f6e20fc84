"""
Naming helpers: table names are plural, entity names singular.
"""

from __future__ import annotations

import functools
from typing import Dict

_IRREGULAR_SINGULARS: Dict[str, str] = {
    "people": "person",
    "children": "child",
    "men": "man",
    "women": "woman",
    "mice": "mouse",
    "geese": "goose",
    "teeth": "tooth",
    "feet": "foot",
    "data": "datum",
    "indices": "index",
    "matrices": "matrix",
    "vertices": "vertex",
    "axes": "axis",
    "crises": "crisis",
    "analyses": "analysis",
    "statuses": "status",
    "addresses": "address",
}


@functools.lru_cache(maxsize=None)
def to_singular(name: str) -> str:
    """
    Naive English singularisation of a table name.

    Only the last underscore-separated word is singularised, so
    ``user_addresses`` becomes ``user_address``.
    """
    if not name:
        return ""

    head, sep, word = name.rpartition("_")
    lower = word.lower()

    if lower in _IRREGULAR_SINGULARS:
        singular = _IRREGULAR_SINGULARS[lower]
        if word[0].isupper():
            singular = singular[0].upper() + singular[1:]
        return head + sep + singular

    if lower.endswith("ies") and len(word) > 3:
        word = word[:-3] + "y"
    elif lower.endswith("ves"):
        word = word[:-3] + "f"
    elif lower.endswith("oes") and len(word) > 3:
        word = word[:-2]
    elif lower.endswith(("ses", "xes", "zes", "ches", "shes")):
        word = word[:-2]
    elif lower.endswith("s") and not lower.endswith("ss"):
        word = word[:-1]

    return head + sep + word


def capitalize(name: str) -> str:
    """First letter upper-cased, the rest lower-cased."""
    return name[:1].upper() + name[1:].lower()


__all__ = ["capitalize", "to_singular"]
