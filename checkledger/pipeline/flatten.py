"""
Flatten schema-less recognition output into a text corpus.
"""
from __future__ import annotations

from typing import Any, Dict, List, Union

# Provider output is JSON-like: null | bool | number | string | array | object
JSONValue = Union[None, bool, int, float, str, List["JSONValue"], Dict[str, "JSONValue"]]


def _collect(value: Any, out: list[str]) -> None:
    if isinstance(value, str):
        out.append(value)
    elif isinstance(value, (list, tuple)):
        for item in value:
            _collect(item, out)
    elif isinstance(value, dict):
        for key in value:
            _collect(value[key], out)


def flatten_strings(value: JSONValue) -> list[str]:
    """Return every string leaf of *value*, depth-first in key order."""
    out: list[str] = []
    _collect(value, out)
    return out


def corpus_text(*values: JSONValue) -> str:
    """Flatten each of *values* and join all strings with single spaces."""
    parts: list[str] = []
    for value in values:
        _collect(value, parts)
    return " ".join(parts)
