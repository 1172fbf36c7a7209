"""Total helpers that pull scalar strings out of loosely-shaped documents.

Documents in the store were written by several app versions, so a value may be a
plain string, a number, a flags mapping (``{"fiscal": True}``), a list of roles
or a nested profile object. Every helper here accepts any input and answers with
an empty string (or ``None`` for path lookups) instead of raising.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

# Keys searched first when a mapping is reduced to a single string.
PREFERRED_KEYS: tuple[str, ...] = (
    "name",
    "displayName",
    "label",
    "role",
    "cargo",
    "funcao",
    "position",
    "title",
    "primary",
)


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def _number_to_string(value: int | float) -> str:
    if isinstance(value, float):
        if not math.isfinite(value):
            return ""
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def normalize_to_string(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return _number_to_string(value)
    return ""


def pick_first_non_empty(values: Iterable[Any]) -> str:
    for value in values:
        normalized = normalize_to_string(value)
        if normalized:
            return normalized
    return ""


def extract_string(value: Any) -> str:
    """Reduce any value to the most meaningful scalar string it contains.

    Mappings are searched in three passes: the preferred keys in priority
    order, then the first key flagged ``True`` (the key itself is the value),
    then any remaining value that reduces to a non-empty string.
    """
    if isinstance(value, bool):
        return "true" if value else ""
    if isinstance(value, (str, int, float)):
        return normalize_to_string(value)
    if _is_sequence(value):
        for item in value:
            extracted = extract_string(item)
            if extracted:
                return extracted
        return ""
    if isinstance(value, Mapping):
        for key in PREFERRED_KEYS:
            if key in value:
                extracted = extract_string(value[key])
                if extracted:
                    return extracted
        for key, item in value.items():
            if item is True:
                return str(key)
        for item in value.values():
            extracted = extract_string(item)
            if extracted:
                return extracted
    return ""


def _sequence_index(part: str, length: int) -> int | None:
    if not (part.isascii() and part.isdigit()):
        return None
    index = int(part)
    if index < length:
        return index
    return None


def get_value_by_path(doc: Any, path: str) -> Any:
    """Resolve ``"a.0.b"`` style paths; ``None`` when any step is missing."""
    current = doc
    for part in path.split("."):
        if current is None:
            return None
        if _is_sequence(current):
            index = _sequence_index(part, len(current))
            current = current[index] if index is not None else None
        elif isinstance(current, Mapping):
            current = current.get(part)
        else:
            return None
    return current


def first_extracted(
    doc: Any,
    rules: Iterable[str],
    extractor: Callable[[Any], str] = extract_string,
) -> str:
    """Evaluate path rules in order and return the first non-empty extraction."""
    for rule in rules:
        extracted = extractor(get_value_by_path(doc, rule))
        if extracted:
            return extracted
    return ""
