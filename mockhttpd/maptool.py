"""Conversion between multi-value maps and sorted key/values lists."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any


@dataclass
class KeyValues:
    """One key of a multi-value map with its values."""

    key: str
    values: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"key": self.key, "values": list(self.values)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> KeyValues:
        """Build from a decoded JSON object; missing fields take empty values."""
        if not isinstance(data, Mapping):
            raise ValueError("key/values entry must be a JSON object")
        key = data.get("key", "")
        if key is None:
            key = ""
        if not isinstance(key, str):
            raise ValueError("key must be a string")
        values = data.get("values") or []
        if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
            raise ValueError("values must be a list of strings")
        return cls(key=key, values=list(values))


def sort_json_map(mapping: Mapping[str, Sequence[str]] | None) -> list[KeyValues]:
    """Return the map as a list sorted by key, each value list sorted too."""
    if not mapping:
        return []
    return [KeyValues(key=k, values=sorted(mapping[k])) for k in sorted(mapping)]


def unsort_json_map(items: Iterable[KeyValues] | None) -> dict[str, list[str]] | None:
    """Turn a key/values list back into a map; None when the list is empty."""
    items = list(items or [])
    if not items:
        return None
    return {item.key: item.values for item in items}