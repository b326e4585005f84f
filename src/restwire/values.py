"""Header-key canonicalization and the multi-valued parameter store.

Query parameters and form data keep every value added under a key, in
insertion order, so ``tag=a&tag=b`` survives a round trip through the client.
Headers are single-valued per canonical key.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from typing import Union

_TOKEN_CHARS = frozenset(
    "!#$%&'*+-.^_`|~0123456789"
    "abcdefghijklmnopqrstuvwxyz"
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
)

HDR_USER_AGENT = "User-Agent"
HDR_ACCEPT = "Accept"
HDR_CONTENT_TYPE = "Content-Type"
HDR_CONTENT_LENGTH = "Content-Length"
HDR_AUTHORIZATION = "Authorization"
HDR_COOKIE = "Cookie"


def canonical_header_key(key: str) -> str:
    """Return the canonical form of a header key.

    The first letter and every letter following a hyphen are upper-cased and
    the rest lower-cased, so ``content-type`` becomes ``Content-Type``. Keys
    containing characters outside the RFC 7230 token set are returned as-is.
    """
    if not key or any(ch not in _TOKEN_CHARS for ch in key):
        return key
    return "-".join(part[:1].upper() + part[1:].lower() for part in key.split("-"))


ValueInput = Union[str, Iterable[str]]


class Values:
    """Ordered multi-valued mapping of string keys to lists of strings."""

    def __init__(self, initial: Mapping[str, ValueInput] | None = None) -> None:
        self._data: dict[str, list[str]] = {}
        if initial:
            for key, value in initial.items():
                if isinstance(value, str):
                    self.add(key, value)
                else:
                    for item in value:
                        self.add(key, item)

    def add(self, key: str, value: str) -> None:
        """Append *value* to the values stored under *key*."""
        self._data.setdefault(key, []).append(str(value))

    def set(self, key: str, value: str) -> None:
        """Replace every value stored under *key* with *value*."""
        self._data[key] = [str(value)]

    def get(self, key: str, default: str | None = None) -> str | None:
        """Return the first value stored under *key*."""
        values = self._data.get(key)
        return values[0] if values else default

    def get_list(self, key: str) -> list[str]:
        return list(self._data.get(key, []))

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)

    def multi_items(self) -> list[tuple[str, str]]:
        """Flatten to ``(key, value)`` pairs, keys in insertion order."""
        return [(key, value) for key, values in self._data.items() for value in values]

    def to_dict(self) -> dict[str, list[str]]:
        return {key: list(values) for key, values in self._data.items()}

    def copy(self) -> Values:
        clone = Values()
        clone._data = self.to_dict()
        return clone

    def merged_over(self, defaults: Values) -> Values:
        """Return *defaults* with every key of ``self`` replacing the default's values."""
        merged = defaults.copy()
        for key, values in self._data.items():
            merged._data[key] = list(values)
        return merged

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __bool__(self) -> bool:
        return bool(self._data)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Values):
            return self._data == other._data
        return NotImplemented

    def __repr__(self) -> str:
        return f"Values({self._data!r})"
