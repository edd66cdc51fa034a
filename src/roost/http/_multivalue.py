"""Read-only string mappings where a key may carry several values.

``Headers`` and ``QueryParams`` share this base: indexing returns the
first value, ``get_list`` returns all of them in arrival order. The form
binder relies on ``get_list`` for list fields.
"""

from collections.abc import Iterator, Mapping


class MultiValueMap(Mapping[str, str]):
    """Values grouped by key at construction; never mutated afterwards."""

    __slots__ = ("_values",)

    def __init__(self, values: dict[str, list[str]]) -> None:
        self._values = values

    def _key(self, key: str) -> str:
        return key

    def __getitem__(self, key: str) -> str:
        values = self._values.get(self._key(key))
        if not values:
            raise KeyError(key)
        return values[0]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self._key(key) in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._values!r})"

    def get_list(self, key: str) -> list[str]:
        return list(self._values.get(self._key(key), ()))
