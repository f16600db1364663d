"""Multi-valued string mappings for query strings and form bodies.

Both parse ``key=value&key=value`` text once and answer lookups from
the parsed lists. Single-value access returns the first value.
"""

from collections.abc import Iterator, Mapping
from urllib.parse import parse_qs

_TRUTHY = frozenset({"true", "1", "yes", "on"})


class MultiValues(Mapping[str, str]):
    """Read-only ``name -> [values]`` store exposed as ``Mapping[str, str]``."""

    __slots__ = ("_values",)

    def __init__(self, values: dict[str, list[str]] | None = None) -> None:
        object.__setattr__(self, "_values", values or {})

    def __getitem__(self, key: str) -> str:
        return self._values[key][0]

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._values!r})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        values = self._values.get(key)
        return values[0] if values else default

    def get_list(self, key: str) -> list[str]:
        """Every value sent for *key*, in order (checkboxes, repeated params)."""
        return list(self._values.get(key, ()))

    def get_int(self, key: str, default: int | None = None) -> int | None:
        """First value as int; *default* when missing or not numeric."""
        raw = self.get(key)
        if raw is None:
            return default
        try:
            return int(raw)
        except ValueError:
            return default

    def get_bool(self, key: str, default: bool | None = None) -> bool | None:
        """``true``, ``1``, ``yes`` and ``on`` (any case) read as True."""
        raw = self.get(key)
        if raw is None:
            return default
        return raw.lower() in _TRUTHY


class QueryParams(MultiValues):
    """Parsed query string. Keeps the undecoded bytes for ``Request.url``."""

    __slots__ = ("_raw",)

    def __init__(self, query_string: bytes = b"") -> None:
        super().__init__(parse_qs(query_string.decode("latin-1"), keep_blank_values=True))
        object.__setattr__(self, "_raw", query_string)

    @property
    def raw(self) -> bytes:
        return self._raw
