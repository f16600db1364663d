"""Case-insensitive request headers.

Built from the raw ASGI byte pairs. Names are lowercased and values
decoded as latin-1 once, at construction.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping


class Headers(Mapping[str, str]):
    """Read-only headers; a repeated header keeps every value in order.

    ``headers["Accept"]`` is the first value, ``get_list("accept")`` all
    of them.
    """

    __slots__ = ("_index", "_raw")

    def __init__(self, raw: tuple[tuple[bytes, bytes], ...] = ()) -> None:
        index: dict[str, list[str]] = {}
        for name, value in raw:
            index.setdefault(name.decode("latin-1").lower(), []).append(value.decode("latin-1"))
        self._raw = raw
        self._index = index

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[str, str]]) -> Headers:
        return cls(
            tuple((name.lower().encode("latin-1"), value.encode("latin-1")) for name, value in pairs)
        )

    def __getitem__(self, key: str) -> str:
        values = self._index.get(key.lower())
        if not values:
            raise KeyError(key)
        return values[0]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._index

    def __iter__(self) -> Iterator[str]:
        return iter(self._index)

    def __len__(self) -> int:
        return len(self._index)

    def __repr__(self) -> str:
        return f"Headers({self._index!r})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        values = self._index.get(key.lower())
        return values[0] if values else default

    def get_list(self, key: str) -> list[str]:
        return list(self._index.get(key.lower(), ()))

    def has_token(self, key: str, token: str) -> bool:
        """True if the comma-separated header *key* lists *token* (case-insensitive).

        ``Connection: keep-alive, Upgrade`` has the token ``upgrade``.
        """
        wanted = token.lower()
        return any(
            part.strip().lower() == wanted for value in self.get_list(key) for part in value.split(",")
        )

    @property
    def raw(self) -> tuple[tuple[bytes, bytes], ...]:
        """The byte pairs as received, for handing back to ASGI."""
        return self._raw
