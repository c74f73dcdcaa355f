"""Case-insensitive request headers over the raw ASGI byte pairs."""

from collections.abc import Iterator, Mapping


class Headers(Mapping[str, str]):
    """Read-only, case-insensitive headers. A repeated name reads as its first value.

    Names are compared lower-cased; values are decoded as latin-1 on access.
    """

    __slots__ = ("_raw",)

    def __init__(self, raw: tuple[tuple[bytes, bytes], ...] = ()) -> None:
        self._raw = raw

    @classmethod
    def from_dict(cls, headers: Mapping[str, str]) -> "Headers":
        return cls(tuple((_encode_name(name), value.encode("latin-1")) for name, value in headers.items()))

    def __getitem__(self, key: str) -> str:
        wanted = _encode_name(key)
        for name, value in self._raw:
            if name.lower() == wanted:
                return value.decode("latin-1")
        raise KeyError(key)

    def __iter__(self) -> Iterator[str]:
        return iter(dict.fromkeys(name.decode("latin-1").lower() for name, _ in self._raw))

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def with_header(self, name: str, value: str) -> "Headers":
        """New headers with *name* set to *value*, dropping any earlier values."""
        wanted = _encode_name(name)
        kept = tuple(pair for pair in self._raw if pair[0].lower() != wanted)
        return Headers((*kept, (wanted, value.encode("latin-1"))))


def _encode_name(name: str) -> bytes:
    return name.lower().encode("latin-1")
