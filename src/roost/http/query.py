"""Query string parameters, one value per name."""

from collections.abc import Iterator, Mapping
from urllib.parse import parse_qsl


class QueryParams(Mapping[str, str]):
    """Parsed query string. A repeated name keeps its last value.

    ``raw`` is the undecoded query string, kept for span labels.
    """

    __slots__ = ("_params", "raw")

    def __init__(self, query_string: bytes = b"") -> None:
        self.raw = query_string
        self._params = dict(parse_qsl(query_string.decode("latin-1"), keep_blank_values=True))

    def __getitem__(self, key: str) -> str:
        return self._params[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._params)

    def __len__(self) -> int:
        return len(self._params)

    def to_dict(self) -> dict[str, str]:
        """A plain, independent copy."""
        return dict(self._params)
