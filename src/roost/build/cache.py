"""Build artifact cache.

Maps a cache key to the filesystem location of the latest compiled output.
The key is derived from a file's *output* name, case-normalized: the base
name up to its first dot plus the final extension. Compilers that hash
output names (``index.3fa9c1d2.html``) therefore land on the same key as
the source they were built from (``pages/Index.html``)::

    cache_key("dist/pages/index.3fa9c1d2.html")  # "index.html"
    cache_key("./pages/Index.HTML")              # "index.html"

Records are only ever replaced whole. Stale records (the file was removed
from disk) are left in place and repaired by the next rebuild.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from pathlib import Path, PurePath
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from roost.build.compiler import BuildOutput


def cache_key(path: str | PurePath) -> str:
    """Cache key for a source or output path."""
    pure = PurePath(path)
    stem = pure.name.split(".", 1)[0]
    return f"{stem}{pure.suffix}".lower()


class ArtifactCache:
    """Process-owned mapping from cache key to compiled artifact path.

    One instance per serving App; pass it explicitly to share (or isolate)
    build state. Safe under cooperative concurrency: every write replaces a
    whole record in a single dict assignment.
    """

    __slots__ = ("_records",)

    def __init__(self) -> None:
        self._records: dict[str, Path] = {}

    def get(self, key: str) -> Path | None:
        return self._records.get(key)

    def put(self, key: str, path: Path) -> None:
        self._records[key] = path

    def record(self, outputs: Iterable[BuildOutput]) -> list[str]:
        """Publish every output of a compile pass. Returns the keys written."""
        keys: list[str] = []
        for output in outputs:
            key = cache_key(output.path)
            self._records[key] = output.path
            keys.append(key)
        return keys

    def reset(self) -> None:
        """Forget every record (process start / full rebuild)."""
        self._records.clear()

    def snapshot(self) -> dict[str, Path]:
        """A copy of the current records."""
        return dict(self._records)

    def __contains__(self, key: object) -> bool:
        return key in self._records

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"ArtifactCache({len(self._records)} records)"
