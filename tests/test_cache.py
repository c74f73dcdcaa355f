"""Tests for roost.build.cache — artifact keys and records."""

from pathlib import Path

import pytest

from roost.build.cache import ArtifactCache, cache_key
from roost.build.compiler import BuildOutput


class TestCacheKey:
    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("dist/pages/index.3fa9c1d2.html", "index.html"),
            ("./pages/Index.HTML", "index.html"),
            ("Dashboard.html", "dashboard.html"),
            ("dist/chunk.abc.def.js", "chunk.js"),
            ("dist/app.js.map", "app.map"),
        ],
    )
    def test_keys(self, path: str, expected: str) -> None:
        assert cache_key(path) == expected

    def test_source_and_hashed_output_share_a_key(self) -> None:
        assert cache_key("pages/Dashboard.html") == cache_key("dist/dashboard.1a2b3c4d.html")


class TestArtifactCache:
    def test_get_missing(self) -> None:
        assert ArtifactCache().get("index.html") is None

    def test_put_replaces(self) -> None:
        cache = ArtifactCache()
        cache.put("index.html", Path("dist/index.a.html"))
        cache.put("index.html", Path("dist/index.b.html"))
        assert cache.get("index.html") == Path("dist/index.b.html")
        assert len(cache) == 1

    def test_record_publishes_every_output(self) -> None:
        cache = ArtifactCache()
        keys = cache.record(
            [
                BuildOutput(Path("dist/index.aaa.html")),
                BuildOutput(Path("dist/index.bbb.js")),
                BuildOutput(Path("dist/chunk.ccc.js")),
            ]
        )
        assert keys == ["index.html", "index.js", "chunk.js"]
        assert set(cache) == {"index.html", "index.js", "chunk.js"}
        assert "index.js" in cache

    def test_reset(self) -> None:
        cache = ArtifactCache()
        cache.put("a.html", Path("a.html"))
        cache.reset()
        assert len(cache) == 0

    def test_snapshot_is_a_copy(self) -> None:
        cache = ArtifactCache()
        cache.put("a.html", Path("a.html"))
        snapshot = cache.snapshot()
        snapshot.clear()
        assert "a.html" in cache

    def test_repr(self) -> None:
        assert repr(ArtifactCache()) == "ArtifactCache(0 records)"
