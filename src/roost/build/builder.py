"""Rebuild decisions for page artifacts.

``Builder.artifact_for()`` answers one question per page request: which
compiled file should be served, and does it have to be built first?

Development (``debug=True``)
    Always compile the page's target before serving, so edits show up on
    the next reload. Every output of that pass is published to the cache.

Production
    Serve the cached artifact when its file still exists. Otherwise (never
    built, or deleted behind our back) compile that one target, publish,
    and serve.

A failed compile, or one that produces no file with the target's
extension, yields ``None`` and leaves the cache untouched. In production,
concurrent rebuilds of the same page share one compile pass; each waiter
traces its wait as a ``Join rebuild`` span. In development every request
compiles for itself.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from collections.abc import Sequence
from pathlib import Path

import anyio
import anyio.to_thread

from roost.build.cache import ArtifactCache, cache_key
from roost.build.compiler import BuildOptions, BuildOutput, Compiler
from roost.errors import MeasureError
from roost.pages import Page
from roost.tracing import Measure

logger = logging.getLogger("roost.build")


def match_output(outputs: Sequence[BuildOutput], page: Page, *, fallback: bool = True) -> Path | None:
    """The output that serves *page*: same extension, preferably built from its target.

    With *fallback*, any output of the right extension is accepted when
    nothing was attributed to the page.
    """
    candidates = [o for o in outputs if o.path.suffix.lower() == page.extension]
    if not candidates:
        return None
    source = page.source.resolve()
    for output in candidates:
        if output.entrypoint is not None and output.entrypoint.resolve() == source:
            return output.path
    key = cache_key(page.source)
    for output in candidates:
        if cache_key(output.path) == key:
            return output.path
    return candidates[0].path if fallback else None


class Builder:
    """Decides between cached artifacts and on-demand rebuilds.

    Owns no global state: the ``ArtifactCache`` is injected, so several
    apps in one process can keep separate build state.
    """

    __slots__ = ("_cache", "_compiler", "_debug", "_inflight", "_options")

    def __init__(
        self,
        compiler: Compiler,
        cache: ArtifactCache,
        options: BuildOptions,
        *,
        debug: bool,
    ) -> None:
        self._compiler = compiler
        self._cache = cache
        self._options = options
        self._debug = debug
        self._inflight: dict[str, asyncio.Future[Path | None]] = {}

    @property
    def cache(self) -> ArtifactCache:
        return self._cache

    @property
    def options(self) -> BuildOptions:
        return self._options

    async def artifact_for(self, page: Page, measure: Measure) -> Path | None:
        """Path of the compiled artifact for *page*, rebuilding if needed.

        Returns ``None`` when the page cannot be built right now.
        """
        key = cache_key(page.source)
        if not self._debug:
            cached = self._cache.get(key)
            if cached is not None:
                if await anyio.Path(cached).is_file():
                    logger.debug("Cache hit for %s: %s", page.route, cached)
                    return cached
                logger.info("Artifact %s for %s is gone; rebuilding", cached, page.route)
        return await self._rebuild(page, key, measure)

    async def _rebuild(self, page: Page, key: str, measure: Measure) -> Path | None:
        if self._debug:
            return await self._compile_page(page, key, measure)

        pending = self._inflight.get(key)
        if pending is None:
            started = asyncio.ensure_future(self._shared_compile(page, key, measure))
            self._inflight[key] = started
            # One waiter being cancelled must not cancel the compile for the rest
            return await asyncio.shield(started)

        logger.debug("Joining in-flight rebuild of %s", key)
        joined = pending

        async def wait(_measure: Measure) -> Path | None:
            return await asyncio.shield(joined)

        return await measure(wait, f"Join rebuild {page.name}")

    async def _shared_compile(self, page: Page, key: str, measure: Measure) -> Path | None:
        try:
            return await self._compile_page(page, key, measure)
        finally:
            self._inflight.pop(key, None)

    async def _compile_page(self, page: Page, key: str, measure: Measure) -> Path | None:
        async def compile_one(_measure: Measure) -> list[BuildOutput]:
            return await self._compiler.compile([page.source], self._options)

        try:
            outputs = await measure(compile_one, f"Rebuild {page.name}")
        except MeasureError as exc:
            logger.error("Failed to rebuild %s: %s", page.route, exc.root_cause)
            return None

        artifact = match_output(outputs, page)
        if artifact is None:
            logger.error(
                "Rebuild of %s produced no %s output (%d files)",
                page.target,
                page.extension,
                len(outputs),
            )
            return None

        self._cache.record(outputs)
        self._cache.put(key, artifact)
        return artifact

    async def build_all(self, pages: Sequence[Page], measure: Measure) -> int:
        """Full build at startup: clear ``outdir`` and the cache, compile every page.

        Returns the number of outputs published. A failed build is logged;
        pages are then rebuilt lazily on first request.
        """
        outdir = self._options.outdir
        if await anyio.Path(outdir).exists():
            await anyio.to_thread.run_sync(shutil.rmtree, outdir)
        self._cache.reset()
        if not pages:
            return 0

        async def compile_all(_measure: Measure) -> list[BuildOutput]:
            return await self._compiler.compile([p.source for p in pages], self._options)

        try:
            outputs = await measure(compile_all, "Initial build")
        except MeasureError as exc:
            logger.error("Initial build failed: %s", exc.root_cause)
            return 0

        self._cache.record(outputs)
        for page in pages:
            artifact = match_output(outputs, page, fallback=False)
            if artifact is not None:
                self._cache.put(cache_key(page.source), artifact)
        return len(outputs)
