"""Compiler collaborators.

A compiler turns page sources into browser-loadable files under the build
output directory. Roost only depends on the ``Compiler`` protocol; two
implementations ship with it:

- ``CopyCompiler`` copies each entrypoint to a content-hashed file name.
  Enough for plain HTML pages that load their scripts through the import
  map.
- ``CommandCompiler`` shells out to an external bundler (``bun build`` by
  default) and reports the files it wrote.

Custom compilers only need an async ``compile()`` method::

    class MyCompiler:
        async def compile(self, entrypoints, options):
            ...
            return [BuildOutput(path=out, entrypoint=src)]
"""

from __future__ import annotations

import hashlib
import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

import anyio
import anyio.to_thread

from roost.errors import CompileError

if TYPE_CHECKING:
    from roost.config import AppConfig
    from roost.imports import ImportMap


@dataclass(frozen=True, slots=True)
class BuildOutput:
    """One file written by a compile pass.

    ``entrypoint`` is the source the file was produced for, or ``None`` for
    shared chunks.
    """

    path: Path
    entrypoint: Path | None = None


@dataclass(frozen=True, slots=True)
class BuildOptions:
    """Options handed to the compiler on every pass."""

    outdir: Path
    root: Path = Path()
    minify: bool = False
    sourcemap: str = "linked"
    target: str = "browser"
    external: tuple[str, ...] = ()
    define: Mapping[str, str] = field(default_factory=dict)
    entry_naming: str = "[dir]/[name].[hash].[ext]"
    chunk_naming: str = "[name].[hash].[ext]"

    @classmethod
    def for_config(cls, config: AppConfig, import_map: ImportMap) -> BuildOptions:
        """Options for *config*'s mode, keeping import-mapped packages external."""
        return cls(
            outdir=Path(config.outdir),
            minify=not config.debug,
            external=import_map.names,
            define={"process.env.NODE_ENV": f'"{config.mode}"'},
        )


class Compiler(Protocol):
    """Anything that can compile page entrypoints into ``outdir``."""

    async def compile(
        self, entrypoints: Sequence[Path], options: BuildOptions
    ) -> list[BuildOutput]: ...


def _relative_dir(entrypoint: Path, root: Path) -> str:
    try:
        return entrypoint.parent.resolve().relative_to(root.resolve()).as_posix()
    except ValueError:
        return ""


def render_name(pattern: str, *, dir: str, name: str, hash: str, ext: str) -> str:
    """Expand a ``[dir]/[name].[hash].[ext]`` naming pattern."""
    rendered = (
        pattern.replace("[dir]", dir)
        .replace("[name]", name)
        .replace("[hash]", hash)
        .replace("[ext]", ext)
    )
    return rendered.lstrip("/")


class CopyCompiler:
    """Copy each entrypoint into ``outdir`` under a content-hashed name.

    ``pages/Dashboard.html`` becomes ``dist/pages/Dashboard.1a2b3c4d.html``
    with the default ``[dir]/[name].[hash].[ext]`` pattern.
    """

    __slots__ = ("_hash_length",)

    def __init__(self, *, hash_length: int = 8) -> None:
        self._hash_length = hash_length

    async def compile(self, entrypoints: Sequence[Path], options: BuildOptions) -> list[BuildOutput]:
        outputs: list[BuildOutput] = []
        for entrypoint in entrypoints:
            source = anyio.Path(entrypoint)
            if not await source.is_file():
                msg = f"Entrypoint not found: {entrypoint}"
                raise CompileError(msg)
            content = await source.read_bytes()
            digest = hashlib.sha256(content).hexdigest()[: self._hash_length]
            stem = entrypoint.name.split(".", 1)[0]
            relative = render_name(
                options.entry_naming,
                dir=_relative_dir(entrypoint, options.root),
                name=stem,
                hash=digest,
                ext=entrypoint.suffix.lstrip("."),
            )
            destination = anyio.Path(options.outdir) / relative
            await destination.parent.mkdir(parents=True, exist_ok=True)
            await destination.write_bytes(content)
            outputs.append(BuildOutput(path=Path(destination), entrypoint=entrypoint))
        return outputs


def _scan(outdir: Path) -> dict[Path, int]:
    """Every file under *outdir* with its modification time (ns)."""
    if not outdir.is_dir():
        return {}
    files: dict[Path, int] = {}
    for dirpath, _dirnames, filenames in os.walk(outdir):
        for filename in filenames:
            path = Path(dirpath) / filename
            files[path] = path.stat().st_mtime_ns
    return files


class CommandCompiler:
    """Run an external bundler and report the files it wrote.

    The default command is ``bun build``; arguments for entrypoints,
    ``--outdir``, naming, externals and defines are appended from
    ``BuildOptions``. Outputs are the files under ``outdir`` that are new
    or modified after the command ran, attributed to the entrypoint whose
    name they start with.
    """

    __slots__ = ("_command", "_extra_args")

    def __init__(
        self,
        command: Sequence[str] = ("bun", "build"),
        *,
        extra_args: Sequence[str] = (),
    ) -> None:
        self._command = tuple(command)
        self._extra_args = tuple(extra_args)

    def argv(self, entrypoints: Sequence[Path], options: BuildOptions) -> list[str]:
        """The full command line for one compile pass."""
        argv = [*self._command, *(str(e) for e in entrypoints)]
        argv += ["--outdir", str(options.outdir)]
        argv += ["--target", options.target, f"--sourcemap={options.sourcemap}"]
        argv += ["--entry-naming", options.entry_naming, "--chunk-naming", options.chunk_naming]
        if options.minify:
            argv.append("--minify")
        for name in options.external:
            argv += ["--external", name]
        for key, value in options.define.items():
            argv += ["--define", f"{key}={value}"]
        argv += self._extra_args
        return argv

    async def compile(self, entrypoints: Sequence[Path], options: BuildOptions) -> list[BuildOutput]:
        before = await anyio.to_thread.run_sync(_scan, options.outdir)
        result = await anyio.run_process(self.argv(entrypoints, options), check=False)
        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            msg = f"{self._command[0]} exited with status {result.returncode}: {stderr}"
            raise CompileError(msg)
        after = await anyio.to_thread.run_sync(_scan, options.outdir)

        stems = {entry.name.split(".", 1)[0].lower(): entry for entry in entrypoints}
        outputs: list[BuildOutput] = []
        for path, mtime in sorted(after.items()):
            if before.get(path) == mtime:
                continue
            owner = stems.get(path.name.split(".", 1)[0].lower())
            outputs.append(BuildOutput(path=path, entrypoint=owner))
        return outputs
