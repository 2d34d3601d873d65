"""Removal of the build output and cache directories."""
from __future__ import annotations

import asyncio
import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Tuple

from .logging_config import get_or_create_logger


_logger = logging.getLogger(__name__)

HLX_DIR = ".hlx"
BUILD_DIR = "build"
CACHE_DIR = "cache"


@dataclass(slots=True)
class CleanOptions:
    """Directories affected by a clean run."""

    directory: Path = field(default_factory=Path.cwd)
    target_dir: Path | None = None
    cache_dir: Path | None = None

    def resolve_targets(self) -> Tuple[Path, Path]:
        """Return the build and cache directories, applying defaults.

        Paths are made absolute lexically; symlinks are not followed.
        """

        base = Path(self.directory)
        target = Path(self.target_dir) if self.target_dir else base / HLX_DIR / BUILD_DIR
        cache = Path(self.cache_dir) if self.cache_dir else base / HLX_DIR / CACHE_DIR
        return (
            Path(os.path.abspath(base.joinpath(target))),
            Path(os.path.abspath(base.joinpath(cache))),
        )


def _relative(path: Path, base: Path) -> str:
    return os.path.relpath(path, os.path.abspath(base))


def _remove_path(path: Path) -> bool:
    """Delete ``path`` and return ``False`` if there was nothing to delete.

    Symlinks and regular files are unlinked, real directories removed
    recursively.
    """

    if not os.path.lexists(path):
        return False
    if path.is_symlink() or not path.is_dir():
        path.unlink()
    else:
        shutil.rmtree(path)
    return True


async def remove_directory(path: Path, logger: logging.LoggerAdapter, *, relative_to: Path) -> None:
    """Remove ``path`` recursively and log the outcome.

    A missing directory is not an error. Failures to remove are logged and
    never propagated.
    """

    relative = _relative(path, relative_to)
    try:
        removed = await asyncio.to_thread(_remove_path, path)
    except OSError as exc:
        logger.error("unable to remove %s: %s", relative, exc)
        return
    if not removed:
        _logger.debug("Nothing to remove at %s", path)
        return
    logger.info("removed %s", relative)


async def clean_directories(options: CleanOptions, logger: logging.LoggerAdapter) -> None:
    target, cache = options.resolve_targets()
    await asyncio.gather(
        remove_directory(target, logger, relative_to=options.directory),
        remove_directory(cache, logger, relative_to=options.directory),
    )


class CleanCommand:
    """Builder around :func:`clean_directories`.

    Typical use is ``await CleanCommand().with_directory(project).run()``.
    """

    def __init__(self, logger: logging.LoggerAdapter | None = None) -> None:
        self._logger = logger if logger is not None else get_or_create_logger()
        self._options = CleanOptions()

    @property
    def options(self) -> CleanOptions:
        return self._options

    def with_directory(self, directory: str | os.PathLike) -> "CleanCommand":
        self._options.directory = Path(directory)
        return self

    def with_target_dir(self, target: str | os.PathLike | None) -> "CleanCommand":
        self._options.target_dir = Path(target) if target else None
        return self

    def with_cache_dir(self, cache_dir: str | os.PathLike | None) -> "CleanCommand":
        self._options.cache_dir = Path(cache_dir) if cache_dir else None
        return self

    async def run(self) -> None:
        await clean_directories(self._options, self._logger)
