"""
Project walker - finds project directories under the configured roots.

A directory is a project when any of its entries is named like a project
marker (`.git`, `.jj`, ...). The walk is depth-bounded per root, never
descends into a project, and reports each project path once even when
roots overlap.

Each directory listing runs in a worker thread, so every directory open is
a suspension point: cancelling the walk task stops the descent at the next
directory.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Iterable
from pathlib import Path

from cs.exceptions import InvalidRootError, ScanError
from cs.protocols import LoggerProtocol, NullLogger
from cs.schemas.search import ProjectMessage, Root, SearchConfig

__all__ = [
    'Walker',
    'unique_match',
]

logger = logging.getLogger(__name__)


class Walker:
    """
    Depth-bounded project walker.

    Optionally streams every newly found project into a discovery channel,
    followed by a single end message once all roots are exhausted.
    """

    def __init__(
        self,
        config: SearchConfig,
        channel: asyncio.Queue[ProjectMessage] | None = None,
        reporter: LoggerProtocol | None = None,
    ) -> None:
        """
        Initialize walker.

        Args:
            config: Roots, markers and depth for this search
            channel: Optional discovery channel to stream projects into
            reporter: Sink for non-fatal diagnostics (missing roots)

        Raises:
            InvalidRootError: If a root is not an absolute path
        """
        for root in config.roots:
            if not root.path.is_absolute():
                raise InvalidRootError(str(root.path))

        self.config = config
        self.channel = channel
        self.reporter: LoggerProtocol = reporter or NullLogger()
        self._markers = frozenset(config.markers)
        # Insertion-ordered set keyed by path string
        self._projects: dict[str, Path] = {}

    @property
    def projects(self) -> set[Path]:
        """Projects found so far."""
        return set(self._projects.values())

    async def walk(self) -> set[Path]:
        """
        Scan every root and return the set of project paths.

        Roots that do not exist are skipped with a warning.

        Raises:
            ScanError: If any other directory cannot be read
        """
        for root in self.config.roots:
            root_path = Path(os.path.normpath(root.path))
            if not await asyncio.to_thread(root_path.is_dir):
                await self.reporter.warning(f'root not found, skipping: {root_path}')
                continue

            logger.debug('scanning %s (depth %d)', root_path, self.config.depth_for(root))
            await self._walk_root(root, root_path)

        if self.channel is not None:
            await self.channel.put(ProjectMessage.end())

        logger.debug('walk finished: %d project(s)', len(self._projects))
        return self.projects

    async def _walk_root(self, root: Root, root_path: Path) -> None:
        max_depth = self.config.depth_for(root)
        # Depth-first with an explicit stack; children are pushed reversed so
        # they are visited in name order.
        stack: list[tuple[Path, int]] = [(root_path, 0)]

        while stack:
            directory, depth = stack.pop()
            names, subdirs = await asyncio.to_thread(_list_dir, directory)

            if not self._markers.isdisjoint(names):
                await self._add_project(directory)
                continue

            if depth >= max_depth:
                continue

            for name in reversed(subdirs):
                stack.append((directory / name, depth + 1))

    async def _add_project(self, path: Path) -> None:
        key = str(path)
        if key in self._projects:
            return

        self._projects[key] = path
        if self.channel is not None:
            await self.channel.put(ProjectMessage.project(path))


def _list_dir(directory: Path) -> tuple[list[str], list[str]]:
    """
    List a directory.

    Returns all entry names plus the sorted names of subdirectories
    (symlinks to directories are not followed).

    Raises:
        ScanError: On any OS error
    """
    names: list[str] = []
    subdirs: list[str] = []
    try:
        with os.scandir(directory) as entries:
            for entry in entries:
                names.append(entry.name)
                if entry.is_dir(follow_symlinks=False):
                    subdirs.append(entry.name)
    except OSError as e:
        raise ScanError(directory, e) from e

    subdirs.sort()
    return names, subdirs


def unique_match(projects: Iterable[Path], query: str | None) -> Path | None:
    """
    Find the one project whose directory name equals the query.

    Returns None when the query is empty or when zero or several projects
    match, so an ambiguous name always goes through the selector.
    """
    if not query:
        return None

    match: Path | None = None
    for project in projects:
        if project.name != query:
            continue
        if match is not None:
            return None
        match = project
    return match
