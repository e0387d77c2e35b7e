"""
Search coordinator - races the project walk against the user's choice in fzf.

Three tasks run per search:
- walk: scans the roots, streaming each project into the discovery channel
- feed: drains the channel into fzf's stdin
- read: waits for fzf to print the chosen path and exit

Whichever of walk/read finishes first decides what happens next:
- read first: the user's answer (or lack of one) is final, the walk is cancelled
- walk first: no projects is an error; a query naming exactly one project
  returns that project and fzf is stopped; otherwise keep waiting for read

Cancellation model:
- Tasks are cancelled explicitly, at their next await.
- The discovery channel is shut down so no peer stays blocked on put/get.
- fzf's stdin is closed and the process is terminated and reaped before
  search() returns, on every path (result, shortcut or error).
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

from cs.exceptions import NoProjectsError
from cs.protocols import LoggerProtocol, NullLogger
from cs.schemas.search import ProjectMessage, SearchConfig
from cs.services.process import terminate_process
from cs.services.selector import SelectorBridge, spawn_selector
from cs.services.walker import Walker, unique_match

__all__ = [
    'CHANNEL_CAPACITY',
    'search',
]

logger = logging.getLogger(__name__)

CHANNEL_CAPACITY = 10


async def search(
    config: SearchConfig,
    query: str | None = None,
    *,
    preview_cmd: str | None = None,
    selector: str = 'fzf',
    channel_capacity: int = CHANNEL_CAPACITY,
    reporter: LoggerProtocol | None = None,
) -> Path | None:
    """
    Find projects and let the user pick one.

    Args:
        config: Roots, markers and depth to search
        query: Initial fzf query; an exact, unambiguous project name skips the prompt
        preview_cmd: fzf preview command (default: ls)
        selector: fzf binary
        channel_capacity: Max paths buffered between the walker and fzf
        reporter: Sink for non-fatal diagnostics

    Returns:
        Selected project path, or None if the user selected nothing

    Raises:
        InvalidRootError: If a root is not absolute
        SelectorNotFoundError: If fzf is not installed
        NoProjectsError: If the walk finished without finding a project
        ScanError: If a directory could not be read
        SelectorError: If fzf failed
    """
    reporter = reporter or NullLogger()
    channel: asyncio.Queue[ProjectMessage] = asyncio.Queue(maxsize=channel_capacity)
    walker = Walker(config, channel=channel, reporter=reporter)

    process = await spawn_selector(query, preview_cmd, binary=selector)
    bridge = SelectorBridge(process, channel, reporter=reporter)

    walk_task = asyncio.create_task(walker.walk(), name='cs-walk')
    feed_task = asyncio.create_task(bridge.feed(), name='cs-feed')
    read_task = asyncio.create_task(bridge.read(), name='cs-read')

    try:
        pending: set[asyncio.Task[Any]] = {walk_task, feed_task, read_task}
        while True:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)

            if read_task in done:
                # The user's answer wins, even if the walk finished in the same wake-up
                return read_task.result()

            if feed_task in done:
                feed_task.result()  # Re-raises anything other than a closed pipe

            if walk_task in done:
                projects = walk_task.result()
                if not projects:
                    raise NoProjectsError([root.path for root in config.roots])

                match = unique_match(projects, query)
                if match is not None:
                    logger.debug('query %r matches exactly one project: %s', query, match)
                    return match
    finally:
        channel.shutdown(immediate=True)
        for task in (walk_task, feed_task, read_task):
            task.cancel()
        # Errors raised while cancelling the losers are discarded
        await asyncio.gather(walk_task, feed_task, read_task, return_exceptions=True)
        await terminate_process(process)

