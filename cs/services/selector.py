"""
fzf bridge - feeds discovered projects to fzf and reads the user's choice.

Two independent tasks share one fzf process:
- feed(): drains the discovery channel into fzf's stdin, one path per line,
  and closes stdin on the end message so fzf knows the list is complete.
- read(): reads the chosen line from fzf's stdout and interprets the exit code.

fzf closes its stdin as soon as the user picks an entry, so a broken pipe
while feeding is the normal way for the feeder to stop early.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
from pathlib import Path

from cs.exceptions import SelectorError, SelectorNotFoundError
from cs.protocols import LoggerProtocol, NullLogger
from cs.schemas.search import ProjectMessage

__all__ = [
    'INTERRUPT_EXIT_CODE',
    'NO_MATCH_EXIT_CODE',
    'SelectorBridge',
    'default_preview_command',
    'selector_args',
    'spawn_selector',
]

logger = logging.getLogger(__name__)

NO_MATCH_EXIT_CODE = 1
INTERRUPT_EXIT_CODE = 130

LS_PREVIEW = 'ls -lah --color=always {}'
CMD_PREVIEW = 'cmd /C "dir /a {}"'


def default_preview_command() -> str:
    """Preview command shown next to each candidate."""
    return CMD_PREVIEW if os.name == 'nt' else LS_PREVIEW


def selector_args(binary: str, query: str | None, preview_cmd: str | None) -> list[str]:
    """Build the fzf command line."""
    args = [
        binary,
        '--header=choose a dir',
        '--reverse',
        '--scheme=path',
        '--preview',
        preview_cmd or default_preview_command(),
    ]
    if query:
        args += ['--query', query]
    return args


async def spawn_selector(
    query: str | None,
    preview_cmd: str | None = None,
    binary: str = 'fzf',
) -> asyncio.subprocess.Process:
    """
    Start fzf with piped stdin/stdout (the UI goes to the terminal).

    Raises:
        SelectorNotFoundError: If the binary is not found in PATH
    """
    if not shutil.which(binary):
        raise SelectorNotFoundError(binary)

    args = selector_args(binary, query, preview_cmd)
    logger.debug('spawning selector: %s', args)
    try:
        return await asyncio.create_subprocess_exec(
            *args,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        raise SelectorNotFoundError(binary) from e


class SelectorBridge:
    """Connects the discovery channel to one running fzf process."""

    def __init__(
        self,
        process: asyncio.subprocess.Process,
        channel: asyncio.Queue[ProjectMessage],
        reporter: LoggerProtocol | None = None,
    ) -> None:
        self.process = process
        self.channel = channel
        self.reporter: LoggerProtocol = reporter or NullLogger()

    async def feed(self) -> int:
        """
        Write every discovered path to fzf's stdin until the end message.

        Returns:
            Number of paths written
        """
        stdin = self.process.stdin
        assert stdin is not None, 'selector must be spawned with stdin=PIPE'

        written = 0
        try:
            while True:
                try:
                    message = await self.channel.get()
                except asyncio.QueueShutDown:
                    logger.debug('discovery channel closed before the end message')
                    break
                if message.is_end:
                    stdin.close()
                    break

                stdin.write(os.fsencode(message.path) + b'\n')
                await stdin.drain()
                written += 1
        except (BrokenPipeError, ConnectionResetError):
            await self.reporter.info(f'selector closed its input after {written} project(s)')

        return written

    async def read(self) -> Path | None:
        """
        Wait for the user's choice.

        Returns:
            Chosen path, or None when nothing was selected (no match,
            interrupted, or an empty answer)

        Raises:
            SelectorError: On any other exit code or if fzf was killed by a signal
        """
        stdout = self.process.stdout
        assert stdout is not None, 'selector must be spawned with stdout=PIPE'

        line = (await stdout.readline()).rstrip(b'\r\n')
        returncode = await self.process.wait()

        if returncode == 0:
            return Path(os.fsdecode(line)) if line else None
        if returncode in (NO_MATCH_EXIT_CODE, INTERRUPT_EXIT_CODE):
            logger.debug('selector exited with %d, no selection', returncode)
            return None
        if returncode < 0:
            raise SelectorError(f'selector terminated by signal {-returncode}')
        raise SelectorError(f'selector exited with code {returncode}')
