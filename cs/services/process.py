"""Child process cleanup shared by the fzf and tmux services."""

from __future__ import annotations

import asyncio
import contextlib

__all__ = ['terminate_process']


async def terminate_process(process: asyncio.subprocess.Process) -> None:
    """
    Close the pipes of a child process, stop it if still running, and reap it.

    SIGTERM rather than SIGKILL: fzf restores the terminal on SIGTERM.
    """
    if process.stdin is not None:
        process.stdin.close()

    if process.returncode is None:
        with contextlib.suppress(ProcessLookupError):
            process.terminate()

    await process.wait()
