"""
Reporter protocol for cs services.

Walker, selector bridge and tmux orchestrator never print. They hand non-fatal
diagnostics (missing roots, a reused session, fzf closing its input early) to
a reporter, and the CLI decides what reaches the terminal.
"""

from __future__ import annotations

from typing import Protocol


class LoggerProtocol(Protocol):
    """
    Async sink for user-facing diagnostics.

    Implementations:
    - CLILogger (cli/logger.py): stderr, info lines only with --verbose
    - NullLogger (below): drops everything; the default for library calls
    """

    async def info(self, message: str) -> None: ...
    async def warning(self, message: str) -> None: ...
    async def error(self, message: str) -> None: ...


class NullLogger:
    """Reporter that discards every message."""

    async def info(self, message: str) -> None:
        pass

    async def warning(self, message: str) -> None:
        pass

    async def error(self, message: str) -> None:
        pass
