"""
Shared exceptions for cs.

Domain-specific exceptions used across services.

Exception Hierarchy:
    CsError (base)
    ├── ConfigError (unreadable or invalid config file)
    ├── SearchError (project discovery failures)
    │   ├── InvalidRootError (configured root is not an absolute path)
    │   ├── ScanError (filesystem error while walking a root)
    │   └── NoProjectsError (walk finished without finding a project)
    ├── SelectorError (fzf exited with an unexpected code or signal)
    │   └── SelectorNotFoundError (fzf not in PATH)
    └── TmuxError (session orchestration failures)
        ├── TmuxNotFoundError (tmux not in PATH)
        ├── ControlProtocolError (control stream ended mid-reply)
        ├── TmuxCommandError (command failed or non-zero exit)
        └── TmuxTerminationError (tmux killed by a signal)
"""

from __future__ import annotations

from pathlib import Path


class CsError(Exception):
    """Base exception for all cs errors."""


class ConfigError(CsError):
    """Raised when the config file cannot be parsed or validated."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f'bad config file {path}: {reason}')


class SearchError(CsError):
    """Base exception for project discovery failures."""


class InvalidRootError(SearchError):
    """Raised when a configured root is not an absolute path."""

    def __init__(self, root: str) -> None:
        self.root = root
        super().__init__(f'invalid path: {root} (roots must be absolute)')


class ScanError(SearchError):
    """Raised when a directory cannot be read during a walk (other than a missing root)."""

    def __init__(self, path: Path, cause: OSError) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f'cannot scan {path}: {cause.strerror or cause}')


class NoProjectsError(SearchError):
    """Raised when no project was found under any configured root."""

    def __init__(self, roots: list[Path]) -> None:
        self.roots = roots
        roots_str = ', '.join(str(r) for r in roots)
        super().__init__(f'no projects found in: {roots_str}')


class SelectorError(CsError):
    """Raised when the selector process fails."""


class SelectorNotFoundError(SelectorError):
    """Raised when the selector binary is not in PATH."""

    def __init__(self, binary: str) -> None:
        self.binary = binary
        super().__init__(f'{binary} not found in PATH')


class TmuxError(CsError):
    """Base exception for session orchestration failures."""


class TmuxNotFoundError(TmuxError):
    """Raised when the tmux binary is not in PATH."""

    def __init__(self, binary: str) -> None:
        self.binary = binary
        super().__init__(f'{binary} not found in PATH')


class ControlProtocolError(TmuxError):
    """Raised when the control-mode stream ends before a reply is complete."""


class TmuxCommandError(TmuxError):
    """Raised when a tmux command fails."""

    def __init__(self, command: str, detail: str) -> None:
        self.command = command
        self.detail = detail
        super().__init__(f'tmux {command} failed: {detail}')


class TmuxTerminationError(TmuxError):
    """Raised when tmux is terminated by a signal."""

    def __init__(self, signal_number: int) -> None:
        self.signal_number = signal_number
        super().__init__(f'tmux terminated by signal {signal_number}')
