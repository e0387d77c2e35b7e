"""
Session schemas.

A SessionSpec is built once per resolved selection and consumed by the
session orchestrator, which answers with the ExecCommand that replaces
the current process.
"""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path

from cs.base_model import StrictModel


class SessionMode(StrEnum):
    """Granularity at which tmux hosts the project."""

    SESSION = 'session'
    WINDOW = 'window'


class SessionSpec(StrictModel):
    """Target project path plus how it should be opened."""

    path: Path
    mode: SessionMode = SessionMode.SESSION


class ExecCommand(StrictModel):
    """
    Command that takes over the current process.

    Returned by the orchestrator instead of exec'ing directly, so the final
    step stays a single terminal action (see cs.launcher.exec_command).
    """

    argv: list[str]

    @property
    def binary(self) -> str:
        return self.argv[0]
