"""
Schema definitions for cs.

This package contains Pydantic models for the values passed between services:
- search: search configuration and discovery channel messages
- session: session specs and the final exec command
"""

from __future__ import annotations

from cs.schemas.search import ProjectMessage, Root, SearchConfig
from cs.schemas.session import ExecCommand, SessionMode, SessionSpec

__all__ = [
    'ExecCommand',
    'ProjectMessage',
    'Root',
    'SearchConfig',
    'SessionMode',
    'SessionSpec',
]
