"""
Search schemas.

Models describing one project search and the messages the walker streams
to the selector while it runs.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

import pydantic

from cs.base_model import StrictModel

DEFAULT_PROJECT_MARKERS = ['.git', '.jj']


class Root(StrictModel):
    """A directory to start a scan from."""

    path: Path
    depth: int | None = None  # Overrides SearchConfig.max_depth for this root

    @pydantic.field_validator('depth')
    @classmethod
    def validate_depth(cls, v: int | None) -> int | None:
        if v is not None and v < 0:
            raise ValueError('depth must be >= 0')
        return v


class SearchConfig(StrictModel):
    """
    Immutable configuration for a single search.

    Depth is inclusive: a root is depth 0 and directories at exactly
    max_depth are still listed.
    """

    roots: list[Root]
    markers: list[str] = pydantic.Field(default_factory=lambda: list(DEFAULT_PROJECT_MARKERS))
    max_depth: int = 5

    @pydantic.field_validator('markers')
    @classmethod
    def validate_markers(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError('at least one project marker is required')
        return v

    @pydantic.field_validator('max_depth')
    @classmethod
    def validate_max_depth(cls, v: int) -> int:
        if v < 0:
            raise ValueError('max_depth must be >= 0')
        return v

    def depth_for(self, root: Root) -> int:
        """Effective depth limit for a root."""
        return self.max_depth if root.depth is None else root.depth


class ProjectMessage(StrictModel):
    """A message on the discovery channel: a found project, or the end of the walk."""

    kind: Literal['project', 'end']
    path: Path | None = None

    @classmethod
    def project(cls, path: Path) -> ProjectMessage:
        return cls(kind='project', path=path)

    @classmethod
    def end(cls) -> ProjectMessage:
        return cls(kind='end')

    @property
    def is_end(self) -> bool:
        return self.kind == 'end'
