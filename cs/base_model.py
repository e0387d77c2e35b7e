"""
Base class for cs schemas.

Search and session schemas are built once from config and CLI input and then
passed between tasks, so they reject unknown fields and cannot be mutated.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class StrictModel(BaseModel):
    """Immutable model with strict types; unknown fields are an error."""

    model_config = ConfigDict(
        extra='forbid',
        strict=True,  # No str -> Path or str -> int coercion
        frozen=True,
    )
