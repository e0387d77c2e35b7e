"""
Runtime settings for cs.

Environment-driven knobs (binaries, channel size, defaults). The list of
roots lives in the JSON config file instead, see cs.config.file.
"""

from __future__ import annotations

import os
import pathlib
from typing import TypeVar

import lazy_object_proxy
import pydantic
import pydantic_settings

from cs.schemas.search import DEFAULT_PROJECT_MARKERS

T = TypeVar('T', bound='CsSettings')


class CsSettings(pydantic_settings.BaseSettings):
    """Settings read from CS_* environment variables."""

    model_config = pydantic_settings.SettingsConfigDict(
        env_prefix='CS_',
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=True,  # Fail fast on misconfiguration
        extra='ignore',  # The .env file may carry unrelated variables
    )

    # Application metadata
    APP_NAME: str = 'cs'

    # External binaries
    SELECTOR: str = 'fzf'
    MULTIPLEXER: str = 'tmux'

    # Discovery
    CHANNEL_CAPACITY: int = 10  # Walker blocks once this many paths are waiting for fzf
    DEFAULT_DEPTH: int = 5
    PROJECT_MARKERS: list[str] = pydantic.Field(default_factory=lambda: list(DEFAULT_PROJECT_MARKERS))

    @pydantic.field_validator('CHANNEL_CAPACITY')
    @classmethod
    def validate_channel_capacity(cls, v: int) -> int:
        """Unbounded queues would defeat backpressure."""
        if v < 1:
            raise ValueError('CHANNEL_CAPACITY must be >= 1')
        return v

    @pydantic.field_validator('DEFAULT_DEPTH')
    @classmethod
    def validate_default_depth(cls, v: int) -> int:
        if v < 0:
            raise ValueError('DEFAULT_DEPTH must be >= 0')
        return v


def get_settings(settings_class: type[T], env_file: str | None = None) -> T:
    """
    Build settings from CS_* variables, optionally layered over a .env file.

    The .env file is only read when named explicitly or through
    LOAD_ENV_FILE, so a stray .env in the directory cs is started from
    never changes the selector or multiplexer.

    Args:
        settings_class: Settings class to build
        env_file: .env path; takes precedence over LOAD_ENV_FILE

    Raises:
        FileNotFoundError: If the named .env file is missing
    """
    env_file_path = env_file or os.getenv('LOAD_ENV_FILE')

    if not env_file_path:
        return settings_class(_env_file=None)

    resolved_path = pathlib.Path(env_file_path).resolve()
    if not resolved_path.exists():
        raise FileNotFoundError(f'Environment file not found: {resolved_path}')

    return settings_class(_env_file=resolved_path)


def lazy_settings(settings_class: type[T]) -> T:
    """Proxy that reads the environment on first attribute access, not at import."""
    return lazy_object_proxy.Proxy(lambda: get_settings(settings_class))


settings = lazy_settings(CsSettings)
