"""
JSON config file.

Stores the roots to search (with optional per-root depth), the fzf preview
command and a tmux command to run in new sessions:

    {
      "sources": [{"root": "/home/me/src", "depth": 3}, {"root": "/home/me/work"}],
      "preview_cmd": "eza -la --color=always {}",
      "tmux_script": "send-keys 'nvim .' Enter"
    }

Location: $XDG_CONFIG_HOME/cs/config.json, falling back to ~/.config/cs/config.json.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping, Sequence
from pathlib import Path

import pydantic

from cs.exceptions import ConfigError
from cs.schemas.search import Root, SearchConfig

__all__ = [
    'ConfigFile',
    'Source',
    'config_path',
    'load_config',
    'save_config',
    'update_roots',
]

APP_CFG_DIR = 'cs'
APP_CFG_FILE = 'config.json'


class Source(pydantic.BaseModel):
    """A configured root, as stored on disk."""

    model_config = pydantic.ConfigDict(extra='forbid', frozen=True)

    root: str
    depth: int | None = pydantic.Field(default=None, ge=0)


class ConfigFile(pydantic.BaseModel):
    """Contents of config.json."""

    model_config = pydantic.ConfigDict(extra='forbid', frozen=True)

    sources: list[Source] = pydantic.Field(default_factory=list)
    preview_cmd: str | None = None  # Passed to fzf --preview
    tmux_script: str | None = None  # Control-mode command sent to newly created sessions

    def to_search_config(self, markers: Sequence[str], default_depth: int, depth_override: int | None = None) -> SearchConfig:
        """
        Build the search configuration.

        A depth given on the command line applies to every root; otherwise a
        source's own depth wins over the default.
        """
        roots = [
            Root(path=Path(source.root), depth=None if depth_override is not None else source.depth)
            for source in self.sources
        ]
        return SearchConfig(
            roots=roots,
            markers=list(markers),
            max_depth=default_depth if depth_override is None else depth_override,
        )


def config_path(environ: Mapping[str, str] | None = None) -> Path:
    """Location of config.json for the given environment."""
    env = os.environ if environ is None else environ
    xdg = env.get('XDG_CONFIG_HOME')
    if xdg:
        return Path(xdg) / APP_CFG_DIR / APP_CFG_FILE
    return Path(env.get('HOME') or Path.home()) / '.config' / APP_CFG_DIR / APP_CFG_FILE


def load_config(path: Path) -> ConfigFile:
    """
    Load the config file.

    A missing or empty file is an empty config (first run).

    Raises:
        ConfigError: If the file is not valid JSON or has unexpected content
    """
    if not path.exists():
        return ConfigFile()

    text = path.read_text(encoding='utf-8')
    if not text.strip():
        return ConfigFile()

    try:
        return ConfigFile.model_validate(json.loads(text))
    except json.JSONDecodeError as e:
        raise ConfigError(path, f'invalid JSON at line {e.lineno}') from e
    except pydantic.ValidationError as e:
        raise ConfigError(path, f'{e.error_count()} invalid field(s): {e.errors()[0]["msg"]}') from e


def save_config(path: Path, cfg: ConfigFile) -> None:
    """Write the config file, creating its directory if needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(cfg.model_dump_json(indent=2, exclude_none=True) + '\n', encoding='utf-8')


def update_roots(cfg: ConfigFile, roots: Sequence[str]) -> ConfigFile:
    """
    Replace the configured roots.

    Duplicates are dropped (first occurrence wins) and a root that was
    already configured keeps its depth.
    """
    depths = {os.path.normpath(source.root): source.depth for source in cfg.sources}
    seen: dict[str, None] = {}
    for root in roots:
        seen.setdefault(os.path.normpath(root), None)
    sources = [Source(root=root, depth=depths.get(root)) for root in seen]
    return cfg.model_copy(update={'sources': sources})
