"""
Path utilities for tmux session naming.

tmux uses '.' as the window/pane separator in target names (session.window),
so a session named after a directory like `my.project` cannot be targeted.
Session names are derived from the final path segment with:
- leading and trailing `.` removed
- any remaining `.` replaced with `_`
"""

from __future__ import annotations

from pathlib import Path

__all__ = ['session_name']

SEPARATOR = '.'
SUBSTITUTE = '_'


def session_name(path: Path | str) -> str:
    """
    Derive a tmux session name from a project path.

    Args:
        path: Project path (absolute or relative)

    Returns:
        Session name safe to use as a tmux target

    Raises:
        ValueError: If nothing is left of the final segment after trimming

    Examples:
        >>> session_name('/home/me/src/cs')
        'cs'

        >>> session_name('/home/me/src/..foo.bar..')
        'foo_bar'
    """
    name = Path(path).name.strip(SEPARATOR)
    if not name:
        raise ValueError(f'cannot derive a session name from {path!s}')
    return name.replace(SEPARATOR, SUBSTITUTE)
