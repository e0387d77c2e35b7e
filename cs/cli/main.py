#!/usr/bin/env python3
"""
Command-line interface for cs.

Searches the configured roots for projects, lets you pick one in fzf and
attaches a tmux session to it.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import traceback

import typer

from cs import __version__
from cs.cli.logger import CLILogger
from cs.config.base import settings
from cs.config.file import ConfigFile, config_path, load_config, save_config, update_roots
from cs.exceptions import CsError, InvalidRootError, NoProjectsError
from cs.launcher import exec_command
from cs.schemas.search import ProjectMessage, SearchConfig
from cs.schemas.session import ExecCommand, SessionMode, SessionSpec
from cs.services.coordinator import search
from cs.services.tmux import SessionOrchestrator
from cs.services.walker import Walker

app = typer.Typer(
    name='cs',
    help=(
        'Search for git repositories in a list of configured paths and either create '
        'a new tmux session or open an existing one inside the chosen directory.'
    ),
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f'cs {__version__}')
        raise typer.Exit()


@app.command()
def main(
    query: str | None = typer.Argument(None, help='Project name; pre-fills fzf and skips it on a unique exact match'),
    depth: int | None = typer.Option(None, '--depth', '-d', min=0, help='Max depth during search (default: 5)'),
    paths: list[str] | None = typer.Option(
        None, '--paths', '-p', help='Configure a root to search (repeatable, replaces configured roots)'
    ),
    window: bool = typer.Option(False, '--window', '-w', help='Open a window in the current session'),
    list_projects: bool = typer.Option(False, '--list', '-l', help='Print every project found and exit'),
    print_path: bool = typer.Option(False, '--print', help='Print the selected path instead of opening tmux'),
    verbose: bool = typer.Option(False, '--verbose', '-v', help='Verbose output'),
    version: bool = typer.Option(
        False, '--version', callback=_version_callback, is_eager=True, help='Show version and exit'
    ),
) -> None:
    """Jump into a project and attach a tmux session to it."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format='%(asctime)s %(name)s %(levelname)s %(message)s')

    mode = SessionMode.WINDOW if window else SessionMode.SESSION
    command = asyncio.run(_main_async(query, depth, paths, mode, list_projects, print_path, verbose))
    if command is None:
        return

    try:
        exec_command(command)
    except CsError as e:
        typer.secho(f'Error: {e}', fg=typer.colors.RED, err=True)
        raise typer.Exit(1)


async def _main_async(
    query: str | None,
    depth: int | None,
    paths: list[str] | None,
    mode: SessionMode,
    list_projects: bool,
    print_path: bool,
    verbose: bool,
) -> ExecCommand | None:
    """Async implementation of the main command. Returns the command to exec, if any."""
    logger = CLILogger(verbose=verbose)

    try:
        cfg = _load_or_update_config(paths)
        if not cfg.sources:
            typer.secho(
                'Error: config has no roots. configure by using the -p/--paths flag', fg=typer.colors.RED, err=True
            )
            raise typer.Exit(1)

        search_config = cfg.to_search_config(settings.PROJECT_MARKERS, settings.DEFAULT_DEPTH, depth)

        if list_projects:
            await _list_projects(search_config, logger)
            return None

        selected = await search(
            search_config,
            query,
            preview_cmd=cfg.preview_cmd,
            selector=settings.SELECTOR,
            channel_capacity=settings.CHANNEL_CAPACITY,
            reporter=logger,
        )
        if selected is None:
            await logger.info('nothing selected')
            return None

        if print_path:
            typer.echo(os.fsencode(selected))
            return None

        orchestrator = SessionOrchestrator(settings.MULTIPLEXER, startup_script=cfg.tmux_script, reporter=logger)
        return await orchestrator.prepare(SessionSpec(path=selected, mode=mode))

    except CsError as e:
        typer.secho(f'Error: {e}', fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    except OSError as e:
        await logger.error(f'{e}')
        if verbose:
            traceback.print_exc()
        raise typer.Exit(1)


def _load_or_update_config(paths: list[str] | None) -> ConfigFile:
    """Load config.json; with --paths, replace its roots and save it first."""
    path = config_path()
    cfg = load_config(path)
    if not paths:
        return cfg

    for root in paths:
        if not os.path.isabs(root):
            raise InvalidRootError(root)

    cfg = update_roots(cfg, paths)
    save_config(path, cfg)
    return cfg


async def _list_projects(search_config: SearchConfig, logger: CLILogger) -> None:
    """Stream every project to stdout as the walker finds it."""
    channel: asyncio.Queue[ProjectMessage] = asyncio.Queue(maxsize=settings.CHANNEL_CAPACITY)
    walker = Walker(search_config, channel=channel, reporter=logger)

    async def print_projects() -> int:
        count = 0
        while not (message := await channel.get()).is_end:
            typer.echo(os.fsencode(message.path))
            count += 1
        return count

    printer = asyncio.create_task(print_projects())
    try:
        await walker.walk()
        printed = await printer
    finally:
        printer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await printer

    if printed == 0:
        raise NoProjectsError([root.path for root in search_config.roots])


if __name__ == '__main__':
    app()
