"""Tests for the fzf bridge."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

import pytest

from cs.exceptions import SelectorError, SelectorNotFoundError
from cs.schemas.search import ProjectMessage
from cs.services import selector as selector_module
from cs.services.selector import SelectorBridge, selector_args, spawn_selector
from tests.fakes import FakeSelector, FakeStdin, RecordingLogger


def queue_of(*messages: ProjectMessage) -> asyncio.Queue[ProjectMessage]:
    channel: asyncio.Queue[ProjectMessage] = asyncio.Queue()
    for message in messages:
        channel.put_nowait(message)
    return channel


@pytest.mark.asyncio
async def test_feed_writes_paths_in_order_and_closes_on_end() -> None:
    process = FakeSelector(hold=True)
    channel = queue_of(
        ProjectMessage.project(Path('/src/a')),
        ProjectMessage.project(Path('/src/b')),
        ProjectMessage.end(),
    )

    written = await SelectorBridge(process, channel).feed()  # type: ignore[arg-type]

    assert written == 2
    assert process.stdin.lines == ['/src/a', '/src/b']
    assert process.stdin.closed.is_set()


@pytest.mark.asyncio
async def test_feed_stops_quietly_when_fzf_closes_its_input() -> None:
    process = FakeSelector(hold=True, stdin=FakeStdin(broken_after=1))
    channel = queue_of(
        ProjectMessage.project(Path('/src/a')),
        ProjectMessage.project(Path('/src/b')),
        ProjectMessage.project(Path('/src/c')),
    )
    reporter = RecordingLogger()

    written = await SelectorBridge(process, channel, reporter=reporter).feed()  # type: ignore[arg-type]

    assert written == 1
    assert process.stdin.lines == ['/src/a']
    assert reporter.infos == ['selector closed its input after 1 project(s)']
    assert reporter.errors == []


@pytest.mark.asyncio
async def test_feed_stops_when_channel_is_shut_down() -> None:
    process = FakeSelector(hold=True)
    channel = queue_of(ProjectMessage.project(Path('/src/a')))

    feed = asyncio.create_task(SelectorBridge(process, channel).feed())  # type: ignore[arg-type]
    await asyncio.sleep(0.05)
    channel.shutdown(immediate=True)

    assert await asyncio.wait_for(feed, timeout=5) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ('output', 'returncode', 'expected'),
    [
        (b'/src/picked\n', 0, Path('/src/picked')),
        (b'/src/no-newline', 0, Path('/src/no-newline')),
        (b'', 0, None),
        (b'', 1, None),
        (b'', 130, None),
    ],
    ids=['selected', 'no-trailing-newline', 'empty', 'no-match', 'interrupted'],
)
async def test_read_interprets_exit_codes(output: bytes, returncode: int, expected: Path | None) -> None:
    process = FakeSelector(output, returncode)

    result = await SelectorBridge(process, asyncio.Queue()).read()  # type: ignore[arg-type]

    assert result == expected


@pytest.mark.asyncio
@pytest.mark.skipif(os.name == 'nt', reason='paths are not raw bytes on Windows')
async def test_non_utf8_paths_pass_through_unchanged() -> None:
    raw = b'/src/caf\xe9'
    path = Path(os.fsdecode(raw))
    process = FakeSelector(hold=True)
    channel = queue_of(ProjectMessage.project(path), ProjectMessage.end())

    bridge = SelectorBridge(process, channel)  # type: ignore[arg-type]
    assert await bridge.feed() == 1
    assert bytes(process.stdin.data) == raw + b'\n'

    process.finish(raw + b'\n')
    result = await bridge.read()

    assert result == path
    assert os.fsencode(result) == raw


@pytest.mark.asyncio
async def test_read_unexpected_exit_code_is_an_error() -> None:
    process = FakeSelector(b'', 2)

    with pytest.raises(SelectorError, match='exited with code 2'):
        await SelectorBridge(process, asyncio.Queue()).read()  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_read_killed_by_signal_is_an_error() -> None:
    process = FakeSelector(b'', -9)

    with pytest.raises(SelectorError, match='signal 9'):
        await SelectorBridge(process, asyncio.Queue()).read()  # type: ignore[arg-type]


def test_selector_args_include_query_and_preview() -> None:
    args = selector_args('fzf', 'abc', 'eza -la {}')

    assert args == [
        'fzf',
        '--header=choose a dir',
        '--reverse',
        '--scheme=path',
        '--preview',
        'eza -la {}',
        '--query',
        'abc',
    ]


def test_selector_args_default_preview_without_query() -> None:
    args = selector_args('fzf', None, None)

    assert '--query' not in args
    assert args[-1] == selector_module.default_preview_command()


@pytest.mark.asyncio
async def test_spawn_missing_binary(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(selector_module.shutil, 'which', lambda binary: None)

    with pytest.raises(SelectorNotFoundError, match='not-fzf not found in PATH'):
        await spawn_selector('abc', binary='not-fzf')
