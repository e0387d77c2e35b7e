"""Tests for the project walker."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from cs.exceptions import InvalidRootError, ScanError
from cs.schemas.search import ProjectMessage, Root, SearchConfig
from cs.services import walker as walker_module
from cs.services.walker import Walker, unique_match
from tests.fakes import RecordingLogger, make_dirs, make_project


def config_for(*roots: Path, max_depth: int = 5, markers: list[str] | None = None) -> SearchConfig:
    return SearchConfig(
        roots=[Root(path=root) for root in roots],
        markers=markers or ['.git', '.jj'],
        max_depth=max_depth,
    )


def setup_tree(root: Path) -> set[Path]:
    """A mix of projects, nested projects and plain directories. Returns the expected projects."""
    expected = {
        make_project(root, 'git-1', as_file=True),
        make_project(root, 'git-2/nested'),
        make_project(root, 'git-3/nested/nesteder'),
        make_project(root, 'git-double/nested'),
        make_project(root, 'jj-1', marker='.jj'),
    }
    make_dirs(root, 'git-2/foo', 'git-2/bar', 'git-2/.cache', 'git-2/nested/foo', 'git-2/nested/.cache')
    make_dirs(root, 'git-3/foo', 'git-3/nested/bar', 'git-3/nested/nesteder/foo')
    # A project inside a project is never reported
    make_project(root, 'git-double/nested/nesteder')
    make_dirs(root, 'not-1', 'not-2/foo/bar', 'not-3/nested/nesteder/foo')
    (root / 'not-1' / '.notgit').touch()
    (root / 'not-2' / 'cenas.txt').touch()
    return expected


@pytest.mark.asyncio
async def test_finds_projects_without_descending_into_them(tmp_path: Path) -> None:
    expected = setup_tree(tmp_path)

    projects = await Walker(config_for(tmp_path)).walk()

    assert projects == expected
    for project in projects:
        for other in projects:
            assert project == other or project not in other.parents


@pytest.mark.asyncio
async def test_example_tree(tmp_path: Path) -> None:
    make_project(tmp_path, 'proj-a')
    make_project(tmp_path, 'proj-b/nested')

    projects = await Walker(config_for(tmp_path, markers=['.git'])).walk()

    assert projects == {tmp_path / 'proj-a', tmp_path / 'proj-b' / 'nested'}


@pytest.mark.asyncio
async def test_multiple_roots(tmp_path: Path) -> None:
    root_1 = tmp_path / 'one'
    root_2 = tmp_path / 'two'
    expected = setup_tree(root_1) | setup_tree(root_2)

    projects = await Walker(config_for(root_1, root_2)).walk()

    assert projects == expected
    assert len(projects) == 10


@pytest.mark.asyncio
async def test_overlapping_roots_report_each_project_once(tmp_path: Path) -> None:
    project = make_project(tmp_path, 'src/app')
    channel: asyncio.Queue[ProjectMessage] = asyncio.Queue()

    config = config_for(tmp_path, tmp_path / 'src', Path(f'{tmp_path}/src/'), tmp_path)
    projects = await Walker(config, channel=channel).walk()

    assert projects == {project}
    messages = [channel.get_nowait() for _ in range(channel.qsize())]
    assert messages == [ProjectMessage.project(project), ProjectMessage.end()]


@pytest.mark.asyncio
async def test_missing_root_is_skipped_with_one_warning(tmp_path: Path) -> None:
    project = make_project(tmp_path, 'real/app')
    missing_1 = tmp_path / 'missing-1'
    missing_2 = tmp_path / 'missing-2'
    reporter = RecordingLogger()

    projects = await Walker(config_for(missing_1, tmp_path / 'real', missing_2), reporter=reporter).walk()

    assert projects == {project}
    assert reporter.warnings == [
        f'root not found, skipping: {missing_1}',
        f'root not found, skipping: {missing_2}',
    ]


@pytest.mark.asyncio
async def test_depth_limit_is_inclusive(tmp_path: Path) -> None:
    at_limit = make_project(tmp_path, 'a/b')
    make_project(tmp_path, 'a/c/d')

    projects = await Walker(config_for(tmp_path, max_depth=2)).walk()

    assert projects == {at_limit}


@pytest.mark.asyncio
async def test_depth_zero_only_checks_the_root(tmp_path: Path) -> None:
    make_project(tmp_path, 'child')

    assert await Walker(config_for(tmp_path, max_depth=0)).walk() == set()

    (tmp_path / '.git').mkdir()
    assert await Walker(config_for(tmp_path, max_depth=0)).walk() == {tmp_path}


@pytest.mark.asyncio
async def test_per_root_depth_overrides_default(tmp_path: Path) -> None:
    shallow = make_project(tmp_path / 'shallow', 'x')
    make_project(tmp_path / 'shallow', 'y/z/deep')
    deep = make_project(tmp_path / 'deep', 'y/z/deep')

    config = SearchConfig(
        roots=[Root(path=tmp_path / 'shallow', depth=1), Root(path=tmp_path / 'deep')],
        max_depth=5,
    )
    projects = await Walker(config).walk()

    assert projects == {shallow, deep}


@pytest.mark.asyncio
async def test_symlinked_directories_are_not_followed(tmp_path: Path) -> None:
    target = make_project(tmp_path / 'elsewhere', 'proj')
    root = tmp_path / 'root'
    root.mkdir()
    (root / 'link').symlink_to(target.parent, target_is_directory=True)

    assert await Walker(config_for(root)).walk() == set()


@pytest.mark.asyncio
async def test_walk_is_idempotent(tmp_path: Path) -> None:
    setup_tree(tmp_path)
    config = config_for(tmp_path)

    first = await Walker(config).walk()
    second = await Walker(config).walk()

    assert first == second


@pytest.mark.asyncio
async def test_streams_projects_then_a_single_end(tmp_path: Path) -> None:
    expected = setup_tree(tmp_path)
    channel: asyncio.Queue[ProjectMessage] = asyncio.Queue()

    await Walker(config_for(tmp_path), channel=channel).walk()

    messages = [channel.get_nowait() for _ in range(channel.qsize())]
    assert messages[-1].is_end
    assert sum(m.is_end for m in messages) == 1
    assert {m.path for m in messages[:-1]} == expected
    assert len(messages) == len(expected) + 1


@pytest.mark.asyncio
async def test_full_channel_blocks_the_walk(tmp_path: Path) -> None:
    for name in ('a', 'b', 'c'):
        make_project(tmp_path, name)
    channel: asyncio.Queue[ProjectMessage] = asyncio.Queue(maxsize=1)

    task = asyncio.create_task(Walker(config_for(tmp_path), channel=channel).walk())
    await asyncio.sleep(0.2)
    assert not task.done()
    assert channel.full()

    received = []
    while not (message := await asyncio.wait_for(channel.get(), timeout=5)).is_end:
        received.append(message.path)

    assert received == [tmp_path / 'a', tmp_path / 'b', tmp_path / 'c']
    assert await asyncio.wait_for(task, timeout=5) == set(received)


@pytest.mark.asyncio
async def test_relative_root_is_rejected() -> None:
    with pytest.raises(InvalidRootError):
        Walker(SearchConfig(roots=[Root(path=Path('relative/dir'))]))


@pytest.mark.asyncio
async def test_unreadable_directory_aborts(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    make_project(tmp_path, 'ok')
    make_dirs(tmp_path, 'locked/inner')
    real_list_dir = walker_module._list_dir

    def list_dir(directory: Path) -> tuple[list[str], list[str]]:
        if directory.name == 'locked':
            raise ScanError(directory, PermissionError(13, 'Permission denied'))
        return real_list_dir(directory)

    monkeypatch.setattr(walker_module, '_list_dir', list_dir)

    with pytest.raises(ScanError, match='Permission denied'):
        await Walker(config_for(tmp_path)).walk()


def test_list_dir_wraps_os_errors(tmp_path: Path) -> None:
    with pytest.raises(ScanError) as exc_info:
        walker_module._list_dir(tmp_path / 'nope')

    assert isinstance(exc_info.value.cause, FileNotFoundError)


class TestUniqueMatch:
    def test_single_exact_match(self) -> None:
        projects = [Path('/src/123'), Path('/src/abc')]
        assert unique_match(projects, 'abc') == Path('/src/abc')

    def test_ambiguous_name_is_no_match(self) -> None:
        projects = [Path('/src/abc'), Path('/work/abc')]
        assert unique_match(projects, 'abc') is None

    def test_partial_name_is_no_match(self) -> None:
        assert unique_match([Path('/src/abcdef')], 'abc') is None

    def test_empty_query(self) -> None:
        assert unique_match([Path('/src/abc')], '') is None
        assert unique_match([Path('/src/abc')], None) is None
