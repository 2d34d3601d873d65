import asyncio
import os
import shutil
import threading

from hlx.clean import CleanCommand, CleanOptions, clean_directories
from hlx.logging_config import STDERR


class FakeLogger:
    def __init__(self):
        self.entries: list[tuple[str, str]] = []

    def info(self, msg, *args, **kwargs):
        self.entries.append(("info", msg % args))

    def error(self, msg, *args, **kwargs):
        self.entries.append(("error", msg % args))


def _make_project(tmp_path, *, build=True, cache=True):
    if build:
        (tmp_path / ".hlx" / "build" / "html").mkdir(parents=True)
        (tmp_path / ".hlx" / "build" / "html" / "index.html").write_text("<html/>")
    if cache:
        (tmp_path / ".hlx" / "cache").mkdir(parents=True)
        (tmp_path / ".hlx" / "cache" / "deps.json").write_text("{}")
    return tmp_path


def test_removes_build_and_ignores_missing_cache(tmp_path):
    project = _make_project(tmp_path, cache=False)
    logger = FakeLogger()

    asyncio.run(CleanCommand(logger).with_directory(project).run())

    assert not (project / ".hlx" / "build").exists()
    assert logger.entries == [("info", "removed .hlx/build")]


def test_removes_both_directories(tmp_path):
    project = _make_project(tmp_path)
    logger = FakeLogger()

    asyncio.run(CleanCommand(logger).with_directory(project).run())

    assert not (project / ".hlx" / "build").exists()
    assert not (project / ".hlx" / "cache").exists()
    assert sorted(logger.entries) == [
        ("info", "removed .hlx/build"),
        ("info", "removed .hlx/cache"),
    ]


def test_second_run_is_silent(tmp_path):
    project = _make_project(tmp_path)
    logger = FakeLogger()
    command = CleanCommand(logger).with_directory(project)

    asyncio.run(command.run())
    logger.entries.clear()
    asyncio.run(command.run())

    assert logger.entries == []


def test_failure_is_logged_and_not_raised(tmp_path, monkeypatch):
    project = _make_project(tmp_path)
    logger = FakeLogger()
    real_rmtree = shutil.rmtree

    def locked_rmtree(path, *args, **kwargs):
        if path.name == "build":
            raise PermissionError(13, "Permission denied", str(path / "html" / "index.html"))
        return real_rmtree(path, *args, **kwargs)

    monkeypatch.setattr(shutil, "rmtree", locked_rmtree)

    asyncio.run(CleanCommand(logger).with_directory(project).run())

    assert (project / ".hlx" / "build").exists()
    assert not (project / ".hlx" / "cache").exists()
    errors = [msg for level, msg in logger.entries if level == "error"]
    assert len(errors) == 1
    assert "unable to remove .hlx/build" in errors[0]
    assert "Permission denied" in errors[0]
    assert ("info", "removed .hlx/cache") in logger.entries


def test_explicit_target_and_cache_dirs(tmp_path):
    (tmp_path / "dist").mkdir()
    (tmp_path / "tmp" / "cache").mkdir(parents=True)
    (tmp_path / ".hlx" / "build").mkdir(parents=True)
    logger = FakeLogger()

    command = (
        CleanCommand(logger)
        .with_directory(tmp_path)
        .with_target_dir("dist")
        .with_cache_dir(tmp_path / "tmp" / "cache")
    )
    asyncio.run(command.run())

    assert not (tmp_path / "dist").exists()
    assert not (tmp_path / "tmp" / "cache").exists()
    assert (tmp_path / ".hlx" / "build").exists()
    assert sorted(logger.entries) == [
        ("info", "removed dist"),
        ("info", "removed tmp/cache"),
    ]


def test_defaults_resolved_at_run_time(tmp_path):
    options = CleanOptions()
    options.directory = tmp_path
    target, cache = options.resolve_targets()
    assert target == tmp_path / ".hlx" / "build"
    assert cache == tmp_path / ".hlx" / "cache"
    assert options.target_dir is None
    assert options.cache_dir is None


def test_symlinked_build_is_unlinked_not_followed(tmp_path):
    project = tmp_path / "project"
    (project / ".hlx").mkdir(parents=True)
    outside = tmp_path / "elsewhere"
    outside.mkdir()
    (outside / "keep.txt").write_text("keep")
    (project / ".hlx" / "build").symlink_to(outside, target_is_directory=True)
    logger = FakeLogger()

    asyncio.run(CleanCommand(logger).with_directory(project).run())

    assert not os.path.lexists(project / ".hlx" / "build")
    assert (outside / "keep.txt").read_text() == "keep"
    assert logger.entries == [("info", "removed .hlx/build")]


def test_regular_file_target_is_removed(tmp_path):
    (tmp_path / ".hlx").mkdir()
    (tmp_path / ".hlx" / "build").write_text("stale")
    logger = FakeLogger()

    asyncio.run(CleanCommand(logger).with_directory(tmp_path).run())

    assert not (tmp_path / ".hlx" / "build").exists()
    assert logger.entries == [("info", "removed .hlx/build")]


def test_clean_with_category_logger(tmp_path, registry, console):
    project = _make_project(tmp_path, build=False)
    logger = registry.get_or_create({"category": "cli", "log_file": [STDERR]})

    asyncio.run(clean_directories(CleanOptions(directory=project), logger))

    assert console.getvalue() == "removed .hlx/cache\n"


def test_existence_check_runs_off_the_event_loop_thread(tmp_path, monkeypatch):
    loop_thread = threading.get_ident()
    checked_from: list[int] = []
    real_lexists = os.path.lexists

    def recording_lexists(path):
        checked_from.append(threading.get_ident())
        return real_lexists(path)

    monkeypatch.setattr(os.path, "lexists", recording_lexists)

    asyncio.run(CleanCommand(FakeLogger()).with_directory(tmp_path).run())

    assert len(checked_from) == 2
    assert loop_thread not in checked_from
