from __future__ import annotations

import io
import os
import stat
from dataclasses import replace
from pathlib import Path

import pytest

from assetkit.errors import AssetkitError
from assetkit.filesystem import (
    atomic_write_bytes,
    clear_directory,
    copy_file,
    ensure_parent,
    hash_file,
    list_files,
    load_toml,
    prune_empty_parents,
    stamp_file,
    stamp_matches,
    write_stream,
)


def test_copy_file_overwrites_existing_file(tmp_path: Path) -> None:
    source = tmp_path / "source.txt"
    source.write_text("hello\n")
    destination = tmp_path / "dest.txt"
    destination.write_text("old\n")

    copy_file(source, destination)

    assert destination.read_text() == "hello\n"


def test_copy_file_replaces_directory_and_creates_parents(tmp_path: Path) -> None:
    source = tmp_path / "source.txt"
    source.write_text("data\n")
    destination = tmp_path / "deep" / "dst"
    (destination / "old").mkdir(parents=True)

    copy_file(source, destination)

    assert destination.is_file()
    assert destination.read_text() == "data\n"


def test_copy_file_refuses_directory_with_files(tmp_path: Path) -> None:
    source = tmp_path / "source.txt"
    source.write_text("data\n")
    destination = tmp_path / "dst"
    destination.mkdir()
    (destination / "notes.txt").write_text("keep")

    with pytest.raises(AssetkitError):
        copy_file(source, destination)
    with pytest.raises(AssetkitError):
        write_stream(io.BytesIO(b"data"), destination)

    assert (destination / "notes.txt").read_text() == "keep"


def test_write_stream_is_world_readable(tmp_path: Path) -> None:
    destination = tmp_path / "out" / "app.js"

    write_stream(io.BytesIO(b"console.log(1)"), destination)

    assert destination.read_bytes() == b"console.log(1)"
    assert stat.S_IMODE(destination.stat().st_mode) == 0o644


def test_atomic_write_leaves_only_target(tmp_path: Path) -> None:
    target = tmp_path / "cache.toml"
    atomic_write_bytes(target, b"one")
    atomic_write_bytes(target, b"two")

    assert target.read_bytes() == b"two"
    assert [path.name for path in tmp_path.iterdir()] == ["cache.toml"]


def test_failed_write_removes_temporary_file(tmp_path: Path) -> None:
    class Broken(io.RawIOBase):
        def readinto(self, buffer) -> int:  # noqa: ANN001
            raise OSError("device went away")

    with pytest.raises(OSError):
        write_stream(Broken(), tmp_path / "out.js")

    assert list(tmp_path.iterdir()) == []


def test_stamp_matches_detects_changes(tmp_path: Path) -> None:
    path = tmp_path / "file.txt"
    path.write_text("abc\n")
    stamp = stamp_file(path)

    assert stamp.size == len("abc\n")
    assert stamp.digest == hash_file(path)
    assert stamp_matches(stamp)

    os.utime(path, ns=(stamp.mtime_ns, stamp.mtime_ns + 1_000_000_000))
    assert not stamp_matches(stamp)
    assert stamp_matches(replace(stamp, mtime_ns=None))

    path.unlink()
    assert not stamp_matches(stamp)


def test_stamp_matches_catches_same_size_rewrite(tmp_path: Path) -> None:
    path = tmp_path / "file.txt"
    path.write_text("aaaa")
    stamp = stamp_file(path)

    path.write_text("bbbb")
    os.utime(path, ns=(stamp.mtime_ns, stamp.mtime_ns))

    assert not stamp_matches(stamp)


def test_load_toml_tolerates_missing_and_corrupt(tmp_path: Path) -> None:
    broken = tmp_path / "broken.toml"
    broken.write_text("= nope")

    assert load_toml(tmp_path / "missing.toml") is None
    assert load_toml(broken) is None


def test_prune_empty_parents_stops_at_root(tmp_path: Path) -> None:
    root = tmp_path / "root"
    leaf = root / "a" / "b" / "file.txt"
    ensure_parent(leaf)
    (root / "a" / "keep.txt").write_text("keep")

    prune_empty_parents(leaf, root)

    assert not (root / "a" / "b").exists()
    assert (root / "a").exists()
    assert root.exists()


def test_clear_directory_keeps_files(tmp_path: Path) -> None:
    directory = tmp_path / "dir"
    (directory / "empty" / "nested").mkdir(parents=True)

    clear_directory(directory)
    clear_directory(tmp_path / "missing")

    assert not directory.exists()

    (directory / "child").mkdir(parents=True)
    (directory / "child" / "notes.txt").write_text("x")

    with pytest.raises(AssetkitError):
        clear_directory(directory)

    assert (directory / "child" / "notes.txt").read_text() == "x"


def test_list_files_sorted(tmp_path: Path) -> None:
    (tmp_path / "b").mkdir()
    (tmp_path / "b" / "two.js").write_text("2")
    (tmp_path / "a.js").write_text("1")

    assert list_files(tmp_path) == [tmp_path / "a.js", tmp_path / "b" / "two.js"]
    assert list_files(tmp_path / "missing") == []
