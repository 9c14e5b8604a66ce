"""Filesystem helpers for assetkit."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import tomllib
from hashlib import blake2b
from pathlib import Path
from typing import Any, BinaryIO, Callable

from .errors import AssetkitError
from .models import FileStamp

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 1024
# mkstemp creates 0600 files; published assets must be world readable.
_FILE_MODE = 0o644


def ensure_parent(path: Path) -> None:
    """Ensure the parent directory exists."""

    path.parent.mkdir(parents=True, exist_ok=True)


def hash_file(path: Path) -> str:
    """Return a BLAKE2 hash of ``path`` contents."""

    hasher = blake2b(digest_size=32)
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


def stamp_file(path: Path) -> FileStamp:
    """Capture size, mtime and digest for a regular file."""

    stat_result = path.stat()
    return FileStamp(
        path=str(path),
        size=stat_result.st_size,
        digest=hash_file(path),
        mtime_ns=stat_result.st_mtime_ns,
    )


def stamp_matches(stamp: FileStamp) -> bool:
    """Return ``True`` if the file recorded in ``stamp`` is still the same file.

    Size and mtime are compared first; the digest is only computed when both
    agree, so a touched or rewritten file is always reported as changed.
    """

    path = Path(stamp.path)
    try:
        stat_result = path.stat()
    except OSError:
        return False
    if not path.is_file():
        return False
    if stat_result.st_size != stamp.size:
        return False
    if stamp.mtime_ns is not None and stat_result.st_mtime_ns != stamp.mtime_ns:
        return False
    return hash_file(path) == stamp.digest


def _write_atomically(destination: Path, writer: Callable[[BinaryIO], None]) -> None:
    ensure_parent(destination)
    fd, temp_name = tempfile.mkstemp(prefix=f".{destination.name}.assetkit-tmp-", dir=destination.parent)
    temp_path = Path(temp_name)
    try:
        with os.fdopen(fd, "wb") as handle:
            writer(handle)
        os.chmod(temp_path, _FILE_MODE)
        os.replace(temp_path, destination)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise


def copy_file(source: Path, destination: Path) -> None:
    """Copy ``source`` over ``destination`` without exposing a partial file."""

    clear_directory(destination)

    def _copy(handle: BinaryIO) -> None:
        with source.open("rb") as reader:
            shutil.copyfileobj(reader, handle, _CHUNK_SIZE)

    _write_atomically(destination, _copy)
    shutil.copymode(source, destination)


def write_stream(stream: BinaryIO, destination: Path) -> None:
    """Write the contents of ``stream`` to ``destination`` atomically."""

    clear_directory(destination)
    _write_atomically(destination, lambda handle: shutil.copyfileobj(stream, handle, _CHUNK_SIZE))


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Replace ``path`` with ``data`` via a temporary sibling file."""

    _write_atomically(path, lambda handle: handle.write(data))


def load_toml(path: Path) -> dict[str, Any] | None:
    """Read a TOML cache file, returning ``None`` when it is absent or unreadable."""

    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except FileNotFoundError:
        return None
    except (OSError, tomllib.TOMLDecodeError, UnicodeDecodeError) as exc:
        logger.warning("Ignoring unreadable cache file '%s': %s", path, exc)
        return None


def clear_directory(path: Path) -> None:
    """Remove a directory standing at ``path`` if it holds no files.

    Raises ``AssetkitError`` when files remain below it, so nothing untracked
    is ever deleted to make room for a copy.
    """

    if path.is_symlink() or not path.is_dir():
        return
    if any(child.is_file() or child.is_symlink() for child in path.rglob("*")):
        raise AssetkitError(f"Directory '{path}' is in the way and still holds files")
    shutil.rmtree(path)


def prune_empty_parents(path: Path, root: Path) -> None:
    """Remove directories between ``path`` and ``root`` that are left empty."""

    current = path.parent
    while current != root and root in current.parents:
        try:
            current.rmdir()
        except OSError:
            return
        current = current.parent


def list_files(root: Path) -> list[Path]:
    """Return every regular file below ``root`` in sorted order."""

    if not root.is_dir():
        return []
    return sorted(path for path in root.rglob("*") if path.is_file())
