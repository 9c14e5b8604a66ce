"""Shared models and enums for assetkit."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from .namespace import Resource


class Scope(str, Enum):
    """Asset configurations known to the layout."""

    MAIN = "main"
    TEST = "test"


@dataclass(frozen=True, slots=True)
class FileStamp:
    """Size, modification time and content digest captured for one file."""

    path: str
    size: int
    digest: str
    mtime_ns: int | None = None

    def same_content(self, other: "FileStamp") -> bool:
        return self.size == other.size and self.digest == other.digest


@dataclass(frozen=True, slots=True)
class Fingerprint:
    """Files read and written by one completed operation."""

    files_read: tuple[FileStamp, ...] = ()
    files_written: tuple[FileStamp, ...] = ()

    def outputs(self) -> tuple[Path, ...]:
        return tuple(Path(stamp.path) for stamp in self.files_written)


@dataclass(frozen=True, slots=True)
class OpSuccess:
    """Work result for an identity that was processed successfully."""

    files_read: frozenset[Path] = frozenset()
    files_written: frozenset[Path] = frozenset()


@dataclass(frozen=True, slots=True)
class OpFailure:
    """Work result for an identity that could not be processed."""

    error: str


OpResult = Union[OpSuccess, OpFailure]


@dataclass(frozen=True, slots=True)
class IncrementalResult:
    """Outcome of an incremental run."""

    outputs: tuple[Path, ...]
    results: dict[str, OpResult] = field(default_factory=dict)
    skipped: tuple[str, ...] = ()

    @property
    def failures(self) -> dict[str, OpFailure]:
        return {key: value for key, value in self.results.items() if isinstance(value, OpFailure)}

    @property
    def succeeded(self) -> bool:
        return not self.failures


@dataclass(frozen=True, slots=True)
class PathMapping:
    """A source file or resource and the relative path it lands on."""

    source: "Path | Resource"
    target: PurePosixPath

    @classmethod
    def of(cls, source: "Path | Resource", target: str | PurePosixPath) -> "PathMapping":
        return cls(source=source, target=PurePosixPath(target))


@dataclass(frozen=True, slots=True)
class ManifestEntry:
    """What the synchronizer wrote for a target path."""

    target: PurePosixPath
    source: str
    source_stamp: FileStamp
    written: FileStamp


class SyncAction(str, Enum):
    """Outcome of synchronizing a single target path."""

    COPIED = "copied"
    UPDATED = "updated"
    SKIPPED = "skipped"
    REMOVED = "removed"


@dataclass(frozen=True, slots=True)
class SyncResult:
    """Result emitted for each target path touched or inspected by a sync."""

    target: PurePosixPath
    destination: Path
    action: SyncAction
    source: str | None = None
