"""Manifest persistence for the directory synchronizer."""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import Iterable

import tomli_w

from .filesystem import atomic_write_bytes, load_toml
from .models import ManifestEntry
from .store import stamp_from_dict, stamp_to_dict

logger = logging.getLogger(__name__)


class Manifest:
    """Tracks the files a synchronizer wrote below its destination root."""

    def __init__(self, path: Path, entries: dict[str, ManifestEntry] | None = None) -> None:
        self.path = path
        self._entries: dict[str, ManifestEntry] = entries or {}

    @classmethod
    def load(cls, path: Path) -> "Manifest":
        data = load_toml(path)
        if data is None:
            return cls(path, {})

        entries: dict[str, ManifestEntry] = {}
        try:
            for item in data.get("entries", []):
                target = PurePosixPath(item["target"])
                entries[target.as_posix()] = ManifestEntry(
                    target=target,
                    source=str(item["source"]),
                    source_stamp=stamp_from_dict(item["source_stamp"]),
                    written=stamp_from_dict(item["written"]),
                )
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Discarding malformed manifest '%s': %s", path, exc)
            return cls(path, {})

        return cls(path, entries)

    def save(self) -> None:
        payload = {
            "entries": [
                self._entry_to_dict(entry) for entry in sorted(self._entries.values(), key=lambda e: e.target.as_posix())
            ]
        }
        atomic_write_bytes(self.path, tomli_w.dumps(payload).encode("utf-8"))

    def get(self, target: PurePosixPath | str) -> ManifestEntry | None:
        return self._entries.get(PurePosixPath(target).as_posix())

    def upsert(self, entry: ManifestEntry) -> None:
        self._entries[entry.target.as_posix()] = entry

    def entries(self) -> Iterable[ManifestEntry]:
        return self._entries.values()

    def targets(self) -> set[str]:
        return set(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Manifest):
            return NotImplemented
        return self._entries == other._entries

    @staticmethod
    def _entry_to_dict(entry: ManifestEntry) -> dict[str, object]:
        return {
            "target": entry.target.as_posix(),
            "source": entry.source,
            "source_stamp": stamp_to_dict(entry.source_stamp),
            "written": stamp_to_dict(entry.written),
        }
