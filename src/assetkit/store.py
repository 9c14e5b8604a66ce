"""Persisted fingerprints for incremental operations."""

from __future__ import annotations

import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping

import tomli_w

from .filesystem import atomic_write_bytes, load_toml
from .models import FileStamp, Fingerprint

logger = logging.getLogger(__name__)

STORE_VERSION = 1


class FingerprintStore:
    """Maps operation identities to the fingerprint of their last successful run.

    Instances are never mutated after construction: ``record`` hands back a new
    store and leaves the receiver as it was.
    """

    def __init__(self, path: Path, entries: Mapping[str, Fingerprint] | None = None) -> None:
        self.path = path
        self._entries: Mapping[str, Fingerprint] = MappingProxyType(dict(entries or {}))

    @classmethod
    def load(cls, path: Path) -> "FingerprintStore":
        data = load_toml(path)
        if data is None:
            return cls(path, {})

        try:
            entries = _parse_entries(data)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Discarding malformed fingerprint cache '%s': %s", path, exc)
            return cls(path, {})

        return cls(path, entries)

    def save(self, path: Path | None = None) -> None:
        target = path or self.path
        payload = {
            "version": STORE_VERSION,
            "entries": [
                {
                    "id": identity,
                    "read": [stamp_to_dict(stamp) for stamp in fingerprint.files_read],
                    "written": [stamp_to_dict(stamp) for stamp in fingerprint.files_written],
                }
                for identity, fingerprint in sorted(self._entries.items())
            ],
        }
        atomic_write_bytes(target, tomli_w.dumps(payload).encode("utf-8"))
        logger.debug("Saved %d fingerprint(s) to '%s'", len(self._entries), target)

    def lookup(self, identity: str) -> Fingerprint | None:
        return self._entries.get(identity)

    def record(self, identity: str, fingerprint: Fingerprint) -> "FingerprintStore":
        entries = dict(self._entries)
        entries[identity] = fingerprint
        return FingerprintStore(self.path, entries)

    def record_all(self, fingerprints: Iterable[tuple[str, Fingerprint]]) -> "FingerprintStore":
        entries = dict(self._entries)
        entries.update(fingerprints)
        return FingerprintStore(self.path, entries)

    def identities(self) -> Iterable[str]:
        return self._entries.keys()

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FingerprintStore):
            return NotImplemented
        return dict(self._entries) == dict(other._entries)


def stamp_from_dict(item: Mapping[str, Any]) -> FileStamp:
    mtime = item.get("mtime_ns")
    return FileStamp(
        path=str(item["path"]),
        size=int(item["size"]),
        digest=str(item["digest"]),
        mtime_ns=int(mtime) if mtime is not None else None,
    )


def stamp_to_dict(stamp: FileStamp) -> dict[str, object]:
    payload: dict[str, object] = {
        "path": stamp.path,
        "size": stamp.size,
        "digest": stamp.digest,
    }
    if stamp.mtime_ns is not None:
        payload["mtime_ns"] = stamp.mtime_ns
    return payload


def _parse_entries(data: Mapping[str, Any]) -> dict[str, Fingerprint]:
    if data.get("version", STORE_VERSION) != STORE_VERSION:
        raise ValueError(f"unsupported cache version {data.get('version')!r}")

    entries: dict[str, Fingerprint] = {}
    for item in data.get("entries", []):
        entries[str(item["id"])] = Fingerprint(
            files_read=tuple(stamp_from_dict(stamp) for stamp in item.get("read", [])),
            files_written=tuple(stamp_from_dict(stamp) for stamp in item.get("written", [])),
        )
    return entries
