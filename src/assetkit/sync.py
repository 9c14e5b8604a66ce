"""Converge a destination directory onto a set of path mappings."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Iterable

from .context import WebContext
from .errors import AssetkitError
from .filesystem import copy_file, prune_empty_parents, stamp_file, stamp_matches, write_stream
from .manifest import Manifest
from .models import FileStamp, ManifestEntry, PathMapping, SyncAction, SyncResult

logger = logging.getLogger(__name__)

SYNC_NAMESPACE = "sync"


@dataclass(frozen=True, slots=True)
class _Copy:
    key: str
    mapping: PathMapping
    destination: Path
    source: str
    source_stamp: FileStamp
    action: SyncAction


class DirectorySynchronizer:
    """Keeps ``destination_root`` equal to the mappings handed to ``sync``.

    Only files recorded in the manifest are ever removed; anything else found
    under the root is left alone.
    """

    def __init__(self, manifest_path: Path, destination_root: Path, *, context: WebContext | None = None) -> None:
        self.manifest_path = manifest_path
        self.destination_root = destination_root
        self.context = context

    def sync(self, mappings: Iterable[PathMapping]) -> list[SyncResult]:
        desired = collapse_mappings(mappings)
        manifest = Manifest.load(self.manifest_path)
        updated = Manifest(self.manifest_path, {})
        results: list[SyncResult] = []
        pending: list[_Copy] = []

        for key, mapping in desired.items():
            destination = self.destination_root / key
            source, source_stamp = _describe_source(mapping)
            existing = manifest.get(key)

            if (
                existing is not None
                and existing.source_stamp.same_content(source_stamp)
                and stamp_matches(replace(existing.written, path=str(destination)))
            ):
                updated.upsert(replace(existing, source=source, source_stamp=source_stamp))
                results.append(SyncResult(mapping.target, destination, SyncAction.SKIPPED, source))
                continue

            action = SyncAction.COPIED if existing is None else SyncAction.UPDATED
            pending.append(_Copy(key, mapping, destination, source, source_stamp, action))

        # Stale files go first so a new target may take over their path.
        for entry in sorted(manifest.entries(), key=lambda e: e.target.as_posix()):
            key = entry.target.as_posix()
            if key in desired:
                continue
            destination = self.destination_root / key
            if destination.is_file() or destination.is_symlink():
                destination.unlink()
                prune_empty_parents(destination, self.destination_root)
            logger.debug("Removed stale '%s'", destination)
            results.append(SyncResult(entry.target, destination, SyncAction.REMOVED, entry.source))

        if self.context is not None and len(pending) > 1:
            written = self.context.map(SYNC_NAMESPACE, _perform_copy, pending)
        else:
            written = [_perform_copy(item) for item in pending]

        for item, stamp in zip(pending, written):
            updated.upsert(
                ManifestEntry(
                    target=item.mapping.target,
                    source=item.source,
                    source_stamp=item.source_stamp,
                    written=stamp,
                )
            )
            results.append(SyncResult(item.mapping.target, item.destination, item.action, item.source))

        if updated != manifest:
            updated.save()

        counts = Counter(result.action for result in results)
        logger.info(
            "Synchronized '%s': %d copied, %d updated, %d removed, %d unchanged",
            self.destination_root,
            counts[SyncAction.COPIED],
            counts[SyncAction.UPDATED],
            counts[SyncAction.REMOVED],
            counts[SyncAction.SKIPPED],
        )
        results.sort(key=lambda result: result.target.as_posix())
        return results


def sync_mappings(
    manifest_path: Path,
    mappings: Iterable[PathMapping],
    destination_root: Path,
    *,
    context: WebContext | None = None,
) -> Path:
    """Synchronize ``destination_root`` and return it."""

    DirectorySynchronizer(manifest_path, destination_root, context=context).sync(mappings)
    return destination_root


def collapse_mappings(mappings: Iterable[PathMapping]) -> dict[str, PathMapping]:
    """Index mappings by target path; a later mapping replaces an earlier one."""

    desired: dict[str, PathMapping] = {}
    for mapping in mappings:
        target = mapping.target
        if target.is_absolute() or ".." in target.parts or not target.parts:
            raise AssetkitError(f"Target path '{target}' must be relative to the destination root")
        desired[target.as_posix()] = mapping
    return desired


def _describe_source(mapping: PathMapping) -> tuple[str, FileStamp]:
    source = mapping.source
    if isinstance(source, Path):
        if not source.is_file():
            raise AssetkitError(f"Source path '{source}' does not exist")
        return str(source), stamp_file(source)
    return source.locator, source.stamp()


def _perform_copy(item: _Copy) -> FileStamp:
    source = item.mapping.source
    if isinstance(source, Path):
        copy_file(source, item.destination)
    else:
        with source.open() as stream:
            write_stream(stream, item.destination)
    logger.debug("%s '%s' from '%s'", item.action.value.capitalize(), item.destination, item.source)
    return stamp_file(item.destination)
