"""Run work only for inputs whose recorded fingerprint is missing or stale."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Iterable, Mapping, Sequence

from .filesystem import stamp_file, stamp_matches
from .models import Fingerprint, IncrementalResult, OpFailure, OpResult, OpSuccess
from .store import FingerprintStore

logger = logging.getLogger(__name__)

OP_CACHE_FILENAME = "op-cache.toml"

Work = Callable[[Sequence[str]], Mapping[str, OpResult]]


def run_incremental(cache_dir: Path, identities: Iterable[str], work: Work) -> IncrementalResult:
    """Process the identities in ``identities`` that changed since the last run.

    ``work`` is called exactly once with every changed identity and must return a
    result per identity. Successful results are fingerprinted and persisted in
    ``cache_dir``; failures keep whatever fingerprint they had so the next run
    retries them. If ``work`` raises, nothing is persisted.
    """

    inputs = list(identities)
    if len(set(inputs)) != len(inputs):
        raise ValueError("Input identities must be unique")

    store = FingerprintStore.load(cache_dir / OP_CACHE_FILENAME)

    unchanged: dict[str, Fingerprint] = {}
    changed: list[str] = []
    for identity in inputs:
        fingerprint = store.lookup(identity)
        if fingerprint is not None and is_fresh(fingerprint):
            unchanged[identity] = fingerprint
        else:
            changed.append(identity)

    logger.debug("%d input(s) unchanged, %d to process", len(unchanged), len(changed))

    produced = work(changed)

    results: dict[str, OpResult] = {}
    recorded: list[tuple[str, Fingerprint]] = []
    outputs: set[Path] = set()

    for identity in changed:
        result = produced.get(identity)
        if result is None:
            result = OpFailure(f"No result produced for {identity}")
        results[identity] = result

        if isinstance(result, OpFailure):
            logger.warning("Processing '%s' failed: %s", identity, result.error)
            continue

        outputs.update(result.files_written)
        fingerprint = _fingerprint(result)
        if fingerprint is None:
            logger.debug("Not caching '%s': declared files are missing", identity)
            continue
        recorded.append((identity, fingerprint))

    for identity in produced:
        if identity not in results:
            logger.warning("Ignoring result for unrequested input '%s'", identity)

    for fingerprint in unchanged.values():
        outputs.update(fingerprint.outputs())

    if recorded:
        store.record_all(recorded).save()

    return IncrementalResult(
        outputs=tuple(sorted(outputs)),
        results=results,
        skipped=tuple(unchanged),
    )


def is_fresh(fingerprint: Fingerprint) -> bool:
    """Return ``True`` if every file referenced by ``fingerprint`` is unchanged."""

    return all(stamp_matches(stamp) for stamp in (*fingerprint.files_read, *fingerprint.files_written))


def _fingerprint(result: OpSuccess) -> Fingerprint | None:
    try:
        return Fingerprint(
            files_read=tuple(stamp_file(path) for path in sorted(result.files_read)),
            files_written=tuple(stamp_file(path) for path in sorted(result.files_written)),
        )
    except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
        return None
