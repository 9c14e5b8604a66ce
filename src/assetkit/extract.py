"""WebJar extraction and incremental resource copying."""

from __future__ import annotations

import logging
from fnmatch import fnmatchcase
from pathlib import Path, PurePosixPath
from typing import Iterable, Sequence

from .context import WebContext
from .errors import AssetkitError, ResourceNotFoundError
from .filesystem import list_files, write_stream
from .incremental import run_incremental
from .models import IncrementalResult, OpFailure, OpResult, OpSuccess, PathMapping
from .namespace import Resource, ResourceNamespace
from .sync import sync_mappings

logger = logging.getLogger(__name__)

DEFAULT_MODULES_LIB = "lib"
NODE_MODULE_MARKER = PurePosixPath("package.json")


def discover_web_jars(namespace: ResourceNamespace) -> list[str]:
    """Return the names of every WebJar visible in ``namespace``."""

    return sorted(namespace.modules())


def filter_web_jars(modules: Iterable[str], includes: Sequence[str], excludes: Sequence[str] = ()) -> list[str]:
    """Keep modules matching an include pattern and no exclude pattern."""

    selected: list[str] = []
    for module in modules:
        if any(fnmatchcase(module, pattern) for pattern in excludes):
            continue
        if any(fnmatchcase(module, pattern) for pattern in includes):
            selected.append(module)
    return selected


def extract_web_jars(
    namespace: ResourceNamespace,
    target: Path,
    cache: Path,
    *,
    modules: Iterable[str] | None = None,
    lib: str = DEFAULT_MODULES_LIB,
    context: WebContext | None = None,
) -> list[Path]:
    """Expand WebJars into ``target/<lib>/<module>/`` and return the files below ``target``.

    ``modules`` restricts extraction to the named WebJars; by default every
    discovered WebJar is extracted. Extraction is incremental: entries that
    have not changed since the previous run are not rewritten, and files from
    WebJars that are no longer selected are removed.
    """

    selected = discover_web_jars(namespace) if modules is None else list(modules)
    prefix = PurePosixPath(lib) if lib else PurePosixPath()
    mappings = [
        PathMapping(resource, prefix / module / resource.relative_path)
        for module in selected
        for resource in namespace.entries(module)
    ]
    logger.info("Extracting %d WebJar(s) to '%s'", len(selected), target)
    sync_mappings(cache, mappings, target, context=context)
    return list_files(target)


def extract_node_modules(
    namespace: ResourceNamespace,
    target: Path,
    cache: Path,
    *,
    modules: Iterable[str] | None = None,
    context: WebContext | None = None,
) -> list[Path]:
    """Expand WebJars that are npm packages into ``target/<module>/``."""

    candidates = discover_web_jars(namespace) if modules is None else list(modules)
    mappings: list[PathMapping] = []
    selected: list[str] = []
    for module in candidates:
        entries = namespace.entries(module)
        if not any(resource.relative_path == NODE_MODULE_MARKER for resource in entries):
            continue
        selected.append(module)
        mappings.extend(PathMapping(resource, PurePosixPath(module) / resource.relative_path) for resource in entries)

    logger.info("Extracting %d node module(s) to '%s'", len(selected), target)
    sync_mappings(cache, mappings, target, context=context)
    return list_files(target)


def copy_resource_to(to: Path, name: str, namespace: ResourceNamespace, cache_dir: Path) -> Path:
    """Copy the resource ``name`` to ``to / name`` unless it is already up to date.

    Raises ``ResourceNotFoundError`` when ``name`` cannot be resolved.
    """

    resource = namespace.resolve(name)
    if resource is None:
        raise ResourceNotFoundError(name)

    destination = to / name
    plan: dict[str, tuple[Resource | None, Path]] = {resource.locator: (resource, destination)}
    result = run_incremental(cache_dir, plan, lambda changed: _copy_resources(changed, plan))
    failure = result.failures.get(resource.locator)
    if failure is not None:
        raise AssetkitError(failure.error)
    return destination


def copy_resources_to(to: Path, names: Iterable[str], namespace: ResourceNamespace, cache_dir: Path) -> IncrementalResult:
    """Copy several resources at once, reporting a result per name.

    Names that cannot be resolved are reported as failures and do not stop the
    remaining copies.
    """

    plan: dict[str, tuple[Resource | None, Path]] = {}
    for name in names:
        resource = namespace.resolve(name)
        identity = resource.locator if resource is not None else name
        plan[identity] = (resource, to / name)

    return run_incremental(cache_dir, plan, lambda changed: _copy_resources(changed, plan))


def _copy_resources(changed: Sequence[str], plan: dict[str, tuple[Resource | None, Path]]) -> dict[str, OpResult]:
    results: dict[str, OpResult] = {}
    for identity in changed:
        resource, destination = plan[identity]
        if resource is None:
            results[identity] = OpFailure(f"Couldn't find {identity}")
            continue
        try:
            stream = resource.open()
        except OSError as exc:
            results[identity] = OpFailure(f"Couldn't read {resource.locator}: {exc}")
            continue
        with stream:
            write_stream(stream, destination)
        logger.debug("Copied '%s' to '%s'", resource.locator, destination)
        results[identity] = OpSuccess(files_read=frozenset({resource.origin}), files_written=frozenset({destination}))
    return results
