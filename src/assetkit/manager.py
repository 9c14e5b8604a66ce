"""High level orchestration for assetkit operations."""

from __future__ import annotations

import logging
from fnmatch import fnmatchcase
from pathlib import Path, PurePosixPath
from typing import Sequence

from .config import Config
from .context import WebContext
from .extract import copy_resource_to, discover_web_jars, extract_node_modules, extract_web_jars, filter_web_jars
from .filesystem import list_files
from .models import PathMapping, Scope, SyncResult
from .namespace import WebJarNamespace
from .sync import DirectorySynchronizer

logger = logging.getLogger(__name__)


class AssetsManager:
    """Runs the asset tasks of a project for the ``main`` and ``test`` scopes."""

    def __init__(self, config: Config, *, context: WebContext | None = None) -> None:
        self.config = config
        self.layout = config.layout
        self.context = context
        self._namespaces: dict[Scope, WebJarNamespace] = {}

    def __enter__(self) -> "AssetsManager":
        if self.context is not None:
            self.context.open()
        return self

    def __exit__(self, *_exc_info: object) -> None:
        if self.context is not None:
            self.context.close()

    def namespace(self, scope: Scope) -> WebJarNamespace:
        if scope not in self._namespaces:
            self._namespaces[scope] = WebJarNamespace(self.config.scope(scope).classpath)
        return self._namespaces[scope]

    def discover_web_jars(self, scope: Scope = Scope.MAIN) -> list[str]:
        return discover_web_jars(self.namespace(scope))

    def selected_web_jars(
        self,
        scope: Scope = Scope.MAIN,
        *,
        includes: Sequence[str] | None = None,
        excludes: Sequence[str] | None = None,
    ) -> list[str]:
        scope_config = self.config.scope(scope)
        return filter_web_jars(
            self.discover_web_jars(scope),
            scope_config.include if includes is None else includes,
            scope_config.exclude if excludes is None else excludes,
        )

    def web_jars(
        self,
        scope: Scope = Scope.MAIN,
        *,
        includes: Sequence[str] | None = None,
        excludes: Sequence[str] | None = None,
        target: Path | None = None,
    ) -> list[Path]:
        modules = self.selected_web_jars(scope, includes=includes, excludes=excludes)
        return extract_web_jars(
            self.namespace(scope),
            target or self.layout.webjars_directory(scope),
            self.layout.webjars_cache(scope),
            modules=modules,
            lib=self.config.settings.modules_lib,
            context=self.context,
        )

    def node_modules(self, scope: Scope = Scope.MAIN, *, target: Path | None = None) -> list[Path]:
        return extract_node_modules(
            self.namespace(scope),
            target or self.layout.node_webjars_directory(scope),
            self.layout.node_webjars_cache(scope),
            context=self.context,
        )

    def sources(self, scope: Scope = Scope.MAIN) -> list[Path]:
        return _visible_files(self.layout.source_directory(scope))

    def resources(self, scope: Scope = Scope.MAIN) -> list[Path]:
        return _visible_files(self.layout.resource_directory(scope))

    def js_sources(self, scope: Scope = Scope.MAIN) -> list[Path]:
        patterns = self.layout.js_filter(scope)
        return [path for path in self.sources(scope) if any(fnmatchcase(path.name, p) for p in patterns)]

    def mappings(self, scope: Scope = Scope.MAIN) -> list[PathMapping]:
        """Pair every asset file of ``scope`` with its path relative to its directory."""

        mappings: list[PathMapping] = []
        for directory in (
            self.layout.source_directory(scope),
            self.layout.resource_directory(scope),
            self.layout.webjars_directory(scope),
        ):
            for path in _visible_files(directory):
                mappings.append(PathMapping(path, PurePosixPath(path.relative_to(directory).as_posix())))
        return mappings

    def assets(self, scope: Scope = Scope.MAIN) -> list[SyncResult]:
        """Extract WebJars and synchronize the public directory of ``scope``.

        The test public directory receives the main assets overlaid with the
        test assets, so a test file shadows a main file at the same path.
        """

        self.web_jars(Scope.MAIN)
        mappings = self.mappings(Scope.MAIN)
        if scope is Scope.TEST:
            self.web_jars(Scope.TEST)
            mappings += self.mappings(Scope.TEST)

        public = self.layout.public(scope)
        logger.info("Synchronizing %d asset mapping(s) into '%s'", len(mappings), public)
        synchronizer = DirectorySynchronizer(self.layout.sync_manifest(scope), public, context=self.context)
        return synchronizer.sync(mappings)

    def copy_resource(self, name: str, to: Path | None = None, scope: Scope = Scope.MAIN) -> Path:
        return copy_resource_to(
            to or self.layout.web_target / "resources",
            name,
            self.namespace(scope),
            self.layout.cache_directory(scope) / "resources",
        )


def _visible_files(directory: Path) -> list[Path]:
    return [
        path
        for path in list_files(directory)
        if not any(part.startswith(".") for part in path.relative_to(directory).parts)
    ]
