"""TOML configuration loading and directory conventions for assetkit."""

from __future__ import annotations

import glob
import os
import tomllib
from pathlib import Path
from typing import Any, Dict, Mapping

from pydantic import BaseModel, ConfigDict, Field

from .models import Scope

DEFAULT_CONFIG_FILENAME = "assetkit.toml"

_DEFAULT_INCLUDES: dict[Scope, tuple[str, ...]] = {
    Scope.MAIN: ("*",),
    # Test assets see the main WebJars through the main mappings already.
    Scope.TEST: (),
}

_JS_FILTERS: dict[Scope, tuple[str, ...]] = {
    Scope.MAIN: ("*.js",),
    Scope.TEST: ("*Test.js", "*Spec.js"),
}


class ConfigError(RuntimeError):
    """Raised when a configuration file cannot be parsed or validated."""


def _expand_path(raw: str | os.PathLike[str] | Path, *, base_dir: Path) -> Path:
    """Return an absolute ``Path`` by expanding env vars and user segments."""

    text = str(raw)
    expanded = Path(os.path.expandvars(text)).expanduser()
    if expanded.is_absolute():
        return expanded.resolve(strict=False)
    return (base_dir / expanded).resolve(strict=False)


def _string_list(value: Any, *, field: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise ConfigError(f"'{field}' must be a list of strings")
    return tuple(str(item) for item in value)


class Settings(BaseModel):
    """Global configuration options."""

    model_config = ConfigDict(frozen=True)

    modules_lib: str = "lib"
    max_workers: int | None = None

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "Settings":
        lib = str(raw.get("modules_lib", "lib"))
        if Path(lib).is_absolute() or ".." in Path(lib).parts:
            raise ConfigError(f"'modules_lib' must be a relative folder name, got '{lib}'")
        workers = raw.get("max_workers")
        if workers is not None and (not isinstance(workers, int) or workers < 1):
            raise ConfigError("'max_workers' must be a positive integer")
        return cls(modules_lib=lib, max_workers=workers)


class ScopeConfig(BaseModel):
    """WebJar sources and filters for one asset scope."""

    model_config = ConfigDict(frozen=True)

    scope: Scope
    classpath: tuple[Path, ...] = ()
    include: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()

    @classmethod
    def from_raw(cls, scope: Scope, raw: Mapping[str, Any], *, base_dir: Path) -> "ScopeConfig":
        classpath: list[Path] = []
        for entry in _string_list(raw.get("classpath"), field=f"scopes.{scope.value}.classpath"):
            expanded = _expand_path(entry, base_dir=base_dir)
            if any(char in entry for char in "*?["):
                classpath.extend(Path(match) for match in sorted(glob.glob(str(expanded))))
            else:
                classpath.append(expanded)

        include_raw = raw.get("include")
        include = (
            _DEFAULT_INCLUDES[scope]
            if include_raw is None
            else _string_list(include_raw, field=f"scopes.{scope.value}.include")
        )
        exclude = _string_list(raw.get("exclude"), field=f"scopes.{scope.value}.exclude")
        return cls(scope=scope, classpath=tuple(classpath), include=include, exclude=exclude)


class Layout(BaseModel):
    """Source and target directory conventions.

    ::

        src/<scope>/assets        sources processed by asset plugins
        src/<scope>/public        static resources
        target/web/public/<scope> everything intended for publishing
        target/web/web-modules/<scope>/webjars
        target/web/node-modules/<scope>/webjars
    """

    model_config = ConfigDict(frozen=True)

    project_root: Path
    target: Path

    @property
    def web_target(self) -> Path:
        return self.target / "web"

    def source_directory(self, scope: Scope) -> Path:
        return self.project_root / "src" / scope.value / "assets"

    def resource_directory(self, scope: Scope) -> Path:
        return self.project_root / "src" / scope.value / "public"

    def public(self, scope: Scope) -> Path:
        return self.web_target / "public" / scope.value

    def web_module_directory(self, scope: Scope) -> Path:
        return self.web_target / "web-modules" / scope.value

    def webjars_directory(self, scope: Scope) -> Path:
        return self.web_module_directory(scope) / "webjars"

    def webjars_cache(self, scope: Scope) -> Path:
        return self.web_target / "web-modules" / f"webjars-{scope.value}.cache"

    def node_module_directory(self, scope: Scope) -> Path:
        return self.web_target / "node-modules" / scope.value

    def node_webjars_directory(self, scope: Scope) -> Path:
        return self.node_module_directory(scope) / "webjars"

    def node_webjars_cache(self, scope: Scope) -> Path:
        return self.web_target / "node-modules" / f"webjars-{scope.value}.cache"

    def cache_directory(self, scope: Scope) -> Path:
        return self.web_target / "cache" / scope.value

    def sync_manifest(self, scope: Scope) -> Path:
        return self.cache_directory(scope) / "sync-mappings.toml"

    def js_filter(self, scope: Scope) -> tuple[str, ...]:
        return _JS_FILTERS[scope]


class Config(BaseModel):
    """Fully parsed configuration file."""

    model_config = ConfigDict(frozen=True)

    config_path: Path
    layout: Layout
    settings: Settings = Field(default_factory=Settings)
    scopes: Dict[Scope, ScopeConfig]

    def scope(self, name: Scope | str) -> ScopeConfig:
        try:
            return self.scopes[Scope(name)]
        except (KeyError, ValueError) as exc:
            raise ConfigError(f"Unknown scope '{name}'") from exc


def load_config(path: Path | None = None) -> Config:
    """Load and validate a configuration file.

    Args:
        path: Optional path to the TOML file or its directory. Defaults to
            ``assetkit.toml`` in the current working directory.
    """

    config_path = _resolve_config_path(path)
    base_dir = config_path.parent

    try:
        with config_path.open("rb") as handle:
            data = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Configuration file '{config_path}' is not valid TOML: {exc}") from exc

    project_section = data.get("project") or {}
    project_root = _expand_path(project_section.get("root", "."), base_dir=base_dir)
    target = _expand_path(project_section.get("target", "target"), base_dir=project_root)
    layout = Layout(project_root=project_root, target=target)

    scopes_section = data.get("scopes") or {}
    unknown = set(scopes_section) - {scope.value for scope in Scope}
    if unknown:
        raise ConfigError(f"Unknown scope table(s): {', '.join(sorted(unknown))}")

    scopes = {
        scope: ScopeConfig.from_raw(scope, scopes_section.get(scope.value) or {}, base_dir=project_root)
        for scope in Scope
    }
    settings = Settings.from_raw(data.get("settings") or {})

    return Config(config_path=config_path, layout=layout, settings=settings, scopes=scopes)


def _resolve_config_path(path: Path | None) -> Path:
    if path is None:
        path = Path.cwd() / DEFAULT_CONFIG_FILENAME
    else:
        path = Path(path)

    if not path.exists():
        raise ConfigError(f"Configuration file '{path}' does not exist")
    if path.is_dir():
        candidate = path / DEFAULT_CONFIG_FILENAME
        if not candidate.exists():
            raise ConfigError(f"Expected to find '{DEFAULT_CONFIG_FILENAME}' inside '{path}', but none was located")
        path = candidate

    return path.resolve(strict=False)
