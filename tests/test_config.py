from __future__ import annotations

from pathlib import Path
from textwrap import dedent

import pytest

from assetkit.config import DEFAULT_CONFIG_FILENAME, ConfigError, load_config
from assetkit.models import Scope


def _write_config(tmp_path: Path, body: str) -> Path:
    config_path = tmp_path / DEFAULT_CONFIG_FILENAME
    config_path.write_text(dedent(body))
    return config_path


def test_load_config_defaults(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path, "")

    config = load_config(config_path)

    assert config.config_path == config_path.resolve(strict=False)
    assert config.layout.project_root == tmp_path.resolve()
    assert config.layout.target == tmp_path.resolve() / "target"
    assert config.settings.modules_lib == "lib"
    assert config.scope(Scope.MAIN).include == ("*",)
    assert config.scope("test").include == ()
    assert config.scope(Scope.MAIN).classpath == ()


def test_layout_conventions(tmp_path: Path) -> None:
    layout = load_config(_write_config(tmp_path, "")).layout
    root = tmp_path.resolve()

    assert layout.source_directory(Scope.MAIN) == root / "src" / "main" / "assets"
    assert layout.resource_directory(Scope.TEST) == root / "src" / "test" / "public"
    assert layout.public(Scope.MAIN) == root / "target" / "web" / "public" / "main"
    assert layout.webjars_directory(Scope.TEST) == root / "target" / "web" / "web-modules" / "test" / "webjars"
    assert layout.webjars_cache(Scope.MAIN) == root / "target" / "web" / "web-modules" / "webjars-main.cache"
    assert layout.node_webjars_cache(Scope.TEST) == root / "target" / "web" / "node-modules" / "webjars-test.cache"
    assert layout.js_filter(Scope.TEST) == ("*Test.js", "*Spec.js")


def test_classpath_globs_and_user_paths(tmp_path: Path, fake_home: Path) -> None:
    lib = tmp_path / "lib"
    lib.mkdir()
    (lib / "b.jar").write_bytes(b"")
    (lib / "a.jar").write_bytes(b"")
    (lib / "notes.txt").write_text("skip")

    config = load_config(
        _write_config(
            tmp_path,
            """
            [project]
            target = "~/build"

            [scopes.main]
            classpath = ["lib/*.jar", "~/classes"]
            include = ["jquery", "bootstrap*"]
            exclude = ["bootstrap-sass"]
            """,
        )
    )

    main = config.scope(Scope.MAIN)
    assert main.classpath == (lib.resolve() / "a.jar", lib.resolve() / "b.jar", (fake_home / "classes").resolve())
    assert main.include == ("jquery", "bootstrap*")
    assert main.exclude == ("bootstrap-sass",)
    assert config.layout.target == (fake_home / "build").resolve(strict=False)


def test_unknown_scope_rejected(tmp_path: Path) -> None:
    config_path = _write_config(
        tmp_path,
        """
        [scopes.integration]
        include = ["*"]
        """,
    )

    with pytest.raises(ConfigError):
        load_config(config_path)


def test_include_must_be_a_list(tmp_path: Path) -> None:
    config_path = _write_config(
        tmp_path,
        """
        [scopes.main]
        include = "jquery"
        """,
    )

    with pytest.raises(ConfigError):
        load_config(config_path)


def test_modules_lib_must_stay_relative(tmp_path: Path) -> None:
    config_path = _write_config(
        tmp_path,
        """
        [settings]
        modules_lib = "../outside"
        """,
    )

    with pytest.raises(ConfigError):
        load_config(config_path)


def test_invalid_toml_raises_config_error(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path, "[project\n")

    with pytest.raises(ConfigError):
        load_config(config_path)


def test_directory_argument_resolves_default_file(tmp_path: Path) -> None:
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    _write_config(config_dir, "")

    config = load_config(config_dir)

    assert config.config_path == (config_dir / DEFAULT_CONFIG_FILENAME).resolve(strict=False)


def test_missing_config_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="does not exist"):
        load_config(tmp_path / "nope.toml")
