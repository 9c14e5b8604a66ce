from __future__ import annotations

import os
import shutil
from pathlib import Path

import pytest

from assetkit.errors import AssetkitError, ResourceNotFoundError
from assetkit.extract import (
    copy_resource_to,
    copy_resources_to,
    discover_web_jars,
    extract_node_modules,
    extract_web_jars,
    filter_web_jars,
)
from assetkit.models import OpFailure, OpSuccess
from assetkit.namespace import DirectoryNamespace, WebJarNamespace


@pytest.fixture
def namespace(make_webjar) -> WebJarNamespace:
    return WebJarNamespace(
        [
            make_webjar("jquery", {"jquery.js": "jquery source"}, version="1.9.0"),
            make_webjar("prototype", {"prototype.js": "prototype source"}, version="1.7.1"),
        ]
    )


def _names(target: Path) -> set[str]:
    return {path.name for path in target.rglob("*") if path.is_file()}


def test_filter_exclude_takes_precedence() -> None:
    modules = ["jquery", "jquery-ui", "prototype"]

    assert filter_web_jars(modules, ["*"]) == modules
    assert filter_web_jars(modules, ["jquery*"], ["jquery-ui"]) == ["jquery"]
    assert filter_web_jars(modules, ["prototype"], ["prototype"]) == []
    assert filter_web_jars(modules, []) == []


def test_extract_all_web_jars(namespace: WebJarNamespace, tmp_path: Path) -> None:
    target = tmp_path / "webjars"

    files = extract_web_jars(namespace, target, tmp_path / "webjars.cache")

    assert discover_web_jars(namespace) == ["jquery", "prototype"]
    assert (target / "lib" / "jquery" / "jquery.js").read_text() == "jquery source"
    assert (target / "lib" / "prototype" / "prototype.js").read_text() == "prototype source"
    assert {path.name for path in files} == {"jquery.js", "prototype.js"}


def test_include_filter_after_clearing_target(namespace: WebJarNamespace, tmp_path: Path) -> None:
    target = tmp_path / "webjars"
    cache = tmp_path / "webjars.cache"
    extract_web_jars(namespace, target, cache)

    shutil.rmtree(target)
    extract_web_jars(namespace, target, cache, modules=filter_web_jars(discover_web_jars(namespace), ["prototype"]))

    assert _names(target) == {"prototype.js"}


def test_exclude_matches_include_only_result(namespace: WebJarNamespace, tmp_path: Path) -> None:
    included = tmp_path / "included"
    excluded = tmp_path / "excluded"
    modules = discover_web_jars(namespace)

    extract_web_jars(namespace, included, tmp_path / "a.cache", modules=filter_web_jars(modules, ["prototype"]))
    extract_web_jars(namespace, excluded, tmp_path / "b.cache", modules=filter_web_jars(modules, ["*"], ["jquery"]))

    assert _names(included) == _names(excluded) == {"prototype.js"}


def test_deselected_web_jar_is_removed(namespace: WebJarNamespace, tmp_path: Path) -> None:
    target = tmp_path / "webjars"
    cache = tmp_path / "webjars.cache"
    extract_web_jars(namespace, target, cache)

    extract_web_jars(namespace, target, cache, modules=["prototype"])

    assert _names(target) == {"prototype.js"}
    assert not (target / "lib" / "jquery").exists()


def test_repeated_extraction_is_a_no_op(namespace: WebJarNamespace, tmp_path: Path) -> None:
    target = tmp_path / "webjars"
    cache = tmp_path / "webjars.cache"
    extract_web_jars(namespace, target, cache)

    jquery = target / "lib" / "jquery" / "jquery.js"
    foo = target / "foo"
    foo.write_text("unrelated")
    later = jquery.stat().st_mtime_ns + 10_000_000_000
    os.utime(foo, ns=(later, later))
    jquery_mtime = jquery.stat().st_mtime_ns

    extract_web_jars(namespace, target, cache)

    assert foo.exists()
    assert foo.stat().st_mtime_ns == later
    assert jquery.stat().st_mtime_ns == jquery_mtime
    assert jquery.stat().st_mtime_ns < foo.stat().st_mtime_ns


def test_extract_without_lib_folder(namespace: WebJarNamespace, tmp_path: Path) -> None:
    target = tmp_path / "webjars"

    extract_web_jars(namespace, target, tmp_path / "cache", lib="")

    assert (target / "jquery" / "jquery.js").exists()


def test_extract_node_modules_only_takes_packages(make_webjar, tmp_path: Path) -> None:
    namespace = WebJarNamespace(
        [
            make_webjar("less", {"package.json": '{"name": "less"}', "lib/less.js": "less"}),
            make_webjar("jquery", {"jquery.js": "jq"}),
        ]
    )
    target = tmp_path / "node_modules"

    files = extract_node_modules(namespace, target, tmp_path / "node.cache")

    assert (target / "less" / "package.json").exists()
    assert (target / "less" / "lib" / "less.js").read_text() == "less"
    assert not (target / "jquery").exists()
    assert len(files) == 2


def test_copy_resource_to_is_incremental(namespace: WebJarNamespace, tmp_path: Path) -> None:
    name = "META-INF/resources/webjars/jquery/1.9.0/jquery.js"
    to = tmp_path / "out"
    cache = tmp_path / "cache"

    copied = copy_resource_to(to, name, namespace, cache)
    assert copied == to / name
    assert copied.read_text() == "jquery source"
    mtime = copied.stat().st_mtime_ns

    assert copy_resource_to(to, name, namespace, cache) == copied
    assert copied.stat().st_mtime_ns == mtime


def test_copy_resource_to_missing_resource(namespace: WebJarNamespace, tmp_path: Path) -> None:
    with pytest.raises(ResourceNotFoundError, match="Couldn't find missing.js"):
        copy_resource_to(tmp_path / "out", "missing.js", namespace, tmp_path / "cache")


def test_copy_resource_from_directory_recopies_on_change(tmp_path: Path) -> None:
    root = tmp_path / "resources"
    root.mkdir()
    source = root / "shim.js"
    source.write_text("v1")
    namespace = DirectoryNamespace(root)

    copied = copy_resource_to(tmp_path / "out", "shim.js", namespace, tmp_path / "cache")
    source.write_text("version two")
    copy_resource_to(tmp_path / "out", "shim.js", namespace, tmp_path / "cache")

    assert copied.read_text() == "version two"


def test_copy_resources_reports_missing_names(namespace: WebJarNamespace, tmp_path: Path) -> None:
    names = ["META-INF/resources/webjars/prototype/1.7.1/prototype.js", "missing.js"]

    result = copy_resources_to(tmp_path / "out", names, namespace, tmp_path / "cache")

    assert isinstance(result.results["missing.js"], OpFailure)
    successes = [value for value in result.results.values() if isinstance(value, OpSuccess)]
    assert len(successes) == 1
    assert (tmp_path / "out" / names[0]).read_text() == "prototype source"
    assert result.outputs == (tmp_path / "out" / names[0],)


def test_corrupt_archive_entry_fails_only_its_identity(namespace: WebJarNamespace, tmp_path: Path) -> None:
    archive = tmp_path / "lib" / "jquery-1.9.0.jar"
    archive.write_bytes(archive.read_bytes().replace(b"jquery source", b"jquery SOURCE"))
    names = [
        "META-INF/resources/webjars/jquery/1.9.0/jquery.js",
        "META-INF/resources/webjars/prototype/1.7.1/prototype.js",
    ]

    result = copy_resources_to(tmp_path / "out", names, namespace, tmp_path / "cache")

    assert len(result.failures) == 1
    assert sum(isinstance(value, OpSuccess) for value in result.results.values()) == 1
    assert not (tmp_path / "out" / names[0]).exists()
    assert (tmp_path / "out" / names[1]).read_text() == "prototype source"
    with pytest.raises(AssetkitError):
        copy_resource_to(tmp_path / "single", names[0], namespace, tmp_path / "single-cache")
