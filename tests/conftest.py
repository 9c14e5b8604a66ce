from __future__ import annotations

import os
import zipfile
from pathlib import Path
from typing import Callable, Mapping

import pytest

# Rich wraps console output at the terminal width; use a wide terminal so
# CLI messages are not split across lines in captured output.
os.environ["COLUMNS"] = "200"

WebJarFactory = Callable[..., Path]


@pytest.fixture
def fake_home(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    return home


@pytest.fixture
def make_webjar(tmp_path: Path) -> WebJarFactory:
    """Build a WebJar archive under ``tmp_path / "lib"``."""

    def _make(name: str, files: Mapping[str, str], *, version: str = "1.0.0") -> Path:
        lib = tmp_path / "lib"
        lib.mkdir(exist_ok=True)
        archive_path = lib / f"{name}-{version}.jar"
        with zipfile.ZipFile(archive_path, "w") as archive:
            archive.writestr("META-INF/MANIFEST.MF", "Manifest-Version: 1.0\n")
            for relative, content in files.items():
                archive.writestr(f"META-INF/resources/webjars/{name}/{version}/{relative}", content)
        return archive_path

    return _make
