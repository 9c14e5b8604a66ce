"""Resource namespaces that WebJars and single resources are read from."""

from __future__ import annotations

import io
import logging
import zipfile
from dataclasses import dataclass, field
from functools import cached_property
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Callable, Iterable, Protocol, Sequence

from .errors import ResourceNotFoundError
from .filesystem import stamp_file
from .models import FileStamp

logger = logging.getLogger(__name__)

WEBJARS_PREFIX = "META-INF/resources/webjars/"


@dataclass(frozen=True, slots=True)
class Resource:
    """A readable entry together with the file it ultimately comes from."""

    locator: str
    relative_path: PurePosixPath
    origin: Path
    opener: Callable[[], BinaryIO] = field(repr=False, compare=False)
    stamper: Callable[[], FileStamp] = field(repr=False, compare=False)

    def open(self) -> BinaryIO:
        return self.opener()

    def stamp(self) -> FileStamp:
        return self.stamper()


class ResourceNamespace(Protocol):
    """Source of named modules and their entries."""

    def modules(self) -> list[str]: ...

    def entries(self, module: str) -> list[Resource]: ...

    def resolve(self, name: str) -> Resource | None: ...


class _ArchiveRoot:
    def __init__(self, path: Path) -> None:
        self.path = path

    @cached_property
    def _infos(self) -> dict[str, zipfile.ZipInfo]:
        with zipfile.ZipFile(self.path) as archive:
            return {info.filename: info for info in archive.infolist() if not info.is_dir()}

    def names(self) -> Iterable[str]:
        return self._infos.keys()

    def resource(self, name: str, relative_path: PurePosixPath) -> Resource | None:
        info = self._infos.get(name)
        if info is None:
            return None
        locator = f"jar:{self.path.as_uri()}!/{name}"

        def _open() -> BinaryIO:
            try:
                with zipfile.ZipFile(self.path) as archive:
                    return io.BytesIO(archive.read(name))
            except (zipfile.BadZipFile, KeyError) as exc:
                raise OSError(f"Corrupt archive entry '{name}' in '{self.path}': {exc}") from exc

        def _stamp() -> FileStamp:
            return FileStamp(path=locator, size=info.file_size, digest=f"crc32:{info.CRC:08x}")

        return Resource(locator, relative_path, self.path, _open, _stamp)


class _DirectoryRoot:
    def __init__(self, path: Path) -> None:
        self.path = path

    def names(self) -> Iterable[str]:
        return (child.relative_to(self.path).as_posix() for child in self.path.rglob("*") if child.is_file())

    def resource(self, name: str, relative_path: PurePosixPath) -> Resource | None:
        return file_resource(self.path / name, relative_path)


def file_resource(path: Path, relative_path: PurePosixPath | None = None) -> Resource | None:
    """Wrap a plain file as a ``Resource``; ``None`` when it is not a file."""

    if not path.is_file():
        return None
    return Resource(
        locator=path.as_uri(),
        relative_path=relative_path if relative_path is not None else PurePosixPath(path.name),
        origin=path,
        opener=lambda: path.open("rb"),
        stamper=lambda: stamp_file(path),
    )


class WebJarNamespace:
    """WebJars found on a classpath of archives and exploded directories.

    Each WebJar stores its assets under
    ``META-INF/resources/webjars/<module>/<version>/``. A module comes whole
    from the first classpath element that provides it.
    """

    def __init__(self, classpath: Sequence[Path]) -> None:
        self.classpath = [Path(entry).resolve() for entry in classpath]

    @cached_property
    def _roots(self) -> list[_ArchiveRoot | _DirectoryRoot]:
        roots: list[_ArchiveRoot | _DirectoryRoot] = []
        for entry in self.classpath:
            if entry.is_dir():
                roots.append(_DirectoryRoot(entry))
            elif entry.is_file() and zipfile.is_zipfile(entry):
                roots.append(_ArchiveRoot(entry))
            else:
                logger.debug("Skipping classpath element '%s'", entry)
        return roots

    @cached_property
    def _webjars(self) -> dict[str, dict[PurePosixPath, Resource]]:
        webjars: dict[str, dict[PurePosixPath, Resource]] = {}
        owners: dict[str, tuple[_ArchiveRoot | _DirectoryRoot, str]] = {}
        for root in self._roots:
            for name in sorted(root.names()):
                if not name.startswith(WEBJARS_PREFIX):
                    continue
                parts = name[len(WEBJARS_PREFIX) :].split("/")
                if len(parts) < 3 or not all(parts):
                    continue
                module, version, relative = parts[0], parts[1], PurePosixPath(*parts[2:])
                owner = owners.setdefault(module, (root, version))
                if owner[0] is not root or owner[1] != version:
                    continue
                module_entries = webjars.setdefault(module, {})
                resource = root.resource(name, relative)
                if resource is not None:
                    module_entries[relative] = resource
        logger.debug("Discovered %d WebJar(s) on %d classpath element(s)", len(webjars), len(self._roots))
        return webjars

    def modules(self) -> list[str]:
        return sorted(self._webjars)

    def entries(self, module: str) -> list[Resource]:
        try:
            module_entries = self._webjars[module]
        except KeyError:
            raise ResourceNotFoundError(module) from None
        return [module_entries[key] for key in sorted(module_entries)]

    def resolve(self, name: str) -> Resource | None:
        name = name.lstrip("/")
        for root in self._roots:
            resource = root.resource(name, PurePosixPath(name))
            if resource is not None:
                return resource
        return None


class DirectoryNamespace:
    """A directory whose immediate subdirectories are modules."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root).resolve()

    def modules(self) -> list[str]:
        if not self.root.is_dir():
            return []
        return sorted(child.name for child in self.root.iterdir() if child.is_dir())

    def entries(self, module: str) -> list[Resource]:
        base = self.root / module
        if not base.is_dir():
            raise ResourceNotFoundError(module)
        resources: list[Resource] = []
        for path in sorted(base.rglob("*")):
            resource = file_resource(path, PurePosixPath(path.relative_to(base).as_posix()))
            if resource is not None:
                resources.append(resource)
        return resources

    def resolve(self, name: str) -> Resource | None:
        return file_resource(self.root / name.lstrip("/"), PurePosixPath(name.lstrip("/")))
