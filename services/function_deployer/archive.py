"""
Function archives.

An archive is either an exploded directory or a zip file holding Python
modules. Both can be placed on sys.path (zip files through zipimport).
"""

import logging
import zipfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterator, Optional

from .exceptions import ArchiveError

logger = logging.getLogger("function.archive")


class Archive(ABC):
    """A readable unit of deployable code."""

    def __init__(self, location: Path):
        self.location = location

    @property
    def url(self) -> str:
        return self.location.resolve().as_uri()

    @property
    def path_entry(self) -> str:
        """The sys.path entry that makes the archive importable."""
        return str(self.location.resolve())

    @abstractmethod
    def entries(self) -> Iterator[str]:
        """Yield the archive's file names as POSIX relative paths."""

    @abstractmethod
    def read(self, name: str) -> Optional[bytes]:
        """Read an entry, or None if it does not exist."""

    def has_entry(self, name: str) -> bool:
        return any(entry == name for entry in self.entries())

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def __repr__(self):
        return f"{type(self).__name__}({str(self.location)!r})"


class ExplodedArchive(Archive):
    """Archive backed by a directory."""

    def entries(self) -> Iterator[str]:
        for path in sorted(self.location.rglob("*")):
            if path.is_file() and "__pycache__" not in path.parts:
                yield path.relative_to(self.location).as_posix()

    def read(self, name: str) -> Optional[bytes]:
        path = self.location / name
        if not path.is_file():
            return None
        return path.read_bytes()

    def has_entry(self, name: str) -> bool:
        return (self.location / name).exists()


class ZipFileArchive(Archive):
    """
    Archive backed by a zip file.

    The zip file is opened on construction, which validates it, and reopened
    on demand after close().
    """

    def __init__(self, location: Path):
        super().__init__(location)
        self._zip: Optional[zipfile.ZipFile] = zipfile.ZipFile(location)

    def _zipfile(self) -> zipfile.ZipFile:
        if self._zip is None:
            self._zip = zipfile.ZipFile(self.location)
        return self._zip

    def entries(self) -> Iterator[str]:
        for info in self._zipfile().infolist():
            if not info.is_dir():
                yield info.filename

    def read(self, name: str) -> Optional[bytes]:
        try:
            return self._zipfile().read(name)
        except KeyError:
            return None

    def has_entry(self, name: str) -> bool:
        names = self._zipfile().namelist()
        return name in names or f"{name.rstrip('/')}/" in names or any(
            n.startswith(f"{name.rstrip('/')}/") for n in names
        )

    def close(self) -> None:
        if self._zip is not None:
            self._zip.close()
            self._zip = None


def create_archive(location: "str | Path") -> Archive:
    """
    Resolve an archive location.

    Raises:
        ArchiveError: the location does not exist or cannot be opened
    """
    path = Path(location)
    if not path.exists():
        raise ArchiveError(str(location), "does not exist")

    try:
        if path.is_dir():
            archive: Archive = ExplodedArchive(path)
        else:
            archive = ZipFileArchive(path)
    except (OSError, zipfile.BadZipFile) as e:
        raise ArchiveError(str(location)) from e

    logger.debug(f"Resolved archive: {archive!r}")
    return archive
