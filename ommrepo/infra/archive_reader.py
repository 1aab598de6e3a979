"""
Archive reader infrastructure for ommrepo.

Provides a small abstraction over zip containers so the descriptor
builder never touches zipfile directly:
- Read-only access to named entries
- Guaranteed close on every exit path (context manager)
- Container failures surface as ArchiveUnreadableError
"""

import zipfile
import zlib
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, List, Optional, Union
import logging

from ..exit_codes import ArchiveUnreadableError

logger = logging.getLogger(__name__)


class ArchiveHandle:
    """An open, read-only package archive."""

    def __init__(self, path: Path, zip_file: zipfile.ZipFile):
        self.path = path
        self._zip: Optional[zipfile.ZipFile] = zip_file

    @property
    def closed(self) -> bool:
        return self._zip is None

    def names(self) -> List[str]:
        """List entry names in the archive."""
        return self._require_open().namelist()

    def read_entry(self, name: str) -> Optional[bytes]:
        """
        Read an entry by name.

        Returns:
            The entry bytes, or None if the archive has no such entry
        """
        zf = self._require_open()
        try:
            info = zf.getinfo(name)
        except KeyError:
            return None

        try:
            return zf.read(info)
        except (zipfile.BadZipFile, zlib.error, EOFError, OSError, RuntimeError) as e:
            # Corrupt or truncated member data, or an encrypted entry
            raise ArchiveUnreadableError(
                f"Could not read '{name}' from {self.path}: {e}",
                str(self.path)
            ) from e

    def close(self) -> None:
        if self._zip is not None:
            self._zip.close()
            self._zip = None

    def _require_open(self) -> zipfile.ZipFile:
        if self._zip is None:
            raise RuntimeError("Archive is closed. Use 'with reader.open(path) as archive:'")
        return self._zip


class ArchiveReader:
    """
    Opens package archives.

    Example:
        reader = ArchiveReader()
        with reader.open("/srv/mods/pack.zip") as archive:
            manifest = archive.read_entry("package.omp")
    """

    def open_archive(self, path: Union[str, Path]) -> ArchiveHandle:
        """Open an archive; the caller owns closing the handle."""
        path = Path(path)
        try:
            zf = zipfile.ZipFile(path, 'r')
        except (zipfile.BadZipFile, OSError) as e:
            raise ArchiveUnreadableError(
                f"Could not open package archive {path}: {e}",
                str(path)
            ) from e
        logger.debug(f"Opened archive {path}")
        return ArchiveHandle(path, zf)

    @contextmanager
    def open(self, path: Union[str, Path]) -> Generator[ArchiveHandle, None, None]:
        """Open an archive for the duration of a with-block."""
        handle = self.open_archive(path)
        try:
            yield handle
        finally:
            handle.close()
