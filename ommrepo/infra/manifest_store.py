"""
Manifest store infrastructure for ommrepo.

Provides XML file persistence for the repository index with:
- Atomic writes (write to temp, then rename)
- Indented output for human readability
- Automatic parent directory creation
- Parse failures reported as CorruptIndexError
"""

import os
import tempfile
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Union
import logging

from ..exit_codes import CorruptIndexError, PersistFailedError

logger = logging.getLogger(__name__)


class ManifestStore:
    """
    XML file persistence with atomic writes.

    Example:
        store = ManifestStore(Path("repository.xml"))
        root = store.read() if store.exists() else ET.Element("root")
        store.write(root)
    """

    def __init__(self, path: Union[str, Path], indent: str = "  "):
        """
        Initialize ManifestStore.

        Args:
            path: Path to the XML file
            indent: Indentation used when writing
        """
        self.path = Path(path).expanduser()
        self.indent = indent

    def exists(self) -> bool:
        return self.path.is_file()

    def read(self) -> ET.Element:
        """
        Parse the stored document and return its root element.

        Raises:
            CorruptIndexError: if the file cannot be read or is not well-formed XML
        """
        try:
            with open(self.path, 'rb') as f:
                tree = ET.parse(f)
        except ET.ParseError as e:
            raise CorruptIndexError(
                f"Could not parse repository index {self.path}: {e}",
                str(self.path)
            ) from e
        except OSError as e:
            raise CorruptIndexError(
                f"Could not load repository index {self.path}: {e}",
                str(self.path)
            ) from e
        return tree.getroot()

    def write(self, root: ET.Element) -> int:
        """
        Write the document atomically.

        Returns:
            Number of bytes written

        Raises:
            PersistFailedError: if the document could not be written
        """
        tree = ET.ElementTree(root)
        ET.indent(tree, space=self.indent)

        temp_path = None
        try:
            if not self.path.parent.exists():
                self.path.parent.mkdir(parents=True, exist_ok=True)

            # Write to temp file in same directory
            fd, temp_path = tempfile.mkstemp(
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp"
            )
            with os.fdopen(fd, 'wb') as f:
                tree.write(f, encoding='utf-8', xml_declaration=True)
                f.write(b'\n')  # Trailing newline
                written = f.tell()

            # Atomic rename
            os.replace(temp_path, self.path)
            temp_path = None

        except OSError as e:
            raise PersistFailedError(
                f"Repository index {self.path} could not be saved: {e}",
                str(self.path)
            ) from e
        finally:
            if temp_path is not None:
                # Clean up temp file on error
                try:
                    os.unlink(temp_path)
                except OSError:
                    pass

        logger.debug(f"Wrote {written} bytes to {self.path}")
        return written
