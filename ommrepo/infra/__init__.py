"""
Infrastructure layer for ommrepo.

Contains abstractions for external systems:
- ArchiveReader: Zip container access
- Thumbnailer: Logo crop/resize (Pillow)
- HashProvider: Archive checksums (xxhash, hashlib)
- ManifestStore: Atomic XML persistence of the repository index

These provide clean interfaces that can be mocked for testing.
"""

from .archive_reader import ArchiveReader, ArchiveHandle
from .thumbnail import Thumbnailer
from .hashing import HashProvider, xxh3_available
from .manifest_store import ManifestStore

__all__ = [
    'ArchiveReader',
    'ArchiveHandle',
    'Thumbnailer',
    'HashProvider',
    'xxh3_available',
    'ManifestStore',
]
