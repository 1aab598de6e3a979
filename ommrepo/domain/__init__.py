"""
Domain layer for ommrepo.

Contains pure domain objects with no I/O or side effects:
- PackageDescriptor: Everything the index needs to know about one archive
- IndexEntry: The persisted, queryable subset of a descriptor
- EntryCatalog: Identifier-unique collection of index entries

Descriptors and entries are immutable and provide to_dict() for
JSONL output.
"""

from .package import (
    HashAlgorithm,
    ContentHash,
    PackageLogo,
    PackageDescription,
    PackageProbe,
    PackageDescriptor,
)
from .entry import IndexEntry
from .catalog import EntryCatalog

__all__ = [
    'HashAlgorithm',
    'ContentHash',
    'PackageLogo',
    'PackageDescription',
    'PackageProbe',
    'PackageDescriptor',
    'IndexEntry',
    'EntryCatalog',
]
