"""
Index entry domain object for ommrepo.

An IndexEntry is what survives of a PackageDescriptor after a round trip
through the persisted index: enough to find, size-check and verify the
archive, but no logo or description payloads.
"""

from dataclasses import dataclass
from typing import Optional, Dict, Any

from .package import ContentHash, PackageDescriptor


@dataclass(frozen=True)
class IndexEntry:
    """Read-only view over one persisted package record."""

    identifier: str
    file_name: str
    byte_size: int
    content_hash: ContentHash
    custom_location: Optional[str] = None
    category: Optional[str] = None

    @classmethod
    def from_descriptor(cls, descriptor: PackageDescriptor) -> 'IndexEntry':
        return cls(
            identifier=descriptor.identifier,
            file_name=descriptor.archive_file_name,
            byte_size=descriptor.byte_size,
            content_hash=descriptor.content_hash,
            custom_location=descriptor.custom_location,
            category=descriptor.category,
        )

    @property
    def relative_path(self) -> str:
        """File location relative to the repository root."""
        if self.custom_location:
            return self.custom_location.rstrip('/') + '/' + self.file_name
        return self.file_name

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'identifier': self.identifier,
            'file': self.file_name,
            'bytes': self.byte_size,
            'checksum': self.content_hash.digest,
            'algorithm': self.content_hash.algorithm.name.lower(),
            'custom_location': self.custom_location,
            'category': self.category,
        }
        return {k: v for k, v in result.items() if v is not None}

    def __str__(self) -> str:
        return f"{self.identifier} ({self.relative_path})"
