"""
Package descriptor domain objects for ommrepo.

A PackageDescriptor is the canonical, derived representation of one mod
package archive. It is built once by the DescriptorBuilder and never
mutated afterwards.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Dict, Any


class HashAlgorithm(Enum):
    """Checksum algorithms a descriptor may record.

    The value is the attribute name used in the persisted index.
    """
    XXH3 = "xxhsum"
    MD5 = "md5sum"

    @property
    def attribute(self) -> str:
        return self.value

    @classmethod
    def from_attribute(cls, name: str) -> 'HashAlgorithm':
        for algorithm in cls:
            if algorithm.value == name:
                return algorithm
        raise ValueError(f"Unknown checksum attribute: {name}")


@dataclass(frozen=True)
class ContentHash:
    """Digest of an archive plus the algorithm that produced it."""
    algorithm: HashAlgorithm
    digest: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'algorithm': self.algorithm.name.lower(),
            'digest': self.digest,
        }

    def __str__(self) -> str:
        return f"{self.algorithm.name.lower()}:{self.digest}"


@dataclass(frozen=True)
class PackageLogo:
    """Thumbnail of the package logo as a data URI."""
    mime_type: str
    payload: str  # data:<mime>;base64,<...>


@dataclass(frozen=True)
class PackageDescription:
    """Compressed description text as a data URI."""
    payload: str  # data:application/octet-stream;base64,<...>
    byte_length: int  # decoded length including the trailing terminator


@dataclass(frozen=True)
class PackageProbe:
    """Cheap identity of an archive: no hashing, no image work."""
    identifier: str
    file_name: str
    byte_size: int


@dataclass(frozen=True)
class PackageDescriptor:
    """
    Immutable description of one package archive.

    Optional parts are explicit fields that are None when the archive
    does not provide them. To set the custom location use
    with_custom_location(), which returns a new descriptor.

    Example:
        descriptor = builder.build("/srv/mods/sub/texture-pack.zip")
        descriptor = descriptor.with_custom_location("sub/")
        index.add_package(descriptor)
    """

    identifier: str
    archive_file_name: str
    byte_size: int
    content_hash: ContentHash

    dependencies: Optional[str] = None  # serialized <dependencies> subtree
    logo: Optional[PackageLogo] = None
    description: Optional[PackageDescription] = None
    category: Optional[str] = None
    custom_location: Optional[str] = None

    def __post_init__(self):
        if not self.identifier:
            raise ValueError("Package descriptor identifier must not be empty")
        if self.byte_size < 0:
            raise ValueError("Package byte size must not be negative")

    def with_custom_location(self, location: Optional[str]) -> 'PackageDescriptor':
        """Create a new descriptor pointing at a sub-path or URL."""
        return replace(self, custom_location=location or None)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'identifier': self.identifier,
            'file': self.archive_file_name,
            'bytes': self.byte_size,
            'hash': self.content_hash.to_dict(),
            'category': self.category,
            'custom_location': self.custom_location,
            'has_logo': self.logo is not None,
            'has_description': self.description is not None,
        }
        return {k: v for k, v in result.items() if v is not None}

    def __str__(self) -> str:
        return f"{self.identifier} ({self.archive_file_name})"
