"""
Descriptor builder service for ommrepo.

Derives a PackageDescriptor from one package archive:
identity and metadata from the archive's package manifest, size from the
filesystem, checksum from the hash provider, and encoded logo and
description payloads.
"""

import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union
import logging

from ..domain import (
    ContentHash,
    PackageDescription,
    PackageDescriptor,
    PackageLogo,
    PackageProbe,
)
from ..exit_codes import (
    ArchiveUnreadableError,
    LogoMissingError,
    ManifestMissingError,
    PackageBuildError,
)
from ..infra import ArchiveReader, ArchiveHandle, HashProvider, Thumbnailer
from ..infra.codec import encode_description, encode_logo

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTOR_FILE = "package.omp"


@dataclass(frozen=True)
class PackageManifest:
    """Fields read from the package manifest inside an archive."""
    identifier: str
    dependencies: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    logo_name: Optional[str] = None


def parse_package_manifest(data: bytes, source: str = "<archive>") -> PackageManifest:
    """
    Parse package manifest XML.

    Raises:
        ManifestMissingError: if the XML is malformed or has no identifier
    """
    try:
        root = ET.fromstring(data)
    except ET.ParseError as e:
        raise ManifestMissingError(f"Package manifest in {source} is not valid XML: {e}", source) from e

    identifier = (root.findtext('install') or '').strip()
    if not identifier:
        raise ManifestMissingError(f"Package manifest in {source} has no <install> identifier", source)

    dependencies = None
    dependency_node = root.find('dependencies')
    if dependency_node is not None and len(dependency_node):
        dependency_node.tail = None
        dependencies = ET.tostring(dependency_node, encoding='unicode')

    return PackageManifest(
        identifier=identifier,
        dependencies=dependencies,
        description=root.findtext('description') or None,
        category=(root.findtext('category') or '').strip() or None,
        logo_name=(root.findtext('picture') or '').strip() or None,
    )


class DescriptorBuilder:
    """
    Builds package descriptors from archives.

    Example:
        builder = DescriptorBuilder()
        descriptor = builder.build("/srv/mods/texture-pack.zip")
        print(descriptor.identifier, descriptor.content_hash)
    """

    def __init__(
        self,
        archive_reader: Optional[ArchiveReader] = None,
        hasher: Optional[HashProvider] = None,
        thumbnailer: Optional[Thumbnailer] = None,
        config: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize DescriptorBuilder.

        Args:
            archive_reader: Archive reader (creates default if None)
            hasher: Hash provider (created from config if None)
            thumbnailer: Logo thumbnailer (created from config if None)
            config: Configuration dict
        """
        self.config = config or {}
        self.archive_reader = archive_reader or ArchiveReader()
        self.hasher = hasher or HashProvider.from_config(self.config)
        self.thumbnailer = thumbnailer or Thumbnailer.from_config(self.config)
        self.descriptor_file = (
            self.config.get('package', {}).get('descriptor_file') or DEFAULT_DESCRIPTOR_FILE
        )

    def probe(self, archive_path: Union[str, Path]) -> PackageProbe:
        """
        Read only the identity of an archive.

        Opens the archive for the manifest and takes the size from the
        filesystem; does not hash or touch the logo.
        """
        path = Path(archive_path)
        with self.archive_reader.open(path) as archive:
            manifest = self._read_manifest(archive, path)
        return PackageProbe(
            identifier=manifest.identifier,
            file_name=path.name,
            byte_size=self._file_size(path),
        )

    def build(self, archive_path: Union[str, Path]) -> PackageDescriptor:
        """
        Build the full descriptor for an archive.

        Raises:
            ArchiveUnreadableError: the container cannot be opened or hashed
            ManifestMissingError: no usable package manifest entry
            LogoMissingError: the manifest names a logo the archive lacks
            PackageBuildError: the logo or description cannot be encoded
        """
        path = Path(archive_path)

        logo_data = None
        with self.archive_reader.open(path) as archive:
            manifest = self._read_manifest(archive, path)
            if manifest.logo_name:
                logo_data = archive.read_entry(manifest.logo_name)
                if logo_data is None:
                    raise LogoMissingError(
                        f"Package logo ({manifest.logo_name}) not found in {path}",
                        str(path)
                    )

        byte_size = self._file_size(path)
        content_hash = self._hash(path)

        logo = self._encode_logo(logo_data, path) if logo_data is not None else None

        description = None
        if manifest.description:
            payload, byte_length = encode_description(manifest.description)
            description = PackageDescription(payload=payload, byte_length=byte_length)

        descriptor = PackageDescriptor(
            identifier=manifest.identifier,
            archive_file_name=path.name,
            byte_size=byte_size,
            content_hash=content_hash,
            dependencies=manifest.dependencies,
            logo=logo,
            description=description,
            category=manifest.category,
        )
        logger.debug(f"Built descriptor {descriptor} ({content_hash})")
        return descriptor

    def _read_manifest(self, archive: ArchiveHandle, path: Path) -> PackageManifest:
        data = archive.read_entry(self.descriptor_file)
        if data is None:
            raise ManifestMissingError(
                f"Package manifest ({self.descriptor_file}) not found in {path}",
                str(path)
            )
        return parse_package_manifest(data, str(path))

    def _file_size(self, path: Path) -> int:
        try:
            return path.stat().st_size
        except OSError as e:
            raise ArchiveUnreadableError(f"Could not stat package archive {path}: {e}", str(path)) from e

    def _hash(self, path: Path) -> ContentHash:
        algorithm = self.hasher.preferred_algorithm()
        try:
            digest = self.hasher.digest(path, algorithm)
        except OSError as e:
            raise ArchiveUnreadableError(f"Could not hash package archive {path}: {e}", str(path)) from e
        return ContentHash(algorithm=algorithm, digest=digest)

    def _encode_logo(self, raw: bytes, path: Path) -> PackageLogo:
        try:
            thumbnail = self.thumbnailer.make_thumbnail(raw)
            mime_type = self.thumbnailer.sniff_mime_type(thumbnail)
            payload = encode_logo(thumbnail, mime_type)
        except ValueError as e:
            raise PackageBuildError(f"Package logo in {path} could not be encoded: {e}", str(path)) from e
        return PackageLogo(mime_type=mime_type, payload=payload)
