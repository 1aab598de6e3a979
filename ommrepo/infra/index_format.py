"""
XML layout of the Open Mod Manager repository index.

    <Open_Mod_Manager_Repository>
      <uuid>...</uuid>
      <title>...</title>
      <downpath>...</downpath>
      <remotes count="N">
        <remote ident="..." file="pack.zip" bytes="1234" xxhsum="..." category="...">
          <url>sub/</url>
          <dependencies>...</dependencies>
          <picture>data:image/jpeg;base64,...</picture>
          <description bytes="42">data:application/octet-stream;base64,...</description>
        </remote>
      </remotes>
    </Open_Mod_Manager_Repository>

Each <remote> carries exactly one checksum attribute (xxhsum or md5sum).
"""

import xml.etree.ElementTree as ET
from typing import Optional

from ..domain import ContentHash, HashAlgorithm, IndexEntry, PackageDescriptor
from ..exit_codes import CorruptIndexError

ROOT_TAG = "Open_Mod_Manager_Repository"

TAG_UUID = "uuid"
TAG_TITLE = "title"
TAG_DOWNPATH = "downpath"
TAG_REMOTES = "remotes"
TAG_REMOTE = "remote"
TAG_URL = "url"
TAG_DEPENDENCIES = "dependencies"
TAG_PICTURE = "picture"
TAG_DESCRIPTION = "description"

ATTR_COUNT = "count"
ATTR_IDENT = "ident"
ATTR_FILE = "file"
ATTR_BYTES = "bytes"
ATTR_CATEGORY = "category"


def descriptor_to_element(descriptor: PackageDescriptor) -> ET.Element:
    """Serialize a descriptor into a <remote> record."""
    remote = ET.Element(TAG_REMOTE)
    remote.set(ATTR_IDENT, descriptor.identifier)
    remote.set(ATTR_FILE, descriptor.archive_file_name)
    remote.set(ATTR_BYTES, str(descriptor.byte_size))
    remote.set(descriptor.content_hash.algorithm.attribute, descriptor.content_hash.digest)
    if descriptor.category:
        remote.set(ATTR_CATEGORY, descriptor.category)

    if descriptor.custom_location:
        ET.SubElement(remote, TAG_URL).text = descriptor.custom_location

    if descriptor.dependencies:
        remote.append(ET.fromstring(descriptor.dependencies))

    if descriptor.logo is not None:
        ET.SubElement(remote, TAG_PICTURE).text = descriptor.logo.payload

    if descriptor.description is not None:
        description = ET.SubElement(remote, TAG_DESCRIPTION)
        description.set(ATTR_BYTES, str(descriptor.description.byte_length))
        description.text = descriptor.description.payload

    return remote


def entry_from_element(element: ET.Element) -> IndexEntry:
    """
    Rebuild an IndexEntry from a persisted <remote> record.

    Raises:
        CorruptIndexError: if a required attribute is missing or malformed
    """
    if element.tag != TAG_REMOTE:
        raise CorruptIndexError(f"Unexpected <{element.tag}> element in <{TAG_REMOTES}>")

    identifier = element.get(ATTR_IDENT)
    if not identifier:
        raise CorruptIndexError(f"<{TAG_REMOTE}> record without '{ATTR_IDENT}' attribute")

    file_name = element.get(ATTR_FILE)
    if not file_name:
        raise CorruptIndexError(f"Package '{identifier}' has no '{ATTR_FILE}' attribute")

    try:
        byte_size = int(element.get(ATTR_BYTES, ""))
    except ValueError:
        raise CorruptIndexError(
            f"Package '{identifier}' has an invalid '{ATTR_BYTES}' attribute"
        ) from None

    content_hash = _read_hash(element)
    if content_hash is None:
        raise CorruptIndexError(f"Package '{identifier}' has no checksum attribute")

    url = element.findtext(TAG_URL)
    return IndexEntry(
        identifier=identifier,
        file_name=file_name,
        byte_size=byte_size,
        content_hash=content_hash,
        custom_location=url.strip() if url and url.strip() else None,
        category=element.get(ATTR_CATEGORY) or None,
    )


def _read_hash(element: ET.Element) -> Optional[ContentHash]:
    # Prefer the wide hash if a hand-edited record carries both
    for algorithm in (HashAlgorithm.XXH3, HashAlgorithm.MD5):
        digest = element.get(algorithm.attribute)
        if digest:
            return ContentHash(algorithm, digest)
    return None
