"""
Repository index service for ommrepo.

Owns the persisted repository manifest: loads or initializes it, keeps
the in-memory EntryCatalog in step with the <remotes> records, applies
add/replace/remove mutations and writes the result back on flush().
Nothing is written until flush() is called.
"""

import uuid
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import logging

from ..domain import EntryCatalog, IndexEntry, PackageDescriptor
from ..exit_codes import CorruptIndexError
from ..infra import ManifestStore
from ..infra.codec import decode_description, parse_data_uri, url_decode_path, url_encode_path
from ..infra.index_format import (
    ATTR_COUNT,
    ATTR_IDENT,
    ROOT_TAG,
    TAG_DEPENDENCIES,
    TAG_DESCRIPTION,
    TAG_DOWNPATH,
    TAG_PICTURE,
    TAG_REMOTES,
    TAG_TITLE,
    TAG_UUID,
    descriptor_to_element,
    entry_from_element,
)

logger = logging.getLogger(__name__)


def generate_uuid() -> str:
    """Random (version 4) UUID for a new repository."""
    return str(uuid.uuid4())


class RepositoryIndex:
    """
    The repository manifest plus its identifier-unique catalog.

    Example:
        index = RepositoryIndex.open("repository.xml", "My Mods", "/srv/mods")
        index.add_package(descriptor)
        index.remove_package("old-mod")
        index.flush()
    """

    def __init__(self, store: ManifestStore, root: ET.Element, root_path: Optional[str] = None):
        """
        Use RepositoryIndex.open() instead of calling this directly.

        Args:
            store: Storage for the manifest document
            root: Parsed (or freshly created) document root
            root_path: Local directory the packages live in
        """
        self.store = store
        self._root = root
        self._root_path = root_path
        self._remotes: ET.Element = root.find(TAG_REMOTES)
        self._catalog = EntryCatalog()
        self._dirty = False

    @classmethod
    def open(
        cls,
        path: Union[str, Path],
        title: Optional[str] = None,
        root_path: Optional[str] = None,
        store: Optional[ManifestStore] = None,
    ) -> 'RepositoryIndex':
        """
        Load the index at path, or start a new one if the file does not exist.

        The UUID is created once and then preserved. Title and download
        path are overwritten with the supplied values; pass None to keep
        what is stored.

        Raises:
            CorruptIndexError: the file exists but is not a repository index
        """
        store = store or ManifestStore(path)

        if store.exists():
            root = store.read()
            if root.tag != ROOT_TAG:
                raise CorruptIndexError(
                    f"Existing XML {store.path} is not a valid repository index "
                    f"(root element <{root.tag}>)",
                    str(store.path)
                )
            logger.debug(f"Loaded repository index {store.path}")
        else:
            root = ET.Element(ROOT_TAG)
            logger.debug(f"Creating new repository index {store.path}")

        changed = _ensure_global_fields(root, title, root_path)

        index = cls(store, root, root_path)
        index._load_entries()
        index._dirty = index._dirty or changed or not store.exists()
        return index

    # Global metadata

    @property
    def path(self) -> Path:
        return self.store.path

    @property
    def uuid(self) -> str:
        return self._root.findtext(TAG_UUID) or ''

    @property
    def title(self) -> str:
        return self._root.findtext(TAG_TITLE) or ''

    @property
    def download_path(self) -> str:
        """The URL-escaped root download path as stored."""
        return self._root.findtext(TAG_DOWNPATH) or ''

    @property
    def root_path(self) -> str:
        """Local root directory of the packages."""
        if self._root_path is not None:
            return self._root_path
        return url_decode_path(self.download_path)

    @property
    def persisted_count(self) -> Optional[int]:
        """The count attribute of the in-memory document."""
        try:
            return int(self._remotes.get(ATTR_COUNT, ''))
        except ValueError:
            return None

    @property
    def is_dirty(self) -> bool:
        """Whether the in-memory document differs from what was loaded or last flushed."""
        return self._dirty

    def to_dict(self) -> Dict[str, Any]:
        return {
            'path': str(self.path),
            'uuid': self.uuid,
            'title': self.title,
            'downpath': self.download_path,
            'count': self.entry_count(),
        }

    # Queries

    def contains_package(self, identifier: str) -> bool:
        return self._catalog.contains(identifier)

    def get_entry(self, identifier: str) -> Optional[IndexEntry]:
        return self._catalog.get(identifier)

    def all_entries(self) -> List[IndexEntry]:
        return self._catalog.values()

    def entry_count(self) -> int:
        return self._catalog.size()

    def package_details(self, identifier: str) -> Optional[Dict[str, Any]]:
        """
        Everything the index knows about one package, payloads decoded.

        Returns:
            The entry fields plus 'dependencies', 'logo_mime_type' and
            'description' where present, or None for an unknown identifier

        Raises:
            CorruptIndexError: a stored payload cannot be decoded
        """
        entry = self._catalog.get(identifier)
        record = self._find_record(identifier)
        if entry is None or record is None:
            return None

        details = entry.to_dict()

        dependencies = record.find(TAG_DEPENDENCIES)
        if dependencies is not None:
            details['dependencies'] = ET.tostring(dependencies, encoding='unicode').strip()

        try:
            picture = record.findtext(TAG_PICTURE)
            if picture:
                details['logo_mime_type'], _ = parse_data_uri(picture)

            description = record.findtext(TAG_DESCRIPTION)
            if description:
                details['description'] = decode_description(description).replace('\r\n', '\n')
        except ValueError as e:
            raise CorruptIndexError(
                f"Package '{identifier}' has an undecodable payload: {e}", str(self.path)
            ) from e

        return details

    def backing_path(self, entry: IndexEntry) -> Path:
        """Where the archive of an entry is expected on disk."""
        base = Path(self.root_path)
        if entry.custom_location:
            base = base / entry.custom_location
        return base / entry.file_name

    # Mutations

    def add_package(self, descriptor: PackageDescriptor) -> IndexEntry:
        """
        Add a package, replacing any entry with the same identifier.

        Returns:
            The IndexEntry as read back from the new record
        """
        if self._catalog.contains(descriptor.identifier):
            logger.debug(f"Replacing existing package '{descriptor.identifier}'")
            self.remove_package(descriptor.identifier)

        record = descriptor_to_element(descriptor)
        entry = entry_from_element(record)

        self._remotes.append(record)
        self._catalog.add(entry)
        self._dirty = True
        self._sync_count()
        return entry

    def remove_package(self, identifier: str) -> bool:
        """
        Remove a package by identifier. Unknown identifiers are ignored.

        Returns:
            True if a record was removed
        """
        record = self._find_record(identifier)
        if record is None:
            return False

        self._remotes.remove(record)
        self._catalog.remove(identifier)
        self._dirty = True
        self._sync_count()
        return True

    def clear_all(self) -> None:
        """Remove every package record."""
        if len(self._remotes):
            self._dirty = True
        for record in list(self._remotes):
            self._remotes.remove(record)
        self._catalog.clear()
        self._sync_count()

    def flush(self) -> int:
        """
        Write the index to storage.

        Returns:
            Number of bytes written

        Raises:
            PersistFailedError: the file could not be written
        """
        self._sync_count()
        written = self.store.write(self._root)
        self._dirty = False
        logger.debug(f"Saved {self.entry_count()} package(s) to {self.path}")
        return written

    # Internals

    def _find_record(self, identifier: str) -> Optional[ET.Element]:
        for record in self._remotes:
            if record.get(ATTR_IDENT) == identifier:
                return record
        return None

    def _load_entries(self) -> None:
        records = {}
        for record in list(self._remotes):
            try:
                entry = entry_from_element(record)
            except CorruptIndexError as e:
                e.index_path = str(self.path)
                raise

            previous = records.get(entry.identifier)
            if previous is not None:
                logger.warning(
                    f"Duplicate package '{entry.identifier}' in {self.path}, keeping the later record"
                )
                self._remotes.remove(previous)
                self._dirty = True

            records[entry.identifier] = record
            self._catalog.add(entry)

        stored = self.persisted_count
        if stored != self.entry_count():
            if stored is not None:
                logger.warning(
                    f"Index {self.path} count attribute says {stored} but holds "
                    f"{self.entry_count()} package(s); resyncing"
                )
            self._sync_count()

    def _sync_count(self) -> None:
        count = str(self.entry_count())
        if self._remotes.get(ATTR_COUNT) != count:
            self._remotes.set(ATTR_COUNT, count)
            self._dirty = True

    def __len__(self) -> int:
        return self.entry_count()

    def __contains__(self, identifier: str) -> bool:
        return self.contains_package(identifier)

    def __repr__(self) -> str:
        return f"RepositoryIndex(path={str(self.path)!r}, entries={self.entry_count()})"


def _ensure_global_fields(root: ET.Element, title: Optional[str], root_path: Optional[str]) -> bool:
    """
    Create missing top-level fields and sync title and download path.

    Returns:
        True if the document was changed
    """
    changed = False

    def child(tag: str) -> ET.Element:
        nonlocal changed
        node = root.find(tag)
        if node is None:
            node = ET.SubElement(root, tag)
            changed = True
        return node

    def set_text(node: ET.Element, value: str) -> None:
        nonlocal changed
        if (node.text or '') != value:
            node.text = value
            changed = True

    uuid_node = child(TAG_UUID)
    if not (uuid_node.text or '').strip():
        set_text(uuid_node, generate_uuid())

    title_node = child(TAG_TITLE)
    if title is not None:
        set_text(title_node, title)

    downpath_node = child(TAG_DOWNPATH)
    if root_path is not None:
        set_text(downpath_node, url_encode_path(str(root_path)))

    if root.find(TAG_REMOTES) is None:
        ET.SubElement(root, TAG_REMOTES).set(ATTR_COUNT, "0")
        changed = True

    return changed
