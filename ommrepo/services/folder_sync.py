"""
Folder repository service for ommrepo.

Keeps a repository index in step with a directory of package archives:
1. Entries whose archive vanished from disk are pruned.
2. Every archive found by the scan is added, replaced or skipped.

An archive is skipped when an entry with the same identifier is already
indexed with the same byte size. Equal size is taken as "unchanged" so
large collections are not re-hashed on every run; a same-size replacement
with different content is therefore not picked up.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Set, Union
from urllib.parse import urlparse
import logging

from ..domain import IndexEntry
from ..exit_codes import CommandError, PackageBuildError, USAGE_ERROR
from .descriptor_builder import DescriptorBuilder
from .repository_index import RepositoryIndex

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = ('.zip',)


class SyncOutcome(Enum):
    ADDED = "added"
    REPLACED = "replaced"
    SKIPPED = "skipped"
    REMOVED = "removed"
    FAILED = "failed"


@dataclass(frozen=True)
class SyncEvent:
    """Something that happened to one archive or entry during a sync."""
    outcome: SyncOutcome
    path: str
    identifier: Optional[str] = None
    error: Optional[str] = None

    @property
    def message(self) -> str:
        if self.outcome is SyncOutcome.REMOVED:
            return f"Removed '{self.path}' as it was not available anymore"
        if self.outcome is SyncOutcome.SKIPPED:
            return f"Skipped '{self.path}' as it was already present in the repository."
        if self.outcome is SyncOutcome.ADDED:
            return f"Added '{self.path}' package to the repository."
        if self.outcome is SyncOutcome.REPLACED:
            return f"Updated '{self.path}' package in the repository."
        return f"Skipped invalid archive '{self.path}': {self.error}"


@dataclass
class SyncStats:
    """Counters for one sync run."""
    scanned: int = 0
    added: int = 0
    replaced: int = 0
    skipped: int = 0
    removed: int = 0
    errors: int = 0
    cleared: bool = False
    total: int = 0
    failures: List[Dict[str, str]] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.added or self.replaced or self.removed or self.cleared)

    def record(self, event: SyncEvent) -> None:
        if event.outcome is SyncOutcome.ADDED:
            self.added += 1
        elif event.outcome is SyncOutcome.REPLACED:
            self.replaced += 1
        elif event.outcome is SyncOutcome.SKIPPED:
            self.skipped += 1
        elif event.outcome is SyncOutcome.REMOVED:
            self.removed += 1
        elif event.outcome is SyncOutcome.FAILED:
            self.errors += 1
            self.failures.append({'path': event.path, 'error': event.error or ''})

    def to_dict(self) -> Dict[str, Any]:
        return {
            'scanned': self.scanned,
            'added': self.added,
            'replaced': self.replaced,
            'skipped': self.skipped,
            'removed': self.removed,
            'errors': self.errors,
            'total': self.total,
        }


def is_remote_location(location: Optional[str]) -> bool:
    """Whether a custom location is a URL rather than a local sub-path."""
    if not location:
        return False
    parsed = urlparse(location)
    return bool(parsed.scheme and parsed.netloc)


Reporter = Callable[[SyncEvent], None]


class FolderRepositoryService:
    """
    Reconciles a RepositoryIndex with the archives under its root path.

    Example:
        service = FolderRepositoryService()
        index = RepositoryIndex.open("repository.xml", "My Mods", "/srv/mods")
        stats = service.sync(index, recursive=True)
        if stats.changed:
            index.flush()
    """

    def __init__(
        self,
        builder: Optional[DescriptorBuilder] = None,
        config: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize FolderRepositoryService.

        Args:
            builder: Descriptor builder (creates default if None)
            config: Configuration dict
        """
        self.config = config or {}
        self.builder = builder or DescriptorBuilder(config=self.config)
        extensions = self.config.get('package', {}).get('archive_extensions') or DEFAULT_EXTENSIONS
        self.extensions: Set[str] = {ext.lower() for ext in extensions}

    def discover_archives(self, root: Union[str, Path], recursive: bool = False) -> List[Path]:
        """
        Find package archives under root.

        Args:
            root: Directory to scan
            recursive: Also scan sub directories

        Returns:
            Archive paths in name order, directories after their parent's files
        """
        root = Path(root)
        archives: List[Path] = []
        subdirs: List[Path] = []

        try:
            entries = sorted(os.scandir(root), key=lambda e: e.name)
        except PermissionError:
            logger.warning(f"Permission denied: {root}")
            return archives

        for entry in entries:
            if entry.is_dir(follow_symlinks=False):
                # Directory symlinks are not followed
                if recursive:
                    subdirs.append(Path(entry.path))
            elif entry.is_file() and os.path.splitext(entry.name)[1].lower() in self.extensions:
                archives.append(Path(entry.path))

        for subdir in subdirs:
            archives.extend(self.discover_archives(subdir, recursive))

        return archives

    def prune_obsolete(self, index: RepositoryIndex, report: Optional[Reporter] = None) -> List[IndexEntry]:
        """
        Remove entries whose archive no longer exists on disk.

        Entries pointing at a remote URL are left alone.

        Returns:
            The removed entries
        """
        removed = []
        for entry in index.all_entries():
            if is_remote_location(entry.custom_location):
                continue

            backing = index.backing_path(entry)
            if backing.exists():
                continue

            index.remove_package(entry.identifier)
            removed.append(entry)
            logger.info(f"Pruned '{entry.identifier}', {backing} is missing")
            if report:
                report(SyncEvent(SyncOutcome.REMOVED, str(backing), entry.identifier))

        return removed

    def custom_location_for(self, root: Union[str, Path], archive_path: Union[str, Path]) -> Optional[str]:
        """Sub directory of an archive relative to root, or None at the root."""
        parent = Path(archive_path).parent
        try:
            relative = parent.relative_to(Path(root))
        except ValueError:
            relative = Path(os.path.relpath(parent, Path(root)))
        if relative == Path('.'):
            return None
        return relative.as_posix() + '/'

    def reconcile_archive(self, index: RepositoryIndex, archive_path: Union[str, Path]) -> SyncEvent:
        """
        Add, replace or skip one archive.

        Raises:
            PackageBuildError: the archive could not be read or described
        """
        archive_path = Path(archive_path)
        probe = self.builder.probe(archive_path)

        existing = index.get_entry(probe.identifier)
        if existing is not None and existing.byte_size == probe.byte_size:
            return SyncEvent(SyncOutcome.SKIPPED, str(archive_path), probe.identifier)

        descriptor = self.builder.build(archive_path)
        location = self.custom_location_for(index.root_path, archive_path)
        if location:
            descriptor = descriptor.with_custom_location(location)

        index.add_package(descriptor)
        outcome = SyncOutcome.REPLACED if existing is not None else SyncOutcome.ADDED
        return SyncEvent(outcome, str(archive_path), descriptor.identifier)

    def sync(
        self,
        index: RepositoryIndex,
        recursive: bool = False,
        rebuild: bool = False,
        archives: Optional[Sequence[Union[str, Path]]] = None,
        report: Optional[Reporter] = None,
    ) -> SyncStats:
        """
        Bring the index in line with the archives under its root path.

        Args:
            index: Index to update (not flushed)
            recursive: Scan sub directories
            rebuild: Drop every entry first and re-index from scratch
            archives: Pre-discovered archive paths (scans root if None)
            report: Called with a SyncEvent for every change or skip

        Returns:
            Counters for the run; stats.changed tells whether to flush
        """
        stats = SyncStats()

        def emit(event: SyncEvent) -> None:
            stats.record(event)
            if report:
                report(event)

        if rebuild:
            index.clear_all()
            stats.cleared = True
        else:
            self.prune_obsolete(index, report=emit)

        if archives is None:
            archives = self.discover_archives(index.root_path, recursive)

        for archive_path in archives:
            stats.scanned += 1
            try:
                event = self.reconcile_archive(index, archive_path)
            except PackageBuildError as e:
                logger.warning(f"Skipped invalid archive '{archive_path}' due to the error: {e}")
                emit(SyncEvent(SyncOutcome.FAILED, str(archive_path), error=str(e)))
                continue

            emit(event)

        stats.total = index.entry_count()
        return stats


def generate_folder_repository(
    index_path: Union[str, Path],
    title: str,
    root_path: Union[str, Path],
    recursive: bool = False,
    rebuild: bool = False,
    service: Optional[FolderRepositoryService] = None,
    archives: Optional[Sequence[Union[str, Path]]] = None,
    report: Optional[Reporter] = None,
) -> SyncStats:
    """
    Create or update the repository index for a folder of archives.

    The index is written only if something changed.

    Raises:
        CommandError: root_path is not a directory
        CorruptIndexError: the existing index cannot be loaded
        PersistFailedError: the index could not be saved
    """
    if not os.path.isdir(root_path):
        raise CommandError(f"Repository root path '{root_path}' is not a valid directory", USAGE_ERROR)

    service = service or FolderRepositoryService()
    index = RepositoryIndex.open(index_path, title, str(root_path))

    stats = service.sync(index, recursive=recursive, rebuild=rebuild, archives=archives, report=report)

    if stats.changed or index.is_dirty:
        index.flush()
        logger.info(f"Saved repository index changes to '{index.path}'")

    return stats
