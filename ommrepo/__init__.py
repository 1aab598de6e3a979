"""
ommrepo - Repository index maintenance for Open Mod Manager.

An Open Mod Manager repository is a folder of package archives plus one
XML index listing them. ommrepo builds and updates that index: it reads
the package manifest inside each archive, hashes it, thumbnails its logo,
compresses its description, and keeps the list in step with the files
on disk.

Quick Start:
    import ommrepo

    # Create or update the index for a folder
    stats = ommrepo.generate_folder_repository(
        "repository.xml", "My Mods", "/srv/mods", recursive=True
    )
    print(stats.added, stats.removed, stats.total)

    # Or drive the index directly
    index = ommrepo.RepositoryIndex.open("repository.xml")
    for entry in index.all_entries():
        print(entry.identifier, entry.byte_size)

    descriptor = ommrepo.DescriptorBuilder().build("/srv/mods/new-pack.zip")
    index.add_package(descriptor)
    index.flush()

Domain Objects:
    PackageDescriptor - Everything known about one archive
    IndexEntry - What the index keeps per package
    EntryCatalog - Identifier-unique set of entries

Services:
    DescriptorBuilder - Archive -> PackageDescriptor
    RepositoryIndex - Load, mutate and save the index
    FolderRepositoryService - Reconcile an index with a folder
"""

__version__ = "0.1.0"

# Domain objects
from .domain import (
    HashAlgorithm,
    ContentHash,
    PackageDescriptor,
    IndexEntry,
    EntryCatalog,
)

# Services
from .services import (
    DescriptorBuilder,
    RepositoryIndex,
    FolderRepositoryService,
    SyncStats,
    generate_folder_repository,
)

# Configuration
from .config import load_config, save_config

__all__ = [
    # Version
    "__version__",
    # Domain objects
    "HashAlgorithm",
    "ContentHash",
    "PackageDescriptor",
    "IndexEntry",
    "EntryCatalog",
    # Services
    "DescriptorBuilder",
    "RepositoryIndex",
    "FolderRepositoryService",
    "SyncStats",
    "generate_folder_repository",
    # Configuration
    "load_config",
    "save_config",
]
