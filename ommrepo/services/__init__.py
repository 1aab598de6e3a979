"""
Service layer for ommrepo.

Contains business logic that orchestrates domain objects and infrastructure:
- DescriptorBuilder: Archive -> PackageDescriptor
- RepositoryIndex: Load, mutate and save the repository manifest
- FolderRepositoryService: Reconcile an index with a folder of archives

Services are the primary API for commands to use.
They handle coordination between infrastructure and domain layers.
"""

from .descriptor_builder import DescriptorBuilder, PackageManifest, parse_package_manifest
from .repository_index import RepositoryIndex
from .folder_sync import (
    FolderRepositoryService,
    SyncEvent,
    SyncOutcome,
    SyncStats,
    generate_folder_repository,
)

__all__ = [
    'DescriptorBuilder',
    'PackageManifest',
    'parse_package_manifest',
    'RepositoryIndex',
    'FolderRepositoryService',
    'SyncEvent',
    'SyncOutcome',
    'SyncStats',
    'generate_folder_repository',
]
