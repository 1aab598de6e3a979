"""
Standard exit codes and error types for ommrepo commands.

Following Unix/POSIX conventions for command-line tools.
"""
from typing import Optional

# Standard POSIX exit codes
SUCCESS = 0              # Successful termination
GENERAL_ERROR = 1        # General errors
USAGE_ERROR = 2          # Misuse of shell command (wrong arguments, etc.)

# Application-specific exit codes (64-113 are typically available)
NOT_FOUND = 64           # Requested package identifier is not in the index
PERMISSION_ERROR = 67    # Insufficient permissions
DATA_ERROR = 70          # Archive or index data format error
PARTIAL_SUCCESS = 71     # Some archives were indexed, some failed
PERSIST_ERROR = 74       # Index could not be written back to storage
INTERRUPTED = 130        # Terminated by Ctrl+C (SIGINT)

# Exit code mappings for common exceptions
EXCEPTION_EXIT_CODES = {
    'NotADirectoryError': USAGE_ERROR,
    'PermissionError': PERMISSION_ERROR,
    'ValueError': DATA_ERROR,
    'ParseError': DATA_ERROR,
    'KeyboardInterrupt': INTERRUPTED,
}


def get_exit_code_for_exception(exc: BaseException) -> int:
    """
    Get the appropriate exit code for an exception.

    Args:
        exc: The exception that occurred

    Returns:
        Appropriate exit code
    """
    if isinstance(exc, CommandError):
        return exc.exit_code
    exc_name = exc.__class__.__name__
    return EXCEPTION_EXIT_CODES.get(exc_name, GENERAL_ERROR)


class CommandError(Exception):
    """
    Exception that commands can raise to indicate specific exit codes.
    """
    def __init__(self, message: str, exit_code: int = GENERAL_ERROR):
        super().__init__(message)
        self.exit_code = exit_code


class PackageNotFoundError(CommandError):
    """Raised when an identifier is not present in the index."""
    def __init__(self, identifier: str):
        super().__init__(f"Package '{identifier}' is not in the repository index", NOT_FOUND)
        self.identifier = identifier


class PartialSuccessError(CommandError):
    """Raised when some archives were indexed and some failed."""
    def __init__(self, message: str, succeeded: int = 0, failed: int = 0):
        super().__init__(message, PARTIAL_SUCCESS)
        self.succeeded = succeeded
        self.failed = failed


# Descriptor build failures. These are always scoped to one archive.

class PackageBuildError(CommandError):
    """Base class for failures while deriving a descriptor from an archive."""
    def __init__(self, message: str, archive_path: Optional[str] = None):
        super().__init__(message, DATA_ERROR)
        self.archive_path = archive_path


class ArchiveUnreadableError(PackageBuildError):
    """The package archive could not be opened as a zip container."""


class ManifestMissingError(PackageBuildError):
    """The archive has no usable package manifest entry."""


class LogoMissingError(PackageBuildError):
    """The manifest names a logo image that is not inside the archive."""


# Repository index failures. These abort the whole operation.

class RepositoryIndexError(CommandError):
    """Base class for failures while loading or saving the repository index."""
    def __init__(self, message: str, index_path: Optional[str] = None, exit_code: int = DATA_ERROR):
        super().__init__(message, exit_code)
        self.index_path = index_path


class CorruptIndexError(RepositoryIndexError):
    """The index file exists but is not a valid repository manifest."""


class PersistFailedError(RepositoryIndexError):
    """The index could not be written back to storage."""
    def __init__(self, message: str, index_path: Optional[str] = None):
        super().__init__(message, index_path, PERSIST_ERROR)
