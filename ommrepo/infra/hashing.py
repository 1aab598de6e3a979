"""
Hash provider infrastructure for ommrepo.

Computes archive checksums. The fast XXH3 hash is preferred; MD5 is the
fallback for runtimes whose xxhash build does not expose XXH3. The chosen
algorithm is recorded next to the digest so clients verify with the
matching one.
"""

import hashlib
from pathlib import Path
from typing import Callable, Dict, Union
import logging

import xxhash

from ..domain import HashAlgorithm

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1024 * 1024


def _xxh3_factory():
    return xxhash.xxh3_64()


def _md5_factory():
    return hashlib.md5()


HASH_FACTORIES: Dict[HashAlgorithm, Callable] = {
    HashAlgorithm.XXH3: _xxh3_factory,
    HashAlgorithm.MD5: _md5_factory,
}


def xxh3_available() -> bool:
    """Whether the installed xxhash offers the XXH3 family."""
    return 'xxh3_64' in getattr(xxhash, 'algorithms_available', ())


class HashProvider:
    """
    Streams files through a checksum algorithm.

    Example:
        hasher = HashProvider()
        algorithm = hasher.preferred_algorithm()
        digest = hasher.digest("/srv/mods/pack.zip", algorithm)
    """

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.chunk_size = chunk_size

    @classmethod
    def from_config(cls, config) -> 'HashProvider':
        chunk_kb = (config or {}).get('hashing', {}).get('chunk_size_kb', DEFAULT_CHUNK_SIZE // 1024)
        return cls(chunk_size=int(chunk_kb) * 1024)

    def preferred_algorithm(self) -> HashAlgorithm:
        if xxh3_available():
            return HashAlgorithm.XXH3
        logger.debug("XXH3 not available, falling back to MD5 checksums")
        return HashAlgorithm.MD5

    def digest(self, path: Union[str, Path], algorithm: HashAlgorithm) -> str:
        """
        Hash a file.

        Raises:
            OSError: if the file cannot be read
        """
        hasher = HASH_FACTORIES[algorithm]()
        with open(path, 'rb') as f:
            for chunk in iter(lambda: f.read(self.chunk_size), b""):
                hasher.update(chunk)
        return hasher.hexdigest()
