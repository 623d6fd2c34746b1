"""
LocalClient - Local filesystem storage backend.
"""

import asyncio
import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Set

from .errors import StorageError


@dataclass
class LocalConfig:
    """
    Configuration for local filesystem storage.

    Attributes:
        root_path: Directory variants are written under
    """
    root_path: Optional[str] = None

    @classmethod
    def from_env(cls) -> 'LocalConfig':
        """Create configuration from LOCAL_STORAGE_PATH."""
        return cls(root_path=os.getenv('LOCAL_STORAGE_PATH'))

    def validate(self) -> List[str]:
        """Validate configuration, returning a list of error messages."""
        errors = []
        if not self.root_path:
            errors.append('LOCAL_STORAGE_PATH is required when local storage is enabled')
        elif os.path.exists(self.root_path) and not os.path.isdir(self.root_path):
            errors.append(f"Local storage path is not a directory: {self.root_path}")
        return errors


class DirectoryCache:
    """
    Set of directories known to exist, so repeated writes skip mkdir.

    Owned by the storage client that uses it.
    """

    def __init__(self):
        self._known: Set[str] = set()
        self._lock = threading.Lock()

    def __contains__(self, path: object) -> bool:
        with self._lock:
            return str(path) in self._known

    def __len__(self) -> int:
        with self._lock:
            return len(self._known)

    def ensure(self, path: Path) -> None:
        """Create a directory (and parents) unless it is already known to exist."""
        key = str(path)
        if key in self:
            return
        path.mkdir(parents=True, exist_ok=True)
        with self._lock:
            self._known.add(key)

    def clear(self) -> None:
        with self._lock:
            self._known.clear()


class LocalClient:
    """
    Writes variant payloads below a root directory.
    """

    name = 'local'

    def __init__(
        self,
        config: LocalConfig,
        directory_cache: Optional[DirectoryCache] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize local client.

        Args:
            config: Local storage configuration
            directory_cache: Cache of created directories (a new one by default)
            logger: Optional logger instance
        """
        self.config = config
        self.root = Path(config.root_path).resolve()
        self.directory_cache = directory_cache if directory_cache is not None else DirectoryCache()
        self.logger = logger or logging.getLogger(__name__)

    def get_path(self, filename: str) -> Path:
        """
        Resolve a variant filename to an absolute path under the root.

        Raises:
            StorageError: If the filename escapes the root directory
        """
        path = (self.root / filename.lstrip('/\\')).resolve()
        try:
            path.relative_to(self.root)
        except ValueError as e:
            raise StorageError(f"Path traversal detected: {filename} escapes {self.root}", e) from e
        if path == self.root:
            raise StorageError(f"Invalid filename: {filename!r}")
        return path

    def write_object(self, filename: str, data: bytes) -> str:
        """Write a payload synchronously, returning its absolute path."""
        path = self.get_path(filename)
        try:
            self.directory_cache.ensure(path.parent)
            path.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}", e) from e
        return str(path)

    async def persist(
        self,
        filename: str,
        data: bytes,
        content_type: str = 'application/octet-stream'
    ) -> str:
        """
        Persist a payload.

        Returns:
            Absolute path of the written file

        Raises:
            StorageError: If the write fails
        """
        location = await asyncio.to_thread(self.write_object, filename, data)
        self.logger.debug(f"Saved locally: {location} ({len(data)} bytes)")
        return location
