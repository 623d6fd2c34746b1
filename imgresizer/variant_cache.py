"""
VariantCache - Content-addressed store of processed variant sets.

Layout per fingerprint:
    <cache_dir>/<fingerprint>/metadata.json
    <cache_dir>/<fingerprint>/<size_key>.<ext>

Payloads are written first and metadata.json last, each through a temp file
and os.replace, so an entry with metadata always has all of its payloads.
The cache is an optimization: read and write failures are logged and treated
as a miss / skipped write. Only clear() raises.
"""

import asyncio
import json
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence

from .errors import StorageError
from .formats import extension_for_format
from .processed_variant import ProcessedVariant


DEFAULT_CACHE_DIR = '.image_cache'
METADATA_FILENAME = 'metadata.json'


class VariantCache:
    """
    Filesystem-backed variant cache keyed by fingerprint.

    No eviction or expiration is applied; use clear() for maintenance.
    """

    def __init__(
        self,
        cache_dir: Optional[str] = None,
        enabled: bool = False,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize cache.

        Args:
            cache_dir: Cache root directory (default: '.image_cache')
            enabled: If False, get() always misses and set() does nothing
            logger: Optional logger instance
        """
        self.cache_dir = Path(cache_dir or DEFAULT_CACHE_DIR).resolve()
        self.enabled = enabled
        self.logger = logger or logging.getLogger(__name__)
        self.logger.info(f"Variant cache at {self.cache_dir} (enabled: {self.enabled})")

    def entry_dir(self, fingerprint: str) -> Path:
        if not fingerprint or '/' in fingerprint or '\\' in fingerprint or fingerprint in ('.', '..'):
            raise ValueError(f"Invalid fingerprint: {fingerprint!r}")
        return self.cache_dir / fingerprint

    @staticmethod
    def payload_name(variant_meta: dict) -> str:
        return f"{variant_meta['size_key']}.{extension_for_format(variant_meta['format'])}"

    async def get(self, fingerprint: str) -> Optional[List[ProcessedVariant]]:
        """
        Look up a cached variant set.

        Returns:
            List of ProcessedVariant, or None on a miss or any read failure
        """
        if not self.enabled:
            return None

        try:
            variants = await asyncio.to_thread(self._read_entry, fingerprint)
        except FileNotFoundError:
            self.logger.debug(f"Cache miss: {fingerprint}")
            return None
        except Exception as e:
            self.logger.warning(f"Could not load cache entry {fingerprint}, treating as miss: {e}")
            return None

        self.logger.info(f"Cache hit: {fingerprint} ({len(variants)} variants)")
        return variants

    async def set(self, fingerprint: str, variants: Sequence[ProcessedVariant]) -> bool:
        """
        Persist a variant set under a fingerprint.

        Returns:
            True if an entry was written, False if disabled, already present or failed
        """
        if not self.enabled:
            return False

        try:
            written = await asyncio.to_thread(self._write_entry, fingerprint, list(variants))
        except Exception as e:
            self.logger.error(f"Could not write cache entry {fingerprint}: {e}")
            return False

        if written:
            self.logger.info(f"Cached {len(variants)} variants: {fingerprint}")
        else:
            self.logger.debug(f"Cache entry already present: {fingerprint}")
        return written

    async def clear(self) -> None:
        """
        Remove every cache entry.

        Raises:
            StorageError: If the cache directory cannot be removed
        """
        self.logger.info(f"Clearing cache at {self.cache_dir}")
        try:
            await asyncio.to_thread(self._remove_all)
        except Exception as e:
            msg = f"Failed to clear cache at {self.cache_dir}: {e}"
            self.logger.error(f"StorageError: {msg}")
            raise StorageError(msg, e) from e
        self.logger.info(f"Cache cleared at {self.cache_dir}")

    async def entry_exists(self, fingerprint: str) -> bool:
        """Check whether a committed entry (metadata present) exists."""
        path = self.entry_dir(fingerprint) / METADATA_FILENAME
        return await asyncio.to_thread(path.is_file)

    def _read_entry(self, fingerprint: str) -> List[ProcessedVariant]:
        entry = self.entry_dir(fingerprint)
        with open(entry / METADATA_FILENAME, encoding='utf-8') as f:
            document = json.load(f)

        if document.get('fingerprint') != fingerprint:
            raise ValueError('metadata fingerprint does not match entry')

        entries = document['variants']
        if not isinstance(entries, list) or not entries:
            raise ValueError('metadata has no variants')

        variants = []
        for meta in entries:
            payload_path = entry / self.payload_name(meta)
            try:
                payload = payload_path.read_bytes()
            except FileNotFoundError as e:
                # Metadata without its payload is corruption, not a plain miss
                raise OSError(f"missing payload {payload_path.name}") from e
            variants.append(ProcessedVariant.from_cache_dict(meta, payload))
        return variants

    def _write_entry(self, fingerprint: str, variants: List[ProcessedVariant]) -> bool:
        entry = self.entry_dir(fingerprint)
        metadata_path = entry / METADATA_FILENAME
        if metadata_path.exists():
            return False

        entry.mkdir(parents=True, exist_ok=True)

        document = {'fingerprint': fingerprint, 'variants': []}
        for variant in variants:
            meta = variant.to_cache_dict()
            self._atomic_write(entry / self.payload_name(meta), variant.data)
            document['variants'].append(meta)

        self._atomic_write(
            metadata_path,
            json.dumps(document, indent=2).encode('utf-8'),
        )
        return True

    @staticmethod
    def _atomic_write(path: Path, data: bytes) -> None:
        fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix='.tmp')
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(data)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def _remove_all(self) -> None:
        if self.cache_dir.exists():
            shutil.rmtree(self.cache_dir)
