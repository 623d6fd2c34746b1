"""
ImageResizer - Entry point: validate, fingerprint, build or load variants,
name them and fan them out to storage.
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .codec import ImageCodec
from .dispatcher import StorageBackend, StorageDispatcher
from .errors import ConfigurationError, ImageProcessingError, ImageResizerError
from .filenames import new_session_id, resolve_filenames
from .fingerprint import compute_fingerprint
from .image_source import ImageSource, load_image_source
from .local_client import LocalClient
from .pipeline import VariantPipeline
from .processed_variant import ProcessedVariant
from .processing_options import ProcessingOptions, ValidatedOptions
from .processing_result import METADATA_KEY, ProcessingResult
from .resizer_config import ResizerConfig
from .s3_client import S3Client
from .size_profile import ORIGINAL_KEY, SizeProfile, build_size_table
from .variant_cache import VariantCache


class ImageResizer:
    """
    Produces resized variants of images and stores them on every enabled backend.

    Configuration is validated once here; requests only validate their own
    options. Concurrent requests with the same fingerprint share one cache
    lookup, one pipeline run and one cache write.
    """

    def __init__(
        self,
        config: Optional[ResizerConfig] = None,
        sizes: Optional[Mapping[str, Union[SizeProfile, Mapping]]] = None,
        codec: Optional[ImageCodec] = None,
        backends: Union[Mapping[str, StorageBackend], Iterable[StorageBackend], None] = None,
        cache: Optional[VariantCache] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize resizer.

        Args:
            config: Settings (default: ResizerConfig.from_env())
            sizes: Custom size profiles merged over the defaults
            codec: Codec engine (default: ImageCodec)
            backends: Storage backends overriding those built from config
            cache: Variant cache overriding the one built from config
            logger: Optional logger instance

        Raises:
            ConfigurationError: If any setting is invalid
        """
        self.logger = logger or logging.getLogger(__name__)
        self.config = config or ResizerConfig.from_env()

        try:
            self.sizes = build_size_table(sizes)
        except ConfigurationError as e:
            self.logger.error(f"ConfigurationError: {e}")
            raise

        errors = self.config.validate(require_backend=backends is None)
        if errors:
            for error in errors:
                self.logger.error(f"ConfigurationError: {error}")
            raise ConfigurationError('; '.join(errors))

        if backends is None:
            self.backends = self._build_backends()
        else:
            self.backends = self._collect_backends(backends)
        if not self.backends:
            msg = 'At least one storage backend must be enabled'
            self.logger.error(f"ConfigurationError: {msg}")
            raise ConfigurationError(msg)
        if METADATA_KEY in self.backends:
            msg = f"Backend name '{METADATA_KEY}' is reserved for variant metadata in results"
            self.logger.error(f"ConfigurationError: {msg}")
            raise ConfigurationError(msg)

        self.cache = cache or VariantCache(
            self.config.cache_path,
            enabled=self.config.cache_enabled,
            logger=self.logger,
        )
        self.codec = codec or ImageCodec(self.logger)
        self.pipeline = VariantPipeline(self.codec, self.sizes, self.logger)
        self.dispatcher = StorageDispatcher(self.backends, self.logger)
        self._in_flight: Dict[str, asyncio.Task] = {}

        self.logger.info(
            f"ImageResizer ready: sizes={', '.join(self.sizes)}, "
            f"backends={', '.join(self.backends)}, cache={self.cache.enabled}"
        )

    def _build_backends(self) -> Dict[str, StorageBackend]:
        backends: Dict[str, StorageBackend] = {}
        if self.config.enable_local_storage:
            backends[LocalClient.name] = LocalClient(self.config.local, logger=self.logger)
            self.logger.info(f"Local storage enabled: {self.config.local.root_path}")
        if self.config.enable_s3_storage:
            try:
                backends[S3Client.name] = S3Client(self.config.s3, self.logger)
            except Exception as e:
                msg = f"Failed to initialize S3 client: {e}"
                self.logger.error(f"ConfigurationError: {msg}")
                raise ConfigurationError(msg, e) from e
            self.logger.info(f"S3 storage enabled: bucket {self.config.s3.bucket}")
        return backends

    @staticmethod
    def _collect_backends(
        backends: Union[Mapping[str, StorageBackend], Iterable[StorageBackend]]
    ) -> Dict[str, StorageBackend]:
        if isinstance(backends, Mapping):
            return dict(backends)
        return {backend.name: backend for backend in backends}

    async def process(
        self,
        source: Any,
        original_filename: str,
        options: Union[ProcessingOptions, Mapping[str, Any], None] = None,
        **kwargs: Any
    ) -> ProcessingResult:
        """
        Process an image and store its variants.

        Args:
            source: Bytes, a binary file object or an async byte stream
            original_filename: Name used to derive variant filenames
            options: ProcessingOptions or a mapping of option values
            **kwargs: Option values merged over options

        Returns:
            ProcessingResult with variant metadata and per-backend outcomes

        Raises:
            ConfigurationError: For invalid options or filename strategy results
            ImageProcessingError: For unreadable or unsupported images and codec failures
        """
        self.logger.info(f"Processing image: {original_filename}")

        if not isinstance(original_filename, str) or not original_filename.strip():
            msg = 'original_filename must be a non-empty string'
            self.logger.error(f"ImageProcessingError: {msg}")
            raise ImageProcessingError(msg)

        try:
            opts = ProcessingOptions.from_value(options, **kwargs).validate(self.sizes, self.logger)
            image_source = await load_image_source(source, self.logger)
            fingerprint = await asyncio.to_thread(
                compute_fingerprint, image_source.data, opts.cache_key_data()
            )
            self.logger.debug(f"Fingerprint: {fingerprint}")

            variants, cache_hit = await self._get_variants(fingerprint, image_source, opts)

            session_id = new_session_id()
            resolved = resolve_filenames(
                variants, original_filename, session_id, opts.strategy, self.logger
            )
        except ImageResizerError as e:
            self.logger.error(
                f"Error processing {original_filename}: {e} (code: {e.code})"
            )
            raise
        except Exception as e:
            msg = f"Unexpected error processing '{original_filename}': {e}"
            self.logger.exception(f"ImageProcessingError: {msg}")
            raise ImageProcessingError(msg, e) from e

        outcomes = await self.dispatcher.dispatch(resolved)

        result = ProcessingResult.build(resolved, outcomes, session_id, fingerprint, cache_hit)
        failed = result.failed_backends
        if failed:
            self.logger.warning(f"Processed {original_filename}; storage failed for: {', '.join(failed)}")
        else:
            self.logger.info(f"Processed {original_filename} successfully")
        return result

    async def clear_cache(self) -> None:
        """
        Remove every cached variant set.

        Raises:
            StorageError: If the cache cannot be cleared
        """
        await self.cache.clear()

    async def _get_variants(
        self,
        fingerprint: str,
        source: ImageSource,
        opts: ValidatedOptions
    ) -> Tuple[List[ProcessedVariant], bool]:
        task = self._in_flight.get(fingerprint)
        if task is None:
            task = asyncio.ensure_future(self._load_or_build(fingerprint, source, opts))
            self._in_flight[fingerprint] = task
            task.add_done_callback(lambda done: self._forget(fingerprint, done))
        else:
            self.logger.info(f"Joining in-flight build for {fingerprint}")
        # A cancelled caller must not cancel the build other callers share
        return await asyncio.shield(task)

    def _forget(self, fingerprint: str, task: asyncio.Task) -> None:
        if self._in_flight.get(fingerprint) is task:
            del self._in_flight[fingerprint]

    async def _load_or_build(
        self,
        fingerprint: str,
        source: ImageSource,
        opts: ValidatedOptions
    ) -> Tuple[List[ProcessedVariant], bool]:
        cached = await self.cache.get(fingerprint)
        if cached is not None:
            ordered = self._order_cached(cached, opts)
            if ordered is not None:
                self.logger.info(f"Cache hit for {fingerprint}, skipping processing")
                return ordered, True
            self.logger.warning(f"Cache entry {fingerprint} does not match the request, rebuilding")
        else:
            self.logger.info(f"Cache miss for {fingerprint}, processing image")

        variants = await self.pipeline.run(source, opts)
        await self.cache.set(fingerprint, variants)
        return variants, False

    @staticmethod
    def _order_cached(
        cached: List[ProcessedVariant],
        opts: ValidatedOptions
    ) -> Optional[List[ProcessedVariant]]:
        """Order cached variants original-first in request order; None if the set differs."""
        by_key = {variant.size_key: variant for variant in cached}
        expected = (ORIGINAL_KEY,) + opts.size_keys
        if len(cached) != len(expected) or set(by_key) != set(expected):
            return None
        return [by_key[key] for key in expected]
