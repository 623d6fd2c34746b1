"""
Image variant generation with a content-addressed cache.

Pipeline:
    1. Fingerprint: hash the image content and the normalized options
    2. Cache lookup: reuse a stored variant set, or encode the original and
       every size variant concurrently and cache the result
    3. Fan-out: name each variant and persist it to every enabled backend

Supports both S3 and local filesystem storage.
"""

__version__ = "1.0.0"

from .errors import ImageResizerError, ConfigurationError, ImageProcessingError, StorageError
from .size_profile import SizeProfile, DEFAULT_SIZES
from .processing_options import ProcessingOptions
from .processed_variant import ProcessedVariant
from .image_source import ImageSource
from .fingerprint import compute_fingerprint
from .variant_cache import VariantCache
from .codec import ImageCodec
from .pipeline import VariantPipeline
from .filenames import FilenameContext, register_filename_strategy, new_session_id
from .s3_config import S3Config
from .s3_client import S3Client
from .local_client import LocalConfig, LocalClient, DirectoryCache
from .dispatcher import StorageDispatcher, BackendOutcome
from .processing_result import ProcessingResult
from .resizer_config import ResizerConfig
from .resizer import ImageResizer

__all__ = [
    "ImageResizerError",
    "ConfigurationError",
    "ImageProcessingError",
    "StorageError",
    "SizeProfile",
    "DEFAULT_SIZES",
    "ProcessingOptions",
    "ProcessedVariant",
    "ImageSource",
    "compute_fingerprint",
    "VariantCache",
    "ImageCodec",
    "VariantPipeline",
    "FilenameContext",
    "register_filename_strategy",
    "new_session_id",
    "S3Config",
    "S3Client",
    "LocalConfig",
    "LocalClient",
    "DirectoryCache",
    "StorageDispatcher",
    "BackendOutcome",
    "ProcessingResult",
    "ResizerConfig",
    "ImageResizer",
]
