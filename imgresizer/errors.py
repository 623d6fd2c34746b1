"""
Error taxonomy for imgresizer.

ConfigurationError and ImageProcessingError abort a request before any cache
write or storage I/O. StorageError is recorded per backend by the dispatcher
and only propagates from explicit maintenance operations (cache clearing).
"""

from typing import Optional


class ImageResizerError(Exception):
    """
    Base class for all imgresizer errors.

    Attributes:
        code: Machine-readable error code (e.g., 'ERR_CONFIGURATION')
        original_error: The underlying exception, if any
    """

    default_code = 'ERR_IMAGE_RESIZER'

    def __init__(
        self,
        message: str,
        original_error: Optional[BaseException] = None,
        code: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.original_error = original_error
        self.code = code or self.default_code

    def __str__(self) -> str:
        return self.message


class ConfigurationError(ImageResizerError):
    """Invalid construction-time settings or per-request options."""
    default_code = 'ERR_CONFIGURATION'


class ImageProcessingError(ImageResizerError):
    """Unreadable source, unsupported media type, or a codec failure."""
    default_code = 'ERR_IMAGE_PROCESSING'


class StorageError(ImageResizerError):
    """A storage operation (backend persist or cache maintenance) failed."""
    default_code = 'ERR_STORAGE'
