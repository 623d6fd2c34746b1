"""
ImageSource - The raw request payload and its detected media type.
"""

import asyncio
import inspect
import io
import logging
from dataclasses import dataclass
from typing import Any, Optional

from PIL import Image, UnidentifiedImageError

from .errors import ImageProcessingError
from .formats import normalize_format


SUPPORTED_IMAGE_MIME_TYPES = frozenset({
    'image/jpeg',
    'image/png',
    'image/webp',
    'image/gif',
    'image/tiff',
})

READ_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class ImageSource:
    """
    A complete image payload.

    Attributes:
        data: Raw image bytes
        media_type: Detected MIME type (e.g., 'image/png')
        format: Detected format name (e.g., 'png')
    """
    data: bytes
    media_type: str
    format: str


async def read_payload(source: Any) -> bytes:
    """
    Read a source into a complete payload.

    Accepts bytes-like objects, binary file objects, objects whose read() is a
    coroutine (e.g., asyncio.StreamReader) and async iterables of chunks.

    Raises:
        ImageProcessingError: For unsupported source types or read failures
    """
    if isinstance(source, (bytes, bytearray, memoryview)):
        return bytes(source)

    try:
        if hasattr(source, '__aiter__'):
            chunks = []
            async for chunk in source:
                chunks.append(bytes(chunk))
            return b''.join(chunks)

        read = getattr(source, 'read', None)
        if callable(read):
            if inspect.iscoroutinefunction(read):
                data = await read()
            else:
                data = await asyncio.to_thread(read)
            if inspect.isawaitable(data):
                data = await data
            if isinstance(data, str):
                raise ImageProcessingError('Image source must be opened in binary mode')
            return bytes(data)
    except ImageProcessingError:
        raise
    except Exception as e:
        raise ImageProcessingError(f"Failed to read image source: {e}", e) from e

    raise ImageProcessingError(
        'Image source must be bytes, a binary file object or an async byte stream'
    )


def detect_media_type(data: bytes) -> Optional[str]:
    """Sniff the image format from the payload header; None if not an image."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            return Image.MIME.get(img.format)
    except (UnidentifiedImageError, OSError, ValueError):
        return None


async def load_image_source(source: Any, logger: Optional[logging.Logger] = None) -> ImageSource:
    """
    Read a source and verify it is a supported image type.

    Raises:
        ImageProcessingError: If the payload is empty, unreadable or not a supported image
    """
    logger = logger or logging.getLogger(__name__)

    data = await read_payload(source)
    if not data:
        msg = 'Image source is empty'
        logger.error(f"ImageProcessingError: {msg}")
        raise ImageProcessingError(msg, code='ERR_EMPTY_SOURCE')

    media_type = await asyncio.to_thread(detect_media_type, data)
    # MPO is how Pillow reports many camera JPEGs
    if media_type == 'image/mpo':
        media_type = 'image/jpeg'

    if media_type not in SUPPORTED_IMAGE_MIME_TYPES:
        msg = (
            f"Unsupported or invalid file type '{media_type or 'unknown'}'. "
            f"Supported: {', '.join(sorted(SUPPORTED_IMAGE_MIME_TYPES))}"
        )
        logger.error(f"ImageProcessingError: {msg}")
        raise ImageProcessingError(msg, code='ERR_UNSUPPORTED_MEDIA_TYPE')

    logger.info(f"Detected image type: {media_type}")
    return ImageSource(
        data=data,
        media_type=media_type,
        format=normalize_format(media_type.split('/', 1)[1]),
    )
