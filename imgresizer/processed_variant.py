"""
ProcessedVariant - One encoded output image and its metadata.
"""

from dataclasses import dataclass
from typing import Optional

from .size_profile import ORIGINAL_KEY


@dataclass(frozen=True)
class ProcessedVariant:
    """
    An encoded output image.

    Attributes:
        size_key: Size profile key, or 'original'
        data: Encoded image bytes
        width: Width in pixels
        height: Height in pixels
        format: Output format (e.g., 'jpeg', 'webp')
    """
    size_key: str
    data: bytes
    width: int
    height: int
    format: str

    @property
    def byte_length(self) -> int:
        return len(self.data)

    @property
    def is_original(self) -> bool:
        return self.size_key == ORIGINAL_KEY

    def metadata(self) -> dict:
        """Metadata as reported in processing results."""
        return {
            'width': self.width,
            'height': self.height,
            'format': self.format,
            'byte_length': self.byte_length,
        }

    def to_cache_dict(self) -> dict:
        """Metadata entry persisted in the cache's metadata document."""
        return {'size_key': self.size_key, **self.metadata()}

    @classmethod
    def from_cache_dict(cls, data: dict, payload: bytes) -> 'ProcessedVariant':
        """
        Rehydrate a variant from a cache metadata entry and its payload.

        Raises:
            KeyError / TypeError / ValueError: If the entry is malformed or the
                payload length disagrees with the recorded byte_length
        """
        expected: Optional[int] = data['byte_length']
        if expected != len(payload):
            raise ValueError(
                f"Payload for '{data['size_key']}' is {len(payload)} bytes, "
                f"metadata records {expected}"
            )
        return cls(
            size_key=str(data['size_key']),
            data=payload,
            width=int(data['width']),
            height=int(data['height']),
            format=str(data['format']),
        )
