"""
Output formats - supported encodings, file extensions and content types.
"""

from typing import List, Optional

from PIL import Image


SUPPORTED_OUTPUT_FORMATS = {
    'jpeg': {'pil_format': 'JPEG', 'has_alpha': False},
    'png': {'pil_format': 'PNG', 'has_alpha': True},
    'webp': {'pil_format': 'WEBP', 'has_alpha': True},
    'tiff': {'pil_format': 'TIFF', 'has_alpha': True},
    'avif': {'pil_format': 'AVIF', 'has_alpha': True},
}

# Pillow reports some formats under names that are not output formats
FORMAT_ALIASES = {
    'jpg': 'jpeg',
    'mpo': 'jpeg',
    'tif': 'tiff',
}

CONTENT_TYPES = {
    'jpeg': 'image/jpeg',
    'png': 'image/png',
    'webp': 'image/webp',
    'tiff': 'image/tiff',
    'avif': 'image/avif',
    'gif': 'image/gif',
}

DEFAULT_OUTPUT_FORMAT = 'jpeg'


def normalize_format(fmt: Optional[str]) -> Optional[str]:
    """Lower-case a format name and map aliases ('jpg', 'mpo') to their output format."""
    if fmt is None:
        return None
    name = str(fmt).strip().lower()
    return FORMAT_ALIASES.get(name, name)


def is_supported_output_format(fmt: Optional[str]) -> bool:
    """
    Check that a format is known and the installed Pillow can write it.

    AVIF, for example, has no encoder before Pillow 11.2.
    """
    name = normalize_format(fmt)
    if name not in SUPPORTED_OUTPUT_FORMATS:
        return False
    Image.init()
    return SUPPORTED_OUTPUT_FORMATS[name]['pil_format'] in Image.SAVE


def available_output_formats() -> List[str]:
    """Output formats the installed Pillow can encode."""
    return [name for name in SUPPORTED_OUTPUT_FORMATS if is_supported_output_format(name)]


def extension_for_format(fmt: str) -> str:
    """
    Get the file extension (without dot) for a format.

    The JPEG family uses the conventional three-letter form.
    """
    name = normalize_format(fmt)
    if name == 'jpeg':
        return 'jpg'
    return name


def content_type_for_format(fmt: str) -> str:
    """Get the MIME content type for a format."""
    return CONTENT_TYPES.get(normalize_format(fmt), 'application/octet-stream')


def pil_format_for(fmt: str) -> str:
    """Get the Pillow format name used to encode an output format."""
    return SUPPORTED_OUTPUT_FORMATS[normalize_format(fmt)]['pil_format']


def format_supports_alpha(fmt: str) -> bool:
    return SUPPORTED_OUTPUT_FORMATS[normalize_format(fmt)]['has_alpha']
