"""
ImageCodec - Pillow-backed decode, transform, resize and encode.
"""

import io
import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from PIL import Image

from .errors import ImageProcessingError
from .formats import format_supports_alpha, normalize_format, pil_format_for
from .processed_variant import ProcessedVariant
from .transforms import Transform


@dataclass(frozen=True)
class ImageMetadata:
    width: int
    height: int
    format: Optional[str]
    has_alpha: bool


class ImageCodec:
    """
    Codec engine used by the variant pipeline.

    All methods are blocking; the pipeline runs them in worker threads.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def decode(self, data: bytes) -> Image.Image:
        """
        Decode image bytes into a fully loaded image in an editable mode.

        Raises:
            ImageProcessingError: If the payload cannot be decoded
        """
        try:
            img = Image.open(io.BytesIO(data))
            img.load()
        except Exception as e:
            msg = f"Could not decode image, unsupported format or corrupt file: {e}"
            self.logger.error(f"ImageProcessingError: {msg}")
            raise ImageProcessingError(msg, e, code='ERR_DECODE_FAILED') from e

        source_format = normalize_format(img.format)
        img = self._normalize_mode(img)
        # Mode conversion drops the format attribute
        img.info['source_format'] = source_format
        return img

    def read_metadata(self, img: Image.Image) -> ImageMetadata:
        return ImageMetadata(
            width=img.width,
            height=img.height,
            format=img.info.get('source_format') or normalize_format(img.format),
            has_alpha='A' in img.getbands(),
        )

    def apply_transforms(self, img: Image.Image, transforms: Sequence[Transform]) -> Image.Image:
        """
        Apply transforms in order.

        Raises:
            ImageProcessingError: If any transform fails
        """
        source_format = img.info.get('source_format')
        for transform in transforms:
            try:
                img = transform.apply(img)
            except Exception as e:
                msg = f"Error applying transformation '{transform.op}': {e}"
                self.logger.error(f"ImageProcessingError: {msg}")
                raise ImageProcessingError(msg, e, code='ERR_TRANSFORMATION_FAILED') from e
            self.logger.debug(f"Applied transformation '{transform.op}'")
        img.info['source_format'] = source_format
        return img

    def resize(self, img: Image.Image, width: int) -> Image.Image:
        """
        Resize to a target width, preserving aspect ratio.

        Never enlarges: a target wider than the image returns an unchanged copy.
        """
        if width >= img.width:
            return img.copy()
        height = max(1, round(img.height * width / img.width))
        return img.resize((width, height), Image.Resampling.LANCZOS)

    def encode(
        self,
        img: Image.Image,
        output_format: str,
        quality: float,
        size_key: str
    ) -> ProcessedVariant:
        """
        Encode an image and read back its final metadata.

        Args:
            img: Image to encode
            output_format: Supported output format (e.g., 'jpeg')
            quality: Encode quality (0-100)
            size_key: Size key recorded on the variant

        Returns:
            ProcessedVariant with the encoded bytes

        Raises:
            ImageProcessingError: If encoding fails
        """
        fmt = normalize_format(output_format)
        try:
            output = io.BytesIO()
            img = self._prepare_for_format(img, fmt)
            img.save(output, format=pil_format_for(fmt), **self._save_options(fmt, quality))
            data = output.getvalue()

            with Image.open(io.BytesIO(data)) as encoded:
                width, height = encoded.size
                encoded_format = normalize_format(encoded.format) or fmt
        except Exception as e:
            msg = f"Error encoding '{size_key}' as {fmt}: {e}"
            self.logger.error(f"ImageProcessingError: {msg}")
            raise ImageProcessingError(msg, e, code='ERR_ENCODE_FAILED') from e

        return ProcessedVariant(
            size_key=size_key,
            data=data,
            width=width,
            height=height,
            format=encoded_format,
        )

    @staticmethod
    def _save_options(fmt: str, quality: float) -> dict:
        quality = int(round(quality))
        if fmt == 'jpeg':
            return {'quality': quality, 'optimize': True}
        if fmt == 'png':
            return {'optimize': True}
        if fmt in ('webp', 'avif'):
            return {'quality': quality}
        if fmt == 'tiff':
            return {'compression': 'tiff_lzw'}
        return {}

    def _normalize_mode(self, img: Image.Image) -> Image.Image:
        """Convert palette, CMYK and high bit-depth images to RGB(A) / L(A)."""
        if img.mode in ('RGB', 'RGBA', 'L', 'LA'):
            return img
        if img.mode in ('P', 'PA'):
            has_alpha = img.mode == 'PA' or 'transparency' in img.info
            return img.convert('RGBA' if has_alpha else 'RGB')
        if img.mode == '1':
            return img.convert('L')
        return img.convert('RGB')

    def _prepare_for_format(self, img: Image.Image, fmt: str) -> Image.Image:
        """Flatten or convert the color mode to what the output format accepts."""
        if not format_supports_alpha(fmt):
            return self._flatten_alpha(img)
        if fmt in ('webp', 'avif'):
            if img.mode == 'L':
                return img.convert('RGB')
            if img.mode == 'LA':
                return img.convert('RGBA')
        return img

    def _flatten_alpha(self, img: Image.Image) -> Image.Image:
        """Composite transparent images onto white; JPEG has no alpha channel."""
        if img.mode in ('RGBA', 'LA'):
            background = Image.new('RGB', img.size, (255, 255, 255))
            if img.mode == 'LA':
                img = img.convert('RGBA')
            background.paste(img, mask=img.split()[-1])
            return background
        elif img.mode not in ('RGB', 'L'):
            return img.convert('RGB')
        return img
