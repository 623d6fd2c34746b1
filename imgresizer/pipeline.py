"""
VariantPipeline - Produces the original re-encode and every size variant.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Mapping, Optional

from PIL import Image

from .codec import ImageCodec, ImageMetadata
from .errors import ConfigurationError, ImageProcessingError
from .formats import (
    DEFAULT_OUTPUT_FORMAT,
    available_output_formats,
    is_supported_output_format,
    normalize_format,
)
from .image_source import ImageSource
from .processed_variant import ProcessedVariant
from .processing_options import ValidatedOptions
from .size_profile import ORIGINAL_KEY, SizeProfile


ORIGINAL_QUALITY = 100

# Preferred formats when optimize_output_format is set
TRANSPARENT_OPTIMIZED_FORMAT = 'webp'
LOSSY_OPTIMIZED_FORMAT = 'webp'


@dataclass(frozen=True)
class VariantSpec:
    """
    Resolved processing intent for one output.

    Attributes:
        size_key: Size key, or 'original'
        output_format: Resolved output format
        quality: Encode quality
        width: Target width, or None to keep the source width
    """
    size_key: str
    output_format: str
    quality: float
    width: Optional[int] = None


class VariantPipeline:
    """
    Drives the codec to build all variants of a request.

    Decoding and transforms run once on a shared image. The original and each
    size are then encoded concurrently; the first failure fails the run and no
    partial variant set is returned.
    """

    def __init__(
        self,
        codec: ImageCodec,
        sizes: Mapping[str, SizeProfile],
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize pipeline.

        Args:
            codec: Codec engine
            sizes: Configured size profiles
            logger: Optional logger instance
        """
        self.codec = codec
        self.sizes = sizes
        self.logger = logger or logging.getLogger(__name__)

    async def run(self, source: ImageSource, options: ValidatedOptions) -> List[ProcessedVariant]:
        """
        Produce all variants for a source.

        Args:
            source: Image payload
            options: Validated request options

        Returns:
            List of ProcessedVariant, original first, then sizes in request order

        Raises:
            ConfigurationError: If the resolved output format is unsupported
            ImageProcessingError: If decoding, a transform or an encode fails
        """
        self.logger.info(
            f"Processing {source.media_type} ({len(source.data)} bytes), "
            f"sizes: {', '.join(options.size_keys) or 'none'}"
        )

        img = await asyncio.to_thread(self.codec.decode, source.data)
        if options.transforms:
            self.logger.debug(f"Applying {len(options.transforms)} transformation(s)")
            img = await asyncio.to_thread(self.codec.apply_transforms, img, options.transforms)

        metadata = await asyncio.to_thread(self.codec.read_metadata, img)
        output_format = self.resolve_output_format(options, metadata, source.format)
        self.logger.info(f"Output format: {output_format}")

        specs = self.build_specs(options, output_format)
        variants = await asyncio.gather(*(self._process_unit(img, spec) for spec in specs))

        self.logger.info(f"Generated {len(variants)} variant(s)")
        return list(variants)

    def resolve_output_format(
        self,
        options: ValidatedOptions,
        metadata: ImageMetadata,
        source_format: Optional[str] = None
    ) -> str:
        """
        Resolve the output format for every variant of a request.

        Order: explicit request format; the optimized format for the image's
        alpha channel when optimize_output_format is set; the source's own
        format when it can be written; the default.

        Raises:
            ConfigurationError: If the resolved format is unsupported
        """
        if options.output_format:
            fmt = normalize_format(options.output_format)
        elif options.optimize_output_format:
            if metadata.has_alpha:
                self.logger.info(f"Transparency detected, optimizing to '{TRANSPARENT_OPTIMIZED_FORMAT}'")
                fmt = TRANSPARENT_OPTIMIZED_FORMAT
            else:
                self.logger.info(f"No transparency, optimizing to '{LOSSY_OPTIMIZED_FORMAT}'")
                fmt = LOSSY_OPTIMIZED_FORMAT
        else:
            native = normalize_format(source_format or metadata.format)
            fmt = native if is_supported_output_format(native) else DEFAULT_OUTPUT_FORMAT

        if not is_supported_output_format(fmt):
            msg = (
                f"Output format '{fmt}' is not supported. "
                f"Supported formats: {', '.join(available_output_formats())}"
            )
            self.logger.error(f"ConfigurationError: {msg}")
            raise ConfigurationError(msg, code='ERR_UNSUPPORTED_OUTPUT_FORMAT')

        return fmt

    def build_specs(self, options: ValidatedOptions, output_format: str) -> List[VariantSpec]:
        """Build the original spec followed by one spec per requested size."""
        original_quality = options.quality if options.quality is not None else ORIGINAL_QUALITY
        specs = [VariantSpec(ORIGINAL_KEY, output_format, original_quality)]

        for key in options.size_keys:
            profile = self.sizes[key]
            quality = options.quality if options.quality is not None else profile.default_quality
            specs.append(VariantSpec(key, output_format, quality, profile.width))

        return specs

    async def _process_unit(self, img: Image.Image, spec: VariantSpec) -> ProcessedVariant:
        try:
            return await asyncio.to_thread(self._encode_spec, img, spec)
        except ImageProcessingError:
            raise
        except Exception as e:
            msg = f"Error processing size '{spec.size_key}': {e}"
            self.logger.error(f"ImageProcessingError: {msg}")
            raise ImageProcessingError(msg, e, code='ERR_RESIZE_FAILED') from e

    def _encode_spec(self, img: Image.Image, spec: VariantSpec) -> ProcessedVariant:
        # Units share the decoded image; each encodes its own copy
        if spec.width is None:
            img = img.copy()
        else:
            self.logger.debug(
                f"Resizing to {spec.width}px ({spec.size_key}) "
                f"at quality {spec.quality} as {spec.output_format}"
            )
            img = self.codec.resize(img, spec.width)
        variant = self.codec.encode(img, spec.output_format, spec.quality, spec.size_key)
        self.logger.debug(
            f"Variant {variant.size_key}: {variant.width}x{variant.height} "
            f"{variant.format}, {variant.byte_length} bytes"
        )
        return variant
