"""
ProcessingOptions - Per-request options and their validated, normalized form.
"""

import logging
from dataclasses import dataclass, fields
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple, Union

from .errors import ConfigurationError
from .filenames import FilenameStrategy, resolve_strategy
from .formats import available_output_formats, is_supported_output_format, normalize_format
from .size_profile import SizeProfile
from .transforms import Transform, parse_transformations


OPTION_ALIASES = {
    'outputFormat': 'output_format',
    'optimizeOutputFormat': 'optimize_output_format',
    'processSizes': 'process_sizes',
    'filenameStrategy': 'filename_strategy',
    'filenameGenerator': 'filename_strategy',
}


@dataclass
class ProcessingOptions:
    """
    Options for a single processing request.

    Attributes:
        output_format: Explicit output format (e.g., 'webp'); None resolves automatically
        quality: Encode quality override (0-100)
        optimize_output_format: Choose the format from the image's alpha channel
        process_sizes: Subset of configured size keys; None processes all
        transformations: Transform descriptor (see transforms module)
        filename_strategy: Registered strategy name or a callable
    """
    output_format: Optional[str] = None
    quality: Optional[float] = None
    optimize_output_format: bool = False
    process_sizes: Optional[Sequence[str]] = None
    transformations: Any = None
    filename_strategy: Union[str, Callable, None] = None

    @classmethod
    def from_value(
        cls,
        options: Union['ProcessingOptions', Mapping[str, Any], None] = None,
        **overrides: Any
    ) -> 'ProcessingOptions':
        """
        Build options from an instance, a mapping (snake_case or camelCase keys)
        and keyword overrides.

        Raises:
            ConfigurationError: For unrecognized option names
        """
        if isinstance(options, ProcessingOptions):
            values = {f.name: getattr(options, f.name) for f in fields(cls)}
        elif options is None:
            values = {}
        elif isinstance(options, Mapping):
            values = dict(options)
        else:
            raise ConfigurationError('options must be a mapping or ProcessingOptions')

        values.update(overrides)

        known = {f.name for f in fields(cls)}
        normalized = {}
        for key, value in values.items():
            name = OPTION_ALIASES.get(key, key)
            if name not in known:
                raise ConfigurationError(f"Unknown processing option '{key}'")
            normalized[name] = value

        return cls(**normalized)

    def validate(
        self,
        sizes: Mapping[str, SizeProfile],
        logger: Optional[logging.Logger] = None
    ) -> 'ValidatedOptions':
        """
        Validate against the configured size table and normalize.

        Raises:
            ConfigurationError: On the first invalid option
        """
        logger = logger or logging.getLogger(__name__)

        try:
            return self._validate(sizes)
        except ConfigurationError as e:
            logger.error(f"ConfigurationError: {e}")
            raise

    def _validate(self, sizes: Mapping[str, SizeProfile]) -> 'ValidatedOptions':
        output_format = None
        if self.output_format is not None:
            if not isinstance(self.output_format, str) or not is_supported_output_format(self.output_format):
                raise ConfigurationError(
                    f"Output format {self.output_format!r} is not supported. "
                    f"Supported formats: {', '.join(available_output_formats())}",
                    code='ERR_UNSUPPORTED_OUTPUT_FORMAT'
                )
            output_format = normalize_format(self.output_format)

        quality = self.quality
        if quality is not None:
            if isinstance(quality, bool) or not isinstance(quality, (int, float)) or not 0 <= quality <= 100:
                raise ConfigurationError(f"Quality must be a number between 0 and 100, got {quality!r}")

        if not isinstance(self.optimize_output_format, bool):
            raise ConfigurationError('optimize_output_format must be true or false')

        if self.process_sizes is None:
            size_keys = tuple(sizes)
        else:
            if isinstance(self.process_sizes, str) or not isinstance(self.process_sizes, (list, tuple)):
                raise ConfigurationError('process_sizes must be a list of size keys')
            invalid = [
                key for key in self.process_sizes
                if not isinstance(key, str) or key not in sizes
            ]
            if invalid:
                raise ConfigurationError(
                    f"process_sizes contains unknown size keys: {', '.join(map(str, invalid))}. "
                    f"Valid keys: {', '.join(sizes)}"
                )
            size_keys = tuple(dict.fromkeys(self.process_sizes))

        transforms = parse_transformations(self.transformations)
        strategy_name, strategy = resolve_strategy(self.filename_strategy)

        return ValidatedOptions(
            output_format=output_format,
            quality=quality,
            optimize_output_format=self.optimize_output_format,
            size_keys=size_keys,
            transforms=transforms,
            strategy_name=strategy_name,
            strategy=strategy,
            profiles=tuple(sizes[key] for key in size_keys),
        )


@dataclass(frozen=True)
class ValidatedOptions:
    """Normalized options, ready for fingerprinting and processing."""
    output_format: Optional[str]
    quality: Optional[float]
    optimize_output_format: bool
    size_keys: Tuple[str, ...]
    transforms: Tuple[Transform, ...]
    strategy_name: str
    strategy: FilenameStrategy
    profiles: Tuple[SizeProfile, ...] = ()

    def cache_key_data(self) -> Dict[str, Any]:
        """
        Option set that takes part in the cache fingerprint.

        Size keys are sorted (the variant set does not depend on request order)
        and carry their configured width and quality. Transforms keep their
        order, which changes the output.
        """
        quality = self.quality
        if isinstance(quality, float) and quality.is_integer():
            quality = int(quality)
        return {
            'output_format': self.output_format,
            'quality': quality,
            'optimize_output_format': self.optimize_output_format,
            'sizes': {
                profile.key: [profile.width, profile.default_quality]
                for profile in sorted(self.profiles, key=lambda p: p.key)
            },
            'transformations': [t.to_key() for t in self.transforms],
            'filename_strategy': self.strategy_name,
        }
