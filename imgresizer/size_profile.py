"""
SizeProfile - A named resize target from static configuration.
"""

import re
from dataclasses import dataclass, asdict
from typing import Dict, List, Mapping, Optional, Union

from .errors import ConfigurationError


SIZE_KEY_PATTERN = re.compile(r'^[A-Za-z0-9_-]+$')
ORIGINAL_KEY = 'original'


@dataclass(frozen=True)
class SizeProfile:
    """
    A named resize target.

    Attributes:
        key: Size name used in filenames and results (e.g., 'small')
        width: Target width in pixels
        default_quality: Encode quality used when the request gives none
    """
    key: str
    width: int
    default_quality: int

    def validate(self) -> List[str]:
        """Validate the profile, returning a list of error messages."""
        errors = []

        if not isinstance(self.key, str) or not SIZE_KEY_PATTERN.match(self.key):
            errors.append(
                f"Size key {self.key!r} is invalid: use letters, digits, '_' or '-'"
            )
        elif self.key == ORIGINAL_KEY:
            errors.append(f"Size key '{ORIGINAL_KEY}' is reserved")

        if isinstance(self.width, bool) or not isinstance(self.width, int) or self.width <= 0:
            errors.append(f"Size '{self.key}': 'width' must be a positive integer")

        quality = self.default_quality
        if (
            isinstance(quality, bool)
            or not isinstance(quality, (int, float))
            or not 0 <= quality <= 100
        ):
            errors.append(f"Size '{self.key}': 'default_quality' must be a number between 0 and 100")

        return errors

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, key: str, data: Mapping) -> 'SizeProfile':
        """Build a profile from a mapping with 'width' and 'default_quality' (or 'defaultQuality')."""
        if not isinstance(data, Mapping):
            raise ConfigurationError(f"Size '{key}' configuration must be a mapping")
        quality = data.get('default_quality', data.get('defaultQuality'))
        return cls(key=key, width=data.get('width'), default_quality=quality)


DEFAULT_SIZES: Dict[str, SizeProfile] = {
    'small': SizeProfile('small', 320, 80),
    'medium': SizeProfile('medium', 640, 85),
    'large': SizeProfile('large', 1024, 90),
}


def build_size_table(
    custom_sizes: Optional[Mapping[str, Union[SizeProfile, Mapping]]] = None,
    include_defaults: bool = True
) -> Dict[str, SizeProfile]:
    """
    Build and validate the size profile table.

    Args:
        custom_sizes: Profiles keyed by size name; merged over the defaults
        include_defaults: Start from DEFAULT_SIZES (default: True)

    Returns:
        Dict mapping size key -> SizeProfile

    Raises:
        ConfigurationError: If any profile is invalid
    """
    sizes: Dict[str, SizeProfile] = dict(DEFAULT_SIZES) if include_defaults else {}

    for key, value in (custom_sizes or {}).items():
        if isinstance(value, SizeProfile):
            profile = value if value.key == key else SizeProfile(key, value.width, value.default_quality)
        else:
            profile = SizeProfile.from_dict(key, value)
        sizes[key] = profile

    errors = []
    for profile in sizes.values():
        errors.extend(profile.validate())
    if errors:
        raise ConfigurationError('; '.join(errors))

    return sizes
