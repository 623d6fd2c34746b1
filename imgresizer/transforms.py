"""
Transforms - The closed set of image operations a request may apply.

A transform descriptor is parsed and validated up front into a tuple of
Transform objects. Unknown operations are a ConfigurationError; nothing is
looked up on the codec by name.

Accepted descriptor forms:
    {'rotate': 90, 'grayscale': True}                 (applied in mapping order)
    [{'op': 'rotate', 'degrees': 90}, {'flip': 'horizontal'}]
"""

import hashlib
import io
import re
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Dict, List, Mapping, Optional, Sequence, Tuple

from PIL import Image, ImageOps

from .errors import ConfigurationError


HEX_COLOR_PATTERN = re.compile(r'^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$')


def _has_alpha(image: Image.Image) -> bool:
    return 'A' in image.getbands()


class Transform:
    """Base class for transform operations."""

    op: ClassVar[str] = ''

    def apply(self, image: Image.Image) -> Image.Image:
        raise NotImplementedError

    def to_key(self) -> Dict[str, Any]:
        """Return a JSON-serializable encoding used in cache fingerprints."""
        raise NotImplementedError


@dataclass(frozen=True)
class Rotate(Transform):
    """Clockwise rotation in degrees; the canvas grows to fit."""
    degrees: float
    op: ClassVar[str] = 'rotate'

    def apply(self, image: Image.Image) -> Image.Image:
        if self.degrees % 360 == 0:
            return image
        # Pillow rotates counter-clockwise
        return image.rotate(-self.degrees, expand=True)

    def to_key(self) -> Dict[str, Any]:
        return {'op': self.op, 'degrees': self.degrees}


@dataclass(frozen=True)
class Flip(Transform):
    """Mirror along an axis: 'vertical' (top-bottom) or 'horizontal' (left-right)."""
    axis: str
    op: ClassVar[str] = 'flip'

    AXES: ClassVar[Tuple[str, ...]] = ('vertical', 'horizontal')

    def apply(self, image: Image.Image) -> Image.Image:
        if self.axis == 'vertical':
            return ImageOps.flip(image)
        return ImageOps.mirror(image)

    def to_key(self) -> Dict[str, Any]:
        return {'op': self.op, 'axis': self.axis}


@dataclass(frozen=True)
class Grayscale(Transform):
    """Drop colour, keeping luminance and any alpha channel."""
    op: ClassVar[str] = 'grayscale'

    def apply(self, image: Image.Image) -> Image.Image:
        return image.convert('LA' if _has_alpha(image) else 'L')

    def to_key(self) -> Dict[str, Any]:
        return {'op': self.op}


@dataclass(frozen=True)
class Tint(Transform):
    """Colourize the image luminance with an RGB tint, keeping alpha."""
    rgb: Tuple[int, int, int]
    op: ClassVar[str] = 'tint'

    def apply(self, image: Image.Image) -> Image.Image:
        alpha = image.getchannel('A') if _has_alpha(image) else None
        tinted = ImageOps.colorize(image.convert('L'), black=(0, 0, 0), white=self.rgb)
        if alpha is not None:
            tinted.putalpha(alpha)
        return tinted

    def to_key(self) -> Dict[str, Any]:
        return {'op': self.op, 'rgb': list(self.rgb)}


@dataclass(frozen=True)
class Layer:
    """An overlay image placed at (left, top) on the base image."""
    data: bytes
    left: int = 0
    top: int = 0

    @property
    def digest(self) -> str:
        return hashlib.sha256(self.data).hexdigest()


@dataclass(frozen=True)
class Composite(Transform):
    """Alpha-composite one or more overlay layers onto the image."""
    layers: Tuple[Layer, ...]
    op: ClassVar[str] = 'composite'

    def apply(self, image: Image.Image) -> Image.Image:
        base = image.convert('RGBA')
        for layer in self.layers:
            with Image.open(io.BytesIO(layer.data)) as overlay:
                base.alpha_composite(overlay.convert('RGBA'), dest=(layer.left, layer.top))
        return base

    def to_key(self) -> Dict[str, Any]:
        return {
            'op': self.op,
            'layers': [
                {'sha256': layer.digest, 'left': layer.left, 'top': layer.top}
                for layer in self.layers
            ],
        }


def _field(op: str, value: Any, name: str) -> Any:
    """Read a named field from a tagged entry, or use a bare value as-is."""
    if isinstance(value, Mapping):
        if name not in value:
            raise ConfigurationError(f"Transform '{op}' is missing '{name}'")
        return value[name]
    return value


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _enabled(op: str, value: Any) -> bool:
    """Interpret flag-style values (True / False / tagged mapping)."""
    if isinstance(value, Mapping):
        return True
    if isinstance(value, bool):
        return value
    raise ConfigurationError(f"Transform '{op}' expects true or false, got {value!r}")


def _parse_rotate(value: Any) -> Optional[Transform]:
    degrees = _field('rotate', value, 'degrees')
    if not _is_number(degrees):
        raise ConfigurationError(f"Transform 'rotate' expects a number of degrees, got {degrees!r}")
    if isinstance(degrees, float) and degrees.is_integer():
        degrees = int(degrees)
    return Rotate(degrees)


def _parse_flip(value: Any) -> Optional[Transform]:
    axis = _field('flip', value, 'axis')
    if axis is True:
        axis = 'vertical'
    elif axis is False:
        return None
    if axis not in Flip.AXES:
        raise ConfigurationError(
            f"Transform 'flip' expects one of {', '.join(Flip.AXES)}, got {axis!r}"
        )
    return Flip(axis)


def _parse_flop(value: Any) -> Optional[Transform]:
    return Flip('horizontal') if _enabled('flop', value) else None


def _parse_grayscale(value: Any) -> Optional[Transform]:
    return Grayscale() if _enabled('grayscale', value) else None


def parse_color(color: Any) -> Tuple[int, int, int]:
    """Parse '#rrggbb', '#rgb', an [r, g, b] sequence or an {r, g, b} mapping."""
    if isinstance(color, str):
        match = HEX_COLOR_PATTERN.match(color.strip())
        if not match:
            raise ConfigurationError(f"Invalid tint colour {color!r}")
        digits = match.group(1)
        if len(digits) == 3:
            digits = ''.join(d * 2 for d in digits)
        return tuple(int(digits[i:i + 2], 16) for i in (0, 2, 4))

    if isinstance(color, Mapping):
        color = [color.get('r'), color.get('g'), color.get('b')]

    if (
        isinstance(color, Sequence)
        and len(color) == 3
        and all(isinstance(c, int) and not isinstance(c, bool) and 0 <= c <= 255 for c in color)
    ):
        return tuple(color)

    raise ConfigurationError(f"Invalid tint colour {color!r}")


def _parse_tint(value: Any) -> Optional[Transform]:
    if isinstance(value, Mapping) and 'color' not in value:
        return Tint(parse_color(value))
    return Tint(parse_color(_field('tint', value, 'color')))


def _parse_layer(entry: Any) -> Layer:
    if not isinstance(entry, Mapping):
        raise ConfigurationError("Composite layers must be mappings with an 'input'")
    data = entry.get('input')
    if isinstance(data, (bytearray, memoryview)):
        data = bytes(data)
    if not isinstance(data, bytes) or not data:
        raise ConfigurationError("Composite layer 'input' must be non-empty image bytes")
    left = entry.get('left', 0)
    top = entry.get('top', 0)
    for name, offset in (('left', left), ('top', top)):
        if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
            raise ConfigurationError(f"Composite layer '{name}' must be a non-negative integer")
    return Layer(data=data, left=left, top=top)


def _parse_composite(value: Any) -> Optional[Transform]:
    layers = value
    if isinstance(value, Mapping):
        layers = _field('composite', value, 'layers')
    if not isinstance(layers, (list, tuple)) or not layers:
        raise ConfigurationError("Transform 'composite' expects a non-empty list of layers")
    return Composite(tuple(_parse_layer(entry) for entry in layers))


TRANSFORM_PARSERS: Dict[str, Callable[[Any], Optional[Transform]]] = {
    'rotate': _parse_rotate,
    'flip': _parse_flip,
    'flop': _parse_flop,
    'grayscale': _parse_grayscale,
    'tint': _parse_tint,
    'composite': _parse_composite,
}


def _descriptor_items(descriptor: Any) -> List[Tuple[str, Any]]:
    if isinstance(descriptor, Mapping):
        return list(descriptor.items())

    if not isinstance(descriptor, (list, tuple)):
        raise ConfigurationError('Transformations must be a mapping or a list of operations')

    items = []
    for entry in descriptor:
        if isinstance(entry, Transform):
            items.append((entry.op, entry))
        elif isinstance(entry, Mapping) and 'op' in entry:
            fields = {k: v for k, v in entry.items() if k != 'op'}
            items.append((entry['op'], fields))
        elif isinstance(entry, Mapping) and len(entry) == 1:
            items.append(next(iter(entry.items())))
        else:
            raise ConfigurationError(f"Invalid transformation entry: {entry!r}")
    return items


def parse_transformations(descriptor: Any) -> Tuple[Transform, ...]:
    """
    Parse and validate a transform descriptor.

    Args:
        descriptor: Mapping or list form (see module docstring), or None

    Returns:
        Tuple of Transform objects in application order

    Raises:
        ConfigurationError: For unknown operations or malformed values
    """
    if descriptor is None:
        return ()

    transforms = []
    for op, value in _descriptor_items(descriptor):
        if isinstance(value, Transform):
            transforms.append(value)
            continue
        parser = TRANSFORM_PARSERS.get(op)
        if parser is None:
            raise ConfigurationError(
                f"Unknown transformation '{op}'. Supported: {', '.join(TRANSFORM_PARSERS)}",
                code='ERR_UNKNOWN_TRANSFORMATION'
            )
        transform = parser(value)
        if transform is not None:
            transforms.append(transform)

    return tuple(transforms)
