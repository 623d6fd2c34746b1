"""
Filename resolution - Storage paths for each variant of a request.

Strategies are plain callables taking a FilenameContext and returning a path.
They are referenced by name through FILENAME_STRATEGIES so that only an
identifier, never code, takes part in cache fingerprints.
"""

import logging
import time
import uuid
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from .errors import ConfigurationError
from .formats import extension_for_format
from .processed_variant import ProcessedVariant
from .size_profile import ORIGINAL_KEY


@dataclass(frozen=True)
class FilenameContext:
    """
    Everything a naming strategy may use to build a path.

    Attributes:
        original_filename: Filename supplied with the request
        base_name: original_filename without directory or extension
        extension: Extension for the variant's output format (e.g., 'jpg')
        size_key: Size key, or 'original'
        output_format: Output format of the variant (e.g., 'jpeg')
        is_original: True for the re-encoded original
        session_id: Per-request correlation token
    """
    original_filename: str
    base_name: str
    extension: str
    size_key: str
    output_format: str
    is_original: bool
    session_id: str


@dataclass(frozen=True)
class ResolvedVariant:
    """A processed variant paired with its storage filename."""
    variant: ProcessedVariant
    filename: str

    @property
    def size_key(self) -> str:
        return self.variant.size_key

    @property
    def is_original(self) -> bool:
        return self.variant.is_original


FilenameStrategy = Callable[[FilenameContext], str]

FILENAME_STRATEGIES: Dict[str, FilenameStrategy] = {}

DEFAULT_STRATEGY = 'default'


def register_filename_strategy(name: str) -> Callable[[FilenameStrategy], FilenameStrategy]:
    """Decorator registering a naming strategy under a name."""
    def decorator(func: FilenameStrategy) -> FilenameStrategy:
        FILENAME_STRATEGIES[name] = func
        return func
    return decorator


@register_filename_strategy('default')
def default_filename_strategy(ctx: FilenameContext) -> str:
    if ctx.is_original:
        return f"{ctx.base_name}-{ctx.session_id}.original.{ctx.extension}"
    return (
        f"resized/{ctx.size_key}/"
        f"{ctx.base_name}-{ctx.session_id}.{ctx.size_key}.{ctx.extension}"
    )


@register_filename_strategy('flat')
def flat_filename_strategy(ctx: FilenameContext) -> str:
    return f"{ctx.base_name}-{ctx.session_id}.{ctx.size_key}.{ctx.extension}"


def strategy_identifier(strategy: Union[str, FilenameStrategy, None]) -> str:
    """Return the name under which a strategy takes part in cache fingerprints."""
    if strategy is None:
        return DEFAULT_STRATEGY
    if isinstance(strategy, str):
        return strategy
    for name, registered in FILENAME_STRATEGIES.items():
        if registered is strategy:
            return name
    explicit = getattr(strategy, 'strategy_name', None)
    if isinstance(explicit, str) and explicit:
        return explicit
    module = getattr(strategy, '__module__', None) or 'unknown'
    qualname = getattr(strategy, '__qualname__', None) or type(strategy).__qualname__
    return f"{module}.{qualname}"


def resolve_strategy(
    strategy: Union[str, FilenameStrategy, None]
) -> Tuple[str, FilenameStrategy]:
    """
    Resolve a strategy name or callable to (identifier, callable).

    Raises:
        ConfigurationError: If the name is not registered or the value is not callable
    """
    if strategy is None or isinstance(strategy, str):
        name = strategy or DEFAULT_STRATEGY
        func = FILENAME_STRATEGIES.get(name)
        if func is None:
            raise ConfigurationError(
                f"Unknown filename strategy '{name}'. "
                f"Registered: {', '.join(sorted(FILENAME_STRATEGIES))}"
            )
        return name, func

    if not callable(strategy):
        raise ConfigurationError('filename_strategy must be a strategy name or a callable')

    return strategy_identifier(strategy), strategy


def new_session_id() -> str:
    """Return a per-request token: '<epoch-millis>-<6 hex chars>'."""
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"


def resolve_filenames(
    variants: Sequence[ProcessedVariant],
    original_filename: str,
    session_id: str,
    strategy: Union[str, FilenameStrategy, None] = None,
    logger: Optional[logging.Logger] = None
) -> List[ResolvedVariant]:
    """
    Derive a storage filename for every variant.

    All names are resolved before any is used, so a bad strategy result
    aborts the request before storage I/O.

    Args:
        variants: Processed variants (original and sizes)
        original_filename: Filename supplied with the request
        session_id: Token shared by every variant of the request
        strategy: Strategy name or callable (default: 'default')
        logger: Optional logger instance

    Returns:
        List of ResolvedVariant in the same order as variants

    Raises:
        ConfigurationError: If the strategy fails or returns an empty / non-string path
    """
    logger = logger or logging.getLogger(__name__)
    name, func = resolve_strategy(strategy)
    base_name = PurePosixPath(original_filename.replace('\\', '/')).stem

    resolved = []
    for variant in variants:
        ctx = FilenameContext(
            original_filename=original_filename,
            base_name=base_name,
            extension=extension_for_format(variant.format),
            size_key=variant.size_key,
            output_format=variant.format,
            is_original=variant.size_key == ORIGINAL_KEY,
            session_id=session_id,
        )
        try:
            filename = func(ctx)
        except Exception as e:
            msg = f"Filename strategy '{name}' failed for '{variant.size_key}': {e}"
            logger.error(f"ConfigurationError: {msg}")
            raise ConfigurationError(msg, e, code='ERR_FILENAME_STRATEGY') from e

        if not isinstance(filename, str) or not filename.strip():
            msg = (
                f"Filename strategy '{name}' must return a non-empty string "
                f"for '{variant.size_key}', got {filename!r}"
            )
            logger.error(f"ConfigurationError: {msg}")
            raise ConfigurationError(msg, code='ERR_FILENAME_STRATEGY')

        logger.debug(f"Filename for {variant.size_key}: {filename}")
        resolved.append(ResolvedVariant(variant=variant, filename=filename))

    return resolved
