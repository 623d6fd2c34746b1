"""
StorageDispatcher - Fans a resolved variant set out to every enabled backend.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Protocol, Sequence

from .errors import StorageError
from .filenames import ResolvedVariant
from .formats import content_type_for_format


class StorageBackend(Protocol):
    name: str

    async def persist(self, filename: str, data: bytes, content_type: str) -> str:
        ...


@dataclass
class BackendOutcome:
    """
    Result of persisting a variant set to one backend.

    Attributes:
        backend: Backend name
        original: Location of the original variant, if written
        resized: Locations keyed by size key
        error: Error description if the backend failed
        error_code: Error code if the backend failed
    """
    backend: str
    original: Optional[str] = None
    resized: Dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None
    error_code: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        """
        Plain dict form. A failed backend also reports the locations it
        wrote before failing.
        """
        data = {'original': self.original, 'resized': dict(self.resized)}
        if not self.succeeded:
            data['error'] = self.error
            data['code'] = self.error_code
        return data


class StorageDispatcher:
    """
    Persists variants to each backend independently.

    A failure in one backend is recorded in that backend's outcome and never
    stops the others; dispatch() itself does not raise for storage failures.
    """

    def __init__(
        self,
        backends: Mapping[str, StorageBackend],
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize dispatcher.

        Args:
            backends: Enabled backends keyed by name
            logger: Optional logger instance
        """
        self.backends = dict(backends)
        self.logger = logger or logging.getLogger(__name__)

    async def dispatch(self, variants: Sequence[ResolvedVariant]) -> Dict[str, BackendOutcome]:
        """
        Persist a variant set to every backend.

        Args:
            variants: Variants with their resolved filenames

        Returns:
            Dict mapping backend name -> BackendOutcome
        """
        names = list(self.backends)
        outcomes = await asyncio.gather(
            *(self._persist_all(name, self.backends[name], variants) for name in names)
        )
        return dict(zip(names, outcomes))

    async def _persist_all(
        self,
        name: str,
        backend: StorageBackend,
        variants: Sequence[ResolvedVariant]
    ) -> BackendOutcome:
        self.logger.info(f"Storing {len(variants)} variant(s) to {name}")
        outcome = BackendOutcome(backend=name)

        try:
            for resolved in variants:
                variant = resolved.variant
                location = await backend.persist(
                    resolved.filename,
                    variant.data,
                    content_type_for_format(variant.format),
                )
                if resolved.is_original:
                    outcome.original = location
                else:
                    outcome.resized[resolved.size_key] = location
        except Exception as e:
            if not isinstance(e, StorageError):
                e = StorageError(f"Unexpected error in backend '{name}': {e}", e)
            self.logger.error(f"StorageError: {name} storage failed: {e}")
            # Locations written before the failure stay on the outcome
            outcome.error = str(e)
            outcome.error_code = e.code
            return outcome

        self.logger.info(f"{name} storage completed")
        return outcome
