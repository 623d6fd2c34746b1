"""
ProcessingResult - Variant metadata and per-backend storage outcomes.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .dispatcher import BackendOutcome
from .filenames import ResolvedVariant


# Top-level result key holding variant metadata; not usable as a backend name
METADATA_KEY = 'metadata'


@dataclass
class ProcessingResult:
    """
    Result of a processing request.

    Attributes:
        original: Metadata of the re-encoded original
        resized: Metadata keyed by size key
        backends: Storage outcome keyed by backend name
        filenames: Resolved filename keyed by size key ('original' included)
        session_id: Token used in this request's filenames
        fingerprint: Cache key of the variant set
        cache_hit: True if variants came from the cache
    """
    original: Optional[dict] = None
    resized: Dict[str, dict] = field(default_factory=dict)
    backends: Dict[str, BackendOutcome] = field(default_factory=dict)
    filenames: Dict[str, str] = field(default_factory=dict)
    session_id: str = ''
    fingerprint: str = ''
    cache_hit: bool = False

    @classmethod
    def build(
        cls,
        resolved: List[ResolvedVariant],
        backends: Dict[str, BackendOutcome],
        session_id: str,
        fingerprint: str,
        cache_hit: bool
    ) -> 'ProcessingResult':
        result = cls(
            backends=backends,
            session_id=session_id,
            fingerprint=fingerprint,
            cache_hit=cache_hit,
        )
        for item in resolved:
            result.filenames[item.size_key] = item.filename
            if item.is_original:
                result.original = item.variant.metadata()
            else:
                result.resized[item.size_key] = item.variant.metadata()
        return result

    @property
    def metadata(self) -> dict:
        return {'original': self.original, 'resized': dict(self.resized)}

    @property
    def failed_backends(self) -> List[str]:
        return [name for name, outcome in self.backends.items() if not outcome.succeeded]

    def to_dict(self) -> dict:
        """
        Plain dict form:
            {'metadata': {'original': {...}, 'resized': {...}},
             '<backend>': {'original': location, 'resized': {...}}
                          (plus 'error' and 'code' if the backend failed)}
        """
        data = {METADATA_KEY: self.metadata}
        for name, outcome in self.backends.items():
            data[name] = outcome.to_dict()
        return data
