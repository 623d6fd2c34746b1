"""
Fingerprinting for the variant cache.

A fingerprint is the sha256 of the content followed by the sha256 of the
canonical option encoding (sorted keys, compact separators), so it is stable
across processes and independent of option insertion order.
"""

import hashlib
import json
from typing import Any, Mapping


def canonical_json(options: Mapping[str, Any]) -> str:
    """Encode options as canonical JSON."""
    return json.dumps(
        options,
        sort_keys=True,
        separators=(',', ':'),
        ensure_ascii=False,
    )


def content_hash(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


def compute_fingerprint(content: bytes, options: Mapping[str, Any]) -> str:
    """
    Compute the cache key for a (content, options) pair.

    Args:
        content: Raw image bytes
        options: Normalized option set (see ValidatedOptions.cache_key_data)

    Returns:
        '<content sha256>-<options sha256>' (129 chars)
    """
    options_hash = hashlib.sha256(canonical_json(options).encode('utf-8')).hexdigest()
    return f"{content_hash(content)}-{options_hash}"
