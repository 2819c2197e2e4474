"""
Similarity fingerprints for near-duplicate detection
"""

import hashlib
import re

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def normalize_for_fingerprint(value: str) -> str:
    """Lowercase and collapse every non-alphanumeric run to a single space"""
    return _NON_ALNUM.sub(" ", (value or "").lower()).strip()


def create_similarity_hash(value: str) -> str:
    """
    SHA-256 of the normalized text.

    Returns an empty string when nothing survives normalization; callers
    treat that as "no fingerprint".
    """
    normalized = normalize_for_fingerprint(value)
    if not normalized:
        return ""
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()
