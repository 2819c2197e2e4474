"""
Utility modules for NPIP
"""

from .timeutils import utcnow, month_key, to_naive_utc
from .fingerprint import create_similarity_hash, normalize_for_fingerprint

__all__ = [
    # Time
    "utcnow",
    "month_key",
    "to_naive_utc",
    # Fingerprints
    "create_similarity_hash",
    "normalize_for_fingerprint",
]
