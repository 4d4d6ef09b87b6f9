"""
Deduplication module for post URLs and per-job post sets
"""

from .url_canonicalizer import PostURLCanonicalizer
from .post_accumulator import PostAccumulator

__all__ = [
    'PostURLCanonicalizer',
    'PostAccumulator'
]
