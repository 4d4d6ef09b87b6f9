"""
Post extraction from rendered profile pages
"""

from .post import Post, PostType, PageSource
from .counters import parse_count
from .result import ExtractionResult, ExtractionStrategy
from .page_classifier import classify_page, username_from_url
from .post_extractor import PostExtractor

__all__ = [
    'Post',
    'PostType',
    'PageSource',
    'parse_count',
    'ExtractionResult',
    'ExtractionStrategy',
    'classify_page',
    'username_from_url',
    'PostExtractor'
]
