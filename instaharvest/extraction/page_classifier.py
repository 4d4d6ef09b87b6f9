import re
from typing import Optional
from urllib.parse import urlparse

from .post import PageSource

# First path segments that are site sections rather than profiles
RESERVED_SEGMENTS = {
    'p', 'reel', 'reels', 'stories', 'explore', 'direct', 'accounts',
    'about', 'legal', 'developer', 'tv', 'web',
}

_TITLE_HANDLE_RE = re.compile(r'\(@([^)]+)\)')


def _path_segments(url: str):
    return [segment for segment in urlparse(url or '').path.split('/') if segment]


def classify_page(url: str) -> PageSource:
    """Classify the surface a page URL shows"""
    segments = _path_segments(url)

    if not segments or segments[0].lower() in RESERVED_SEGMENTS:
        return PageSource.OTHER

    if len(segments) == 1:
        return PageSource.PROFILE_GRID

    if len(segments) == 2 and segments[1].lower() == 'reels':
        return PageSource.REELS_TAB

    return PageSource.OTHER


def author_from_page(url: str, title: Optional[str] = None) -> str:
    """Best-effort author handle for posts found on a page"""
    segments = _path_segments(url)
    if segments and segments[0].lower() not in RESERVED_SEGMENTS:
        return segments[0]

    if title:
        match = _TITLE_HANDLE_RE.search(title)
        if match:
            return match.group(1)

    return 'Unknown'


def username_from_url(url: Optional[str], host_marker: str = 'instagram.com/') -> str:
    """Job identity: the first path segment after the site host"""
    if not url or host_marker not in url:
        return 'unknown'

    tail = url.split(host_marker, 1)[1]
    username = tail.split('/')[0].split('?')[0].split('#')[0]
    return username or 'unknown'
