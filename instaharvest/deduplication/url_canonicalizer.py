import logging
import re
from typing import Optional
from urllib.parse import urljoin, urlparse, urlunparse

logger = logging.getLogger(__name__)

SOURCE_HOST = 'www.instagram.com'

# Path markers that identify a post or reel link
POST_MARKERS = ('/p/', '/reel/')

_POST_PATH_RE = re.compile(r'^/(?:[^/]+/)?(p|reel|reels|stories)/([^/?#]+)(?:/([^/?#]+))?')


class PostURLCanonicalizer:
    """Post URL canonicalization and normalization"""

    def __init__(self, host: str = SOURCE_HOST):
        self.host = host

    def is_post_url(self, href: Optional[str]) -> bool:
        """Check whether an href targets a post or reel"""
        if not href:
            return False
        return any(marker in href for marker in POST_MARKERS)

    def canonicalize(self, href: str, base_url: str = None) -> Optional[str]:
        """
        Canonicalize a post href to standard form

        Args:
            href: Raw href, absolute or relative to base_url
            base_url: URL of the page the href was found on

        Returns:
            https://www.instagram.com/<kind>/<code>/ or None when the href
            is not a post link
        """
        try:
            absolute = urljoin(base_url or f"https://{self.host}/", href.strip())
            parsed = urlparse(absolute)

            if parsed.scheme not in ('http', 'https'):
                return None

            # "/username/p/CODE/" grid links and "/reels/CODE/" share links
            # both collapse onto the canonical post path
            match = _POST_PATH_RE.match(parsed.path)
            if not match:
                return None

            kind, code, extra = match.groups()
            if kind == 'reels':
                kind = 'reel'

            if kind == 'stories' and extra:
                path = f"/stories/{code}/{extra}/"
            else:
                path = f"/{kind}/{code}/"

            return urlunparse(('https', self.host, path, '', '', ''))

        except Exception as e:
            logger.warning(f"Failed to canonicalize URL {href}: {e}")
            return None

    def is_equivalent(self, url1: str, url2: str) -> bool:
        """Check if two post URLs point at the same post"""
        canonical = self.canonicalize(url1)
        return canonical is not None and canonical == self.canonicalize(url2)
