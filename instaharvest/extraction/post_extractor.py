#!/usr/bin/env python3
"""
Post Extraction Module
Scrolls a profile page, snapshots its markup and pulls post links plus
best-effort engagement metadata out of whatever containers the surface uses
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set, Tuple
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag
from playwright.async_api import Error as PlaywrightError, Page

from ..deduplication.url_canonicalizer import PostURLCanonicalizer
from ..utils.error_handler import ExtractionError
from .counters import looks_like_counter, parse_count
from .page_classifier import author_from_page, classify_page
from .post import PageSource, Post, PostType
from .result import ExtractionResult, ExtractionStrategy

logger = logging.getLogger(__name__)

POST_ANCHOR = 'a[href*="/p/"], a[href*="/reel/"]'
BUTTON_POST_ANCHOR = 'div[role="button"] a[href*="/p/"], div[role="button"] a[href*="/reel/"]'

SCROLL_HEIGHT_JS = "() => document.body.scrollHeight"
SCROLL_TO_BOTTOM_JS = "() => window.scrollTo(0, document.body.scrollHeight)"

MIN_CAPTION_LENGTH = 10


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _text(element: Tag) -> str:
    return (element.get_text() or '').strip()


def _post_type(url: str) -> PostType:
    if '/stories/' in url:
        return PostType.STORY
    if '/reel/' in url:
        return PostType.REEL
    return PostType.POST


class PostExtractor:
    """Extracts posts from one snapshot of a lazily loaded profile page"""

    def __init__(self, settle_delay: float = 2.0,
                 canonicalizer: Optional[PostURLCanonicalizer] = None):
        self.settle_delay = settle_delay
        self.canonicalizer = canonicalizer or PostURLCanonicalizer()

    async def extract(self, page: Page, auto_scroll: bool = True) -> ExtractionResult:
        """
        Run one scroll-and-read pass against a live page

        Args:
            page: Playwright page showing the profile
            auto_scroll: Scroll to the bottom before reading; when False the
                page is only read, for manual incremental collection

        Returns:
            ExtractionResult with the tick's posts and both scroll heights
        """
        try:
            height_before = await page.evaluate(SCROLL_HEIGHT_JS)

            if auto_scroll:
                await page.evaluate(SCROLL_TO_BOTTOM_JS)

            # Give lazy-loaded tiles time to render
            await asyncio.sleep(self.settle_delay)

            html_content = await page.content()
            height_after = await page.evaluate(SCROLL_HEIGHT_JS)
        except PlaywrightError as e:
            raise ExtractionError(f"Page became unreadable: {e}") from e

        result = self.parse_posts(html_content, page.url)
        result.scroll_height_before = int(height_before or 0)
        result.scroll_height_after = int(height_after or 0)

        logger.debug(
            f"Extracted {len(result.items)} posts from {page.url} "
            f"({result.strategy.value}, {result.fallback_count} fallback)"
        )
        return result

    def parse_posts(self, html_content: str, page_url: str) -> ExtractionResult:
        """Parse a page snapshot into posts without touching the browser"""
        soup = BeautifulSoup(html_content, 'html.parser')

        page_source = classify_page(page_url)
        title = soup.title.string.strip() if soup.title and soup.title.string else None
        author = author_from_page(page_url, title)

        containers = self._select_containers(soup, page_source)
        anchors = soup.select(POST_ANCHOR)

        if containers:
            strategy = ExtractionStrategy.CONTAINERS
        elif anchors:
            strategy = ExtractionStrategy.ANCHOR_FALLBACK
        else:
            return ExtractionResult(strategy=ExtractionStrategy.EMPTY)

        posts: Dict[str, Post] = {}
        fallback_urls: Set[str] = set()

        for container in containers:
            try:
                post = self._build_post(container, page_source, author, page_url)
            except Exception as e:
                logger.debug(f"Error extracting post data: {e}")
                post = self._fallback_post(container, page_source, author, page_url)
                if post and post.url not in posts:
                    posts[post.url] = post
                    fallback_urls.add(post.url)
                continue

            if post is None:
                continue

            # First rich entry wins, but it may replace a bare fallback entry
            if post.url in posts and post.url not in fallback_urls:
                continue

            posts[post.url] = post
            fallback_urls.discard(post.url)

        # Sweep up any post links the container pass missed
        for anchor in anchors:
            post = self._fallback_post(anchor, page_source, author, page_url)
            if post and post.url not in posts:
                posts[post.url] = post
                fallback_urls.add(post.url)

        return ExtractionResult(
            items=list(posts.values()),
            strategy=strategy,
            fallback_count=len(fallback_urls),
        )

    def _select_containers(self, soup: BeautifulSoup, page_source: PageSource) -> List[Tag]:
        """Pick candidate post containers for the classified surface"""
        if page_source == PageSource.PROFILE_GRID:
            # Grid tiles are post links wrapping a thumbnail
            return [a for a in soup.select(POST_ANCHOR) if a.find('img')]

        if page_source == PageSource.REELS_TAB:
            tiles = soup.select(BUTTON_POST_ANCHOR)
            seen = {id(tile) for tile in tiles}
            tiles += [a for a in soup.select(POST_ANCHOR)
                      if id(a) not in seen and (a.find('img') or a.find('span'))]
            return tiles

        articles = [article for article in soup.find_all('article')
                    if article.select_one(POST_ANCHOR)]
        return articles + soup.select(BUTTON_POST_ANCHOR)

    def _link_and_scope(self, container: Tag) -> Tuple[Optional[Tag], Tag]:
        if container.name == 'a':
            return container, container.find_parent('div') or container
        return container.select_one(POST_ANCHOR), container

    def _build_post(self, container: Tag, page_source: PageSource,
                    author: str, page_url: str) -> Optional[Post]:
        """Build a post with whatever metadata the container exposes"""
        link, scope = self._link_and_scope(container)
        if link is None or not self.canonicalizer.is_post_url(link.get('href')):
            return None

        url = self.canonicalizer.canonicalize(link['href'], page_url)
        if not url:
            return None

        post_type = _post_type(url)
        caption = ''
        thumbnail_url = None
        likes = comments = views = 0
        created_at = _now_iso()

        image = link.find('img')
        if image is not None and image.get('src'):
            thumbnail_url = urljoin(page_url, image['src'])

        if page_source == PageSource.PROFILE_GRID:
            # Grid view carries the caption in the thumbnail alt text and
            # shows no engagement counters
            if image is not None:
                caption = image.get('alt') or ''
        else:
            likes, comments, views = self._read_counters(scope, post_type)
            caption = self._longest_caption(scope)
            created_at = self._read_timestamp(scope) or created_at

        return Post(
            url=url,
            author=author,
            caption=caption,
            thumbnail_url=thumbnail_url,
            likes=likes,
            comments=comments,
            views=views if post_type == PostType.REEL and views > 0 else None,
            created_at=created_at,
            type=post_type,
            page_source=page_source,
        )

    def _fallback_post(self, container: Tag, page_source: PageSource,
                       author: str, page_url: str) -> Optional[Post]:
        """Bare entry holding just the link"""
        link, _ = self._link_and_scope(container)
        if link is None or not self.canonicalizer.is_post_url(link.get('href')):
            return None

        url = self.canonicalizer.canonicalize(link['href'], page_url)
        if not url:
            return None

        return Post(
            url=url,
            author=author,
            created_at=_now_iso(),
            type=_post_type(url),
            page_source=page_source,
        )

    def _read_counters(self, scope: Tag, post_type: PostType) -> Tuple[int, int, int]:
        """Read likes, comments and views, preferring labelled icons over position"""
        likes = comments = views = 0

        for span in scope.find_all('span'):
            text = _text(span)
            if not looks_like_counter(text):
                continue

            value = parse_count(text)
            holder = span.find_parent(['li', 'div', 'button'])
            label = self._icon_label(holder)

            if 'like' in label:
                likes = max(likes, value)
                continue
            if 'comment' in label:
                comments = max(comments, value)
                continue
            if 'view' in label or 'play' in label:
                views = max(views, value)
                continue

            position = self._sibling_index(holder)
            if position == 0 and value > 0:
                likes = max(likes, value)
            elif position == 1 and value > 0:
                comments = max(comments, value)
            elif post_type == PostType.REEL and value > 1000:
                views = max(views, value)

        return likes, comments, views

    @staticmethod
    def _icon_label(holder: Optional[Tag]) -> str:
        if holder is None:
            return ''
        icon = holder.find('svg', attrs={'aria-label': True})
        return icon['aria-label'].lower() if icon is not None else ''

    @staticmethod
    def _sibling_index(holder: Optional[Tag]) -> int:
        if holder is None or holder.parent is None:
            return -1
        siblings = [child for child in holder.parent.children if isinstance(child, Tag)]
        return next((i for i, sibling in enumerate(siblings) if sibling is holder), -1)

    @staticmethod
    def _longest_caption(scope: Tag) -> str:
        """Longest span text that is neither a counter, a timestamp nor metadata"""
        caption = ''
        for span in scope.find_all('span'):
            text = _text(span)
            if (len(text) > len(caption) and len(text) > MIN_CAPTION_LENGTH
                    and not looks_like_counter(text)
                    and 'ago' not in text
                    and '•' not in text):
                caption = text
        return caption

    @staticmethod
    def _read_timestamp(scope: Tag) -> Optional[str]:
        time_element = scope.find('time')
        if time_element is None:
            return None
        return time_element.get('datetime') or time_element.get('title') or _text(time_element) or None
