"""Shared fixtures: a scripted stand-in for a Playwright page and profile markup."""

import asyncio

import pytest

from instaharvest.collector import CollectionEngine
from instaharvest.extraction import PostExtractor
from instaharvest.extraction.post_extractor import SCROLL_TO_BOTTOM_JS
from instaharvest.storage import JobStore

PROFILE_URL = "https://www.instagram.com/someuser/"
REELS_URL = "https://www.instagram.com/someuser/reels/"


def grid_html(codes, username="someuser"):
    """Profile grid markup with one thumbnail tile per post code."""
    tiles = "".join(
        f'<div class="tile"><a href="/{username}/p/{code}/">'
        f'<div><img src="https://cdn.example.com/{code}.jpg" alt="Caption for {code}"></div>'
        f"</a></div>"
        for code in codes
    )
    return (
        f"<html><head><title>Some User (@{username}) • Instagram photos and videos</title></head>"
        f"<body><main><div>{tiles}</div></main></body></html>"
    )


class FakePage:
    """Serves one HTML snapshot per content() call.

    Each tick is (html, grows). When a tick grows the page, the scroll height
    read after the snapshot is larger than the one read before it. A tick
    whose html is an exception instance raises it instead.
    """

    def __init__(self, url, ticks, closed=False, content_delay=0.0):
        self.url = url
        self.ticks = list(ticks)
        self.closed = closed
        self.content_delay = content_delay
        self.height = 1000
        self.scrolls = 0
        self.reads = 0

    def is_closed(self):
        return self.closed

    async def evaluate(self, script):
        if script == SCROLL_TO_BOTTOM_JS:
            self.scrolls += 1
            return None
        return self.height

    async def content(self):
        if self.content_delay:
            await asyncio.sleep(self.content_delay)

        html, grows = self.ticks[min(self.reads, len(self.ticks) - 1)]
        self.reads += 1
        if isinstance(html, Exception):
            raise html
        if grows:
            self.height += 1000
        return html


@pytest.fixture
def store(tmp_path):
    return JobStore(str(tmp_path / "data"))


@pytest.fixture
def engine(store):
    return CollectionEngine(store, extractor=PostExtractor(settle_delay=0), tick_delay=0)
