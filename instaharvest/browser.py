"""
Browser Session - Launches the Chromium page the collection engine drives
"""

import logging
from dataclasses import dataclass
from typing import Optional

from playwright.async_api import async_playwright, Browser, BrowserContext, Page, Playwright

logger = logging.getLogger(__name__)

CHROME_ARGS = [
    '--disable-blink-features=AutomationControlled',
    '--no-sandbox',
    '--disable-dev-shm-usage',
]

USER_AGENT = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) '
    'AppleWebKit/537.36 (KHTML, like Gecko) '
    'Chrome/133.0.0.0 Safari/537.36'
)


@dataclass
class BrowserSession:
    """Everything opened for one page, kept together for cleanup"""
    playwright: Playwright
    browser: Browser
    context: BrowserContext
    page: Page

    async def close(self):
        """Close the page, its context, the browser and Playwright itself"""
        for closer in (self.page.close, self.context.close, self.browser.close, self.playwright.stop):
            try:
                await closer()
            except Exception as e:
                logger.warning(f"Error closing browser session: {e}")


async def open_session(headless: bool = True, storage_state: Optional[str] = None,
                       viewport_width: int = 1366, viewport_height: int = 900) -> BrowserSession:
    """
    Launch Chromium and open one page

    Args:
        headless: Run without a visible window
        storage_state: Saved cookies/localStorage JSON; needed for profiles
            that require a logged-in session
        viewport_width: Desktop width; narrow viewports switch to the mobile layout
        viewport_height: Viewport height

    Returns:
        BrowserSession holding the page to scrape
    """
    playwright = await async_playwright().start()
    browser = await playwright.chromium.launch(headless=headless, args=CHROME_ARGS)

    context = await browser.new_context(
        storage_state=storage_state or None,
        user_agent=USER_AGENT,
        viewport={'width': viewport_width, 'height': viewport_height},
    )
    page = await context.new_page()

    logger.info(f"Browser ready (headless={headless}, logged in={bool(storage_state)})")
    return BrowserSession(playwright=playwright, browser=browser, context=context, page=page)
