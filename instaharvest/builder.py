"""
Scraper Builder - Fluent API for configuring a scraper controller
"""

from .config import ScraperConfig
from .controller import ScraperController
from .monitoring import LogManager


class ScraperBuilder:
    """Builder for creating scraper controllers"""

    def __init__(self):
        self._options = {}
        self._logging = False

    def data_dir(self, path: str):
        """Directory holding history.json and settings.json"""
        self._options['data_dir'] = path
        return self

    def downloads_dir(self, path: str):
        self._options['downloads_dir'] = path
        return self

    def log_dir(self, path: str):
        self._options['log_dir'] = path
        return self

    def log_level(self, level: str):
        self._options['log_level'] = level
        return self

    def settle_delay(self, seconds: float):
        """Wait after each scroll before reading the page"""
        self._options['settle_delay'] = seconds
        return self

    def tick_delay(self, seconds: float):
        """Pause between ticks"""
        self._options['tick_delay'] = seconds
        return self

    def tick_timeout(self, seconds: float):
        """Abort a tick whose extraction takes longer than this"""
        self._options['tick_timeout'] = seconds
        return self

    def headless(self, enable: bool = True):
        self._options['headless'] = enable
        return self

    def storage_state(self, path: str):
        """Saved browser session to reuse a login"""
        self._options['storage_state'] = path
        return self

    def viewport(self, width: int, height: int):
        self._options['viewport_width'] = width
        self._options['viewport_height'] = height
        return self

    def with_logging(self, enable: bool = True):
        """Attach console, file and performance logs"""
        self._logging = enable
        return self

    def config(self) -> ScraperConfig:
        return ScraperConfig(**self._options)

    def build(self) -> ScraperController:
        """Build the configured controller"""
        config = self.config()
        log_manager = LogManager(config.log_dir, config.log_level) if self._logging else None
        return ScraperController(config, log_manager=log_manager)
