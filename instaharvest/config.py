from dataclasses import dataclass
from typing import Optional


@dataclass
class ScraperConfig:
    """Configuration for a harvester instance"""
    data_dir: str = "scrape_data"
    downloads_dir: str = None
    log_dir: str = None
    log_level: str = "INFO"
    settle_delay: float = 2.0          # seconds to wait after a scroll before reading
    tick_delay: float = 1.0            # seconds between ticks
    tick_timeout: Optional[float] = None  # per-tick extraction limit, None = unlimited
    headless: bool = True
    storage_state: Optional[str] = None
    viewport_width: int = 1366
    viewport_height: int = 900

    def __post_init__(self):
        if self.downloads_dir is None:
            self.downloads_dir = f"{self.data_dir}/downloads"
        if self.log_dir is None:
            self.log_dir = f"{self.data_dir}/logs"
        if self.settle_delay < 0 or self.tick_delay < 0:
            raise ValueError("Delays must be non-negative")
