from dataclasses import dataclass


@dataclass
class ScrapeMetrics:
    """Core scroll-and-collect metrics for one job"""
    ticks: int = 0
    ticks_per_minute: float = 0.0
    posts_collected: int = 0
    duplicates_skipped: int = 0
    fallback_posts: int = 0
    unmatched_ticks: int = 0  # ticks where no surface containers matched
    avg_tick_time: float = 0.0
    extraction_errors: int = 0
