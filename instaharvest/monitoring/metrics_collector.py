import time
import psutil
import logging
from datetime import datetime
from dataclasses import asdict
from typing import Dict, Any
from collections import deque
from .scrape_metrics import ScrapeMetrics
from .system_metrics import SystemMetrics

logger = logging.getLogger(__name__)


class MetricsCollector:
    """Collects and aggregates metrics for the running job"""

    def __init__(self):
        self.start_time = time.time()

        # Metrics storage
        self.scrape_metrics = ScrapeMetrics()
        self.system_metrics = SystemMetrics()

        # Performance tracking
        self.tick_times: deque = deque(maxlen=100)
        self.tick_events: deque = deque(maxlen=1000)

    def reset(self):
        """Start a fresh set of metrics for a new job"""
        self.start_time = time.time()
        self.scrape_metrics = ScrapeMetrics()
        self.tick_times.clear()
        self.tick_events.clear()

    def record_tick(self, tick_time: float, found: int, new: int,
                    fallback: int = 0, matched_markup: bool = True):
        """Record a completed extraction tick"""
        metrics = self.scrape_metrics
        metrics.ticks += 1
        metrics.posts_collected += new
        metrics.duplicates_skipped += found - new
        metrics.fallback_posts += fallback
        if not matched_markup:
            metrics.unmatched_ticks += 1

        self.tick_times.append(tick_time)
        self.tick_events.append({
            'timestamp': datetime.now(),
            'tick': metrics.ticks,
            'tick_time': tick_time,
            'found': found,
            'new': new
        })

        self._update_calculated_metrics()

    def record_error(self):
        """Record a failed extraction tick"""
        self.scrape_metrics.extraction_errors += 1

    def collect_system_metrics(self):
        """Collect current system resource metrics"""
        try:
            self.system_metrics.cpu_percent = psutil.cpu_percent(interval=None)
            self.system_metrics.memory_percent = psutil.virtual_memory().percent

            process = psutil.Process()
            self.system_metrics.process_rss_mb = process.memory_info().rss / (1024 * 1024)
            self.system_metrics.child_processes = len(process.children(recursive=True))

            try:
                self.system_metrics.open_files = process.num_fds() if hasattr(process, 'num_fds') else len(process.open_files())
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                self.system_metrics.open_files = 0

        except Exception as e:
            logger.warning(f"Failed to collect system metrics: {e}")

    def _update_calculated_metrics(self):
        elapsed_time = time.time() - self.start_time

        if elapsed_time > 0:
            self.scrape_metrics.ticks_per_minute = self.scrape_metrics.ticks / elapsed_time * 60

        if self.tick_times:
            self.scrape_metrics.avg_tick_time = sum(self.tick_times) / len(self.tick_times)

    def get_current_snapshot(self) -> Dict[str, Any]:
        """Get current metrics snapshot"""
        self.collect_system_metrics()

        return {
            'timestamp': datetime.now().isoformat(),
            'uptime_seconds': time.time() - self.start_time,
            'scrape_metrics': asdict(self.scrape_metrics),
            'system_metrics': asdict(self.system_metrics)
        }
