"""
Monitoring and observability modules
"""

from .metrics_collector import MetricsCollector
from .progress_reporter import ProgressReporter, STATUS_UPDATE, HISTORY_UPDATE
from .log_manager import LogManager
from .scrape_metrics import ScrapeMetrics
from .system_metrics import SystemMetrics

__all__ = [
    'MetricsCollector',
    'ProgressReporter',
    'STATUS_UPDATE',
    'HISTORY_UPDATE',
    'LogManager',
    'ScrapeMetrics',
    'SystemMetrics'
]
