import asyncio
import inspect
import logging
from collections import defaultdict
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
from .metrics_collector import MetricsCollector

logger = logging.getLogger(__name__)

STATUS_UPDATE = 'status-update'
HISTORY_UPDATE = 'history-update'

Listener = Callable[[Any], Any]


class ProgressReporter:
    """Publishes status and history notifications and prints run reports

    Delivery is fire-and-forget: a listener that raises (or a coroutine
    listener whose task fails) is logged and never affects the publisher.
    """

    def __init__(self, metrics_collector: Optional[MetricsCollector] = None):
        self.metrics = metrics_collector
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)
        self._pending_tasks = set()

    def subscribe(self, event: str, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that removes it again"""
        self._listeners[event].append(listener)

        def unsubscribe():
            if listener in self._listeners[event]:
                self._listeners[event].remove(listener)

        return unsubscribe

    def publish(self, event: str, payload: Any):
        """Deliver a notification to every listener of the event"""
        for listener in list(self._listeners[event]):
            try:
                outcome = listener(payload)
                if inspect.isawaitable(outcome):
                    self._schedule(event, outcome)
            except Exception as e:
                logger.warning(f"Listener for {event} failed: {e}")

    def _schedule(self, event: str, awaitable):
        task = asyncio.ensure_future(awaitable)
        self._pending_tasks.add(task)

        def _done(finished: asyncio.Future):
            self._pending_tasks.discard(finished)
            if not finished.cancelled() and finished.exception() is not None:
                logger.warning(f"Listener for {event} failed: {finished.exception()}")

        task.add_done_callback(_done)

    def publish_status(self, status: Dict[str, Any]):
        self.publish(STATUS_UPDATE, status)

    def publish_history(self, history: List[Dict[str, Any]]):
        self.publish(HISTORY_UPDATE, history)

    def print_progress_report(self, username: str = None):
        """Print a summary of the finished run"""
        if self.metrics is None:
            return

        snapshot = self.metrics.get_current_snapshot()
        scrape_metrics = snapshot['scrape_metrics']
        system_metrics = snapshot['system_metrics']

        print(f"\n{'='*60}")
        print(f"📊 SCRAPE REPORT{' @' + username if username else ''} - {datetime.now().strftime('%H:%M:%S')}")
        print(f"{'='*60}")

        print(f"📜 Scrolling:")
        print(f"  Ticks: {scrape_metrics['ticks']}")
        print(f"  Ticks/minute: {scrape_metrics['ticks_per_minute']:.1f}")
        print(f"  Avg tick time: {scrape_metrics['avg_tick_time']:.2f}s")
        print(f"  Unmatched ticks: {scrape_metrics['unmatched_ticks']}")
        print(f"  Extraction errors: {scrape_metrics['extraction_errors']}")

        print(f"\n🖼️  Posts:")
        print(f"  Collected: {scrape_metrics['posts_collected']}")
        print(f"  Duplicates skipped: {scrape_metrics['duplicates_skipped']}")
        print(f"  Link-only entries: {scrape_metrics['fallback_posts']}")

        print(f"\n💻 System Resources:")
        print(f"  CPU: {system_metrics['cpu_percent']:.1f}%")
        print(f"  Memory: {system_metrics['process_rss_mb']:.0f} MB ({system_metrics['memory_percent']:.1f}% host)")
        print(f"  Browser processes: {system_metrics['child_processes']}")
        print(f"  Open files: {system_metrics['open_files']}")

    def get_final_report(self, error_summary: Dict[str, Any] = None) -> Dict[str, Any]:
        """Generate final run report"""
        report = {'final_snapshot': self.metrics.get_current_snapshot() if self.metrics else {}}
        if error_summary is not None:
            report['errors'] = error_summary
        return report
