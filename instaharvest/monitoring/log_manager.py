import json
import logging
from pathlib import Path
from datetime import datetime
from typing import Dict, Any, Optional


class LogManager:
    """Process logging for scraping runs

    Sets up the console, a daily scraper log and a warnings-only log on the
    root logger. Tick timings go to a separate JSON-lines file and each
    finished job can drop its metrics report next to the logs.
    """

    def __init__(self, log_dir: str = "scrape_data/logs", log_level: str = "INFO"):
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.setup_logging(log_level)

    def setup_logging(self, log_level: str):
        detailed_formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
        )
        simple_formatter = logging.Formatter(
            '%(asctime)s - %(levelname)s - %(message)s'
        )

        root_logger = logging.getLogger()
        root_logger.setLevel(getattr(logging, log_level.upper()))
        root_logger.handlers.clear()

        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.INFO)
        console_handler.setFormatter(simple_formatter)
        root_logger.addHandler(console_handler)

        day = datetime.now().strftime('%Y%m%d')

        scraper_handler = logging.FileHandler(self.log_dir / f"scraper_{day}.log", encoding='utf-8')
        scraper_handler.setLevel(logging.DEBUG)
        scraper_handler.setFormatter(detailed_formatter)
        root_logger.addHandler(scraper_handler)

        warning_handler = logging.FileHandler(self.log_dir / f"errors_{day}.log", encoding='utf-8')
        warning_handler.setLevel(logging.WARNING)
        warning_handler.setFormatter(detailed_formatter)
        root_logger.addHandler(warning_handler)

        # Tick timings as JSON lines, kept out of the main log
        self.perf_handler = logging.FileHandler(self.log_dir / f"performance_{day}.log", encoding='utf-8')
        self.perf_logger = logging.getLogger('instaharvest.performance')
        self.perf_logger.setLevel(logging.INFO)
        self.perf_logger.handlers.clear()
        self.perf_logger.addHandler(self.perf_handler)
        self.perf_logger.propagate = False

    def log_tick(self, username: str, tick: int, tick_time: float, found: int, new: int,
                 total: int, strategy: str, end_of_page: bool):
        """
        Record one scroll-and-read pass

        Args:
            username: Profile being collected
            tick: 1-based tick number within the job
            tick_time: Seconds the pass took, settle delay included
            found: Posts the snapshot held
            new: Posts the merge added to the job
            total: Job size after the merge
            strategy: How the posts were located (see ExtractionStrategy)
            end_of_page: Whether the page stopped growing on this pass
        """
        self._write_event('tick', {
            'username': username,
            'tick': tick,
            'tick_time': round(tick_time, 3),
            'found': found,
            'new': new,
            'duplicates': found - new,
            'total': total,
            'strategy': strategy,
            'end_of_page': end_of_page,
        })

    def log_job_finished(self, username: str, count: int, ticks: int, message: str):
        """Record the end of a job alongside its ticks"""
        self._write_event('job_finished', {
            'username': username,
            'count': count,
            'ticks': ticks,
            'message': message,
        })

    def export_job_metrics(self, username: str, report: Dict[str, Any],
                           filename: Optional[str] = None) -> Path:
        """Write a job's final metrics report as JSON into the log directory"""
        if filename is None:
            filename = f"job_{username}_{datetime.now().strftime('%Y%m%d_%H%M%S')}_metrics.json"

        export_path = self.log_dir / filename
        with open(export_path, 'w', encoding='utf-8') as f:
            json.dump(report, f, indent=2, default=str)

        logging.getLogger(__name__).info(f"Metrics for @{username} exported to {export_path}")
        return export_path

    def _write_event(self, event_type: str, fields: Dict[str, Any]):
        event = {'timestamp': datetime.now().isoformat(), 'event_type': event_type}
        event.update(fields)
        self.perf_logger.info(json.dumps(event, default=str))
