"""
Scraper Controller - Command surface over the engine, job store and exports
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from playwright.async_api import Page

from .collector import CollectionEngine, EngineStatus
from .config import ScraperConfig
from .export import DownloadManager, ExportRenderer
from .extraction import PostExtractor
from .monitoring import LogManager, MetricsCollector, ProgressReporter
from .storage import HistoryRecord, JobStore, Settings
from .utils.error_handler import ErrorHandler, ExportError, ScraperError

logger = logging.getLogger(__name__)


class ScraperController:
    """
    Wires the collection engine to persistence and exports

    Built-in capabilities: status/history notifications, metrics, error
    tracking. Command names from the message protocol are accepted through
    dispatch().
    """

    def __init__(self, config: ScraperConfig = None, log_manager: LogManager = None):
        self.config = config or ScraperConfig()
        self.log_manager = log_manager

        # Built-in monitoring
        self.metrics_collector = MetricsCollector()
        self.reporter = ProgressReporter(self.metrics_collector)
        self.error_handler = ErrorHandler()

        self.store = JobStore(self.config.data_dir, reporter=self.reporter)
        self.extractor = PostExtractor(settle_delay=self.config.settle_delay)
        self.engine = CollectionEngine(
            self.store,
            extractor=self.extractor,
            reporter=self.reporter,
            metrics_collector=self.metrics_collector,
            error_handler=self.error_handler,
            log_manager=self.log_manager,
            tick_delay=self.config.tick_delay,
            tick_timeout=self.config.tick_timeout,
        )

        self.renderer = ExportRenderer()
        self.downloads = DownloadManager(self.config.downloads_dir)

        self._commands: Dict[str, Callable] = {
            'start-scraping': self._cmd_start,
            'stop-scraping': self._cmd_stop,
            'get-status': self._cmd_status,
            'download-partial': self._cmd_download_partial,
            'download-history': self._cmd_download_history,
            'export-data': self._cmd_export,
            'clear-history': self._cmd_clear_history,
            'update-settings': self._cmd_update_settings,
        }

    # -- engine ---------------------------------------------------------

    def start(self, page: Page) -> Optional[asyncio.Task]:
        return self.engine.start(page)

    def stop(self) -> bool:
        return self.engine.stop()

    def get_status(self) -> EngineStatus:
        return self.engine.status()

    async def wait(self) -> EngineStatus:
        """Wait for the running job, if any, to finish"""
        task = self.engine.task
        if task is not None and not task.done():
            await asyncio.shield(task)
        return self.engine.status()

    def subscribe(self, event: str, listener: Callable[[Any], Any]) -> Callable[[], None]:
        """Listen for 'status-update' or 'history-update' notifications"""
        return self.reporter.subscribe(event, listener)

    # -- history --------------------------------------------------------

    async def commit_pending(self) -> Optional[HistoryRecord]:
        return await self.store.commit_pending()

    async def list_history(self) -> List[HistoryRecord]:
        return await self.store.list_history()

    async def clear_history(self):
        await self.store.clear_all()

    async def update_settings(self, settings: Union[Settings, Dict[str, Any]]) -> Settings:
        if not isinstance(settings, Settings):
            settings = Settings.from_dict(settings or {})
        return await self.store.save_settings(settings)

    # -- exports --------------------------------------------------------

    async def export(self, record_id: int, export_format='json', filename: str = None) -> Path:
        """
        Render a stored job and write it to the downloads directory

        Raises:
            ExportError: the record does not exist, the format is unknown or
                the file could not be written
        """
        record = await self.store.fetch(record_id)
        if record is None:
            raise ExportError(f"No history record with id {record_id}")

        result = self.renderer.render(record, export_format, filename)
        self.downloads.suggest_filename(result.suggested_filename)
        return await self.downloads.download(result)

    async def download_partial(self, export_format='json', filename: str = None) -> Optional[Path]:
        """Commit the pending job and export it; None when nothing is pending"""
        record = await self.store.commit_pending()
        if record is None:
            logger.info("No pending job to download")
            return None
        return await self.export(record.id, export_format, filename)

    async def download_history(self, record_id: int) -> Path:
        """Export just the post links of a stored job as a JSON list"""
        record = await self.store.fetch(record_id)
        if record is None:
            raise ExportError(f"No history record with id {record_id}")

        result = self.renderer.render_links(record)
        self.downloads.suggest_filename(result.suggested_filename)
        return await self.downloads.download(result)

    # -- message protocol -----------------------------------------------

    async def dispatch(self, message: Dict[str, Any], page: Page = None) -> Dict[str, Any]:
        """
        Handle one command message

        Args:
            message: {'command': <name>, ...arguments}
            page: Page to scrape for 'start-scraping' when the message
                carries none

        Returns:
            {'ok': True, 'result': ...} or {'ok': False, 'error': ...}
        """
        command = message.get('command')
        handler = self._commands.get(command)
        if handler is None:
            logger.warning(f"Unknown command: {command}")
            return {'ok': False, 'error': f"Unknown command: {command}"}

        try:
            result = await handler(message, page)
        except ScraperError as e:
            logger.error(f"Command {command} failed: {e}")
            return {'ok': False, 'error': str(e)}
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Bad arguments for {command}: {e!r}")
            return {'ok': False, 'error': f"Bad arguments for {command}: {e!r}"}

        return {'ok': True, 'result': result}

    async def _cmd_start(self, message, page):
        return {'started': self.start(message.get('page') or page) is not None}

    async def _cmd_stop(self, message, page):
        return {'stop_requested': self.stop()}

    async def _cmd_status(self, message, page):
        return self.get_status().to_dict()

    async def _cmd_download_partial(self, message, page):
        path = await self.download_partial(message.get('format', 'json'), message.get('filename'))
        return str(path) if path else None

    async def _cmd_download_history(self, message, page):
        return str(await self.download_history(int(message['historyId'])))

    async def _cmd_export(self, message, page):
        path = await self.export(int(message['historyId']), message.get('format', 'json'),
                                 message.get('filename'))
        return str(path)

    async def _cmd_clear_history(self, message, page):
        await self.clear_history()
        return None

    async def _cmd_update_settings(self, message, page):
        return (await self.update_settings(message.get('settings') or {})).to_dict()
