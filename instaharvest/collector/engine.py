"""
Collection Engine - Scroll-and-collect state machine for one profile at a time
"""

import time
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from playwright.async_api import Page

from ..deduplication import PostAccumulator
from ..extraction import PostExtractor, ExtractionResult, username_from_url
from ..monitoring import MetricsCollector, ProgressReporter, LogManager
from ..storage import JobStore, Settings
from ..utils.error_handler import (
    ErrorHandler, ErrorType, StorageError, TargetUnavailableError
)
from .status import EngineStatus

logger = logging.getLogger(__name__)

SOURCE_HOST_MARKER = 'instagram.com/'

MESSAGE_READY = 'Ready'
MESSAGE_STOPPED = 'Scraping stopped by user.'
MESSAGE_FINISHED = 'Scraping finished.'
MESSAGE_FINISHED_AFTER_ERROR = 'Scraping finished early after an extraction error.'


@dataclass
class _Job:
    """In-flight job; owned by the engine task and never handed out"""
    username: str
    target: str
    accumulator: PostAccumulator = field(default_factory=PostAccumulator)
    cancel_requested: bool = False
    failed: bool = False
    ticks: int = 0


class CollectionEngine:
    """
    Runs the tick loop: scroll, settle, extract, merge, report

    States are Idle (no job) and Running (one job). The stop flag is only
    sampled between ticks, so an extraction already in flight always
    completes before a stop takes effect.
    """

    def __init__(self, store: JobStore, extractor: PostExtractor = None,
                 reporter: ProgressReporter = None,
                 metrics_collector: MetricsCollector = None,
                 error_handler: ErrorHandler = None,
                 log_manager: LogManager = None,
                 tick_delay: float = 1.0, tick_timeout: Optional[float] = None):
        self.store = store
        self.extractor = extractor or PostExtractor()
        self.metrics_collector = metrics_collector or MetricsCollector()
        self.reporter = reporter or ProgressReporter(self.metrics_collector)
        self.error_handler = error_handler or ErrorHandler()
        self.log_manager = log_manager
        self.tick_delay = tick_delay
        self.tick_timeout = tick_timeout

        self._job: Optional[_Job] = None
        self._task: Optional[asyncio.Task] = None
        self._message = MESSAGE_READY
        self._last_count = 0
        self._last_target: Optional[str] = None
        self._last_username: Optional[str] = None

    @property
    def is_running(self) -> bool:
        return self._job is not None

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    def status(self) -> EngineStatus:
        """Read-only copy of the current state"""
        job = self._job
        return EngineStatus(
            is_running=job is not None,
            message=self._message,
            count=len(job.accumulator) if job else self._last_count,
            current_target=job.target if job else self._last_target,
            current_username=job.username if job else self._last_username,
            stop_requested=job.cancel_requested if job else False,
        )

    def start(self, page: Page) -> Optional[asyncio.Task]:
        """
        Begin collecting from a page

        Returns:
            The task running the job, or None when a job is already running
            or the page is not a usable target
        """
        if self.is_running:
            logger.info("Start ignored: a job is already running")
            return None

        try:
            target = self._resolve_target(page)
        except TargetUnavailableError as e:
            self.error_handler.record_error(str(getattr(page, 'url', None)), e)
            return None

        # Claim the Running state before yielding to the loop so a second
        # start() cannot slip in
        self._job = _Job(username=username_from_url(target, SOURCE_HOST_MARKER), target=target)
        self._message = f"Scraping @{self._job.username}..."
        self.store.discard_pending()
        self._task = asyncio.create_task(self._run_job(page, self._job))
        return self._task

    async def run(self, page: Page) -> EngineStatus:
        """Start a job and wait for it to finish"""
        task = self.start(page)
        if task is None:
            return self.status()
        return await task

    def stop(self) -> bool:
        """Request a stop; honoured at the next tick boundary"""
        if not self.is_running:
            return False
        if self._job.cancel_requested:
            return True

        self._job.cancel_requested = True
        logger.info(f"Stop requested for @{self._job.username}")
        self._publish_status()
        return True

    def _resolve_target(self, page: Page) -> str:
        if page is None:
            raise TargetUnavailableError("No page to scrape")
        if page.is_closed():
            raise TargetUnavailableError("Page is closed")

        url = page.url or ''
        if SOURCE_HOST_MARKER not in url:
            raise TargetUnavailableError(f"Not an Instagram page: {url}")
        return url

    async def _run_job(self, page: Page, job: _Job) -> EngineStatus:
        """Main tick loop"""
        self.metrics_collector.reset()
        logger.info(f"Starting job for @{job.username} on {job.target}")
        self._publish_status()

        try:
            try:
                settings = await self.store.load_settings()
            except StorageError as e:
                logger.warning(f"Using default settings: {e}")
                settings = Settings()

            while not job.cancel_requested:
                job.ticks += 1
                tick_started = time.time()

                try:
                    result = await self._extract(page, settings.auto_scroll)
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    error_type = self.error_handler.classify_error(e)
                    if error_type != ErrorType.EXTRACTION_TIMEOUT:
                        error_type = ErrorType.EXTRACTION_FAILURE
                    self.error_handler.record_error(job.target, e, error_type, tick=job.ticks)
                    self.metrics_collector.record_error()
                    job.failed = True
                    break

                self._merge_tick(job, result, time.time() - tick_started)

                if result.end_of_page or job.cancel_requested:
                    break

                # Pace the scrolling
                await asyncio.sleep(self.tick_delay)

        except asyncio.CancelledError:
            # Task cancellation keeps the data like a user stop would
            job.cancel_requested = True
            raise
        finally:
            await self._finish(job)

        return self.status()

    async def _extract(self, page: Page, auto_scroll: bool) -> ExtractionResult:
        extraction = self.extractor.extract(page, auto_scroll=auto_scroll)
        if self.tick_timeout:
            return await asyncio.wait_for(extraction, timeout=self.tick_timeout)
        return await extraction

    def _merge_tick(self, job: _Job, result: ExtractionResult, tick_time: float):
        new_posts = job.accumulator.merge(result.items)

        self.metrics_collector.record_tick(
            tick_time, found=len(result.items), new=new_posts,
            fallback=result.fallback_count, matched_markup=result.matched_markup
        )
        if self.log_manager:
            self.log_manager.log_tick(
                job.username, job.ticks, tick_time,
                found=len(result.items), new=new_posts, total=len(job.accumulator),
                strategy=result.strategy.value, end_of_page=result.end_of_page
            )

        if not result.matched_markup and result.items:
            logger.warning(f"Tick {job.ticks}: no post containers matched, using bare links")

        logger.info(f"Tick {job.ticks}: {len(result.items)} found, {new_posts} new, "
                    f"{len(job.accumulator)} total for @{job.username}")
        self._publish_status()

    async def _finish(self, job: _Job):
        """Hand collected posts to the store and return to Idle"""
        posts = job.accumulator.snapshot()
        stopped = job.cancel_requested

        if stopped:
            message = MESSAGE_STOPPED
        elif job.failed:
            message = MESSAGE_FINISHED_AFTER_ERROR
        else:
            message = MESSAGE_FINISHED

        record_id = None
        try:
            if posts and not stopped:
                try:
                    record_id = (await self.store.commit(job.username, posts)).id
                except StorageError as e:
                    self.error_handler.record_error(job.target, e)
                    message = f"{message} Saving to history failed: {e}"
        finally:
            # The pending copy is kept whatever the commit did so a later
            # partial download still has data to act on
            if posts:
                self.store.stash_pending(job.username, posts, record_id=record_id)

            self._message = message
            self._last_count = len(posts)
            self._last_target = job.target
            self._last_username = job.username
            self._job = None

            logger.info(f"{message} @{job.username}: {len(posts)} posts in {job.ticks} ticks")
            self._publish_status()

        if self.log_manager:
            self.log_manager.log_job_finished(job.username, len(posts), job.ticks, self._message)
            report = self.reporter.get_final_report(self.error_handler.get_error_summary())
            try:
                self.log_manager.export_job_metrics(job.username, report)
            except OSError as e:
                logger.warning(f"Could not export job metrics: {e}")

    def _publish_status(self):
        self.reporter.publish_status(self.status().to_dict())
