import os
import json
import time
import asyncio
import logging
import aiofiles
from pathlib import Path
from typing import Any, Iterable, List, Optional

from ..extraction.post import Post
from ..monitoring.progress_reporter import ProgressReporter
from ..utils.error_handler import StorageError
from .history_record import HistoryRecord, PendingJob
from .settings import Settings

logger = logging.getLogger(__name__)


class JobStore:
    """Append-only job history, the pending-job slot and persisted settings

    History and settings live in separate JSON files under base_path. Every
    write goes to a temporary file that replaces the target only once it is
    complete, so a failed write leaves the previous state intact.
    """

    HISTORY_FILE = 'history.json'
    SETTINGS_FILE = 'settings.json'

    def __init__(self, base_path: str = 'scrape_data', reporter: Optional[ProgressReporter] = None):
        self.base_path = Path(base_path)
        self.reporter = reporter
        self._pending: Optional[PendingJob] = None
        self._lock = asyncio.Lock()
        self.setup_directories()

    def setup_directories(self):
        """Create base directory structure"""
        self.base_path.mkdir(parents=True, exist_ok=True)

    # -- pending slot ---------------------------------------------------

    @property
    def pending(self) -> Optional[PendingJob]:
        return self._pending

    def stash_pending(self, username: str, posts: Iterable[Post],
                      record_id: Optional[int] = None) -> PendingJob:
        """Keep a job for a later commit_pending(), replacing any older one

        record_id marks a job whose posts were already committed as that record.
        """
        self._pending = PendingJob(username=username, items=tuple(posts), record_id=record_id)
        logger.info(f"Stashed pending job for @{username} ({self._pending.count} posts)")
        return self._pending

    def discard_pending(self):
        self._pending = None

    # -- history --------------------------------------------------------

    async def list_history(self) -> List[HistoryRecord]:
        """All committed records, most recent first"""
        return await self._read_history()

    async def commit(self, username: str, posts: Iterable[Post]) -> HistoryRecord:
        """
        Commit a job to history

        Args:
            username: Profile the posts were collected from
            posts: Collected posts; repeated urls keep their first entry

        Returns:
            The new HistoryRecord, now at the head of the history

        Raises:
            StorageError: the history could not be read or written
        """
        async with self._lock:
            history = await self._read_history()
            record = HistoryRecord.create(self._next_id(history), username, posts)
            updated = [record] + history
            await self._write_json(self.HISTORY_FILE, [r.to_dict() for r in updated])

        logger.info(f"Committed job {record.id} for @{username} ({record.count} posts)")
        self._notify_history(updated)
        return record

    async def commit_pending(self) -> Optional[HistoryRecord]:
        """Commit the pending job, if any, and clear the slot

        A job that was already committed resolves to its existing record, so
        the slot commits at most once.
        """
        pending = self._pending
        if pending is None:
            return None

        # Take the slot before awaiting so a concurrent call cannot commit twice
        self._pending = None
        try:
            if pending.record_id is not None:
                record = await self.fetch(pending.record_id)
                if record is not None:
                    logger.info(f"Pending job for @{pending.username} already committed as {record.id}")
                    return record
            return await self.commit(pending.username, pending.items)
        except StorageError:
            if self._pending is None:
                self._pending = pending
            raise

    async def fetch(self, record_id: int) -> Optional[HistoryRecord]:
        """Look up a record by id; None when it does not exist"""
        for record in await self._read_history():
            if record.id == record_id:
                return record
        return None

    async def latest(self) -> Optional[HistoryRecord]:
        history = await self._read_history()
        return history[0] if history else None

    async def clear_all(self):
        """Drop every committed record"""
        async with self._lock:
            await self._write_json(self.HISTORY_FILE, [])

        logger.info("History cleared")
        self._notify_history([])

    # -- settings -------------------------------------------------------

    async def load_settings(self) -> Settings:
        data = await self._read_json(self.SETTINGS_FILE, default={})
        if not isinstance(data, dict):
            raise StorageError(f"Corrupt settings in {self.base_path / self.SETTINGS_FILE}")
        try:
            return Settings.from_dict(data)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise StorageError(f"Corrupt settings in {self.base_path / self.SETTINGS_FILE}: {e}") from e

    async def save_settings(self, settings: Settings) -> Settings:
        async with self._lock:
            await self._write_json(self.SETTINGS_FILE, settings.to_dict())
        logger.info(f"Settings updated: {settings.to_dict()}")
        return settings

    # -- internals ------------------------------------------------------

    @staticmethod
    def _next_id(history: List[HistoryRecord]) -> int:
        """Creation-time id, bumped past the newest one to stay strictly increasing"""
        now_ms = int(time.time() * 1000)
        if not history:
            return now_ms
        return max(now_ms, max(record.id for record in history) + 1)

    async def _read_history(self) -> List[HistoryRecord]:
        raw = await self._read_json(self.HISTORY_FILE, default=[])
        if not isinstance(raw, list) or not all(isinstance(entry, dict) for entry in raw):
            raise StorageError(f"Corrupt history in {self.base_path / self.HISTORY_FILE}: expected a list of records")
        try:
            return [HistoryRecord.from_dict(entry) for entry in raw]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise StorageError(f"Corrupt history in {self.base_path / self.HISTORY_FILE}: {e}") from e

    async def _read_json(self, name: str, default: Any) -> Any:
        file_path = self.base_path / name
        if not file_path.exists():
            return default

        try:
            async with aiofiles.open(file_path, 'r', encoding='utf-8') as f:
                content = await f.read()
            return json.loads(content) if content.strip() else default
        except (OSError, ValueError) as e:
            raise StorageError(f"Could not read {file_path}: {e}") from e

    async def _write_json(self, name: str, data: Any):
        file_path = self.base_path / name
        tmp_path = file_path.with_name(file_path.name + '.tmp')

        try:
            payload = json.dumps(data, indent=2, ensure_ascii=False)
            async with aiofiles.open(tmp_path, 'w', encoding='utf-8') as f:
                await f.write(payload)
            os.replace(tmp_path, file_path)
        except (OSError, TypeError, ValueError) as e:
            if tmp_path.exists():
                tmp_path.unlink()
            raise StorageError(f"Could not write {file_path}: {e}") from e

    def _notify_history(self, history: List[HistoryRecord]):
        if self.reporter is None:
            return
        self.reporter.publish_history([record.to_dict() for record in history])
