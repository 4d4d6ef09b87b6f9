import os
import logging
import aiofiles
from pathlib import Path
from typing import Optional

from ..utils.error_handler import ExportError
from .renderer import ExportResult

logger = logging.getLogger(__name__)


class DownloadManager:
    """Materializes rendered exports as files

    Keeps a single-slot filename suggestion: each render overwrites it, and
    the naming hook offers it to the next download that is materialized.
    """

    def __init__(self, downloads_dir: str = 'scrape_data/downloads'):
        self.downloads_dir = Path(downloads_dir)
        self.suggested_filename: Optional[str] = None

    def suggest_filename(self, filename: str):
        self.suggested_filename = filename

    def determine_filename(self, default_filename: str) -> str:
        """Naming hook: apply the last suggestion if there is one"""
        return self.suggested_filename or default_filename

    async def download(self, result: ExportResult, filename: str = None) -> Path:
        """
        Write an export to the downloads directory

        Args:
            result: Rendered export
            filename: Name requested by the caller; the naming hook may
                replace it with the last suggested name

        Returns:
            Path of the written file

        Raises:
            ExportError: the file could not be written; no partial file is left
        """
        name = self.determine_filename(filename or result.suggested_filename)
        file_path = self._safe_path(name)
        tmp_path = file_path.with_name(file_path.name + '.part')

        try:
            content = result.decoded()
            file_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(tmp_path, 'wb') as f:
                await f.write(content)
            os.replace(tmp_path, file_path)
        except Exception as e:
            if tmp_path.exists():
                tmp_path.unlink()
            raise ExportError(f"Could not write download {file_path}: {e}") from e

        logger.info(f"Downloaded {file_path} ({len(content)} bytes)")
        return file_path

    def _safe_path(self, name: str) -> Path:
        """Resolve a file name inside the downloads directory"""
        base = self.downloads_dir.resolve()
        candidate = (base / name).resolve()
        if base != candidate and base not in candidate.parents:
            raise ExportError(f"Refusing to write outside {base}: {name}")
        return candidate
