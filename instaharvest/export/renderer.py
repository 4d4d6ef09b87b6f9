"""
Export Renderer - Turns stored jobs into JSON, CSV or XLSX payloads
"""

import io
import re
import csv
import json
import base64
import logging
from dataclasses import dataclass
from typing import Optional

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE

from ..extraction.post import Post
from ..storage.history_record import HistoryRecord
from ..utils.error_handler import ExportError
from .export_format import ExportFormat

logger = logging.getLogger(__name__)

COLUMNS = [
    'URL', 'Author', 'Caption', 'Thumbnail URL', 'Likes',
    'Comments', 'Created At', 'Views', 'Type', 'Page Type'
]

POSTS_SHEET = 'Instagram Posts'
LINKS_SHEET = 'Instagram Links'

_LINE_BREAKS_RE = re.compile(r'[\r\n]+')


@dataclass(frozen=True)
class ExportResult:
    """A rendered job ready to be handed to a download"""
    payload: bytes
    mime_type: str
    suggested_filename: str
    encoding: str = 'utf-8'  # 'base64' for binary formats

    @property
    def is_base64(self) -> bool:
        return self.encoding == 'base64'

    def decoded(self) -> bytes:
        """Raw file bytes, undoing the transfer encoding"""
        if self.is_base64:
            return base64.b64decode(self.payload)
        return self.payload


def single_line(value: Optional[str]) -> str:
    """Collapse embedded line breaks so a value never spans rows"""
    return _LINE_BREAKS_RE.sub(' ', value or '')


def default_filename(record: HistoryRecord, export_format: ExportFormat) -> str:
    return f"{record.username}_{record.id}.{export_format.extension}"


def post_row(post: Post) -> list:
    """One post in column order; absent views stay None"""
    return [
        single_line(post.url),
        single_line(post.author),
        single_line(post.caption),
        single_line(post.thumbnail_url),
        post.likes,
        post.comments,
        single_line(post.created_at),
        post.views,
        post.type.value,
        post.page_source.value,
    ]


class ExportRenderer:
    """Renders HistoryRecords into downloadable payloads"""

    def render(self, record: HistoryRecord, export_format, filename: str = None) -> ExportResult:
        """
        Render a record in the requested format

        Args:
            record: Stored job to render
            export_format: ExportFormat or its name ("json", "csv", "xlsx", "excel")
            filename: Optional file name; defaults to <username>_<id>.<ext>

        Returns:
            ExportResult with payload, MIME type and suggested file name

        Raises:
            ExportError: unknown format or rendering failure
        """
        if record is None:
            raise ExportError("No record to export")

        export_format = ExportFormat.parse(export_format)
        suggested = filename or default_filename(record, export_format)

        try:
            if export_format == ExportFormat.JSON:
                payload, encoding = self.render_json(record), 'utf-8'
            elif export_format == ExportFormat.CSV:
                payload, encoding = self.render_csv(record), 'utf-8'
            else:
                payload, encoding = self.render_xlsx(record), 'base64'
        except ExportError:
            raise
        except Exception as e:
            raise ExportError(f"Failed to render record {record.id} as {export_format.value}: {e}") from e

        logger.info(f"Rendered record {record.id} as {export_format.value} ({len(payload)} bytes)")
        return ExportResult(
            payload=payload,
            mime_type=export_format.mime_type,
            suggested_filename=suggested,
            encoding=encoding,
        )

    def render_json(self, record: HistoryRecord) -> bytes:
        return json.dumps(record.to_dict(), indent=2, ensure_ascii=False).encode('utf-8')

    def render_csv(self, record: HistoryRecord) -> bytes:
        output = io.StringIO()
        plain_writer = csv.writer(output, lineterminator='\n')

        if not record.has_rich_items:
            # Legacy record: just the links
            plain_writer.writerow(['URL'])
            for link in record.links:
                plain_writer.writerow([single_line(link)])
            return output.getvalue().encode('utf-8')

        plain_writer.writerow(COLUMNS)
        row_writer = csv.writer(output, quoting=csv.QUOTE_NONNUMERIC, lineterminator='\n')
        for post in record.items:
            row = post_row(post)
            # Views is numeric when present and an empty field otherwise
            row[7] = '' if row[7] is None else row[7]
            row_writer.writerow(row)

        return output.getvalue().encode('utf-8')

    def render_xlsx(self, record: HistoryRecord) -> bytes:
        """Workbook bytes, base64 encoded for transfer"""
        workbook = Workbook()
        sheet = workbook.active

        if record.has_rich_items:
            sheet.title = POSTS_SHEET
            sheet.append(COLUMNS)
            for post in record.items:
                sheet.append([self._cell(value) for value in post_row(post)])
        else:
            sheet.title = LINKS_SHEET
            sheet.append(['URL'])
            for link in record.links:
                sheet.append([self._cell(link)])

        buffer = io.BytesIO()
        workbook.save(buffer)
        return base64.b64encode(buffer.getvalue())

    @staticmethod
    def _cell(value):
        if isinstance(value, str):
            return ILLEGAL_CHARACTERS_RE.sub('', value)
        return value

    def render_links(self, record: HistoryRecord) -> ExportResult:
        """Plain JSON list of the record's post links"""
        payload = json.dumps(list(record.links), indent=2, ensure_ascii=False).encode('utf-8')
        return ExportResult(
            payload=payload,
            mime_type=ExportFormat.JSON.mime_type,
            suggested_filename=f"{record.username}_ig_posts_{record.id}.json",
        )
