from enum import Enum

from ..utils.error_handler import ExportError


class ExportFormat(Enum):
    """Enum for the encodings a stored job can be rendered into"""
    JSON = 'json'
    CSV = 'csv'
    XLSX = 'xlsx'

    @property
    def extension(self) -> str:
        return self.value

    @property
    def mime_type(self) -> str:
        return MIME_TYPES[self]

    @classmethod
    def parse(cls, value) -> 'ExportFormat':
        """Accept an ExportFormat, its value, or the "excel" alias"""
        if isinstance(value, cls):
            return value

        name = str(value or '').strip().lower()
        if name == 'excel':
            return cls.XLSX
        try:
            return cls(name)
        except ValueError:
            raise ExportError(f"Unknown export format: {value!r}") from None


MIME_TYPES = {
    ExportFormat.JSON: 'application/json',
    ExportFormat.CSV: 'text/csv',
    ExportFormat.XLSX: 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
}
