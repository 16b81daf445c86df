import logging
from abc import ABC, abstractmethod


class DecodeError(Exception):
    """Raised when uploaded bytes cannot be read as a workbook"""


class Sheet:
    """One decoded sheet: its name and the records read from it"""

    def __init__(self, name, rows):
        self.name = name
        self.rows = rows

    def __repr__(self):
        return f"Sheet(name={self.name!r}, rows={len(self.rows)})"


class BaseParser(ABC):
    """Abstract base class for spreadsheet parsers"""

    @abstractmethod
    def decode(self, file_bytes):
        """Decode raw bytes into an ordered list of Sheet objects"""
        pass

    @abstractmethod
    def parse(self, file_bytes):
        """Decode and normalize raw bytes into the upload result"""
        pass


class FileParserFactory:
    """Factory class to get appropriate parser for file type"""

    MIME_TYPES = {
        'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet': 'xlsx',
        'application/vnd.ms-excel': 'xls',
    }

    def __init__(self):
        from .excel_parser import ExcelParser

        self.parsers = {
            'xls': ExcelParser(),
            'xlsx': ExcelParser(),
        }

    def get_parser(self, file_type):
        """Get parser for specific file type"""
        parser = self.parsers.get(file_type.lower())
        if not parser:
            raise ValueError(f"Unsupported file type: {file_type}")
        return parser

    def get_parser_for_mimetype(self, mimetype):
        """Get parser for an uploaded file's MIME type"""
        file_type = self.MIME_TYPES.get((mimetype or '').lower())
        if not file_type:
            logging.warning(f"Rejected upload with MIME type {mimetype!r}")
            raise ValueError(f"Unsupported MIME type: {mimetype}")
        return self.get_parser(file_type)
