import logging

from analyzers.data_type_analyzer import DataTypeAnalyzer


class NormalizedSheet:
    """A sheet after header extraction, type inference and counting.

    ``row_count`` and ``column_count`` are derived from ``data`` and
    ``headers`` on every access and cannot be assigned.
    """

    def __init__(self, sheet_name, headers, column_types, data):
        self.sheet_name = sheet_name
        self.headers = headers
        self.column_types = column_types
        self.data = data

    @property
    def row_count(self):
        return len(self.data)

    @property
    def column_count(self):
        return len(self.headers)

    def to_dict(self):
        """Serialize using the field names stored and returned by the API"""
        return {
            'sheetName': self.sheet_name,
            'headers': self.headers,
            'columnTypes': self.column_types,
            'data': self.data,
            'rowCount': self.row_count,
            'columnCount': self.column_count
        }


class SheetNormalizer:
    """Turns decoded sheets into NormalizedSheet objects"""

    def __init__(self):
        self.data_type_analyzer = DataTypeAnalyzer()

    def normalize(self, workbook):
        """Normalize every sheet of a decoded workbook, in decode order"""
        return [self.normalize_sheet(sheet) for sheet in workbook]

    def normalize_sheet(self, sheet):
        rows = sheet.rows

        # Header set comes from the first record only
        headers = list(rows[0].keys()) if rows else []
        column_types = self.data_type_analyzer.infer_column_types(rows, headers)

        normalized = NormalizedSheet(sheet.name, headers, column_types, rows)
        logging.debug(f"Normalized sheet '{sheet.name}': "
                      f"{normalized.row_count} rows, {normalized.column_count} columns")
        return normalized
