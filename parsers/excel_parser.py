import io
import logging

import numpy as np
import pandas as pd

from .file_parser import BaseParser, DecodeError, Sheet
from .sheet_normalizer import SheetNormalizer


class ExcelParser(BaseParser):
    """Parser for Excel files (.xls and .xlsx)"""

    def __init__(self):
        self.normalizer = SheetNormalizer()

    def parse(self, file_bytes):
        """Decode and normalize an uploaded workbook.

        Returns ``{'success': True, 'data': [...], 'totalSheets': n}`` or
        ``{'success': False, 'error': message}`` when the bytes cannot be
        decoded.
        """
        try:
            workbook = self.decode(file_bytes)
        except DecodeError as e:
            logging.error(f"Error processing Excel file: {str(e)}")
            return {
                'success': False,
                'error': str(e)
            }

        sheets = self.normalizer.normalize(workbook)

        return {
            'success': True,
            'data': [sheet.to_dict() for sheet in sheets],
            'totalSheets': len(workbook)
        }

    def decode(self, file_bytes):
        """Read every sheet of the workbook, in file order"""
        try:
            with pd.ExcelFile(io.BytesIO(file_bytes)) as excel_file:
                workbook = []

                for sheet_name in excel_file.sheet_names:
                    df = pd.read_excel(
                        excel_file,
                        sheet_name=sheet_name,
                        dtype=object,
                        keep_default_na=False
                    )
                    workbook.append(Sheet(sheet_name, self._to_records(df)))

        except Exception as e:
            raise DecodeError(str(e)) from e

        logging.info(f"Decoded workbook with {len(workbook)} sheets")
        return workbook

    def _to_records(self, df):
        """Convert a sheet DataFrame into records keyed by header"""
        # Handle unnamed columns (common in Excel files)
        headers = [f'Column_{i}' if str(col).startswith('Unnamed:') else str(col)
                   for i, col in enumerate(df.columns)]

        records = []
        for row in df.itertuples(index=False, name=None):
            record = {}
            for header, value in zip(headers, row):
                cell = self._cell_value(value)
                if cell is not None:
                    record[header] = cell

            # Skip completely empty rows
            if record:
                records.append(record)

        return records

    def _cell_value(self, value):
        """Map a raw cell to int, float, str, bool or datetime; None when empty"""
        # Strings are kept verbatim, only a blank cell counts as empty
        if isinstance(value, str):
            return value if value != '' else None

        if value is None or pd.isna(value):
            return None

        if isinstance(value, (bool, np.bool_)):
            return bool(value)
        if isinstance(value, np.integer):
            return int(value)
        if isinstance(value, np.floating):
            return float(value)
        if isinstance(value, pd.Timestamp):
            return value.to_pydatetime()

        return value
