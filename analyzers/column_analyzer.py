from .data_type_analyzer import DataTypeAnalyzer


class ColumnAnalyzer:
    """Structural validation and per-column statistics for normalized sheets"""

    def __init__(self):
        self.data_type_analyzer = DataTypeAnalyzer()

    def analyze_sheet(self, sheet):
        """Validate a normalized sheet and compute statistics for each header.

        ``sheet`` is the dictionary form of a normalized sheet, either fresh
        from the parser or loaded back from storage.
        """
        rows = sheet.get('data') or []
        headers = sheet.get('headers') or []

        return {
            'sheetName': sheet.get('sheetName'),
            'validation': self.validate(rows),
            'columns': {header: self.column_statistics(rows, header) for header in headers}
        }

    def validate(self, rows):
        """Check that rows exist, have headers and share the same shape"""
        first_row = rows[0] if rows else {}

        validation = {
            'hasData': len(rows) > 0,
            'hasHeaders': len(first_row) > 0,
            'isConsistent': True
        }

        if len(rows) > 1:
            expected = len(first_row)
            validation['isConsistent'] = all(len(row) == expected for row in rows)

        return validation

    def column_statistics(self, rows, header):
        """Compute numeric or categorical statistics for one column.

        Returns None when the column holds no values at all.
        """
        values = [row[header] for row in rows if row.get(header) is not None]

        if not values:
            return None

        if all(self.data_type_analyzer.is_numeric(value) for value in values):
            return self._numeric_statistics(values)

        return self._categorical_statistics(values)

    def _numeric_statistics(self, values):
        numbers = [self.data_type_analyzer.to_number(value) for value in values]

        total = 0
        for number in numbers:
            total += number

        return {
            'min': min(numbers),
            'max': max(numbers),
            'average': total / len(numbers),
            'sum': total,
            'count': len(numbers)
        }

    def _categorical_statistics(self, values):
        # Keyed by type tag too, so True and 1 (or "1" and 1) stay distinct
        unique = {}
        for value in values:
            key = (self.data_type_analyzer.type_tag(value), value)
            unique.setdefault(key, value)

        return {
            'uniqueValues': list(unique.values()),
            'count': len(values),
            'type': 'categorical'
        }
