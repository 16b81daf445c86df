import re
from datetime import date, datetime, time


class DataTypeAnalyzer:
    """Classifies spreadsheet cell values and coerces them to numbers"""

    NUMBER = 'number'
    STRING = 'string'
    BOOLEAN = 'boolean'
    DATE = 'date'
    UNDEFINED = 'undefined'
    OBJECT = 'object'

    def __init__(self):
        # Decimal literals only: no hex, no thousands separators, no inf/nan
        self.numeric_pattern = re.compile(r'^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$')

    def infer_column_types(self, rows, headers):
        """Map each header to the type tag of its value in the first row.

        Later rows are never consulted, so a column whose first value is a
        number is reported as ``number`` even if other rows hold text.
        """
        first_row = rows[0] if rows else {}
        return {header: self.type_tag(first_row.get(header)) for header in headers}

    def type_tag(self, value):
        """Return the primitive type tag for a single cell value"""
        if value is None:
            return self.UNDEFINED
        # bool is a subclass of int, so it must be checked first
        if isinstance(value, bool):
            return self.BOOLEAN
        if isinstance(value, (int, float)):
            return self.NUMBER
        if isinstance(value, str):
            return self.STRING
        if isinstance(value, (datetime, date, time)):
            return self.DATE
        return self.OBJECT

    def is_numeric(self, value):
        """Check whether a value converts to a number without loss of meaning"""
        if isinstance(value, bool):
            return False
        if isinstance(value, (int, float)):
            return value == value
        if isinstance(value, str):
            return bool(self.numeric_pattern.match(value.strip()))
        return False

    def to_number(self, value):
        """Convert a numeric-coercible value to int or float"""
        if isinstance(value, (int, float)):
            return value

        text = value.strip()
        try:
            return int(text)
        except ValueError:
            return float(text)
