"""
Excel Parser - Universal Excel/CSV Import
==========================================

Parses an Excel or CSV prospect list and auto-detects its columns.
Supports .xlsx, .xls, and .csv formats, from a path or an uploaded buffer.
"""

import io
import zipfile
import logging
from pathlib import Path
from typing import List, Dict, Optional, Tuple

import pandas as pd

from ...domain import ProspectRow, ValidationError

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = ['.xlsx', '.xls', '.csv']

# Common column name variations for auto-detection
NAME_PATTERNS = ['name', 'customer', 'client', 'full_name', 'fullname', 'prospect', 'patient']
CATEGORY_PATTERNS = ['skin problems', 'skin problem', 'skin_problems', 'problem', 'category',
                     'ailment', 'concern', 'condition', 'issue']
PHONE_PATTERNS = ['phone', 'mobile', 'cell', 'telephone', 'contact', 'number', 'phone_number', 'whatsapp']
KEY_PATTERNS = ['uniqueid', 'unique_id', 'unique id', 'external_key', 'external key']


class ExcelParser:
    """
    Universal Excel/CSV parser with auto-detection of prospect columns.

    Usage:
        parser = ExcelParser()
        rows, columns = parser.parse("prospects.xlsx")
        # rows: [ProspectRow(name="Ann", category="Acne", phone_number="111"), ...]
    """

    def __init__(self):
        self.detected_columns: Dict[str, Optional[str]] = {}

    def parse(self, file_path: str, sheet_name: Optional[str] = None) -> Tuple[List[ProspectRow], Dict[str, Optional[str]]]:
        """Parse a file on disk."""
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        return self.parse_bytes(path.read_bytes(), path.name, sheet_name)

    def parse_bytes(
        self,
        content: bytes,
        filename: str,
        sheet_name: Optional[str] = None,
    ) -> Tuple[List[ProspectRow], Dict[str, Optional[str]]]:
        """
        Parse an uploaded file held in memory (no temp file).

        Args:
            content: Raw file bytes
            filename: Original name, used only for the extension
            sheet_name: Optional sheet name for Excel files

        Returns:
            Tuple of (prospect rows, detected column mapping)
        """
        ext = Path(filename).suffix.lower()
        if ext not in SUPPORTED_EXTENSIONS:
            raise ValidationError(f"Unsupported file format: {ext}. Use .xlsx, .xls, or .csv")

        buffer = io.BytesIO(content)

        # dtype=str keeps phone numbers from turning into floats
        try:
            if ext == '.csv':
                df = pd.read_csv(buffer, dtype=str)
            else:
                df = pd.read_excel(buffer, sheet_name=sheet_name or 0, dtype=str)
        except (ValueError, zipfile.BadZipFile) as e:
            logger.error(f"Failed to read file: {e}")
            raise ValidationError(f"Could not read {filename}: {e}") from e

        df = df.fillna('')
        df.columns = df.columns.astype(str).str.strip().str.lower()

        # Auto-detect columns
        self.detected_columns = {
            'name': self._find_column(df.columns, NAME_PATTERNS),
            'category': self._find_column(df.columns, CATEGORY_PATTERNS),
            'phone': self._find_column(df.columns, PHONE_PATTERNS),
            'key': self._find_column(df.columns, KEY_PATTERNS),
        }

        logger.info(f"Detected columns: {self.detected_columns}")

        if not self.detected_columns['name']:
            raise ValidationError("Could not detect 'Name' column. Please ensure your file has a column with prospect names.")

        if not self.detected_columns['phone']:
            raise ValidationError("Could not detect 'Phone' column. Please ensure your file has a column with phone numbers.")

        rows = []
        for _, record in df.iterrows():
            row = ProspectRow(
                name=self._cell(record, 'name'),
                category=self._cell(record, 'category'),
                phone_number=self._cell(record, 'phone'),
                external_key=self._cell(record, 'key') or None,
            )

            # Skip empty rows
            if not row.name or not row.phone_number:
                continue

            rows.append(row)

        logger.info(f"Parsed {len(rows)} prospects from {filename}")
        return rows, self.detected_columns

    def _cell(self, record: pd.Series, field: str) -> str:
        column = self.detected_columns.get(field)
        if not column:
            return ''
        return str(record.get(column, '')).strip()

    def _find_column(self, columns: pd.Index, patterns: List[str]) -> Optional[str]:
        """Find the first column matching any of the patterns."""
        for pattern in patterns:
            for col in columns:
                if pattern in col:
                    return col
        return None


def parse_excel(file_path: str, sheet_name: Optional[str] = None) -> List[ProspectRow]:
    """Convenience function to parse Excel/CSV file."""
    parser = ExcelParser()
    rows, _ = parser.parse(file_path, sheet_name)
    return rows
