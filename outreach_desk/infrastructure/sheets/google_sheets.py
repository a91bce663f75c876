"""
Google Sheets Source - Prospect Rows from a Spreadsheet
========================================================

Reads the prospect worksheet with a service account and returns one
ProspectRow per data row.

Every row needs a stable external key. Rows that do not have one get a
fresh uuid4, and the sheet is written back so the next import sees the
same key. The writeback is best-effort: if it fails the keys are still
used in memory for this pass.

Expected headers (case-insensitive, configurable):
    Name | Skin Problems | Phone Number | uniqueId
"""

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import gspread
import requests
from gspread.utils import rowcol_to_a1
from google.auth.exceptions import GoogleAuthError
from google.oauth2.service_account import Credentials

from ...domain import ExternalSourceError, ProspectRow

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

SOURCE_ERRORS = (gspread.exceptions.GSpreadException, GoogleAuthError, requests.RequestException, OSError, ValueError)
WRITEBACK_ERRORS = (gspread.exceptions.GSpreadException, GoogleAuthError, requests.RequestException)


@dataclass(frozen=True)
class SheetHeaders:
    name: str = "name"
    category: str = "skin problems"
    phone: str = "phone number"
    key: str = "uniqueId"


class GoogleSheetSource:
    """
    Usage:
        source = GoogleSheetSource("1yPx...IT0w", credentials_file="keys.json")
        rows = source.fetch_rows()
    """

    def __init__(
        self,
        spreadsheet_id: str,
        credentials_file: Path = Path("keys.json"),
        worksheet: str = "Sheet1",
        headers: SheetHeaders = SheetHeaders(),
        client=None,
    ):
        self.spreadsheet_id = spreadsheet_id
        self.credentials_file = Path(credentials_file)
        self.worksheet = worksheet
        self.headers = headers
        self._gc = client

    @classmethod
    def from_settings(cls, settings) -> "GoogleSheetSource":
        sheets = settings.sheets
        return cls(
            spreadsheet_id=sheets.spreadsheet_id,
            credentials_file=sheets.credentials_file,
            worksheet=sheets.worksheet,
            headers=SheetHeaders(
                name=sheets.name_header,
                category=sheets.category_header,
                phone=sheets.phone_header,
                key=sheets.key_header,
            ),
        )

    def _client(self):
        if self._gc is None:
            creds = Credentials.from_service_account_file(str(self.credentials_file), scopes=SCOPES)
            self._gc = gspread.authorize(creds)
        return self._gc

    def _open_worksheet(self):
        return self._client().open_by_key(self.spreadsheet_id).worksheet(self.worksheet)

    def fetch_rows(self) -> List[ProspectRow]:
        """Read every data row. Raises ExternalSourceError if the sheet cannot be read."""
        logger.info(f"Fetching prospects from Google Sheets ({self.spreadsheet_id}/{self.worksheet})...")

        try:
            ws = self._open_worksheet()
            values = ws.get_all_values()
        except SOURCE_ERRORS as e:
            logger.exception(f"Error fetching prospects from Google Sheets: {e}")
            if isinstance(e, FileNotFoundError):
                logger.error(f"Make sure {self.credentials_file} exists in the project root")
            raise ExternalSourceError(f"Google Sheets fetch failed: {e}") from e

        if not values or len(values) < 2:
            logger.warning("No data found in the sheet.")
            return []

        headers = [str(h) for h in values[0]]
        data_rows = [list(row) for row in values[1:]]

        name_idx = self._find_header(headers, self.headers.name)
        phone_idx = self._find_header(headers, self.headers.phone)
        category_idx = self._find_header(headers, self.headers.category)
        key_idx = self._find_header(headers, self.headers.key)

        if name_idx is None or phone_idx is None:
            raise ExternalSourceError(
                f"Sheet must have '{self.headers.name}' and '{self.headers.phone}' columns"
            )
        if category_idx is None:
            logger.warning(f"Sheet has no '{self.headers.category}' column; every row will be skipped")

        updated = False
        if key_idx is None:
            headers.append(self.headers.key)
            key_idx = len(headers) - 1
            updated = True

        prospects = []
        for i, row in enumerate(data_rows):
            row.extend([""] * (len(headers) - len(row)))

            name = row[name_idx].strip()
            phone = row[phone_idx].strip()
            category = row[category_idx].strip() if category_idx is not None else ""
            key = row[key_idx].strip()

            if not name or not phone:
                logger.info(f"Skipping row {i + 2}: Missing name or phone number")
                continue

            if not key:
                key = str(uuid.uuid4())
                row[key_idx] = key
                updated = True

            prospects.append(ProspectRow(name=name, category=category, phone_number=phone, external_key=key))

        if updated:
            self._write_back(ws, headers, data_rows)

        logger.info(f"Successfully processed {len(prospects)} prospects")
        return prospects

    def _write_back(self, ws, headers: List[str], data_rows: List[list]) -> bool:
        """Persist generated keys into the sheet. Failure is logged, never raised."""
        end = rowcol_to_a1(len(data_rows) + 1, len(headers))
        logger.info("Writing generated unique IDs back to the sheet...")

        try:
            ws.update(
                range_name=f"A1:{end}",
                values=[headers] + data_rows,
                value_input_option="RAW",
            )
        except WRITEBACK_ERRORS as e:
            logger.warning(f"Sheet writeback failed, continuing with in-memory keys: {e}")
            return False

        logger.info("Sheet updated successfully.")
        return True

    def test_connection(self) -> bool:
        """Check the service account can open the spreadsheet."""
        try:
            spreadsheet = self._client().open_by_key(self.spreadsheet_id)
        except SOURCE_ERRORS as e:
            logger.error(f"Google Sheets connection failed: {e}")
            return False

        logger.info(f"Google Sheets connection successful! Sheet title: {spreadsheet.title}")
        return True

    @staticmethod
    def _find_header(headers: List[str], wanted: str) -> Optional[int]:
        wanted = wanted.strip().lower()
        for idx, header in enumerate(headers):
            if header.strip().lower() == wanted:
                return idx
        return None
