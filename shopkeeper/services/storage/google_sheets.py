"""
Google Sheets Snapshot Store

DESIGN DECISION: Google Sheets is the remote mirror for shops that want
their ledger off the device. The owner can open the sheet on any phone
and nothing needs hosting.

Layout: one worksheet, one row per blob key.

    key | updated_at | chunk 1 | chunk 2 | ...

A cell holds at most 50,000 characters, so a long blob (the record list
grows every day) is split across as many cells as it needs.

LIMITS:
- Not suitable for high write volume (we write a few blobs per commit)
- No transactions (a replaced row is appended before the old one is
  deleted, so a failure leaves a stale row rather than none)
"""

from datetime import datetime
from typing import Optional

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from shopkeeper.config import get_settings
from shopkeeper.config.settings import GoogleSheetsSettings
from shopkeeper.services.storage.interface import (
    ConnectionError,
    SnapshotStoreInterface,
    StorageError,
)


SNAPSHOT_COLUMNS = ["key", "updated_at", "blob"]

# Stay under the 50,000 character cell limit
CELL_CHUNK_SIZE = 45000


def split_blob(blob: str, size: int = CELL_CHUNK_SIZE) -> list[str]:
    """Split a blob into cell-sized chunks (at least one, possibly empty)."""
    if not blob:
        return [""]
    return [blob[start:start + size] for start in range(0, len(blob), size)]


class GoogleSheetsClient:
    """
    Service-account connection to the snapshot spreadsheet.

    The gspread client and spreadsheet handle are opened once and reused.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Authorize gspread with the service account key.

        Raises:
            ConnectionError: key file missing or authorization refused
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Service account key not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """The spreadsheet named by GOOGLE_SHEETS_SPREADSHEET_ID."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_snapshot_sheet(self) -> gspread.Worksheet:
        """Get or create the snapshot worksheet."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(self._settings.snapshot_sheet_name)
        except gspread.WorksheetNotFound:
            # First run on this spreadsheet
            sheet = spreadsheet.add_worksheet(
                title=self._settings.snapshot_sheet_name,
                rows=100,
                cols=26,
            )
            sheet.append_row(SNAPSHOT_COLUMNS)
        return sheet


class GoogleSheetsSnapshotStore(SnapshotStoreInterface):
    """
    Google Sheets implementation of the snapshot store.

    Rows are located by scanning column A; there are only a handful of keys.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @staticmethod
    def _find_row(all_rows: list[list[str]], key: str) -> Optional[int]:
        """1-based sheet row index for key, skipping the header."""
        for idx, row in enumerate(all_rows[1:], start=2):
            if row and row[0] == key:
                return idx
        return None

    async def read_blob(self, key: str) -> Optional[str]:
        """Read and rejoin a blob."""
        try:
            sheet = self._client.get_snapshot_sheet()
            all_rows = sheet.get_all_values()
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read blob {key}: {e}")

        idx = self._find_row(all_rows, key)
        if idx is None:
            return None
        return "".join(all_rows[idx - 1][2:])

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def write_blob(self, key: str, blob: str) -> bool:
        """Append the new row, then drop the old one."""
        try:
            sheet = self._client.get_snapshot_sheet()
            all_rows = sheet.get_all_values()
            old_idx = self._find_row(all_rows, key)

            row = [key, datetime.now().isoformat()] + split_blob(blob)
            sheet.append_row(row, value_input_option="RAW")

            if old_idx is not None:
                sheet.delete_rows(old_idx)
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to write blob {key}: {e}")

    async def delete_blob(self, key: str) -> bool:
        """Delete the row for key."""
        try:
            sheet = self._client.get_snapshot_sheet()
            idx = self._find_row(sheet.get_all_values(), key)
            if idx is None:
                return False
            sheet.delete_rows(idx)
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete blob {key}: {e}")
