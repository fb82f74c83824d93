"""Google Sheets inventory sink.

Appends reconciled update rows to a Google spreadsheet, one worksheet per
location (and period), authenticating with a service account. gspread and
google-auth are imported lazily so the rest of the application works
without them.
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger

from core.error_handler import retry_on_failure
from core.exceptions import ConfigurationError, PersistenceError
from reconciliation.reconciler import UpdateRow
from .excel_sink import HEADER, sheet_title

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive.file",
]


@dataclass
class GoogleSheetsConfig:
    """Google Sheets sink settings.

    Attributes:
        credentials_path: Path to the service account JSON credentials file
        spreadsheet_id: Spreadsheet ID or full spreadsheet URL
        period: Inventory period appended to worksheet names
    """
    credentials_path: Path
    spreadsheet_id: str
    period: str = ""

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "GoogleSheetsConfig":
        """
        Raises:
            ConfigurationError: If credentials_path or spreadsheet_id is missing
        """
        try:
            return GoogleSheetsConfig(
                credentials_path=Path(data["credentials_path"]),
                spreadsheet_id=extract_spreadsheet_id(data["spreadsheet_id"]),
                period=data.get("period", ""),
            )
        except KeyError as e:
            raise ConfigurationError(f"Google Sheets config is missing {e}") from e

    @staticmethod
    def from_file(path: Path) -> "GoogleSheetsConfig":
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Failed to load Google Sheets config: {e}") from e
        return GoogleSheetsConfig.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "credentials_path": str(self.credentials_path),
            "spreadsheet_id": self.spreadsheet_id,
            "period": self.period,
        }


def extract_spreadsheet_id(value: str) -> str:
    """Return the spreadsheet ID from a Google Sheets URL, or the value unchanged.

    Example:
        "https://docs.google.com/spreadsheets/d/1BxiMVs0XRA5nFMd/edit" -> "1BxiMVs0XRA5nFMd"
    """
    if value and "docs.google.com/spreadsheets" in value:
        match = re.search(r"/spreadsheets/d/([a-zA-Z0-9-_]+)", value)
        if match:
            return match.group(1)
    return value


class GoogleSheetsInventorySink:
    """InventorySink writing to Google Sheets.

    A ready gspread client may be injected; otherwise one is created from the
    service account credentials on first use.
    """

    def __init__(self, cfg: GoogleSheetsConfig, client: Any = None) -> None:
        self.cfg = cfg
        self._client = client
        self._spreadsheet = None
        self._worksheets: Dict[str, Any] = {}

    def _get_client(self):
        """
        Raises:
            ConfigurationError: If gspread/google-auth are missing or the credentials file does not exist
        """
        if self._client is not None:
            return self._client

        try:
            import gspread  # type: ignore
            from google.oauth2.service_account import Credentials  # type: ignore
        except ImportError as e:
            raise ConfigurationError(
                "Missing dependencies for Google Sheets. Please install gspread and google-auth."
            ) from e

        if not self.cfg.credentials_path.exists():
            raise ConfigurationError(f"Credentials file not found: {self.cfg.credentials_path}")

        credentials = Credentials.from_service_account_file(str(self.cfg.credentials_path), scopes=SCOPES)
        self._client = gspread.authorize(credentials)
        return self._client

    def _worksheet(self, title: str):
        if title in self._worksheets:
            return self._worksheets[title]

        if self._spreadsheet is None:
            self._spreadsheet = self._get_client().open_by_key(self.cfg.spreadsheet_id)

        existing = {ws.title: ws for ws in self._spreadsheet.worksheets()}
        worksheet = existing.get(title)
        if worksheet is None:
            worksheet = self._spreadsheet.add_worksheet(title=title, rows=1000, cols=len(HEADER))
            worksheet.append_row(HEADER)
            logger.info(f"Created worksheet '{title}' in spreadsheet {self.cfg.spreadsheet_id}")

        self._worksheets[title] = worksheet
        return worksheet

    @retry_on_failure(max_retries=3, delay=1.0, backoff=2.0)
    def _append(self, title: str, values: List[Any]) -> None:
        # USER_ENTERED lets Sheets parse dates and numbers
        self._worksheet(title).append_row(values, value_input_option="USER_ENTERED")

    def save(self, row: UpdateRow) -> None:
        """
        Append one row to the worksheet of the row's location.

        Raises:
            PersistenceError: If the row could not be written after retries
        """
        date_str, _, time_str = row.timestamp.partition("T")
        values = [
            date_str,
            time_str,
            row.product_id or "",
            row.product_name,
            row.quantity,
            row.unit.value,
            row.price if row.price is not None else "",
            row.location,
            row.action.value,
        ]
        title = sheet_title(row.location, self.cfg.period)
        try:
            self._get_client()
            self._append(title, values)
        except Exception as e:
            raise PersistenceError(f"Failed to update Google Sheets: {e}") from e
        logger.debug(f"Saved '{row.product_name}' to worksheet '{title}'")
