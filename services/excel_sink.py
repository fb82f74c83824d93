from __future__ import annotations

from pathlib import Path
from threading import Lock
from typing import Optional

from core.exceptions import PersistenceError
from reconciliation.reconciler import UpdateRow

HEADER = ["Date", "Time", "Product ID", "Product", "Quantity", "Unit", "Price", "Location", "Action"]
MAX_SHEET_TITLE = 31
INVALID_TITLE_CHARS = '[]:*?/\\'


def sheet_title(location: str, period: str = "") -> str:
    """Worksheet name for a location/period pair, within Excel's title rules."""
    title = " ".join(part for part in (location.strip(), period.strip()) if part) or "Inventory"
    title = "".join("-" if ch in INVALID_TITLE_CHARS else ch for ch in title)
    return title[:MAX_SHEET_TITLE]


class ExcelInventorySink:
    """Appends update rows to a workbook, one worksheet per location and period."""

    def __init__(self, file_path: Optional[str] = None, period: str = "") -> None:
        default_path = Path("data") / "inventory.xlsx"
        self.file_path = Path(file_path).absolute() if file_path else default_path.absolute()
        self.period = period
        self.lock = Lock()

    def _load_or_create_workbook(self):
        """Open the workbook, creating it (without default sheet) when missing."""
        from openpyxl import Workbook, load_workbook  # type: ignore

        if self.file_path.exists():
            return load_workbook(self.file_path)

        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        wb = Workbook()
        wb.remove(wb.active)
        return wb

    def _worksheet(self, wb, title: str):
        if title in wb.sheetnames:
            return wb[title]
        ws = wb.create_sheet(title)
        ws.append(HEADER)
        return ws

    def save(self, row: UpdateRow) -> None:
        """
        Append one row to the sheet for the row's location.

        Raises:
            PersistenceError: If the workbook cannot be written
        """
        date_str, _, time_str = row.timestamp.partition("T")
        title = sheet_title(row.location, self.period)
        try:
            with self.lock:
                wb = self._load_or_create_workbook()
                ws = self._worksheet(wb, title)
                ws.append([
                    date_str,
                    time_str,
                    row.product_id or "",
                    row.product_name,
                    float(row.quantity),
                    row.unit.value,
                    float(row.price) if row.price is not None else None,
                    row.location,
                    row.action.value,
                ])
                wb.save(self.file_path)
        except Exception as e:
            raise PersistenceError(f"Failed to save row for '{row.product_name}': {e}") from e
