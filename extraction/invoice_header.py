"""Invoice header fields: number, date, total and currency."""

import re
from dataclasses import dataclass
from typing import Optional

_INVOICE_ID = re.compile("(?:invoice|facture|\u8acb\u6c42\u66f8|\u30a4\u30f3\u30dc\u30a4\u30b9)[^\\d\\n]*#?\\s*(\\d+)", re.IGNORECASE)
_DATE_LABEL = "(?:date|\u65e5\u4ed8|\u65e5\u671f)[\\s:\uff1a]*"
_DATE_PATTERNS = [
    re.compile(_DATE_LABEL + r"(\d{4})[-/.](\d{1,2})[-/.](\d{1,2})", re.IGNORECASE),
    re.compile(_DATE_LABEL + r"(\d{1,2})[-/.](\d{1,2})[-/.](\d{4})", re.IGNORECASE),
    re.compile(_DATE_LABEL + "(\\d{4})\u5e74(\\d{1,2})\u6708(\\d{1,2})\u65e5", re.IGNORECASE),
    re.compile(_DATE_LABEL + r"([A-Za-z]+)\s+(\d{1,2}),?\s+(\d{4})", re.IGNORECASE),
]
_TOTAL = re.compile("(?:total|\u5408\u8a08|\u5c0f\u8a08)(?:\\s+ttc)?[\\s:\uff1a]*([^\\n]*)", re.IGNORECASE)
_CURRENCY = re.compile("USD|JPY|EUR|GBP|CNY|\u5186|\\$|\u20ac|\u00a3|\u00a5")

CURRENCY_CODES = {
    "$": "USD",
    "\u20ac": "EUR",
    "\u00a3": "GBP",
    "\u00a5": "JPY",
    "\u5186": "JPY",
}

MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}


@dataclass(frozen=True)
class InvoiceMetadata:
    invoice_id: Optional[str] = None
    invoice_date: Optional[str] = None
    total: Optional[str] = None
    currency: Optional[str] = None


def parse_invoice_date(text: str) -> Optional[str]:
    """
    Find the labelled invoice date and return it as YYYY-MM-DD.

    Accepts ISO-like dates, DD/MM/YYYY, Japanese YYYY年MM月DD日 and
    "Month DD, YYYY". The first matching layout wins.
    """
    for index, pattern in enumerate(_DATE_PATTERNS):
        match = pattern.search(text)
        if not match:
            continue
        first, second, third = match.groups()
        if index == 1:
            year, month, day = third, second, first
        elif index == 3:
            year, day = third, second
            month = MONTHS.get(first[:3].lower(), 1)
        else:
            year, month, day = first, second, third
        return f"{int(year):04d}-{int(month):02d}-{int(day):02d}"
    return None


def parse_invoice_header(text: str) -> InvoiceMetadata:
    """Extract header metadata from OCR text. Missing fields stay None."""
    if not text:
        return InvoiceMetadata()

    invoice_id = None
    id_match = _INVOICE_ID.search(text)
    if id_match:
        invoice_id = id_match.group(1)

    total = currency = None
    total_match = _TOTAL.search(text)
    if total_match and total_match.group(1).strip():
        total = total_match.group(1).strip()
        currency_match = _CURRENCY.search(total)
        if currency_match:
            currency = CURRENCY_CODES.get(currency_match.group(), currency_match.group())

    return InvoiceMetadata(
        invoice_id=invoice_id,
        invoice_date=parse_invoice_date(text),
        total=total,
        currency=currency,
    )
