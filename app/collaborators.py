"""Interfaces of the external services the pipeline depends on.

Speech-to-text, OCR, translation, the catalog and persistence are provided
by outside systems; the application only relies on these narrow protocols.
"""
from __future__ import annotations

from typing import Protocol, Sequence, Tuple

from extraction.models import ProductCatalogEntry
from reconciliation.reconciler import InventorySink


class Transcriber(Protocol):
    """Speech-to-text service."""

    def transcribe(self, audio: bytes) -> Tuple[str, float]:
        """Return the transcript and its confidence (0.0-1.0)."""
        ...


class TextRecognizer(Protocol):
    """OCR service for invoice images and PDFs."""

    def recognize(self, document: bytes, filename: str) -> str:
        ...


class Translator(Protocol):
    """Language detection and translation service."""

    def detect_language(self, text: str) -> str:
        ...

    def translate(self, text: str, source: str, target: str) -> str:
        ...


class CatalogProvider(Protocol):
    """Read-only source of known products."""

    def load(self) -> Sequence[ProductCatalogEntry]:
        ...


__all__ = [
    "Transcriber",
    "TextRecognizer",
    "Translator",
    "CatalogProvider",
    "InventorySink",
]
