"""Use cases for inventory capture business logic.

Implements the use case layer: each use case orchestrates extraction,
review and reconciliation around the external collaborators and reports
its outcome as a Result instead of raising.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from loguru import logger

from app.collaborators import CatalogProvider, TextRecognizer, Transcriber, Translator
from core.exceptions import InventoryException
from core.result import Failure, Result, Success
from extraction.invoice_header import InvoiceMetadata, parse_invoice_header
from extraction.line_item_extractor import LineItemExtractor
from extraction.models import ExtractionResult, RawTextBlock, SourceType
from extraction.text_utils import detect_language
from reconciliation.reconciler import BatchReconciler, InventoryUpdateBatch
from review.feedback import confirmation_text, suggest_actions
from review.session import ReviewSession
from review.store import SessionStore


@dataclass
class ProcessingOutcome:
    """Review session opened for one recording or invoice.

    Attributes:
        session: Session holding the extracted items
        extraction: Full extraction result, including skipped fragments
        text: Text the items were extracted from
        invoice: Header metadata for invoices
    """
    session: ReviewSession
    extraction: ExtractionResult
    text: str = ""
    invoice: Optional[InvoiceMetadata] = None
    messages: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session.session_id,
            "text": self.text,
            "items": [item.to_dict() for item in self.extraction.items],
            "recognized": self.extraction.recognized_count,
            "needs_review": self.extraction.review_count,
            "skipped": [
                {"fragment": skipped.fragment, "reason": skipped.reason}
                for skipped in self.extraction.skipped
            ],
            "messages": list(self.messages),
            "invoice": vars(self.invoice) if self.invoice else None,
        }


class ExtractItemsUseCase:
    """Use case for extracting line items from a text block against the catalog."""

    def __init__(self, extractor: LineItemExtractor, catalog_provider: CatalogProvider):
        self.extractor = extractor
        self.catalog_provider = catalog_provider

    def execute(self, block: RawTextBlock) -> Result[ExtractionResult, Exception]:
        try:
            catalog = self.catalog_provider.load()
            result = self.extractor.extract(block, catalog)
            logger.info(
                f"[extracted] {len(result.items)} items, {result.review_count} to review, "
                f"{len(result.skipped)} skipped"
            )
            return Success(result)
        except Exception as e:
            logger.error(f"Failed to extract items: {e}")
            return Failure(e)


class StartReviewUseCase:
    """Use case for opening a review session over extracted items."""

    def __init__(self, store: SessionStore):
        self.store = store

    def execute(self, extraction: ExtractionResult, location: str, period: str = "") -> Result[ReviewSession, Exception]:
        try:
            session = self.store.create(location=location, period=period)
            for item in extraction.items:
                session.add_item(item)
            logger.info(
                f"[review] session {session.session_id}: {len(extraction.items)} items, "
                f"{len(session.pending_indices())} pending"
            )
            return Success(session)
        except InventoryException as e:
            logger.error(f"Failed to start review: {e}")
            return Failure(e)


class ProcessVoiceRecordingUseCase:
    """Use case for turning a voice recording into a review session.

    Transcribes the audio, extracts items from the transcript and opens a
    session with a confirmation message per item.
    """

    def __init__(
        self,
        transcriber: Transcriber,
        extract_items: ExtractItemsUseCase,
        start_review: StartReviewUseCase,
        working_language: str = "fr",
    ):
        self.transcriber = transcriber
        self.extract_items = extract_items
        self.start_review = start_review
        self.working_language = working_language

    def execute(self, audio: bytes, location: str, period: str = "") -> Result[ProcessingOutcome, Exception]:
        try:
            text, confidence = self.transcriber.transcribe(audio)
        except Exception as e:
            logger.error(f"Transcription failed: {e}")
            return Failure(e)

        logger.info(f"[transcript] '{text}' conf={confidence:.2f}")
        try:
            block = RawTextBlock(text, SourceType.VOICE, self.working_language, confidence)
        except ValueError as e:
            return Failure(e)

        return self.extract_items.execute(block).and_then(
            lambda extraction: self.start_review.execute(extraction, location, period).map(
                lambda session: ProcessingOutcome(
                    session=session,
                    extraction=extraction,
                    text=text,
                    messages=[confirmation_text(item) for item in extraction.items],
                )
            )
        )


class ProcessInvoiceUseCase:
    """Use case for turning an invoice document into a review session.

    OCR text is translated to the working language when a translator is
    available and the detected language differs.
    """

    def __init__(
        self,
        recognizer: TextRecognizer,
        extract_items: ExtractItemsUseCase,
        start_review: StartReviewUseCase,
        translator: Optional[Translator] = None,
        working_language: str = "fr",
    ):
        self.recognizer = recognizer
        self.extract_items = extract_items
        self.start_review = start_review
        self.translator = translator
        self.working_language = working_language

    def _to_working_language(self, text: str) -> tuple:
        if self.translator is None:
            return text, detect_language(text)

        source_language = self.translator.detect_language(text)
        if source_language != self.working_language:
            logger.info(f"[translate] {source_language} -> {self.working_language}")
            text = self.translator.translate(text, source_language, self.working_language)
        return text, source_language

    def execute(
        self, document: bytes, filename: str, location: str, period: str = ""
    ) -> Result[ProcessingOutcome, Exception]:
        try:
            raw_text = self.recognizer.recognize(document, filename)
            text, source_language = self._to_working_language(raw_text)
        except Exception as e:
            logger.error(f"Failed to read invoice '{filename}': {e}")
            return Failure(e)

        invoice = parse_invoice_header(text)
        logger.info(f"[invoice] {filename}: id={invoice.invoice_id} date={invoice.invoice_date}")
        block = RawTextBlock(text, SourceType.INVOICE, source_language)

        return self.extract_items.execute(block).and_then(
            lambda extraction: self.start_review.execute(extraction, location, period).map(
                lambda session: ProcessingOutcome(
                    session=session,
                    extraction=extraction,
                    text=text,
                    invoice=invoice,
                    messages=[confirmation_text(item) for item in extraction.items],
                )
            )
        )


class FinalizeReviewUseCase:
    """Use case for closing a review session and reconciling its items.

    The session is finalized, reconciled against its location and dropped
    from the store.
    """

    def __init__(self, store: SessionStore, reconciler: BatchReconciler):
        self.store = store
        self.reconciler = reconciler

    def execute(self, session_id: str) -> Result[InventoryUpdateBatch, Exception]:
        try:
            session = self.store.get(session_id)
            items = session.finalize()
        except InventoryException as e:
            logger.error(f"Cannot finalize session {session_id}: {e}")
            return Failure(e)

        pending = suggest_actions(items)
        if pending:
            logger.info(f"[review] {len(pending)} items still need review in session {session_id}")

        try:
            batch = self.reconciler.reconcile(items, session.location)
        except Exception as e:
            logger.error(f"Failed to reconcile session {session_id}: {e}")
            return Failure(e)
        finally:
            self.store.discard(session_id)

        logger.info(
            f"[reconciled] session {session_id}: saved={batch.saved_count} errors={batch.error_count}"
        )
        return Success(batch)
