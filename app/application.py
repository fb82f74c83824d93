"""Application initialization and wiring."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

from loguru import logger

from app.collaborators import CatalogProvider, InventorySink, TextRecognizer, Transcriber, Translator
from app.services import ExceptionHandlerService
from app.use_cases import (
    ExtractItemsUseCase,
    FinalizeReviewUseCase,
    ProcessInvoiceUseCase,
    ProcessVoiceRecordingUseCase,
    StartReviewUseCase,
)
from config.service import ConfigurationService
from core.container import Container
from core.exceptions import ConfigurationError
from extraction.config import ConfigManager
from extraction.line_item_extractor import LineItemExtractor
from reconciliation.reconciler import BatchReconciler
from review.store import SessionStore
from services.catalog import JsonCatalogProvider
from services.excel_sink import ExcelInventorySink
from services.google_sheets_sink import GoogleSheetsConfig, GoogleSheetsInventorySink


class Application:
    """Main application class that wires the pipeline services.

    Services are registered as factories on a Container and built on first
    use, so a CLI run that only extracts never touches the sinks.

    Attributes:
        config: Flat configuration view
        container: Service registry
        exception_handler: Global exception logging
    """

    def __init__(
        self,
        config: ConfigurationService,
        catalog_provider: Optional[CatalogProvider] = None,
        sink: Optional[InventorySink] = None,
        period: str = "",
    ):
        self.config = config
        self.period = period
        self.container = Container()
        self.exception_handler = ExceptionHandlerService()

        self.container.register("config", config)
        if catalog_provider is not None:
            self.container.register("catalog_provider", catalog_provider)
        if sink is not None:
            self.container.register("sink", sink)
        self._register_factories()

    def _register_factories(self) -> None:
        c = self.container
        c.register_factory("extraction_config", lambda c: ConfigManager(c.get("config").raw_config))
        c.register_factory("extractor", lambda c: LineItemExtractor(c.get("extraction_config")))
        c.register_factory("session_store", lambda c: SessionStore(c.get("config").review_threshold))
        if not c.has("catalog_provider"):
            c.register_factory("catalog_provider", lambda c: JsonCatalogProvider(c.get("config").catalog_path))
        if not c.has("sink"):
            c.register_factory("sink", lambda c: self.create_sink())
        c.register_factory(
            "reconciler",
            lambda c: BatchReconciler(c.get("config").include_unconfirmed, c.get("sink")),
        )
        c.register_factory(
            "extract_items",
            lambda c: ExtractItemsUseCase(c.get("extractor"), c.get("catalog_provider")),
        )
        c.register_factory("start_review", lambda c: StartReviewUseCase(c.get("session_store")))
        c.register_factory(
            "finalize_review",
            lambda c: FinalizeReviewUseCase(c.get("session_store"), c.get("reconciler")),
        )

    def create_sink(self) -> Optional[InventorySink]:
        """
        Build the configured sink ("none", "excel" or "sheets").

        Raises:
            ConfigurationError: If the Google Sheets sink is selected without settings
        """
        sink = self.config.sink
        if sink == "excel":
            logger.info(f"Writing inventory rows to {self.config.excel_output_path}")
            return ExcelInventorySink(self.config.excel_output_path, period=self.period)
        if sink == "sheets":
            settings = dict(self.config.get_google_sheets_config())
            if not settings:
                raise ConfigurationError("Google Sheets sink selected but config/google_sheets.json is missing")
            settings.setdefault("period", self.period)
            return GoogleSheetsInventorySink(GoogleSheetsConfig.from_dict(settings))
        return None

    def install(self) -> None:
        self.exception_handler.install()

    # Use cases

    @property
    def extract_items(self) -> ExtractItemsUseCase:
        return self.container.get("extract_items")

    @property
    def start_review(self) -> StartReviewUseCase:
        return self.container.get("start_review")

    @property
    def finalize_review(self) -> FinalizeReviewUseCase:
        return self.container.get("finalize_review")

    @property
    def session_store(self) -> SessionStore:
        return self.container.get("session_store")

    def process_voice_recording(self, transcriber: Transcriber) -> ProcessVoiceRecordingUseCase:
        return ProcessVoiceRecordingUseCase(
            transcriber, self.extract_items, self.start_review, self.config.working_language
        )

    def process_invoice(
        self, recognizer: TextRecognizer, translator: Optional[Translator] = None
    ) -> ProcessInvoiceUseCase:
        return ProcessInvoiceUseCase(
            recognizer,
            self.extract_items,
            self.start_review,
            translator=translator,
            working_language=self.config.working_language,
        )

    def log_session_info(self) -> None:
        settings = self.config.to_dict()
        logger.info(f"[config] {settings}")
        catalog_path = Path(self.config.catalog_path)
        if not catalog_path.exists():
            logger.warning(f"Catalog file {catalog_path} does not exist")
