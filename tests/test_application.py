"""Tests for application wiring and the command-line entry point."""
import json
import sys
import threading

import pytest
from unittest.mock import Mock

from app.application import Application
from app.startup import run_cli
from app.use_cases import ProcessVoiceRecordingUseCase
from config.config import AppConfig, ParsingConfig, ReviewConfig, StorageConfig
from config.service import ConfigurationService
from core.exceptions import ConfigurationError
from extraction.models import ProductCatalogEntry, RawTextBlock, SourceType
from services.excel_sink import ExcelInventorySink
from services.google_sheets_sink import GoogleSheetsInventorySink


def make_service(sink="none", google_sheets_config=None, excel_output_path="data/inventory.xlsx"):
    return ConfigurationService(AppConfig(
        review=ReviewConfig(),
        parsing=ParsingConfig(),
        storage=StorageConfig(sink=sink, excel_output_path=excel_output_path),
        google_sheets_config=google_sheets_config or {},
    ))


@pytest.fixture
def restore_hooks(monkeypatch):
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)
    monkeypatch.setattr(threading, "excepthook", threading.excepthook)


class TestApplication:
    """Tests for Application wiring."""

    def test_excel_sink(self, tmp_path):
        app = Application(make_service("excel", excel_output_path=str(tmp_path / "out.xlsx")), period="2024-03")
        sink = app.create_sink()
        assert isinstance(sink, ExcelInventorySink)
        assert sink.period == "2024-03"

    def test_sheets_sink_requires_settings(self):
        with pytest.raises(ConfigurationError):
            Application(make_service("sheets")).create_sink()

    def test_sheets_sink(self):
        # Arrange
        settings = {"credentials_path": "creds.json", "spreadsheet_id": "abc"}
        app = Application(make_service("sheets", google_sheets_config=settings), period="2024-03")

        # Act
        sink = app.create_sink()

        # Assert
        assert isinstance(sink, GoogleSheetsInventorySink)
        assert sink.cfg.period == "2024-03"

    def test_no_sink(self):
        assert Application(make_service("none")).create_sink() is None

    def test_injected_collaborators(self):
        # Arrange
        catalog_provider = Mock()
        catalog_provider.load.return_value = [ProductCatalogEntry(id="P006", name="Whisky")]
        sink = Mock()
        app = Application(make_service(), catalog_provider=catalog_provider, sink=sink)

        # Act
        extraction = app.extract_items.execute(RawTextBlock("ajouter 2 whisky", SourceType.VOICE)).unwrap()
        session = app.start_review.execute(extraction, "Bar").unwrap()
        batch = app.finalize_review.execute(session.session_id).unwrap()

        # Assert
        assert batch.saved_count == 1
        sink.save.assert_called_once()
        assert len(app.session_store) == 0

    def test_services_are_shared(self):
        app = Application(make_service())
        assert app.extract_items is app.extract_items
        assert app.start_review.store is app.finalize_review.store

    def test_process_voice_recording(self):
        use_case = Application(make_service()).process_voice_recording(Mock())
        assert isinstance(use_case, ProcessVoiceRecordingUseCase)
        assert use_case.working_language == "fr"


class TestRunCli:
    """Tests for the command-line entry point."""

    @pytest.fixture
    def catalog_file(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps([{"id": "P001", "name": "Vin Rouge"}]), encoding="utf-8")
        return path

    def test_voice_run_with_commit(self, tmp_path, catalog_file, capsys, restore_hooks):
        # Arrange
        input_file = tmp_path / "notes.txt"
        input_file.write_text("ajouter 5 bouteilles de vin rouge et 3 bouteilles de vin rouge", encoding="utf-8")

        # Act
        code = run_cli([
            "--sink", "none", "--catalog", str(catalog_file),
            "--input", str(input_file), "--location", "Cave", "--commit",
        ])

        # Assert
        assert code == 0
        output = json.loads(capsys.readouterr().out)
        assert [item["product_id"] for item in output["items"]] == ["P001", "P001"]
        assert output["batch"]["items"][0]["quantity"] == 8.0
        assert output["batch"]["location"] == "Cave"

    def test_invoice_run(self, tmp_path, catalog_file, capsys, restore_hooks):
        # Arrange
        input_file = tmp_path / "invoice.txt"
        input_file.write_text("Facture N° 42\nArticles:\nVin Rouge - 6 bouteilles - 75 €\n", encoding="utf-8")

        # Act
        code = run_cli([
            "--sink", "none", "--catalog", str(catalog_file),
            "--input", str(input_file), "--source", "invoice",
        ])

        # Assert
        assert code == 0
        output = json.loads(capsys.readouterr().out)
        assert output["items"][0]["quantity"] == 6.0
        assert output["items"][0]["price"] == 75.0
        assert output["invoice"]["invoice_id"] == "42"
        assert "batch" not in output

    def test_configuration_error(self, tmp_path):
        assert run_cli(["--review-threshold", "2", "--input", str(tmp_path / "x.txt")]) == 2

    def test_missing_catalog(self, tmp_path, restore_hooks):
        # Arrange
        input_file = tmp_path / "notes.txt"
        input_file.write_text("ajouter 2 vin rouge", encoding="utf-8")

        # Act
        code = run_cli([
            "--sink", "none", "--catalog", str(tmp_path / "missing.json"), "--input", str(input_file),
        ])

        # Assert
        assert code == 1
