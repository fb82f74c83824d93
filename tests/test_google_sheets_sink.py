"""Tests for the Google Sheets inventory sink with a mocked gspread client."""
import pytest
from unittest.mock import Mock, patch

from core.exceptions import ConfigurationError, PersistenceError
from extraction.models import Action, Unit
from reconciliation.reconciler import UpdateRow
from services.excel_sink import HEADER
from services.google_sheets_sink import GoogleSheetsConfig, GoogleSheetsInventorySink, extract_spreadsheet_id


def make_row(location="Bar"):
    return UpdateRow(
        product_id="P004",
        product_name="Vodka Grey Goose",
        quantity=20.0,
        unit=Unit.BOTTLE,
        location=location,
        price=2500.0,
        action=Action.ADD,
        timestamp="2024-03-15T10:30:05",
    )


@pytest.fixture
def cfg(tmp_path):
    return GoogleSheetsConfig(credentials_path=tmp_path / "creds.json", spreadsheet_id="sheet123")


class TestGoogleSheetsConfig:

    def test_from_dict_extracts_id_from_url(self):
        # Act
        cfg = GoogleSheetsConfig.from_dict({
            "credentials_path": "creds.json",
            "spreadsheet_id": "https://docs.google.com/spreadsheets/d/1BxiMVs0XRA5nFMd/edit#gid=0",
        })

        # Assert
        assert cfg.spreadsheet_id == "1BxiMVs0XRA5nFMd"
        assert cfg.period == ""

    def test_from_dict_missing_key(self):
        with pytest.raises(ConfigurationError):
            GoogleSheetsConfig.from_dict({"spreadsheet_id": "abc"})

    def test_from_file(self, tmp_path):
        # Arrange
        path = tmp_path / "google_sheets.json"
        path.write_text('{"credentials_path": "c.json", "spreadsheet_id": "abc", "period": "2024-03"}')

        # Act
        cfg = GoogleSheetsConfig.from_file(path)

        # Assert
        assert cfg.to_dict() == {"credentials_path": "c.json", "spreadsheet_id": "abc", "period": "2024-03"}

    def test_from_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            GoogleSheetsConfig.from_file(tmp_path / "missing.json")

    def test_plain_id_is_kept(self):
        assert extract_spreadsheet_id("abc-123") == "abc-123"


class TestGoogleSheetsInventorySink:

    def test_creates_worksheet_and_appends(self, cfg):
        # Arrange
        worksheet = Mock()
        spreadsheet = Mock()
        spreadsheet.worksheets.return_value = []
        spreadsheet.add_worksheet.return_value = worksheet
        client = Mock()
        client.open_by_key.return_value = spreadsheet
        sink = GoogleSheetsInventorySink(cfg, client=client)

        # Act
        sink.save(make_row())

        # Assert
        client.open_by_key.assert_called_once_with("sheet123")
        spreadsheet.add_worksheet.assert_called_once_with(title="Bar", rows=1000, cols=len(HEADER))
        worksheet.append_row.assert_any_call(HEADER)
        worksheet.append_row.assert_called_with(
            ["2024-03-15", "10:30:05", "P004", "Vodka Grey Goose", 20.0, "bottle", 2500.0, "Bar", "add"],
            value_input_option="USER_ENTERED",
        )

    def test_reuses_existing_worksheet(self, cfg):
        # Arrange
        worksheet = Mock(title="Bar")
        spreadsheet = Mock()
        spreadsheet.worksheets.return_value = [worksheet]
        client = Mock()
        client.open_by_key.return_value = spreadsheet
        sink = GoogleSheetsInventorySink(cfg, client=client)

        # Act
        sink.save(make_row())
        sink.save(make_row())

        # Assert
        spreadsheet.add_worksheet.assert_not_called()
        spreadsheet.worksheets.assert_called_once()
        assert worksheet.append_row.call_count == 2

    @patch('core.error_handler.time.sleep')
    def test_failures_raise_persistence_error(self, mock_sleep, cfg):
        # Arrange
        worksheet = Mock(title="Bar")
        worksheet.append_row.side_effect = RuntimeError("quota exceeded")
        spreadsheet = Mock()
        spreadsheet.worksheets.return_value = [worksheet]
        client = Mock()
        client.open_by_key.return_value = spreadsheet
        sink = GoogleSheetsInventorySink(cfg, client=client)

        # Act & Assert
        with pytest.raises(PersistenceError):
            sink.save(make_row())
        assert worksheet.append_row.call_count == 3
        assert mock_sleep.call_count == 2

    def test_missing_credentials_raise_persistence_error(self, cfg):
        # Arrange
        sink = GoogleSheetsInventorySink(cfg)

        # Act & Assert
        with pytest.raises(PersistenceError) as excinfo:
            sink.save(make_row())
        assert isinstance(excinfo.value.__cause__, ConfigurationError)
