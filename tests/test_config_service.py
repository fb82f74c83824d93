"""Unit tests for configuration loading and the configuration service."""
import json

import pytest
from unittest.mock import Mock, patch

from config.config import AppConfig, ConfigLoader, ParsingConfig, ReviewConfig, StorageConfig
from config.service import ConfigurationService, ConfigurationServiceFactory
from core.exceptions import ConfigurationError

ENV_VARS = [
    "REVIEW_THRESHOLD",
    "TOKEN_OVERLAP_MIN",
    "INCLUDE_UNCONFIRMED",
    "PRICE_DECIMAL_CEILING",
    "INVENTORY_SINK",
    "CATALOG_PATH",
    "EXCEL_OUTPUT_PATH",
    "DEBUG",
    "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestConfigurationService:
    """Tests for ConfigurationService facade."""

    @pytest.fixture
    def app_config(self):
        """Create an AppConfig for testing."""
        return AppConfig(
            review=ReviewConfig(review_threshold=0.8, token_overlap_min=0.4, include_unconfirmed=True),
            parsing=ParsingConfig(price_decimal_ceiling=500.0, working_language="fr"),
            storage=StorageConfig(
                catalog_path="data/products.json",
                excel_output_path="data/test.xlsx",
                sink="none",
            ),
            google_sheets_config={"spreadsheet_id": "abc"},
            debug=False,
            log_level="WARNING",
        )

    def test_review_properties(self, app_config):
        # Arrange
        service = ConfigurationService(app_config)

        # Assert
        assert service.review_threshold == 0.8
        assert service.token_overlap_min == 0.4
        assert service.include_unconfirmed is True

    def test_parsing_and_storage_properties(self, app_config):
        # Arrange
        service = ConfigurationService(app_config)

        # Assert
        assert service.price_decimal_ceiling == 500.0
        assert service.working_language == "fr"
        assert service.catalog_path == "data/products.json"
        assert service.excel_output_path == "data/test.xlsx"
        assert service.sink == "none"
        assert service.get_google_sheets_config() == {"spreadsheet_id": "abc"}

    def test_log_level_forced_to_debug(self, app_config):
        # Arrange
        debug_config = AppConfig(
            review=app_config.review,
            parsing=app_config.parsing,
            storage=app_config.storage,
            debug=True,
            log_level="WARNING",
        )

        # Assert
        assert ConfigurationService(app_config).log_level == "WARNING"
        assert ConfigurationService(debug_config).log_level == "DEBUG"

    def test_raw_config_property(self, app_config):
        # Arrange
        service = ConfigurationService(app_config)

        # Assert
        assert service.raw_config is app_config

    def test_to_dict(self, app_config):
        # Arrange
        service = ConfigurationService(app_config)

        # Act
        result = service.to_dict()

        # Assert
        assert result["review"]["review_threshold"] == 0.8
        assert result["parsing"]["price_decimal_ceiling"] == 500.0
        assert result["storage"]["sink"] == "none"
        assert result["debug"] is False


class TestConfigValidation:
    """Tests for dataclass validation."""

    def test_threshold_out_of_range(self):
        # Act & Assert
        with pytest.raises(ConfigurationError):
            ReviewConfig(review_threshold=1.5)

    def test_non_positive_ceiling(self):
        # Act & Assert
        with pytest.raises(ConfigurationError):
            ParsingConfig(price_decimal_ceiling=0)

    def test_unknown_sink(self):
        # Act & Assert
        with pytest.raises(ConfigurationError):
            StorageConfig(sink="database")


class TestConfigLoader:
    """Tests for the hierarchical loader."""

    def test_defaults_and_bundled_vocabularies(self):
        # Act
        config, unknown = ConfigLoader().load([])

        # Assert
        assert unknown == []
        assert config.review.review_threshold == 0.75
        assert config.review.token_overlap_min == 0.3
        assert config.review.include_unconfirmed is False
        assert config.parsing.price_decimal_ceiling == 1000.0
        assert "bottle" in config.units_data["unit_synonyms"]
        assert config.numbers_data["number_words"]["fr"]["vingt"] == 20
        assert "ajouter" in config.actions_data["actions"]["add"]

    def test_missing_json_files_yield_empty_tables(self, tmp_path):
        # Act
        config, _ = ConfigLoader(tmp_path).load([])

        # Assert
        assert config.units_data == {}
        assert config.google_sheets_config == {}

    def test_malformed_json_is_ignored(self, tmp_path):
        # Arrange
        (tmp_path / "units.json").write_text("{not json", encoding="utf-8")
        (tmp_path / "numbers.json").write_text(json.dumps({"decimal_tokens": ["virgule"]}), encoding="utf-8")

        # Act
        config, _ = ConfigLoader(tmp_path).load([])

        # Assert
        assert config.units_data == {}
        assert config.numbers_data == {"decimal_tokens": ["virgule"]}

    def test_environment_overrides(self, monkeypatch):
        # Arrange
        monkeypatch.setenv("REVIEW_THRESHOLD", "0.9")
        monkeypatch.setenv("INCLUDE_UNCONFIRMED", "yes")
        monkeypatch.setenv("PRICE_DECIMAL_CEILING", "100")
        monkeypatch.setenv("INVENTORY_SINK", "none")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        # Act
        config, _ = ConfigLoader().load([])

        # Assert
        assert config.review.review_threshold == 0.9
        assert config.review.token_overlap_min == 0.3
        assert config.review.include_unconfirmed is True
        assert config.parsing.price_decimal_ceiling == 100.0
        assert config.storage.sink == "none"
        assert config.log_level == "DEBUG"

    def test_invalid_environment_number(self, monkeypatch):
        # Arrange
        monkeypatch.setenv("REVIEW_THRESHOLD", "high")

        # Act & Assert
        with pytest.raises(ConfigurationError):
            ConfigLoader().load([])

    def test_cli_overrides_environment(self, monkeypatch):
        # Arrange
        monkeypatch.setenv("REVIEW_THRESHOLD", "0.9")

        # Act
        config, unknown = ConfigLoader().load(
            ["--review-threshold", "0.6", "--sink", "sheets", "--input", "notes.txt"]
        )

        # Assert
        assert config.review.review_threshold == 0.6
        assert config.storage.sink == "sheets"
        assert unknown == ["--input", "notes.txt"]

    def test_cli_catalog_and_debug(self):
        # Act
        config, _ = ConfigLoader().load(["--catalog", "/tmp/catalog.json", "--debug"])

        # Assert
        assert config.storage.catalog_path == "/tmp/catalog.json"
        assert config.debug is True

    def test_deep_update_keeps_nested_keys(self):
        # Arrange
        target = {"review": {"review_threshold": 0.75, "token_overlap_min": 0.3}}

        # Act
        ConfigLoader._deep_update(target, {"review": {"review_threshold": 0.5}})

        # Assert
        assert target == {"review": {"review_threshold": 0.5, "token_overlap_min": 0.3}}


class TestConfigurationServiceFactory:
    """Tests for ConfigurationServiceFactory."""

    @patch('config.service.ConfigLoader')
    def test_create_from_args(self, mock_loader_class):
        # Arrange
        mock_loader = Mock()
        mock_config = Mock(spec=AppConfig)
        mock_loader.load.return_value = (mock_config, ["--unknown"])
        mock_loader_class.return_value = mock_loader

        # Act
        service, unknown = ConfigurationServiceFactory.create_from_args(["--sink", "none"])

        # Assert
        assert isinstance(service, ConfigurationService)
        assert unknown == ["--unknown"]
        mock_loader.load.assert_called_once_with(["--sink", "none"])

    def test_create_from_config(self):
        # Arrange
        mock_config = Mock(spec=AppConfig)

        # Act
        service = ConfigurationServiceFactory.create_from_config(mock_config)

        # Assert
        assert isinstance(service, ConfigurationService)
        assert service.raw_config is mock_config

    @patch('config.service.ConfigLoader')
    def test_create_default(self, mock_loader_class):
        # Arrange
        mock_loader = Mock()
        mock_config = Mock(spec=AppConfig)
        mock_loader.load.return_value = (mock_config, [])
        mock_loader_class.return_value = mock_loader

        # Act
        service = ConfigurationServiceFactory.create_default()

        # Assert
        assert isinstance(service, ConfigurationService)
        mock_loader.load.assert_called_once_with([])
