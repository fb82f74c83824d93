"""Configuration service facade for simplified configuration access."""
from __future__ import annotations

from typing import Any

from config.config import AppConfig, ConfigLoader


class ConfigurationService:
    """Flat, read-only view over AppConfig.

    Example:
        config_service = ConfigurationService(config)
        threshold = config_service.review_threshold  # instead of config.review.review_threshold
    """

    def __init__(self, config: AppConfig):
        self._config = config

    # Review thresholds
    @property
    def review_threshold(self) -> float:
        return self._config.review.review_threshold

    @property
    def token_overlap_min(self) -> float:
        return self._config.review.token_overlap_min

    @property
    def include_unconfirmed(self) -> bool:
        return self._config.review.include_unconfirmed

    # Parsing
    @property
    def price_decimal_ceiling(self) -> float:
        return self._config.parsing.price_decimal_ceiling

    @property
    def working_language(self) -> str:
        return self._config.parsing.working_language

    # Storage
    @property
    def catalog_path(self) -> str:
        return self._config.storage.catalog_path

    @property
    def excel_output_path(self) -> str:
        return self._config.storage.excel_output_path

    @property
    def sink(self) -> str:
        return self._config.storage.sink

    # General
    @property
    def debug(self) -> bool:
        return self._config.debug

    @property
    def log_level(self) -> str:
        """Effective log level; debug mode forces DEBUG."""
        return "DEBUG" if self._config.debug else self._config.log_level

    def get_google_sheets_config(self) -> dict[str, Any]:
        return self._config.google_sheets_config

    @property
    def raw_config(self) -> AppConfig:
        """Underlying AppConfig for components that need the data tables."""
        return self._config

    def to_dict(self) -> dict[str, Any]:
        """Serializable summary of the effective settings."""
        return {
            "review": {
                "review_threshold": self.review_threshold,
                "token_overlap_min": self.token_overlap_min,
                "include_unconfirmed": self.include_unconfirmed,
            },
            "parsing": {
                "price_decimal_ceiling": self.price_decimal_ceiling,
                "working_language": self.working_language,
            },
            "storage": {
                "catalog_path": self.catalog_path,
                "excel_output_path": self.excel_output_path,
                "sink": self.sink,
            },
            "debug": self.debug,
            "log_level": self.log_level,
        }


class ConfigurationServiceFactory:
    """Factory methods for ConfigurationService."""

    @staticmethod
    def create_from_args(args: list[str]) -> tuple[ConfigurationService, list[str]]:
        config, unknown_args = ConfigLoader().load(args)
        return ConfigurationService(config), unknown_args

    @staticmethod
    def create_from_config(config: AppConfig) -> ConfigurationService:
        return ConfigurationService(config)

    @staticmethod
    def create_default() -> ConfigurationService:
        config, _ = ConfigLoader().load([])
        return ConfigurationService(config)
