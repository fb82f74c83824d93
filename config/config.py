"""Hierarchical configuration for the inventory extraction backend.

Configuration is assembled with the following precedence:
1. Default values (lowest priority)
2. JSON configuration files
3. Environment variables
4. Command-line arguments (highest priority)

Sources are deep-merged, so any of them may override a single nested key.
"""
from __future__ import annotations

import argparse
import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger

from core.exceptions import ConfigurationError

CONFIG_DIR = Path(__file__).resolve().parent

SINK_CHOICES = ("none", "excel", "sheets")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass(frozen=True)
class ReviewConfig:
    """Review and reconciliation thresholds.

    Attributes:
        review_threshold: Minimum confidence for an item to skip human review
        token_overlap_min: Minimum shared-token ratio for a catalog match
        include_unconfirmed: Reconcile items that still need review
    """
    review_threshold: float = 0.75
    token_overlap_min: float = 0.3
    include_unconfirmed: bool = False

    def __post_init__(self):
        for name in ("review_threshold", "token_overlap_min"):
            value = getattr(self, name)
            if not 0.0 <= float(value) <= 1.0:
                raise ConfigurationError(f"{name} must be within [0, 1], got {value}")


@dataclass(frozen=True)
class ParsingConfig:
    """Numeric parsing settings.

    Attributes:
        price_decimal_ceiling: A trailing ",NN" is read as decimals only when the
            integer part stays below this value
        working_language: Language the upstream collaborators translate into
    """
    price_decimal_ceiling: float = 1000.0
    working_language: str = "fr"

    def __post_init__(self):
        if self.price_decimal_ceiling <= 0:
            raise ConfigurationError(
                f"price_decimal_ceiling must be positive, got {self.price_decimal_ceiling}"
            )


@dataclass(frozen=True)
class StorageConfig:
    """Catalog source and persistence target.

    Attributes:
        catalog_path: JSON file holding the product catalog
        excel_output_path: Workbook written by the Excel sink
        sink: Persistence target ("none", "excel" or "sheets")
    """
    catalog_path: str = str(CONFIG_DIR / "products.json")
    excel_output_path: str = "data/inventory.xlsx"
    sink: str = "excel"

    def __post_init__(self):
        if self.sink not in SINK_CHOICES:
            raise ConfigurationError(f"Invalid sink: {self.sink}")


@dataclass(frozen=True)
class AppConfig:
    """Complete application configuration.

    Attributes:
        review: Review thresholds
        parsing: Numeric parsing settings
        storage: Catalog and persistence settings
        units_data: Unit synonyms and category keyword tables
        numbers_data: Spoken number vocabulary
        actions_data: Action, location and filler vocabularies
        asr_corrections: Regex corrections applied to voice transcripts
        google_sheets_config: Google Sheets sink settings
        debug: Debug mode flag
        log_level: Logging verbosity level
    """
    review: ReviewConfig
    parsing: ParsingConfig
    storage: StorageConfig

    units_data: Dict[str, Any] = field(default_factory=dict)
    numbers_data: Dict[str, Any] = field(default_factory=dict)
    actions_data: Dict[str, Any] = field(default_factory=dict)
    asr_corrections: Dict[str, str] = field(default_factory=dict)
    google_sheets_config: Dict[str, Any] = field(default_factory=dict)

    debug: bool = False
    log_level: str = "INFO"


class ConfigLoader:
    """Loads and validates configuration from all sources."""

    JSON_FILES = {
        "units_data": "units.json",
        "numbers_data": "numbers.json",
        "actions_data": "actions.json",
        "asr_corrections": "asr_corrections.json",
        "google_sheets_config": "google_sheets.json",
    }

    def __init__(self, config_dir: Path = CONFIG_DIR):
        self.config_dir = Path(config_dir)

    def load(self, argv: List[str]) -> Tuple[AppConfig, List[str]]:
        """Load configuration: defaults → files → env → CLI.

        Args:
            argv: Command-line arguments to parse

        Returns:
            Tuple of (AppConfig instance, unknown CLI arguments)
        """
        config_dict = self._get_defaults()
        self._deep_update(config_dict, self._load_json_configs())
        self._deep_update(config_dict, self._load_env_overrides())

        cli_overrides, unknown_args = self._parse_cli_args(argv)
        self._deep_update(config_dict, cli_overrides)

        return self._build_config(config_dict), unknown_args

    def _get_defaults(self) -> Dict[str, Any]:
        return {
            "review": {
                "review_threshold": 0.75,
                "token_overlap_min": 0.3,
                "include_unconfirmed": False,
            },
            "parsing": {
                "price_decimal_ceiling": 1000.0,
                "working_language": "fr",
            },
            "storage": {
                "catalog_path": str(self.config_dir / "products.json"),
                "excel_output_path": "data/inventory.xlsx",
                "sink": "excel",
            },
            "debug": False,
            "log_level": "INFO",
        }

    def _load_json_configs(self) -> Dict[str, Any]:
        """Load the JSON data files; a missing or unreadable file yields an empty dict."""
        json_configs: Dict[str, Any] = {}

        for key, filename in self.JSON_FILES.items():
            file_path = self.config_dir / filename
            if not file_path.exists():
                json_configs[key] = {}
                continue
            try:
                with open(file_path, "r", encoding="utf-8") as f:
                    json_configs[key] = json.load(f)
            except (json.JSONDecodeError, OSError) as e:
                logger.warning(f"Failed to load {filename}: {e}")
                json_configs[key] = {}

        return json_configs

    def _load_env_overrides(self) -> Dict[str, Any]:
        """Read overrides from the environment.

        Supported variables: REVIEW_THRESHOLD, TOKEN_OVERLAP_MIN,
        INCLUDE_UNCONFIRMED, PRICE_DECIMAL_CEILING, INVENTORY_SINK,
        CATALOG_PATH, EXCEL_OUTPUT_PATH, DEBUG, LOG_LEVEL.
        """
        overrides: Dict[str, Any] = {}

        review = overrides.setdefault("review", {})
        threshold = self._env_float("REVIEW_THRESHOLD")
        if threshold is not None:
            review["review_threshold"] = threshold
        overlap = self._env_float("TOKEN_OVERLAP_MIN")
        if overlap is not None:
            review["token_overlap_min"] = overlap
        if os.getenv("INCLUDE_UNCONFIRMED") is not None:
            review["include_unconfirmed"] = self._env_bool("INCLUDE_UNCONFIRMED")

        ceiling = self._env_float("PRICE_DECIMAL_CEILING")
        if ceiling is not None:
            overrides["parsing"] = {"price_decimal_ceiling": ceiling}

        storage = overrides.setdefault("storage", {})
        for env_name, key in (
            ("INVENTORY_SINK", "sink"),
            ("CATALOG_PATH", "catalog_path"),
            ("EXCEL_OUTPUT_PATH", "excel_output_path"),
        ):
            value = os.getenv(env_name)
            if value:
                storage[key] = value

        if self._env_bool("DEBUG"):
            overrides["debug"] = True

        log_level = os.getenv("LOG_LEVEL")
        if log_level:
            overrides["log_level"] = log_level.upper()

        return overrides

    def _parse_cli_args(self, argv: List[str]) -> Tuple[Dict[str, Any], List[str]]:
        parser = argparse.ArgumentParser(description="Inventory extraction backend", add_help=False)
        parser.add_argument("--review-threshold", type=float, help="Confidence needed to skip review")
        parser.add_argument("--token-overlap-min", type=float, help="Minimum token overlap ratio for a match")
        parser.add_argument(
            "--include-unconfirmed",
            action="store_true",
            help="Reconcile items that still need review",
        )
        parser.add_argument("--sink", choices=SINK_CHOICES, help="Persistence target")
        parser.add_argument("--catalog", help="Path to the product catalog JSON file")
        parser.add_argument("--debug", action="store_true", help="Enable debug mode")
        parser.add_argument("--log-level", choices=LOG_LEVELS, help="Set logging level")

        known, unknown = parser.parse_known_args(argv)

        overrides: Dict[str, Any] = {}
        if known.review_threshold is not None:
            overrides.setdefault("review", {})["review_threshold"] = known.review_threshold
        if known.token_overlap_min is not None:
            overrides.setdefault("review", {})["token_overlap_min"] = known.token_overlap_min
        if known.include_unconfirmed:
            overrides.setdefault("review", {})["include_unconfirmed"] = True
        if known.sink:
            overrides.setdefault("storage", {})["sink"] = known.sink
        if known.catalog:
            overrides.setdefault("storage", {})["catalog_path"] = known.catalog
        if known.debug:
            overrides["debug"] = True
        if known.log_level:
            overrides["log_level"] = known.log_level

        return overrides, unknown

    def _build_config(self, config_dict: Dict[str, Any]) -> AppConfig:
        """Build the frozen AppConfig.

        Raises:
            ConfigurationError: If a section holds invalid values
        """
        try:
            review = ReviewConfig(**config_dict.get("review", {}))
            parsing = ParsingConfig(**config_dict.get("parsing", {}))
            storage = StorageConfig(**config_dict.get("storage", {}))
        except TypeError as e:
            raise ConfigurationError(f"Unknown configuration key: {e}") from e

        return AppConfig(
            review=review,
            parsing=parsing,
            storage=storage,
            units_data=config_dict.get("units_data", {}),
            numbers_data=config_dict.get("numbers_data", {}),
            actions_data=config_dict.get("actions_data", {}),
            asr_corrections=config_dict.get("asr_corrections", {}),
            google_sheets_config=config_dict.get("google_sheets_config", {}),
            debug=config_dict.get("debug", False),
            log_level=config_dict.get("log_level", "INFO"),
        )

    @staticmethod
    def _env_bool(name: str, default: bool = False) -> bool:
        """True for "1", "true", "yes", "y", "on"."""
        val = os.getenv(name)
        if val is None:
            return default
        return val.strip().lower() in {"1", "true", "yes", "y", "on"}

    @staticmethod
    def _env_float(name: str) -> Optional[float]:
        val = os.getenv(name)
        if val is None or not val.strip():
            return None
        try:
            return float(val)
        except ValueError as e:
            raise ConfigurationError(f"{name} must be a number, got {val!r}") from e

    @staticmethod
    def _deep_update(target: Dict[str, Any], updates: Dict[str, Any]) -> None:
        """Recursively merge ``updates`` into ``target`` without clobbering nested dicts."""
        for key, new_val in updates.items():
            if isinstance(new_val, dict) and isinstance(target.get(key), dict):
                ConfigLoader._deep_update(target[key], new_val)  # type: ignore[index]
            else:
                target[key] = new_val


def parse_app_args(argv: List[str]) -> Tuple[AppConfig, List[str]]:
    """Load configuration from the default config directory."""
    return ConfigLoader().load(argv)


__all__ = [
    "AppConfig",
    "ReviewConfig",
    "ParsingConfig",
    "StorageConfig",
    "ConfigLoader",
    "parse_app_args",
    "CONFIG_DIR",
]
