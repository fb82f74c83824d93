"""Product catalog providers."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Union

from loguru import logger

from core.exceptions import ConfigurationError
from extraction.models import ProductCatalogEntry


def catalog_from_records(records: Iterable[Mapping[str, Any]]) -> List[ProductCatalogEntry]:
    """Build catalog entries from plain dicts, skipping records without id or name."""
    catalog: List[ProductCatalogEntry] = []
    for record in records:
        if not record.get("id") or not record.get("name"):
            logger.warning(f"Ignoring catalog record without id or name: {record}")
            continue
        catalog.append(ProductCatalogEntry.from_dict(dict(record)))
    return catalog


class JsonCatalogProvider:
    """Reads the catalog from a local JSON file (a list of product records,
    or an object with a "products" list)."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> List[ProductCatalogEntry]:
        """
        Raises:
            ConfigurationError: If the file is missing or malformed
        """
        if not self.path.exists():
            raise ConfigurationError(f"Catalog file not found: {self.path}")
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            raise ConfigurationError(f"Failed to read catalog {self.path}: {e}") from e

        records = data.get("products", []) if isinstance(data, dict) else data
        if not isinstance(records, list):
            raise ConfigurationError(f"Catalog {self.path} must hold a list of products")

        catalog = catalog_from_records(records)
        logger.info(f"Loaded {len(catalog)} catalog entries from {self.path}")
        return catalog
