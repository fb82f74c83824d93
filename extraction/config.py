"""Vocabulary and threshold access for the extraction components."""
from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from config.config import AppConfig, ConfigLoader
from .models import Action, Unit


class ConfigManager:
    """Exposes the loaded JSON vocabularies as lookup tables.

    Tables are built once at construction; the extraction components only
    read them.
    """

    def __init__(self, app_config: Optional[AppConfig] = None):
        if app_config is None:
            app_config, _ = ConfigLoader().load([])

        self.app_config = app_config
        self.units_data = app_config.units_data
        self.numbers_data = app_config.numbers_data
        self.actions_data = app_config.actions_data
        self.asr_corrections: Dict[str, str] = dict(app_config.asr_corrections)

        self.unit_synonyms = self._build_unit_synonyms()
        self.category_units = self._build_category_units()
        self.number_words = self._build_number_words()
        self.action_keywords = self._build_action_keywords()

    # Thresholds
    @property
    def review_threshold(self) -> float:
        return self.app_config.review.review_threshold

    @property
    def token_overlap_min(self) -> float:
        return self.app_config.review.token_overlap_min

    @property
    def include_unconfirmed(self) -> bool:
        return self.app_config.review.include_unconfirmed

    @property
    def price_decimal_ceiling(self) -> float:
        return self.app_config.parsing.price_decimal_ceiling

    # Units
    @property
    def default_unit(self) -> Unit:
        return Unit(self.units_data.get("default_unit", Unit.PIECE.value))

    def _build_unit_synonyms(self) -> Dict[str, Unit]:
        synonyms: Dict[str, Unit] = {}
        for unit_name, words in self.units_data.get("unit_synonyms", {}).items():
            unit = Unit(unit_name)
            synonyms[unit_name] = unit
            for word in words:
                synonyms[word.lower()] = unit
        return synonyms

    def _build_category_units(self) -> List[Tuple[Unit, List[str]]]:
        """Ordered (unit, keywords across all languages) pairs."""
        categories = []
        for category in self.units_data.get("categories", []):
            keywords = [
                word
                for words in category.get("keywords", {}).values()
                for word in words
            ]
            categories.append((Unit(category["unit"]), keywords))
        return categories

    # Numbers
    def _build_number_words(self) -> Dict[str, int]:
        words: Dict[str, int] = {}
        for vocabulary in self.numbers_data.get("number_words", {}).values():
            for word, value in vocabulary.items():
                words[word.lower()] = int(value)
        return words

    @property
    def decimal_tokens(self) -> List[str]:
        return self.numbers_data.get("decimal_tokens", [])

    @property
    def conjunction_tokens(self) -> List[str]:
        return self.numbers_data.get("conjunction_tokens", [])

    # Actions and phrases
    def _build_action_keywords(self) -> Dict[str, Action]:
        keywords: Dict[str, Action] = {}
        for action_name, words in self.actions_data.get("actions", {}).items():
            for word in words:
                keywords[word.lower()] = Action(action_name)
        return keywords

    @property
    def location_keywords(self) -> List[str]:
        return self.actions_data.get("location_keywords", [])

    @property
    def location_prepositions(self) -> List[str]:
        return self.actions_data.get("location_prepositions", [])

    @property
    def filler_words(self) -> List[str]:
        return self.actions_data.get("filler_words", [])

    @property
    def connectors(self) -> List[str]:
        return self.actions_data.get("connectors", [])

    @property
    def currency_words(self) -> List[str]:
        return self.actions_data.get("currency_words", [])

    @property
    def price_markers(self) -> List[str]:
        return self.actions_data.get("price_markers", [])
