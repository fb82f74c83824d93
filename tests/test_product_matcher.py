"""Tests for catalog matching."""
import pytest
from unittest.mock import Mock

from extraction.config import ConfigManager
from extraction.models import ProductCatalogEntry
from extraction.product_matcher import NO_MATCH, ProductMatcher


@pytest.fixture
def catalog():
    return [
        ProductCatalogEntry(id="P001", name="Vin Rouge"),
        ProductCatalogEntry(id="P002", name="Vin Blanc"),
        ProductCatalogEntry(id="P003", name="Bière Blonde"),
        ProductCatalogEntry(id="P004", name="Vodka Grey Goose"),
    ]


@pytest.fixture
def matcher():
    return ProductMatcher(ConfigManager())


class TestProductMatcher:
    """Exact, containment and token-overlap scoring."""

    def test_exact_match_ignores_case_and_accents(self, matcher, catalog):
        # Act
        result = matcher.match("biere BLONDE", catalog)

        # Assert
        assert result.matched
        assert result.entry.id == "P003"
        assert result.confidence == 1.0

    def test_containment(self, matcher, catalog):
        result = matcher.match("vodka", catalog)
        assert result.entry.id == "P004"
        assert result.confidence == 0.8

    def test_catalog_name_inside_query(self, matcher, catalog):
        result = matcher.match("grande bouteille de vodka grey goose", catalog)
        assert result.entry.id == "P004"
        assert result.confidence == 0.8

    def test_token_overlap(self, matcher, catalog):
        # Arrange
        name = "rouge vin italien"

        # Act
        result = matcher.match(name, catalog)

        # Assert
        assert result.entry.id == "P001"
        assert result.confidence == pytest.approx(2 / 3)

    def test_overlap_below_minimum_is_rejected(self, catalog):
        # Arrange
        strict = ProductMatcher(Mock(token_overlap_min=0.5))

        # Act
        result = strict.match("vodka premium russe", catalog)

        # Assert
        assert result == NO_MATCH

    def test_ties_keep_catalog_order(self, matcher, catalog):
        result = matcher.match("vin", catalog)
        assert result.entry.id == "P001"
        assert result.confidence == 0.8

    def test_unmatched_product(self, matcher):
        # Arrange
        catalog = [
            ProductCatalogEntry(id="1", name="Wine"),
            ProductCatalogEntry(id="2", name="Beer"),
            ProductCatalogEntry(id="3", name="Vodka"),
        ]

        # Act
        result = matcher.match("Zythum Exotic Ale", catalog)

        # Assert
        assert result.entry is None
        assert result.confidence == 0.0
        assert not result.matched

    @pytest.mark.parametrize("name", ["", "   ", "..."])
    def test_empty_name(self, matcher, catalog, name):
        assert matcher.match(name, catalog) == NO_MATCH

    def test_empty_catalog(self, matcher):
        assert matcher.match("Vin Rouge", []) == NO_MATCH

    def test_score_partial_word_is_not_containment(self, matcher):
        assert matcher.score("vin", "vinaigre balsamique") == 0.0

    def test_overlap_counts_repeated_words(self):
        # Arrange
        lenient = ProductMatcher(Mock(token_overlap_min=0.2))

        # Act
        ratio = lenient.score("vin vin vin blanc", "blanc sec")

        # Assert
        assert ratio == pytest.approx(0.25)


class TestSuggestions:
    """Fuzzy "did you mean" ranking."""

    def test_suggest_ranks_closest_first(self, matcher, catalog):
        # Act
        suggestions = matcher.suggest("vodka grey", catalog)

        # Assert
        assert suggestions
        entry, score = suggestions[0]
        assert entry.id == "P004"
        assert score == 1.0

    def test_suggest_respects_limit(self, matcher, catalog):
        assert len(matcher.suggest("vin", catalog, limit=1, score_cutoff=0)) == 1

    def test_suggest_nothing_close(self, matcher, catalog):
        assert matcher.suggest("zzzz", catalog) == []
