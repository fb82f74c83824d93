"""
Product matching against the inventory catalog.

Matching policy, in order:
    1. Exact equality of the normalized names (confidence 1.0)
    2. Whole-word containment in either direction (confidence 0.8)
    3. Word overlap ``shared / max(words(a), words(b))``, accepted when the
       ratio reaches ``token_overlap_min`` (confidence = ratio). Words are
       counted per occurrence, so a repeated word is shared at most as often
       as it appears in both names

The best entry wins; ties keep catalog order. No match never raises.
"""
from collections import Counter
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from loguru import logger
from rapidfuzz import process, fuzz

from .config import ConfigManager
from .models import ProductCatalogEntry
from .text_utils import contains_keyword, normalize_name

EXACT_CONFIDENCE = 1.0
CONTAINMENT_CONFIDENCE = 0.8


@dataclass(frozen=True)
class MatchResult:
    entry: Optional[ProductCatalogEntry]
    confidence: float

    @property
    def matched(self) -> bool:
        return self.entry is not None


NO_MATCH = MatchResult(entry=None, confidence=0.0)


class ProductMatcher:
    """Scores raw product names against catalog entries."""

    def __init__(self, config: ConfigManager) -> None:
        self.config = config

    def match(self, name_raw: str, catalog: Sequence[ProductCatalogEntry]) -> MatchResult:
        """
        Find the catalog entry best matching a raw product name.

        Args:
            name_raw: Product text from a transcript or invoice line
            catalog: Catalog entries, in iteration order

        Returns:
            MatchResult with the best entry, or ``NO_MATCH``
        """
        name = normalize_name(name_raw)
        if not name or not catalog:
            return NO_MATCH

        best = NO_MATCH
        for entry in catalog:
            confidence = self.score(name, normalize_name(entry.name))
            if confidence > best.confidence:
                best = MatchResult(entry, confidence)
                if confidence >= EXACT_CONFIDENCE:
                    break

        if best.matched:
            logger.debug(f"Matched '{name_raw}' -> {best.entry.id} ({best.confidence:.2f})")
        else:
            logger.debug(f"No catalog match for '{name_raw}'")
        return best

    def score(self, name: str, candidate: str) -> float:
        """Confidence for two already-normalized names."""
        if not name or not candidate:
            return 0.0
        if name == candidate:
            return EXACT_CONFIDENCE
        if contains_keyword(name, candidate) or contains_keyword(candidate, name):
            return CONTAINMENT_CONFIDENCE

        name_words, candidate_words = Counter(name.split()), Counter(candidate.split())
        shared = sum((name_words & candidate_words).values())
        ratio = shared / max(sum(name_words.values()), sum(candidate_words.values()))
        if shared and ratio >= self.config.token_overlap_min:
            return ratio
        return 0.0

    def suggest(
        self,
        name_raw: str,
        catalog: Sequence[ProductCatalogEntry],
        limit: int = 3,
        score_cutoff: float = 60,
    ) -> List[Tuple[ProductCatalogEntry, float]]:
        """
        Rank catalog entries that look like name_raw, for "did you mean" prompts.

        Scores are rapidfuzz partial ratios scaled to 0.0-1.0.
        """
        name = normalize_name(name_raw)
        if not name or not catalog:
            return []

        choices = {index: normalize_name(entry.name) for index, entry in enumerate(catalog)}
        ranked = process.extract(
            name, choices, scorer=fuzz.partial_ratio, limit=limit, score_cutoff=score_cutoff
        )
        return [(catalog[index], round(score / 100.0, 4)) for _, score, index in ranked]
