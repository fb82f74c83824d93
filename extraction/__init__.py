"""
Line-item extraction package.

Turns voice transcripts and invoice OCR text into resolved inventory items.

Main Components:
    LineItemExtractor: Segments text into candidates and resolves them
    QuantityNormalizer: Numbers, prices and canonical units
    ProductMatcher: Catalog matching with confidence scoring
    TextNormalizer: Unicode cleanup and ASR corrections
    ConfigManager: Vocabulary tables loaded from the JSON configuration

Pipeline:
    RawTextBlock -> TextNormalizer -> segmentation -> CandidateItem
    -> QuantityNormalizer + ProductMatcher -> ResolvedItem
"""

from __future__ import annotations

from .config import ConfigManager
from .invoice_header import InvoiceMetadata, parse_invoice_header
from .line_item_extractor import LineItemExtractor
from .models import (
    Action,
    CandidateItem,
    ExtractionResult,
    ProductCatalogEntry,
    RawTextBlock,
    ResolvedItem,
    SkippedFragment,
    SourceType,
    Unit,
)
from .product_matcher import MatchResult, ProductMatcher
from .quantity_normalizer import NormalizedQuantity, ParsedNumber, QuantityNormalizer
from .text_normalizer import TextNormalizer

__all__ = [
    # Main extraction interface
    "LineItemExtractor",
    "ExtractionResult",

    # Components
    "QuantityNormalizer",
    "NormalizedQuantity",
    "ParsedNumber",
    "ProductMatcher",
    "MatchResult",
    "TextNormalizer",
    "InvoiceMetadata",
    "parse_invoice_header",

    # Data model
    "Action",
    "CandidateItem",
    "ProductCatalogEntry",
    "RawTextBlock",
    "ResolvedItem",
    "SkippedFragment",
    "SourceType",
    "Unit",

    # Configuration management
    "ConfigManager",
]
