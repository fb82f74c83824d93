"""Data types flowing through the extraction pipeline."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class SourceType(str, Enum):
    VOICE = "voice"
    INVOICE = "invoice"


class Action(str, Enum):
    ADD = "add"
    REMOVE = "remove"
    MOVE = "move"
    UNKNOWN = "unknown"


class Unit(str, Enum):
    BOTTLE = "bottle"
    CAN = "can"
    BOX = "box"
    PACK = "pack"
    KG = "kg"
    G = "g"
    L = "l"
    ML = "ml"
    PIECE = "piece"


@dataclass(frozen=True)
class RawTextBlock:
    """Text handed over by a transcription or OCR/translation collaborator.

    Attributes:
        text: Transcript or OCR text, already in the working language
        source_type: Whether the text comes from a voice recording or an invoice
        source_language: Language code of the original document or utterance
        confidence: Upstream recognition confidence (0.0-1.0)
    """
    text: str
    source_type: SourceType
    source_language: str = "fr"
    confidence: float = 1.0

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")


@dataclass(frozen=True)
class ProductCatalogEntry:
    """Known product, read-only to the pipeline."""
    id: str
    name: str
    unit: Optional[str] = None
    price: Optional[float] = None
    location: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProductCatalogEntry":
        price = data.get("price")
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            unit=data.get("unit"),
            price=float(price) if price not in (None, "") else None,
            location=data.get("location"),
        )


@dataclass(frozen=True)
class CandidateItem:
    """Freshly segmented line, before unit normalization and product matching."""
    raw_fragment: str
    action: Action
    quantity_raw: str
    product_raw: str
    unit_raw: Optional[str] = None
    location_raw: Optional[str] = None
    price_raw: Optional[str] = None


@dataclass(frozen=True)
class ResolvedItem:
    """Candidate after unit normalization and catalog matching.

    ``needs_review`` is true whenever ``product_id`` is None or ``confidence``
    is below the review threshold; build instances through ``resolve`` to keep
    that invariant.
    """
    product_id: Optional[str]
    product_name: str
    quantity: float
    unit: Unit
    confidence: float
    needs_review: bool
    original_text: str
    price: Optional[float] = None
    location: Optional[str] = None
    action: Action = Action.ADD

    def __post_init__(self):
        if self.quantity < 0:
            raise ValueError(f"quantity must be >= 0, got {self.quantity}")

    @classmethod
    def resolve(cls, *, review_threshold: float, **fields: Any) -> "ResolvedItem":
        """Create an item with ``needs_review`` derived from the threshold."""
        fields["needs_review"] = requires_review(
            fields.get("product_id"), fields["confidence"], review_threshold
        )
        return cls(**fields)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit": self.unit.value,
            "price": self.price,
            "location": self.location,
            "action": self.action.value,
            "confidence": round(self.confidence, 4),
            "needs_review": self.needs_review,
            "original_text": self.original_text,
        }


def requires_review(product_id: Optional[str], confidence: float, review_threshold: float) -> bool:
    return product_id is None or confidence < review_threshold


@dataclass(frozen=True)
class SkippedFragment:
    """Fragment dropped during extraction, with the reason."""
    fragment: str
    reason: str


@dataclass
class ExtractionResult:
    """Outcome of one extraction run.

    Attributes:
        items: Resolved items in document/utterance order
        candidates: Candidate items the resolved items were built from
        skipped: Fragments dropped because no quantity could be parsed
    """
    items: List[ResolvedItem] = field(default_factory=list)
    candidates: List[CandidateItem] = field(default_factory=list)
    skipped: List[SkippedFragment] = field(default_factory=list)

    @property
    def recognized_count(self) -> int:
        return sum(1 for item in self.items if not item.needs_review)

    @property
    def review_count(self) -> int:
        return sum(1 for item in self.items if item.needs_review)
