"""Spoken/displayed feedback for reviewed items."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from extraction.models import ResolvedItem

NOT_UNDERSTOOD = "Je n'ai pas compris. Pourriez-vous répéter?"


@dataclass(frozen=True)
class SuggestedAction:
    type: str
    description: str


REVIEW_ACTIONS = (
    SuggestedAction("repeat", "Répéter la dictée pour ce produit"),
    SuggestedAction("take_photo", "Prendre une photo du produit"),
    SuggestedAction("add_new", "Ajouter comme nouveau produit à la base de données"),
    SuggestedAction("skip", "Ignorer ce produit"),
)


def _format_quantity(quantity: float) -> str:
    return f"{quantity:g}"


def confirmation_text(item: Optional[ResolvedItem]) -> str:
    """French confirmation prompt for one item."""
    if item is None:
        return NOT_UNDERSTOOD

    quantity = _format_quantity(item.quantity)
    if item.needs_review:
        if item.product_id is not None:
            return (
                f"J'ai peut-être entendu {quantity} {item.unit.value} de {item.product_name}. "
                "Est-ce correct?"
            )
        return (
            f'Je n\'ai pas reconnu le produit "{item.product_name}". '
            "Voulez-vous l'ajouter à la base de données?"
        )
    return f"Enregistré: {quantity} {item.unit.value} de {item.product_name}"


def suggest_actions(items: List[ResolvedItem]) -> List[Dict[str, object]]:
    """Suggested follow-ups for every item that needs review."""
    return [
        {"item": item, "actions": list(REVIEW_ACTIONS)}
        for item in items
        if item.needs_review
    ]
