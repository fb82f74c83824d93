"""
Review/confirmation state machine for one voice or invoice processing run.

Item states:
    pending   -> confirmed  (confirm, or an edit that supplies a product_id)
    pending   -> pending    (any other edit)
    confirmed -> pending    (edit without a product_id)
    any       -> removed    (terminal for that item)

Session states:
    open -> finalized (once; later mutations raise InvalidStateError)

Pending is a review marker, not a commit gate. finalize() returns every
non-removed item and the reconciler filters on ``needs_review`` alone, so a
matched high-confidence item put back to pending by an edit is still
reconciled. Callers wanting re-confirmation check pending_indices() before
finalizing.

A session is single-owner and carries no locking; callers serialize
mutations per session_id.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from loguru import logger

from core.exceptions import InvalidStateError, NotFoundError, ValidationError
from extraction.models import ResolvedItem, Unit, requires_review

DEFAULT_REVIEW_THRESHOLD = 0.75


class ItemState(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REMOVED = "removed"


class SessionState(str, Enum):
    OPEN = "open"
    FINALIZED = "finalized"


@dataclass(frozen=True)
class ReviewEntry:
    """An item held by a session together with its review state."""
    item: ResolvedItem
    state: ItemState

    @property
    def is_active(self) -> bool:
        return self.state is not ItemState.REMOVED


class ReviewSession:
    """Ordered list of resolved items awaiting confirmation."""

    EDITABLE_FIELDS = frozenset({"product_id", "product_name", "quantity", "unit", "price", "location"})

    def __init__(
        self,
        session_id: Optional[str] = None,
        location: str = "",
        period: str = "",
        review_threshold: float = DEFAULT_REVIEW_THRESHOLD,
    ):
        self.session_id = session_id or uuid.uuid4().hex
        self.location = location
        self.period = period
        self.review_threshold = review_threshold
        self.created_at = datetime.now()
        self.state = SessionState.OPEN
        self._entries: List[ReviewEntry] = []
        self._finalized_items: Tuple[ResolvedItem, ...] = ()

    def __repr__(self) -> str:
        return (
            f"ReviewSession(id={self.session_id}, state={self.state.value}, "
            f"items={len(self._entries)})"
        )

    @property
    def entries(self) -> Tuple[ReviewEntry, ...]:
        return tuple(self._entries)

    @property
    def is_finalized(self) -> bool:
        return self.state is SessionState.FINALIZED

    @property
    def finalized_items(self) -> List[ResolvedItem]:
        """Items returned by finalize(); empty while the session is open."""
        return list(self._finalized_items)

    def active_items(self) -> List[ResolvedItem]:
        """Non-removed items in insertion order."""
        return [entry.item for entry in self._entries if entry.is_active]

    def pending_indices(self) -> List[int]:
        return [i for i, entry in enumerate(self._entries) if entry.state is ItemState.PENDING]

    def add_item(self, item: ResolvedItem) -> int:
        """Append an item; it is auto-confirmed unless it needs review. Returns its index."""
        self._ensure_open()
        state = ItemState.PENDING if item.needs_review else ItemState.CONFIRMED
        self._entries.append(ReviewEntry(item, state))
        logger.debug(f"Session {self.session_id}: item {len(self._entries) - 1} added as {state.value}")
        return len(self._entries) - 1

    def confirm_item(self, index: int) -> ResolvedItem:
        """
        Confirm an item after human verification.

        Raises:
            InvalidStateError: If the session is finalized, the item was
                removed or it has no product_id
            NotFoundError: If index does not exist
        """
        self._ensure_open()
        entry = self._entry(index)
        if entry.state is ItemState.REMOVED:
            raise InvalidStateError(f"Item {index} was removed and cannot be confirmed")
        if entry.item.product_id is None:
            raise InvalidStateError(f"Item {index} has no product_id; edit it before confirming")

        item = replace(entry.item, confidence=1.0, needs_review=False)
        self._entries[index] = ReviewEntry(item, ItemState.CONFIRMED)
        logger.debug(f"Session {self.session_id}: item {index} confirmed")
        return item

    def edit_item(self, index: int, patch: Mapping[str, Any]) -> ResolvedItem:
        """
        Apply a partial update to an item.

        Supplying a non-null ``product_id`` confirms the item; any other edit
        puts it back to pending.

        Raises:
            ValueError: If the patch holds a field that cannot be edited
            ValidationError: If the patched quantity is negative
            InvalidStateError: If the session is finalized or the item was removed
            NotFoundError: If index does not exist
        """
        self._ensure_open()
        entry = self._entry(index)
        if entry.state is ItemState.REMOVED:
            raise InvalidStateError(f"Item {index} was removed and cannot be edited")

        unknown = set(patch) - self.EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot edit fields: {', '.join(sorted(unknown))}")

        changes: Dict[str, Any] = dict(patch)
        if "quantity" in changes:
            quantity = float(changes["quantity"])
            if quantity < 0:
                raise ValidationError(f"quantity must be >= 0, got {quantity}")
            changes["quantity"] = quantity
        if "unit" in changes:
            changes["unit"] = Unit(changes["unit"])

        if changes.get("product_id") is not None:
            item = replace(entry.item, **changes, confidence=1.0, needs_review=False)
            state = ItemState.CONFIRMED
        else:
            item = replace(entry.item, **changes)
            item = replace(
                item,
                needs_review=requires_review(item.product_id, item.confidence, self.review_threshold),
            )
            state = ItemState.PENDING

        self._entries[index] = ReviewEntry(item, state)
        logger.debug(f"Session {self.session_id}: item {index} edited -> {state.value}")
        return item

    def remove_item(self, index: int) -> None:
        """Mark an item removed. Siblings keep their indices and states."""
        self._ensure_open()
        entry = self._entry(index)
        self._entries[index] = ReviewEntry(entry.item, ItemState.REMOVED)
        logger.debug(f"Session {self.session_id}: item {index} removed")

    def finalize(self) -> List[ResolvedItem]:
        """
        Close the session and return its non-removed items.

        Raises:
            InvalidStateError: If the session was already finalized
        """
        self._ensure_open()
        self._finalized_items = tuple(self.active_items())
        self.state = SessionState.FINALIZED
        logger.info(
            f"Session {self.session_id} finalized with {len(self._finalized_items)} items "
            f"({len(self.pending_indices())} still pending)"
        )
        return list(self._finalized_items)

    def summary(self) -> Dict[str, Any]:
        counts = {state.value: 0 for state in ItemState}
        for entry in self._entries:
            counts[entry.state.value] += 1
        return {
            "session_id": self.session_id,
            "state": self.state.value,
            "location": self.location,
            "period": self.period,
            "items": len(self._entries),
            **counts,
        }

    def _ensure_open(self) -> None:
        if self.state is not SessionState.OPEN:
            raise InvalidStateError(f"Session {self.session_id} is {self.state.value}")

    def _entry(self, index: int) -> ReviewEntry:
        if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index < len(self._entries):
            raise NotFoundError(f"No item at index {index} in session {self.session_id}")
        return self._entries[index]
