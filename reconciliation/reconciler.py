"""
Batch reconciliation of reviewed items into inventory update rows.

Items still needing review are filtered out (unless configured otherwise),
invalid items are collected as errors, duplicates are merged by
(product, location, action), and each resulting row is handed to an
optional inventory sink.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from loguru import logger

from core.exceptions import PersistenceError, ValidationError
from extraction.models import Action, ResolvedItem, Unit
from extraction.text_utils import normalize_name

DedupKey = Tuple[str, str, str]


class InventorySink(Protocol):
    """Persistence collaborator receiving one update row at a time."""

    def save(self, row: "UpdateRow") -> None:
        """Persist a row; raise PersistenceError to reject it."""
        ...


@dataclass(frozen=True)
class UpdateRow:
    product_id: Optional[str]
    product_name: str
    quantity: float
    unit: Unit
    location: str
    price: Optional[float]
    action: Action
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit": self.unit.value,
            "location": self.location,
            "price": self.price,
            "action": self.action.value,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class BatchError:
    """A per-item failure collected during reconciliation."""
    item: Any
    reason: str


@dataclass(frozen=True)
class InventoryUpdateBatch:
    """Write-once outcome of one reconciliation.

    Attributes:
        items: Deduplicated rows handed to persistence, in first-seen order
        saved_count: Rows persisted (all valid rows when there is no sink)
        errors: Validation and persistence failures
        skipped_count: Items left out because they still needed review
    """
    location: str
    items: Tuple[UpdateRow, ...] = ()
    saved_count: int = 0
    errors: Tuple[BatchError, ...] = ()
    skipped_count: int = 0

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "location": self.location,
            "items": [row.to_dict() for row in self.items],
            "saved_count": self.saved_count,
            "error_count": self.error_count,
            "errors": [{"item": str(error.item), "reason": error.reason} for error in self.errors],
            "skipped_count": self.skipped_count,
        }


@dataclass
class _PendingRow:
    item: ResolvedItem
    location: str
    quantity: float
    price: Optional[float] = None


class BatchReconciler:
    """Turns finalized review items into an InventoryUpdateBatch."""

    def __init__(
        self,
        include_unconfirmed: bool = False,
        sink: Optional[InventorySink] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.include_unconfirmed = include_unconfirmed
        self.sink = sink
        self.clock = clock

    def reconcile(self, items: Sequence[ResolvedItem], location: str) -> InventoryUpdateBatch:
        """
        Reconcile items for a location.

        Per-item problems never abort the batch: they end up in
        ``InventoryUpdateBatch.errors``.
        """
        accepted = [item for item in items if self.include_unconfirmed or not item.needs_review]
        skipped_count = len(items) - len(accepted)

        errors: List[BatchError] = []
        pending: Dict[DedupKey, _PendingRow] = {}
        for item in accepted:
            try:
                self.validate(item)
            except ValidationError as e:
                logger.warning(f"Rejected item '{item.product_name}': {e}")
                errors.append(BatchError(item, str(e)))
                continue

            item_location = item.location or location
            key = self.dedup_key(item, item_location)
            if key in pending:
                row = pending[key]
                row.quantity += item.quantity
                if row.price is None:
                    row.price = item.price
            else:
                pending[key] = _PendingRow(item, item_location, item.quantity, item.price)

        timestamp = self.clock().isoformat(timespec="seconds")
        rows = tuple(self._to_row(row, timestamp) for row in pending.values())
        saved_count = self._persist(rows, errors)

        batch = InventoryUpdateBatch(
            location=location,
            items=rows,
            saved_count=saved_count,
            errors=tuple(errors),
            skipped_count=skipped_count,
        )
        logger.info(
            f"Reconciled {len(items)} items for '{location}': {len(rows)} rows, "
            f"{batch.saved_count} saved, {batch.error_count} errors, {skipped_count} awaiting review"
        )
        return batch

    @staticmethod
    def validate(item: ResolvedItem) -> None:
        """
        Raises:
            ValidationError: If quantity is not positive or the product name is empty
        """
        if item.quantity <= 0:
            raise ValidationError(f"quantity must be > 0, got {item.quantity:g}")
        if not item.product_name or not item.product_name.strip():
            raise ValidationError("product name is empty")

    @staticmethod
    def dedup_key(item: ResolvedItem, location: str) -> DedupKey:
        product = item.product_id or normalize_name(item.product_name)
        return product, location, item.action.value

    def _to_row(self, pending: _PendingRow, timestamp: str) -> UpdateRow:
        item = pending.item
        return UpdateRow(
            product_id=item.product_id,
            product_name=item.product_name,
            quantity=pending.quantity,
            unit=item.unit,
            location=pending.location,
            price=pending.price,
            action=item.action,
            timestamp=timestamp,
        )

    def _persist(self, rows: Sequence[UpdateRow], errors: List[BatchError]) -> int:
        if self.sink is None:
            return len(rows)

        saved = 0
        for row in rows:
            try:
                self.sink.save(row)
                saved += 1
            except PersistenceError as e:
                logger.error(f"Failed to persist '{row.product_name}' at '{row.location}': {e}")
                errors.append(BatchError(row, str(e)))
        return saved
