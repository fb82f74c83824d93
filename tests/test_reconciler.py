"""Tests for batch reconciliation."""
from datetime import datetime

import pytest
from unittest.mock import Mock

from core.exceptions import PersistenceError, ValidationError
from extraction.models import Action, ResolvedItem, Unit
from reconciliation.reconciler import BatchReconciler, InventoryUpdateBatch, UpdateRow


def make_item(product_id="P001", name="Vin Rouge", quantity=3.0, confidence=1.0, **overrides):
    fields = dict(
        product_id=product_id,
        product_name=name,
        quantity=quantity,
        unit=Unit.BOTTLE,
        confidence=confidence,
        original_text=name,
    )
    fields.update(overrides)
    return ResolvedItem.resolve(review_threshold=0.75, **fields)


def fixed_clock():
    return datetime(2024, 3, 15, 10, 30, 5, 123456)


@pytest.fixture
def reconciler():
    return BatchReconciler(clock=fixed_clock)


class TestReconcile:

    def test_duplicates_are_merged(self, reconciler):
        # Arrange
        items = [make_item(quantity=5), make_item(quantity=3)]

        # Act
        batch = reconciler.reconcile(items, "Bar")

        # Assert
        assert isinstance(batch, InventoryUpdateBatch)
        assert len(batch.items) == 1
        assert batch.items[0].quantity == 8.0
        assert batch.items[0].location == "Bar"
        assert batch.saved_count == 1
        assert batch.error_count == 0

    def test_first_seen_order(self, reconciler):
        items = [
            make_item(product_id="P002", name="Vin Blanc"),
            make_item(product_id="P001", name="Vin Rouge"),
            make_item(product_id="P002", name="Vin Blanc", quantity=1),
        ]
        batch = reconciler.reconcile(items, "Bar")
        assert [row.product_id for row in batch.items] == ["P002", "P001"]
        assert batch.items[0].quantity == 4.0

    def test_different_actions_stay_separate(self, reconciler):
        items = [make_item(), make_item(action=Action.REMOVE)]
        batch = reconciler.reconcile(items, "Bar")
        assert [row.action for row in batch.items] == [Action.ADD, Action.REMOVE]

    def test_item_location_overrides_batch_location(self, reconciler):
        items = [make_item(), make_item(location="Cave")]
        batch = reconciler.reconcile(items, "Bar")
        assert [row.location for row in batch.items] == ["Bar", "Cave"]

    def test_unmatched_items_merge_by_normalized_name(self, reconciler):
        items = [
            make_item(product_id=None, name="Zythum Ale", quantity=1),
            make_item(product_id=None, name="zythum  ale", quantity=2),
        ]
        batch = BatchReconciler(include_unconfirmed=True, clock=fixed_clock).reconcile(items, "Bar")
        assert len(batch.items) == 1
        assert batch.items[0].quantity == 3.0

    def test_price_comes_from_first_item_with_one(self, reconciler):
        items = [make_item(), make_item(price=12.5), make_item(price=99.0)]
        batch = reconciler.reconcile(items, "Bar")
        assert batch.items[0].price == 12.5

    def test_items_needing_review_are_skipped(self, reconciler):
        # Arrange
        items = [make_item(), make_item(product_id=None, name="zythum", confidence=0.0)]

        # Act
        batch = reconciler.reconcile(items, "Bar")

        # Assert
        assert len(batch.items) == 1
        assert batch.skipped_count == 1

    def test_include_unconfirmed(self):
        items = [make_item(), make_item(product_id="P002", name="Vin Blanc", confidence=0.4)]
        batch = BatchReconciler(include_unconfirmed=True, clock=fixed_clock).reconcile(items, "Bar")
        assert len(batch.items) == 2
        assert batch.skipped_count == 0

    def test_invalid_items_become_errors(self, reconciler):
        # Arrange
        items = [make_item(quantity=0), make_item(name="  "), make_item(product_id="P002", name="Vin Blanc")]

        # Act
        batch = reconciler.reconcile(items, "Bar")

        # Assert
        assert batch.error_count == 2
        assert [row.product_id for row in batch.items] == ["P002"]
        assert "quantity" in batch.errors[0].reason

    def test_timestamp(self, reconciler):
        batch = reconciler.reconcile([make_item()], "Bar")
        assert batch.items[0].timestamp == "2024-03-15T10:30:05"

    def test_empty_input(self, reconciler):
        batch = reconciler.reconcile([], "Bar")
        assert batch.items == ()
        assert batch.saved_count == 0

    def test_to_dict(self, reconciler):
        data = reconciler.reconcile([make_item()], "Bar").to_dict()
        assert data["location"] == "Bar"
        assert data["items"][0]["unit"] == "bottle"
        assert data["items"][0]["action"] == "add"
        assert data["error_count"] == 0


class TestValidate:

    def test_valid_item(self):
        BatchReconciler.validate(make_item())

    @pytest.mark.parametrize("overrides", [{"quantity": 0}, {"name": ""}])
    def test_invalid_item(self, overrides):
        with pytest.raises(ValidationError):
            BatchReconciler.validate(make_item(**overrides))


class TestPersistence:

    def test_rows_are_saved_through_sink(self):
        # Arrange
        sink = Mock()
        reconciler = BatchReconciler(sink=sink, clock=fixed_clock)

        # Act
        batch = reconciler.reconcile([make_item(), make_item(product_id="P002", name="Vin Blanc")], "Bar")

        # Assert
        assert sink.save.call_count == 2
        saved_row = sink.save.call_args_list[0][0][0]
        assert isinstance(saved_row, UpdateRow)
        assert saved_row.product_id == "P001"
        assert batch.saved_count == 2

    def test_persistence_failures_are_collected(self):
        # Arrange
        sink = Mock()
        sink.save.side_effect = [PersistenceError("disk full"), None]
        reconciler = BatchReconciler(sink=sink, clock=fixed_clock)

        # Act
        batch = reconciler.reconcile([make_item(), make_item(product_id="P002", name="Vin Blanc")], "Bar")

        # Assert
        assert batch.saved_count == 1
        assert batch.error_count == 1
        assert batch.errors[0].reason == "disk full"
        assert len(batch.items) == 2
