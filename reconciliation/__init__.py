"""Reconciliation of reviewed items into inventory update batches."""

from .reconciler import BatchError, BatchReconciler, InventorySink, InventoryUpdateBatch, UpdateRow

__all__ = [
    "BatchError",
    "BatchReconciler",
    "InventorySink",
    "InventoryUpdateBatch",
    "UpdateRow",
]
