"""Postings (goods receipts) feed adapter."""

from __future__ import annotations

from typing import Any, Mapping

from ledger.types import SOURCE_POSTINGS, ReceiptOperation

from .base import ACTOR_FIELDS, QUANTITY_FIELDS, RecordAdapter, first_present


class PostingsAdapter(RecordAdapter):
    source = SOURCE_POSTINGS

    def convert(self, record: Mapping[str, Any]) -> ReceiptOperation:
        return ReceiptOperation(
            timestamp=first_present(record, ("posting_created_at", "created_at")),
            quantity=first_present(record, QUANTITY_FIELDS),
            label=first_present(record, ("posting_label", "label")),
            actor=first_present(record, ACTOR_FIELDS),
            description=first_present(record, ("posting_description", "description")),
            warehouse_id=record.get("warehouse_id"),
            record_id=first_present(record, ("posting_id", "id")),
            warehouse_name=record.get("warehouse_title"),
            supplier=first_present(record, ("supplier_name", "supplier_id")),
        )


__all__ = ["PostingsAdapter"]
