"""Retail sales feed adapter."""

from __future__ import annotations

from typing import Any, Mapping

from ledger.types import SOURCE_SALES, SaleOperation

from .base import ACTOR_FIELDS, QUANTITY_FIELDS, RecordAdapter, first_present


class SalesAdapter(RecordAdapter):
    source = SOURCE_SALES

    def convert(self, record: Mapping[str, Any]) -> SaleOperation:
        return SaleOperation(
            timestamp=first_present(record, ("sale_created_at", "created_at")),
            quantity=first_present(record, QUANTITY_FIELDS),
            label=first_present(record, ("sale_label", "label")),
            actor=first_present(record, ACTOR_FIELDS),
            description=first_present(record, ("sale_description", "description")),
            warehouse_id=record.get("warehouse_id"),
            record_id=first_present(record, ("sale_id", "id")),
            warehouse_name=record.get("warehouse_title"),
        )


__all__ = ["SalesAdapter"]
