"""Write-offs (outcomes) feed adapter."""

from __future__ import annotations

from typing import Any, Mapping

from ledger.types import SOURCE_OUTCOMES, WriteOffOperation

from .base import ACTOR_FIELDS, QUANTITY_FIELDS, RecordAdapter, first_present


class OutcomesAdapter(RecordAdapter):
    source = SOURCE_OUTCOMES

    def convert(self, record: Mapping[str, Any]) -> WriteOffOperation:
        return WriteOffOperation(
            timestamp=first_present(record, ("outcome_created_at", "created_at")),
            quantity=first_present(record, QUANTITY_FIELDS),
            label=first_present(record, ("outcome_label", "label")),
            actor=first_present(record, ACTOR_FIELDS),
            description=first_present(record, ("outcome_description", "description")),
            warehouse_id=record.get("warehouse_id"),
            record_id=first_present(record, ("outcome_id", "id")),
            source_warehouse=first_present(record, ("source_warehouse_title", "warehouse_title")),
        )


__all__ = ["OutcomesAdapter"]
