"""Inter-warehouse moves feed adapter.

A move is recorded once with both warehouse titles; splitting it into
directional legs happens in the normalizer.
"""

from __future__ import annotations

from typing import Any, Mapping

from ledger.types import SOURCE_MOVES, TransferOperation

from .base import ACTOR_FIELDS, QUANTITY_FIELDS, RecordAdapter, first_present


class MovesAdapter(RecordAdapter):
    source = SOURCE_MOVES

    def convert(self, record: Mapping[str, Any]) -> TransferOperation:
        return TransferOperation(
            timestamp=first_present(record, ("move_created_at", "created_at")),
            quantity=first_present(record, QUANTITY_FIELDS),
            label=first_present(record, ("move_label", "label")),
            actor=first_present(record, ACTOR_FIELDS),
            description=first_present(record, ("move_description", "description")),
            record_id=first_present(record, ("move_id", "id")),
            source_warehouse=record.get("source_warehouse_title"),
            target_warehouse=record.get("target_warehouse_title"),
        )


__all__ = ["MovesAdapter"]
