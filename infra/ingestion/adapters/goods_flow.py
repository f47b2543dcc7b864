"""Goods-flow feed adapter.

The goods-flow feed mixes every movement kind under a numeric
``relation_type``; which codes count is decided by the normalizer.
"""

from __future__ import annotations

from typing import Any, Mapping

from ledger.types import SOURCE_GOODS_FLOW, FlowItemOperation

from .base import QUANTITY_FIELDS, RecordAdapter, first_present, nested


class GoodsFlowAdapter(RecordAdapter):
    source = SOURCE_GOODS_FLOW

    def convert(self, record: Mapping[str, Any]) -> FlowItemOperation:
        return FlowItemOperation(
            timestamp=record.get("created_at"),
            quantity=first_present(record, QUANTITY_FIELDS),
            label=first_present(record, ("relation_id_label", "relation_label", "id")),
            actor=record.get("employee_id"),
            description=first_present(record, ("comment", "relation_label")),
            warehouse_id=record.get("warehouse_id"),
            record_id=record.get("id"),
            relation_type=record.get("relation_type"),
            type_name=nested(record, "type_info", "name"),
        )


__all__ = ["GoodsFlowAdapter"]
