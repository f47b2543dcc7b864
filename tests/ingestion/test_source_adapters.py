from __future__ import annotations

import logging
from pathlib import Path
import sys

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:  # pragma: no cover - import guard
    sys.path.insert(0, str(PROJECT_ROOT))

from infra.ingestion.adapters import (
    ADAPTERS,
    GoodsFlowAdapter,
    MovesAdapter,
    OutcomesAdapter,
    PostingsAdapter,
    SalesAdapter,
)
from ledger.types import (
    FlowItemOperation,
    ReceiptOperation,
    SaleOperation,
    SOURCE_NAMES,
    TransferOperation,
    WriteOffOperation,
)


def test_every_source_has_an_adapter():
    assert set(ADAPTERS) == set(SOURCE_NAMES)


def test_postings_prefers_source_specific_fields():
    [operation] = PostingsAdapter().to_operations(
        [
            {
                "posting_created_at": {"value": "2024-01-05T10:00:00Z"},
                "created_at": "ignored",
                "amount": 12,
                "posting_label": "PST-12",
                "created_by_name": "Olena",
                "posting_description": "restock",
                "warehouse_id": 3,
                "warehouse_title": "Kyiv > Main",
                "supplier_name": "ACME",
            }
        ]
    )

    assert isinstance(operation, ReceiptOperation)
    assert operation.timestamp == {"value": "2024-01-05T10:00:00Z"}
    assert operation.quantity == 12
    assert operation.label == "PST-12"
    assert operation.actor == "Olena"
    assert operation.description == "restock"
    assert operation.warehouse_id == 3
    assert operation.warehouse_name == "Kyiv > Main"
    assert operation.supplier == "ACME"


def test_postings_fall_back_to_generic_fields():
    [operation] = PostingsAdapter().to_operations(
        [{"created_at": "2024-01-05", "quantity": 2, "label": "P", "supplier_id": 9}]
    )

    assert operation.timestamp == "2024-01-05"
    assert operation.quantity == 2
    assert operation.label == "P"
    assert operation.supplier == 9


def test_moves_outcomes_and_sales():
    [move] = MovesAdapter().to_operations(
        [
            {
                "move_created_at": "2024-01-06",
                "amount": 5,
                "source_warehouse_title": "Region > A",
                "target_warehouse_title": "Region > B",
                "move_label": "MV-1",
            }
        ]
    )
    [outcome] = OutcomesAdapter().to_operations(
        [{"outcome_created_at": "2024-01-07", "amount": 1, "source_warehouse_title": "A", "outcome_label": "WO"}]
    )
    [sale] = SalesAdapter().to_operations(
        [{"sale_created_at": "2024-01-08", "amount": 2, "sale_label": "S-1", "warehouse_id": "4"}]
    )

    assert isinstance(move, TransferOperation)
    assert (move.source_warehouse, move.target_warehouse, move.label) == ("Region > A", "Region > B", "MV-1")
    assert isinstance(outcome, WriteOffOperation)
    assert outcome.source_warehouse == "A"
    assert isinstance(sale, SaleOperation)
    assert sale.warehouse_id == "4"


def test_goods_flow_fields():
    [item] = GoodsFlowAdapter().to_operations(
        [
            {
                "created_at": 1704067200000,
                "amount": -4,
                "relation_type": 0,
                "relation_id_label": "ORD-77",
                "relation_label": "Order",
                "employee_id": 15,
                "type_info": {"name": "Order"},
            }
        ]
    )

    assert isinstance(item, FlowItemOperation)
    assert item.relation_type == 0
    assert item.label == "ORD-77"
    assert item.actor == 15
    assert item.description == "Order"
    assert item.type_name == "Order"


def test_non_mapping_records_are_skipped(caplog):
    with caplog.at_level(logging.WARNING):
        operations = SalesAdapter().to_operations([None, "x", {"created_at": "2024-01-01"}])

    assert len(operations) == 1
    assert "Skipped 2 non-mapping sales records" in caplog.text
