from __future__ import annotations

from datetime import datetime, timezone
import logging
from pathlib import Path
import sys

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:  # pragma: no cover - import guard
    sys.path.insert(0, str(PROJECT_ROOT))

from ledger.normalizer import InvalidRecord, normalize, parse_quantity, relation_category
from ledger.types import (
    Category,
    FlowItemOperation,
    OperationSources,
    ReceiptOperation,
    SaleOperation,
    TransferOperation,
    WriteOffOperation,
)

UTC = timezone.utc


def test_receipt_is_positive_and_keeps_supplier():
    receipt = ReceiptOperation(
        timestamp={"value": "2024-03-01T10:00:00Z"},
        quantity=10,
        label="PST-1",
        actor="Olena",
        warehouse_name="Kyiv > Main",
        supplier="ACME",
    )

    result = normalize([receipt])

    [entry] = result.entries
    assert entry.category is Category.RECEIPT
    assert entry.timestamp == datetime(2024, 3, 1, 10, 0, tzinfo=UTC)
    assert entry.delta == 10
    assert entry.warehouse_name == "Main"
    assert entry.supplier == "ACME"
    assert entry.source == "postings"


def test_outflow_categories_are_negative_regardless_of_source_sign():
    operations = [
        WriteOffOperation(timestamp="2024-03-02", quantity=2, source_warehouse="Region > Store"),
        SaleOperation(timestamp="2024-03-03", quantity=-1, warehouse_name="Store"),
    ]

    entries = normalize(operations).entries

    assert [entry.category for entry in entries] == [Category.WRITE_OFF, Category.SALE]
    assert [entry.delta for entry in entries] == [-2, -1]
    assert [entry.quantity for entry in entries] == [2, 1]
    assert entries[0].counterpart_warehouse == "Store"


def test_transfer_produces_two_legs_that_net_to_zero():
    move = TransferOperation(
        timestamp="2024-03-04T08:00:00Z",
        quantity=5,
        source_warehouse="Region > A",
        target_warehouse="Region > B",
    )

    entries = normalize([move]).entries

    assert [entry.category for entry in entries] == [Category.TRANSFER_OUT, Category.TRANSFER_IN]
    assert sum(entry.delta for entry in entries) == 0
    assert entries[0].counterpart_warehouse == "B"
    assert entries[1].counterpart_warehouse == "A"


def test_flow_codes_map_to_categories_and_duplicates_are_skipped():
    items = [
        FlowItemOperation(timestamp="2024-03-05", quantity=4, relation_type=0),
        FlowItemOperation(timestamp="2024-03-06", quantity=4, relation_type=7),
        FlowItemOperation(timestamp="2024-03-07", quantity=4, relation_type=3),
        FlowItemOperation(timestamp="2024-03-08", quantity=4, relation_type=2, type_name="Repair"),
    ]

    result = normalize(items)

    assert [entry.delta for entry in result.entries] == [-4, 4, 0.0]
    assert result.entries[2].category is Category.OTHER
    assert result.entries[2].type_name == "Repair"
    assert result.skipped_duplicates == 1
    assert result.invalid_records == 0


def test_invalid_records_are_dropped_and_counted(caplog):
    operations = OperationSources(
        postings=(
            ReceiptOperation(timestamp=None, quantity=3),
            ReceiptOperation(timestamp="2024-03-01", quantity="abc"),
            ReceiptOperation(timestamp="2024-03-01", quantity=3),
        ),
        sales=(SaleOperation(timestamp="yesterday", quantity=1),),
    )

    with caplog.at_level(logging.WARNING, logger="ledger.normalizer"):
        result = normalize(operations)

    assert len(result.entries) == 1
    assert result.invalid_records == 3
    assert result.invalid_by_source == {"postings": 2, "sales": 1}
    assert sum("Skipping invalid" in record.message for record in caplog.records) == 3


def test_missing_quantity_counts_as_zero():
    [entry] = normalize([SaleOperation(timestamp="2024-03-01", quantity=None)]).entries
    assert entry.quantity == 0
    assert entry.delta == 0


@pytest.mark.parametrize("value", [True, float("nan"), float("inf"), "x"])
def test_parse_quantity_rejects_non_numbers(value):
    with pytest.raises(InvalidRecord):
        parse_quantity(value)


def test_unknown_relation_code_is_informational():
    assert relation_category(42) is Category.OTHER
    assert relation_category(None) is Category.OTHER
