from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
import sys

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:  # pragma: no cover - import guard
    sys.path.insert(0, str(PROJECT_ROOT))

from ledger.scope import (
    ExactWarehouseMatcher,
    SubstringWarehouseMatcher,
    WarehouseScope,
    filter_by_warehouse,
    resolve_matcher,
    same_warehouse_id,
)
from ledger.types import Category, LedgerEntry, signed_delta

WHEN = datetime(2024, 5, 1, tzinfo=timezone.utc)


def _entry(category, *, warehouse_id=None, counterpart=None, source="postings", quantity=1.0):
    return LedgerEntry(
        timestamp=WHEN,
        category=category,
        label=None,
        actor=None,
        counterpart_warehouse=counterpart,
        quantity=quantity,
        delta=signed_delta(category, quantity),
        warehouse_id=warehouse_id,
        source=source,
    )


def test_empty_scope_keeps_everything():
    entries = [_entry(Category.RECEIPT, warehouse_id=1), _entry(Category.SALE, warehouse_id=2)]
    assert filter_by_warehouse(entries) == entries
    assert WarehouseScope().is_empty
    assert WarehouseScope(warehouse_id="  ").is_empty


def test_explicit_warehouse_id_decides():
    keep = _entry(Category.RECEIPT, warehouse_id="12")
    drop = _entry(Category.SALE, warehouse_id=13, counterpart="Main")

    kept = filter_by_warehouse([keep, drop], warehouse_id=12, warehouse_name="Main")

    assert kept == [keep]


def test_transfer_legs_pass_through():
    leg = _entry(Category.TRANSFER_OUT, counterpart="Elsewhere", source="moves")
    assert filter_by_warehouse([leg], warehouse_id=99, warehouse_name="Main") == [leg]


def test_goods_flow_without_warehouse_id_is_kept():
    item = _entry(Category.ORDER, source="goods_flow")
    assert filter_by_warehouse([item], warehouse_name="Main") == [item]


def test_counterpart_text_is_the_last_resort():
    write_off = _entry(Category.WRITE_OFF, counterpart="Main Store")
    other = _entry(Category.WRITE_OFF, counterpart="Depot")

    assert filter_by_warehouse([write_off, other], warehouse_name="Main") == [write_off]
    assert filter_by_warehouse([write_off], warehouse_name="Main", matcher=ExactWarehouseMatcher()) == []


def test_counterpart_rule_needs_a_name():
    write_off = _entry(Category.WRITE_OFF, counterpart="Main")
    assert filter_by_warehouse([write_off], warehouse_id=5) == []


def test_same_warehouse_id_coerces_numbers():
    assert same_warehouse_id("12", 12.0)
    assert same_warehouse_id("wh-1", " wh-1 ")
    assert not same_warehouse_id(None, 12)


def test_resolve_matcher():
    assert isinstance(resolve_matcher(None), SubstringWarehouseMatcher)
    assert isinstance(resolve_matcher("EXACT"), ExactWarehouseMatcher)
    with pytest.raises(ValueError, match="Unknown warehouse matcher"):
        resolve_matcher("fuzzy")


def test_receipts_without_id_or_counterpart_are_dropped_by_name():
    receipt = LedgerEntry(
        timestamp=WHEN,
        category=Category.RECEIPT,
        label=None,
        actor=None,
        counterpart_warehouse=None,
        quantity=4.0,
        delta=4.0,
        warehouse_name="Main",
        source="postings",
    )
    assert filter_by_warehouse([receipt], warehouse_name="Main") == []
    assert filter_by_warehouse([receipt], warehouse_id="9", warehouse_name="Main") == []
    assert filter_by_warehouse([receipt]) == [receipt]
