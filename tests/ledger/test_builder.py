from __future__ import annotations

from datetime import datetime, timedelta, timezone
import logging
from pathlib import Path
import sys

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:  # pragma: no cover - import guard
    sys.path.insert(0, str(PROJECT_ROOT))

from ledger.builder import build_ledger
from ledger.types import Category, LedgerEntry, signed_delta

START = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _entry(day, category, quantity, label=None):
    return LedgerEntry(
        timestamp=START + timedelta(days=day),
        category=category,
        label=label,
        actor=None,
        counterpart_warehouse=None,
        quantity=float(quantity),
        delta=signed_delta(category, float(quantity)),
    )


def _receipt_then_sale():
    return [_entry(1, Category.RECEIPT, 10), _entry(2, Category.SALE, 3)]


def test_opening_balance_derived_from_current():
    ledger = build_ledger(_receipt_then_sale(), 7)

    assert ledger.opening_balance == 0
    assert ledger.running_balances == (10, 7)
    assert ledger.reconciliation_ok
    assert ledger.reconciliation_delta == 0


def test_stock_held_before_the_window():
    ledger = build_ledger(_receipt_then_sale(), 100)

    assert ledger.opening_balance == 93
    assert ledger.running_balances == (103, 100)
    assert ledger.closing_balance == 100


def test_entries_are_sorted_stably_by_time():
    late = _entry(5, Category.SALE, 1, label="late")
    first = _entry(1, Category.RECEIPT, 2, label="first")
    second = _entry(1, Category.RECEIPT, 3, label="second")

    ledger = build_ledger([late, first, second], 4)

    assert [entry.label for entry in ledger.entries] == ["first", "second", "late"]
    assert ledger.newest_first()[0].entry.label == "late"


def test_running_balance_consistency():
    entries = [_entry(day, Category.RECEIPT if day % 2 else Category.WRITE_OFF, day) for day in range(1, 8)]
    ledger = build_ledger(entries, 50)

    previous = ledger.opening_balance
    for row in ledger.rows:
        assert row.running_balance == pytest.approx(previous + row.entry.delta)
        previous = row.running_balance
    assert ledger.closing_balance == pytest.approx(50)


def test_rebuilding_is_idempotent():
    entries = _receipt_then_sale()
    assert build_ledger(entries, 7) == build_ledger(list(entries), 7)


def test_empty_ledger_opens_at_current_balance():
    ledger = build_ledger([], 12)

    assert ledger.rows == ()
    assert ledger.opening_balance == 12
    assert ledger.closing_balance == 12
    assert ledger.reconciliation_ok


def test_explicit_opening_balance_can_fail_reconciliation(caplog):
    with caplog.at_level(logging.WARNING, logger="ledger.builder"):
        ledger = build_ledger(_receipt_then_sale(), 7, opening_balance=5)

    assert ledger.running_balances == (15, 12)
    assert not ledger.reconciliation_ok
    assert ledger.reconciliation_delta == 5
    [warning] = ledger.warnings
    assert warning.difference == 5
    assert "Reconciliation mismatch" in caplog.text


def test_small_differences_within_tolerance():
    ledger = build_ledger(_receipt_then_sale(), 7, opening_balance=0.005)
    assert ledger.reconciliation_ok
    assert ledger.warnings == ()


def test_negative_tolerance_rejected():
    with pytest.raises(ValueError):
        build_ledger([], 0, tolerance=-1)


def test_ledger_to_dict_includes_running_balance():
    payload = build_ledger(_receipt_then_sale(), 7).to_dict()

    assert payload["opening_balance"] == 0
    assert [row["running_balance"] for row in payload["rows"]] == [10, 7]
    assert payload["rows"][0]["category"] == "receipt"
