"""Display-ready rows for a reconciled ledger."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping

import pandas as pd

from .types import Category, Ledger, LedgerRow

PLACEHOLDER = "-"

CATEGORY_TITLES: Mapping[Category, str] = {
    Category.RECEIPT: "Receipt",
    Category.TRANSFER_OUT: "Transfer (out)",
    Category.TRANSFER_IN: "Transfer (in)",
    Category.WRITE_OFF: "Write-off",
    Category.SALE: "Sale",
    Category.ORDER: "Order",
    Category.RETURN: "Return",
    Category.OTHER: "Other",
}

ROW_COLUMNS = (
    "timestamp",
    "category",
    "type_name",
    "label",
    "actor",
    "counterpart",
    "incoming",
    "outgoing",
    "balance",
    "description",
)


def ledger_rows(
    ledger: Ledger,
    actor_names: Mapping[str, str] | None = None,
    supplier_names: Mapping[str, str] | None = None,
) -> List[Dict[str, Any]]:
    """Newest-first rows.

    *actor_names* resolves employee ids to names and *supplier_names* supplier
    ids; unknown ids are shown as-is.  Receipts show their supplier as the
    counterpart.
    """

    actors = actor_names or {}
    suppliers = supplier_names or {}
    return [_row(row, actors, suppliers) for row in ledger.newest_first()]


def ledger_frame(
    ledger: Ledger,
    actor_names: Mapping[str, str] | None = None,
    supplier_names: Mapping[str, str] | None = None,
) -> pd.DataFrame:
    """Newest-first rows as a DataFrame with a fixed column order."""

    return pd.DataFrame(ledger_rows(ledger, actor_names, supplier_names), columns=list(ROW_COLUMNS))


def ledger_summary(ledger: Ledger) -> Dict[str, Any]:
    return {
        "operations": len(ledger.rows),
        "opening_balance": ledger.opening_balance,
        "closing_balance": ledger.closing_balance,
        "current_balance": ledger.current_balance,
        "reconciliation_ok": ledger.reconciliation_ok,
        "reconciliation_delta": ledger.reconciliation_delta,
        "warnings": [warning.message for warning in ledger.warnings],
    }


def _row(row: LedgerRow, actor_names: Mapping[str, str], supplier_names: Mapping[str, str]) -> Dict[str, Any]:
    entry = row.entry
    actor = entry.actor
    if actor is not None:
        actor = actor_names.get(actor, actor)
    counterpart = entry.counterpart_warehouse
    if counterpart is None and entry.supplier is not None:
        counterpart = supplier_names.get(entry.supplier, entry.supplier)
    type_name = CATEGORY_TITLES[entry.category]
    if entry.category is Category.OTHER and entry.type_name:
        type_name = entry.type_name
    return {
        "timestamp": entry.timestamp.isoformat(),
        "category": entry.category.value,
        "type_name": type_name,
        "label": entry.label or PLACEHOLDER,
        "actor": actor or PLACEHOLDER,
        "counterpart": counterpart or PLACEHOLDER,
        "incoming": entry.quantity if entry.delta > 0 else None,
        "outgoing": entry.quantity if entry.delta < 0 else None,
        "balance": row.running_balance,
        "description": entry.description or PLACEHOLDER,
    }


__all__ = ["CATEGORY_TITLES", "ROW_COLUMNS", "ledger_frame", "ledger_rows", "ledger_summary"]
