"""Core dataclasses shared by the normalization and reconciliation modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping


class Category(str, Enum):
    """Semantic category of a normalized stock movement."""

    RECEIPT = "receipt"
    TRANSFER_OUT = "transfer_out"
    TRANSFER_IN = "transfer_in"
    WRITE_OFF = "write_off"
    SALE = "sale"
    ORDER = "order"
    RETURN = "return"
    OTHER = "other"


# Sign applied to the unsigned quantity of every entry in a category.
CATEGORY_SIGNS: Mapping[Category, int] = {
    Category.RECEIPT: 1,
    Category.TRANSFER_OUT: -1,
    Category.TRANSFER_IN: 1,
    Category.WRITE_OFF: -1,
    Category.SALE: -1,
    Category.ORDER: -1,
    Category.RETURN: 1,
    Category.OTHER: 0,
}

TRANSFER_CATEGORIES = frozenset({Category.TRANSFER_OUT, Category.TRANSFER_IN})

SOURCE_POSTINGS = "postings"
SOURCE_MOVES = "moves"
SOURCE_OUTCOMES = "outcomes"
SOURCE_SALES = "sales"
SOURCE_GOODS_FLOW = "goods_flow"
SOURCE_NAMES = (SOURCE_POSTINGS, SOURCE_MOVES, SOURCE_OUTCOMES, SOURCE_SALES, SOURCE_GOODS_FLOW)


def signed_delta(category: Category, quantity: float) -> float:
    """Return the signed change an entry of *category* contributes."""

    sign = CATEGORY_SIGNS[category]
    if sign == 0 or quantity == 0:
        return 0.0
    return sign * quantity


# ---------- raw operations ----------


@dataclass(frozen=True)
class RawOperation:
    """Source record after field renaming, before parsing.

    ``timestamp`` and ``quantity`` are kept exactly as the source sent them;
    the normalizer owns parsing so that invalid values are counted in one
    place.
    """

    timestamp: Any
    quantity: Any = None
    label: str | None = None
    actor: Any = None
    description: str | None = None
    warehouse_id: Any = None
    record_id: Any = None


@dataclass(frozen=True)
class ReceiptOperation(RawOperation):
    """Posting of goods into a warehouse."""

    warehouse_name: str | None = None
    supplier: Any = None


@dataclass(frozen=True)
class TransferOperation(RawOperation):
    """Movement between two warehouses, recorded once by the source."""

    source_warehouse: str | None = None
    target_warehouse: str | None = None


@dataclass(frozen=True)
class WriteOffOperation(RawOperation):
    """Write-off from a warehouse."""

    source_warehouse: str | None = None


@dataclass(frozen=True)
class SaleOperation(RawOperation):
    """Retail sale consuming stock."""

    warehouse_name: str | None = None


@dataclass(frozen=True)
class FlowItemOperation(RawOperation):
    """Goods-flow feed item carrying a coded relation type."""

    relation_type: Any = None
    type_name: str | None = None


@dataclass(frozen=True)
class OperationSources:
    """Pre-fetched raw operations grouped by source feed."""

    postings: tuple[RawOperation, ...] = field(default_factory=tuple)
    moves: tuple[RawOperation, ...] = field(default_factory=tuple)
    outcomes: tuple[RawOperation, ...] = field(default_factory=tuple)
    sales: tuple[RawOperation, ...] = field(default_factory=tuple)
    goods_flow: tuple[RawOperation, ...] = field(default_factory=tuple)

    def by_source(self) -> dict[str, tuple[RawOperation, ...]]:
        return {
            SOURCE_POSTINGS: tuple(self.postings),
            SOURCE_MOVES: tuple(self.moves),
            SOURCE_OUTCOMES: tuple(self.outcomes),
            SOURCE_SALES: tuple(self.sales),
            SOURCE_GOODS_FLOW: tuple(self.goods_flow),
        }

    @property
    def total(self) -> int:
        return sum(len(items) for items in self.by_source().values())


# ---------- canonical ledger ----------


@dataclass(frozen=True)
class LedgerEntry:
    """Canonical signed stock movement.

    Attributes:
        timestamp: UTC-aware moment of the operation.
        category: Semantic category; fixes the sign of ``delta``.
        label: Source document label.
        actor: Who created the operation (name or employee id).
        counterpart_warehouse: The other warehouse involved, when any.
        quantity: Unsigned moved quantity.
        delta: Signed change, ``CATEGORY_SIGNS[category] * quantity``.
        warehouse_id: Explicit warehouse id from the source, when present.
        description: Free-text comment.
        warehouse_name: Warehouse the entry pertains to, when known.
        source: Feed the entry came from.
        type_name: Source-provided display name for informational categories.
        supplier: Supplier reference of a receipt (name or id).
    """

    timestamp: datetime
    category: Category
    label: str | None
    actor: str | None
    counterpart_warehouse: str | None
    quantity: float
    delta: float
    warehouse_id: Any = None
    description: str | None = None
    warehouse_name: str | None = None
    source: str = ""
    type_name: str | None = None
    supplier: str | None = None

    @property
    def is_transfer_leg(self) -> bool:
        return self.category in TRANSFER_CATEGORIES

    def to_dict(self) -> dict[str, object]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "category": self.category.value,
            "label": self.label,
            "actor": self.actor,
            "counterpart_warehouse": self.counterpart_warehouse,
            "quantity": self.quantity,
            "delta": self.delta,
            "warehouse_id": self.warehouse_id,
            "description": self.description,
            "warehouse_name": self.warehouse_name,
            "source": self.source,
            "type_name": self.type_name,
            "supplier": self.supplier,
        }


@dataclass(frozen=True)
class ReconciliationMismatch:
    """Warning raised when a ledger does not close to the authoritative balance."""

    expected_balance: float
    computed_balance: float
    tolerance: float

    @property
    def difference(self) -> float:
        return self.computed_balance - self.expected_balance

    @property
    def message(self) -> str:
        return (
            f"ledger closes at {self.computed_balance:g} but the current balance is "
            f"{self.expected_balance:g} (difference {self.difference:+g}, tolerance {self.tolerance:g})"
        )


@dataclass(frozen=True)
class LedgerRow:
    """One ledger entry annotated with the balance after applying it."""

    entry: LedgerEntry
    running_balance: float


@dataclass(frozen=True)
class Ledger:
    """Chronological, balance-annotated history for one scope."""

    rows: tuple[LedgerRow, ...]
    opening_balance: float
    current_balance: float
    reconciliation_ok: bool
    reconciliation_delta: float
    warnings: tuple[ReconciliationMismatch, ...] = ()

    @property
    def entries(self) -> tuple[LedgerEntry, ...]:
        return tuple(row.entry for row in self.rows)

    @property
    def running_balances(self) -> tuple[float, ...]:
        return tuple(row.running_balance for row in self.rows)

    @property
    def closing_balance(self) -> float:
        if not self.rows:
            return self.opening_balance
        return self.rows[-1].running_balance

    def newest_first(self) -> tuple[LedgerRow, ...]:
        return tuple(reversed(self.rows))

    def to_dict(self) -> dict[str, object]:
        return {
            "opening_balance": self.opening_balance,
            "current_balance": self.current_balance,
            "closing_balance": self.closing_balance,
            "reconciliation_ok": self.reconciliation_ok,
            "reconciliation_delta": self.reconciliation_delta,
            "warnings": [warning.message for warning in self.warnings],
            "rows": [
                {**row.entry.to_dict(), "running_balance": row.running_balance}
                for row in self.rows
            ],
        }


__all__ = [
    "CATEGORY_SIGNS",
    "Category",
    "FlowItemOperation",
    "Ledger",
    "LedgerEntry",
    "LedgerRow",
    "OperationSources",
    "RawOperation",
    "ReceiptOperation",
    "ReconciliationMismatch",
    "SOURCE_GOODS_FLOW",
    "SOURCE_MOVES",
    "SOURCE_NAMES",
    "SOURCE_OUTCOMES",
    "SOURCE_POSTINGS",
    "SOURCE_SALES",
    "SaleOperation",
    "TRANSFER_CATEGORIES",
    "TransferOperation",
    "WriteOffOperation",
    "signed_delta",
]
