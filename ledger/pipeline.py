"""End-to-end stock history reconstruction over pre-fetched source data."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Mapping

from .builder import DEFAULT_TOLERANCE, build_ledger
from .normalizer import NormalizationResult, normalize
from .scope import SubstringWarehouseMatcher, WarehouseMatcher, WarehouseScope, filter_by_warehouse
from .transfers import clean_warehouse_name, orient_transfer_legs
from .types import Ledger, OperationSources

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistoryResult:
    """Ledger plus the bookkeeping needed to explain how it was built."""

    ledger: Ledger
    normalization: NormalizationResult
    scope: WarehouseScope
    scoped_entries: int

    def as_dict(self) -> dict[str, Any]:
        return {
            "scope": {
                "warehouse_id": self.scope.warehouse_id,
                "warehouse_name": self.scope.warehouse_name,
            },
            "normalization": self.normalization.as_dict(),
            "scoped_entries": self.scoped_entries,
            "ledger": self.ledger.to_dict(),
        }


def resolve_current_balance(balances: Mapping[str, Any] | None, warehouse_name: str | None) -> float:
    """Authoritative balance for a warehouse title; all warehouses when unscoped.

    Titles are compared after dropping region prefixes.  Unknown warehouses
    and non-numeric values count as zero.
    """

    if not balances:
        return 0.0
    cleaned = {clean_warehouse_name(key): value for key, value in balances.items()}
    if warehouse_name is None:
        return sum(_as_float(value) for value in cleaned.values())
    return _as_float(cleaned.get(clean_warehouse_name(warehouse_name)))


def reconstruct_history(
    sources: OperationSources,
    current_balance: float,
    scope: WarehouseScope | None = None,
    *,
    matcher: WarehouseMatcher | None = None,
    tolerance: float = DEFAULT_TOLERANCE,
    opening_balance: float | None = None,
) -> HistoryResult:
    """Normalize, scope and reconcile the operations of one product."""

    resolved_scope = scope or WarehouseScope()
    resolved_matcher = matcher or SubstringWarehouseMatcher()
    normalization = normalize(sources)

    entries = orient_transfer_legs(
        normalization.entries,
        resolved_scope.warehouse_name,
        scoped=not resolved_scope.is_empty,
        matcher=resolved_matcher,
    )
    entries = filter_by_warehouse(
        entries,
        resolved_scope.warehouse_id,
        resolved_scope.warehouse_name,
        matcher=resolved_matcher,
    )
    ledger = build_ledger(
        entries,
        current_balance,
        tolerance=tolerance,
        opening_balance=opening_balance,
    )
    LOGGER.info(
        "Built ledger with %d of %d entries (opening %g, current %g, reconciled=%s)",
        len(entries),
        len(normalization.entries),
        ledger.opening_balance,
        ledger.current_balance,
        ledger.reconciliation_ok,
    )
    return HistoryResult(
        ledger=ledger,
        normalization=normalization,
        scope=resolved_scope,
        scoped_entries=len(entries),
    )


def _as_float(value: Any) -> float:
    if value is None:
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


__all__ = ["HistoryResult", "reconstruct_history", "resolve_current_balance"]
