"""Warehouse scoping for normalized ledger entries.

The precedence below mirrors how the source feeds encode warehouse identity:
transfer legs are attributed when they are split, most documents carry an
explicit warehouse id, the goods-flow feed is already scoped by the API, and
a few categories only name the warehouse in free text.  The rule order is
fixed; changing it changes which historical records land in which warehouse.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Iterable, List, Protocol

from .types import LedgerEntry, SOURCE_GOODS_FLOW

LOGGER = logging.getLogger(__name__)


class WarehouseMatcher(Protocol):
    """Decides whether a free-text warehouse reference names the requested warehouse."""

    name: str

    def matches(self, candidate: str | None, requested: str) -> bool:
        ...


class SubstringWarehouseMatcher:
    """Legacy rule: case-sensitive containment, so ``"A"`` also matches ``"A2"``."""

    name = "substring"

    def matches(self, candidate: str | None, requested: str) -> bool:
        if not candidate:
            return False
        return requested in candidate


class ExactWarehouseMatcher:
    """Whitespace-insensitive equality of warehouse display names."""

    name = "exact"

    def matches(self, candidate: str | None, requested: str) -> bool:
        if not candidate:
            return False
        return candidate.strip() == requested.strip()


WAREHOUSE_MATCHERS = {
    SubstringWarehouseMatcher.name: SubstringWarehouseMatcher,
    ExactWarehouseMatcher.name: ExactWarehouseMatcher,
}


def resolve_matcher(name: str | None) -> WarehouseMatcher:
    key = (name or SubstringWarehouseMatcher.name).strip().lower()
    try:
        return WAREHOUSE_MATCHERS[key]()
    except KeyError as exc:
        choices = ", ".join(sorted(WAREHOUSE_MATCHERS))
        raise ValueError(f"Unknown warehouse matcher '{name}'; expected one of: {choices}") from exc


@dataclass(frozen=True)
class WarehouseScope:
    """Target warehouse of a history query; both fields empty means all warehouses."""

    warehouse_id: Any = None
    warehouse_name: str | None = None

    @property
    def is_empty(self) -> bool:
        return _is_blank(self.warehouse_id) and not self.warehouse_name


def same_warehouse_id(left: Any, right: Any) -> bool:
    """Compare ids after numeric coercion so that ``"12"`` equals ``12``."""

    if _is_blank(left) or _is_blank(right):
        return False
    try:
        return float(left) == float(right)
    except (TypeError, ValueError):
        return str(left).strip() == str(right).strip()


def filter_by_warehouse(
    entries: Iterable[LedgerEntry],
    warehouse_id: Any = None,
    warehouse_name: str | None = None,
    *,
    matcher: WarehouseMatcher | None = None,
) -> List[LedgerEntry]:
    """Select the entries relevant to one warehouse.

    First matching rule wins:

    1. transfer legs are kept (they were oriented before filtering);
    2. entries with an explicit ``warehouse_id`` are kept iff it equals the
       requested id;
    3. goods-flow entries without a warehouse id are kept;
    4. anything else is kept iff its counterpart warehouse text matches the
       requested name. Receipts and sales carry no counterpart, so without a
       warehouse id they are dropped.
    """

    items = list(entries)
    scope = WarehouseScope(warehouse_id=warehouse_id, warehouse_name=warehouse_name)
    if scope.is_empty:
        return items

    resolved = matcher or SubstringWarehouseMatcher()
    kept: List[LedgerEntry] = []
    for index, entry in enumerate(items):
        keep, rule = _decide(entry, scope, resolved)
        LOGGER.debug(
            "%s entry %d (%s, %s) by rule %s",
            "keep" if keep else "drop",
            index,
            entry.category.value,
            entry.source,
            rule,
        )
        if keep:
            kept.append(entry)
    LOGGER.debug("Warehouse filter kept %d of %d entries", len(kept), len(items))
    return kept


def _decide(entry: LedgerEntry, scope: WarehouseScope, matcher: WarehouseMatcher) -> tuple[bool, str]:
    if entry.is_transfer_leg:
        return True, "transfer_leg"
    if not _is_blank(entry.warehouse_id) and not _is_blank(scope.warehouse_id):
        return same_warehouse_id(entry.warehouse_id, scope.warehouse_id), "warehouse_id"
    if entry.source == SOURCE_GOODS_FLOW and _is_blank(entry.warehouse_id):
        return True, "goods_flow"
    if not scope.warehouse_name:
        return False, "counterpart"
    return matcher.matches(entry.counterpart_warehouse, scope.warehouse_name), "counterpart"


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


__all__ = [
    "ExactWarehouseMatcher",
    "SubstringWarehouseMatcher",
    "WAREHOUSE_MATCHERS",
    "WarehouseMatcher",
    "WarehouseScope",
    "filter_by_warehouse",
    "resolve_matcher",
    "same_warehouse_id",
]
