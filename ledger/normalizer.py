"""Normalization of raw source operations into canonical ledger entries."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
import logging
import math
from typing import Any, Callable, Dict, Iterable, List, Mapping

from infra.timestamps import coerce_timestamp

from .transfers import clean_text, clean_warehouse_name, split_transfer
from .types import (
    Category,
    FlowItemOperation,
    LedgerEntry,
    OperationSources,
    RawOperation,
    ReceiptOperation,
    SaleOperation,
    SOURCE_GOODS_FLOW,
    SOURCE_MOVES,
    SOURCE_OUTCOMES,
    SOURCE_POSTINGS,
    SOURCE_SALES,
    TransferOperation,
    WriteOffOperation,
    signed_delta,
)

LOGGER = logging.getLogger(__name__)

# Goods-flow relation codes.  Codes 1, 3, 4 and 5 describe movements that the
# dedicated sales, postings, outcomes and moves feeds already deliver.
RELATION_ORDER = 0
RELATION_SALE = 1
RELATION_OTHER = 2
RELATION_POSTING = 3
RELATION_OUTCOME = 4
RELATION_MOVE = 5
RELATION_RETURN = 7

RELATION_CATEGORIES: Mapping[int, Category] = {
    RELATION_ORDER: Category.ORDER,
    RELATION_OTHER: Category.OTHER,
    RELATION_RETURN: Category.RETURN,
}
DUPLICATE_RELATION_CODES = frozenset({RELATION_SALE, RELATION_POSTING, RELATION_OUTCOME, RELATION_MOVE})


class InvalidRecord(ValueError):
    """Raised for a raw record that cannot be normalized; counted, never fatal."""


class _DuplicateFlowItem(Exception):
    """Internal marker for goods-flow items covered by a dedicated feed."""


@dataclass
class NormalizationResult:
    """Entries produced by one normalization pass plus aggregate counts."""

    entries: List[LedgerEntry] = field(default_factory=list)
    invalid_records: int = 0
    skipped_duplicates: int = 0
    by_source: Dict[str, int] = field(default_factory=dict)
    invalid_by_source: Dict[str, int] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "entries": len(self.entries),
            "invalid_records": self.invalid_records,
            "skipped_duplicates": self.skipped_duplicates,
            "by_source": dict(self.by_source),
            "invalid_by_source": dict(self.invalid_by_source),
        }


def normalize(raw_operations: Iterable[RawOperation] | OperationSources) -> NormalizationResult:
    """Convert raw operations of any source into canonical entries.

    Records with a missing or unparsable timestamp or quantity are dropped and
    counted.  Goods-flow items duplicating another feed are skipped and
    counted separately.  Transfers produce two entries.
    """

    if isinstance(raw_operations, OperationSources):
        operations: List[RawOperation] = [
            operation for items in raw_operations.by_source().values() for operation in items
        ]
    else:
        operations = list(raw_operations)

    result = NormalizationResult()
    produced: Counter[str] = Counter()
    invalid: Counter[str] = Counter()
    for index, operation in enumerate(operations):
        source = source_of(operation)
        try:
            entries = normalize_operation(operation)
        except _DuplicateFlowItem:
            result.skipped_duplicates += 1
            continue
        except InvalidRecord as exc:
            result.invalid_records += 1
            invalid[source] += 1
            LOGGER.warning("Skipping invalid %s record at index %d: %s", source, index, exc)
            continue
        result.entries.extend(entries)
        produced[source] += len(entries)

    result.by_source = dict(produced)
    result.invalid_by_source = dict(invalid)
    if result.invalid_records or result.skipped_duplicates:
        LOGGER.info(
            "Normalized %d entries from %d records (dropped %d invalid, skipped %d duplicate flow items)",
            len(result.entries),
            len(operations),
            result.invalid_records,
            result.skipped_duplicates,
        )
    return result


def normalize_operation(operation: RawOperation) -> List[LedgerEntry]:
    """Map a single raw operation to its canonical entries."""

    handler = _HANDLERS.get(type(operation))
    if handler is None:
        raise InvalidRecord(f"Unsupported operation type {type(operation).__name__}")
    return handler(operation)


def source_of(operation: RawOperation) -> str:
    return _SOURCES.get(type(operation), "unknown")


def parse_timestamp(value: Any):
    try:
        return coerce_timestamp(value)
    except (TypeError, ValueError) as exc:
        raise InvalidRecord(str(exc)) from exc


def parse_quantity(value: Any) -> float:
    """Unsigned quantity; an absent value counts as zero."""

    if value is None or (isinstance(value, str) and not value.strip()):
        return 0.0
    if isinstance(value, bool):
        raise InvalidRecord(f"Invalid quantity {value!r}")
    try:
        quantity = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidRecord(f"Invalid quantity {value!r}") from exc
    if math.isnan(quantity) or math.isinf(quantity):
        raise InvalidRecord(f"Invalid quantity {value!r}")
    return abs(quantity)


def relation_category(code: Any) -> Category:
    """Category for a goods-flow relation code; duplicates raise the skip marker."""

    try:
        numeric = int(code)
    except (TypeError, ValueError):
        return Category.OTHER
    if numeric in DUPLICATE_RELATION_CODES:
        raise _DuplicateFlowItem(numeric)
    return RELATION_CATEGORIES.get(numeric, Category.OTHER)


def _entry(
    operation: RawOperation,
    category: Category,
    *,
    source: str,
    counterpart: str | None = None,
    warehouse_name: str | None = None,
    type_name: str | None = None,
    supplier: str | None = None,
) -> LedgerEntry:
    timestamp = parse_timestamp(operation.timestamp)
    quantity = parse_quantity(operation.quantity)
    return LedgerEntry(
        timestamp=timestamp,
        category=category,
        label=clean_text(operation.label),
        actor=clean_text(operation.actor),
        counterpart_warehouse=counterpart,
        quantity=quantity,
        delta=signed_delta(category, quantity),
        warehouse_id=operation.warehouse_id,
        description=clean_text(operation.description),
        warehouse_name=warehouse_name,
        source=source,
        type_name=type_name,
        supplier=supplier,
    )


def _receipt(operation: ReceiptOperation) -> List[LedgerEntry]:
    return [
        _entry(
            operation,
            Category.RECEIPT,
            source=SOURCE_POSTINGS,
            warehouse_name=clean_warehouse_name(operation.warehouse_name),
            supplier=clean_text(operation.supplier),
        )
    ]


def _transfer(operation: TransferOperation) -> List[LedgerEntry]:
    timestamp = parse_timestamp(operation.timestamp)
    quantity = parse_quantity(operation.quantity)
    legs = split_transfer(operation, timestamp=timestamp, quantity=quantity, actor=clean_text(operation.actor))
    return list(legs)


def _write_off(operation: WriteOffOperation) -> List[LedgerEntry]:
    source_name = clean_warehouse_name(operation.source_warehouse)
    return [
        _entry(
            operation,
            Category.WRITE_OFF,
            source=SOURCE_OUTCOMES,
            counterpart=source_name,
            warehouse_name=source_name,
        )
    ]


def _sale(operation: SaleOperation) -> List[LedgerEntry]:
    return [
        _entry(
            operation,
            Category.SALE,
            source=SOURCE_SALES,
            warehouse_name=clean_warehouse_name(operation.warehouse_name),
        )
    ]


def _flow_item(operation: FlowItemOperation) -> List[LedgerEntry]:
    category = relation_category(operation.relation_type)
    return [
        _entry(
            operation,
            category,
            source=SOURCE_GOODS_FLOW,
            type_name=clean_text(operation.type_name),
        )
    ]


_HANDLERS: Mapping[type, Callable[[Any], List[LedgerEntry]]] = {
    ReceiptOperation: _receipt,
    TransferOperation: _transfer,
    WriteOffOperation: _write_off,
    SaleOperation: _sale,
    FlowItemOperation: _flow_item,
}

_SOURCES: Mapping[type, str] = {
    ReceiptOperation: SOURCE_POSTINGS,
    TransferOperation: SOURCE_MOVES,
    WriteOffOperation: SOURCE_OUTCOMES,
    SaleOperation: SOURCE_SALES,
    FlowItemOperation: SOURCE_GOODS_FLOW,
}


__all__ = [
    "DUPLICATE_RELATION_CODES",
    "InvalidRecord",
    "NormalizationResult",
    "RELATION_CATEGORIES",
    "normalize",
    "normalize_operation",
    "parse_quantity",
    "parse_timestamp",
    "relation_category",
    "source_of",
]
