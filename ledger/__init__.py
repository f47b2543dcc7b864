"""Stock ledger reconstruction: normalization, scoping and reconciliation."""

from .builder import DEFAULT_TOLERANCE, build_ledger
from .normalizer import InvalidRecord, NormalizationResult, normalize
from .pipeline import HistoryResult, reconstruct_history, resolve_current_balance
from .scope import (
    ExactWarehouseMatcher,
    SubstringWarehouseMatcher,
    WarehouseMatcher,
    WarehouseScope,
    filter_by_warehouse,
    resolve_matcher,
)
from .transfers import clean_warehouse_name, orient_transfer_legs, split_transfer
from .types import (
    Category,
    FlowItemOperation,
    Ledger,
    LedgerEntry,
    LedgerRow,
    OperationSources,
    RawOperation,
    ReceiptOperation,
    ReconciliationMismatch,
    SaleOperation,
    TransferOperation,
    WriteOffOperation,
)

__all__ = [
    "Category",
    "DEFAULT_TOLERANCE",
    "ExactWarehouseMatcher",
    "FlowItemOperation",
    "HistoryResult",
    "InvalidRecord",
    "Ledger",
    "LedgerEntry",
    "LedgerRow",
    "NormalizationResult",
    "OperationSources",
    "RawOperation",
    "ReceiptOperation",
    "ReconciliationMismatch",
    "SaleOperation",
    "SubstringWarehouseMatcher",
    "TransferOperation",
    "WarehouseMatcher",
    "WarehouseScope",
    "WriteOffOperation",
    "build_ledger",
    "clean_warehouse_name",
    "filter_by_warehouse",
    "normalize",
    "orient_transfer_legs",
    "reconstruct_history",
    "resolve_current_balance",
    "resolve_matcher",
    "split_transfer",
]
