"""Ledger construction and balance reconciliation."""

from __future__ import annotations

import logging
from typing import Iterable, List

from .types import Ledger, LedgerEntry, LedgerRow, ReconciliationMismatch

LOGGER = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 0.01


def build_ledger(
    entries: Iterable[LedgerEntry],
    current_balance: float,
    *,
    tolerance: float = DEFAULT_TOLERANCE,
    opening_balance: float | None = None,
) -> Ledger:
    """Reconstruct the running balance history that ends at *current_balance*.

    The opening balance is derived backwards (``current - Σ delta``) unless an
    explicit one is supplied.  Entries are sorted oldest-first with a stable
    sort, so operations sharing a timestamp keep their input order.  A final
    balance further than *tolerance* from *current_balance* attaches a
    :class:`ReconciliationMismatch` warning; the ledger is returned anyway.
    """

    if tolerance < 0:
        raise ValueError("tolerance must be non-negative")
    items: List[LedgerEntry] = list(entries)
    current = float(current_balance)
    total_delta = sum(entry.delta for entry in items)
    derived_opening = current - total_delta
    opening = derived_opening if opening_balance is None else float(opening_balance)

    ordered = sorted(items, key=lambda entry: entry.timestamp)
    rows: List[LedgerRow] = []
    running = opening
    for entry in ordered:
        running = running + entry.delta
        rows.append(LedgerRow(entry=entry, running_balance=running))

    closing = rows[-1].running_balance if rows else opening
    difference = closing - current
    warnings: tuple[ReconciliationMismatch, ...] = ()
    reconciled = abs(difference) <= tolerance
    if not reconciled:
        mismatch = ReconciliationMismatch(
            expected_balance=current,
            computed_balance=closing,
            tolerance=tolerance,
        )
        warnings = (mismatch,)
        LOGGER.warning("Reconciliation mismatch: %s", mismatch.message)

    return Ledger(
        rows=tuple(rows),
        opening_balance=opening,
        current_balance=current,
        reconciliation_ok=reconciled,
        reconciliation_delta=difference,
        warnings=warnings,
    )


__all__ = ["DEFAULT_TOLERANCE", "build_ledger"]
