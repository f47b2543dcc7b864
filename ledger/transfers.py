"""Directional splitting of warehouse-to-warehouse transfers."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Sequence

from .scope import SubstringWarehouseMatcher, WarehouseMatcher
from .types import Category, LedgerEntry, SOURCE_MOVES, TransferOperation, signed_delta

PATH_SEPARATOR = " > "


def clean_text(value: object) -> str | None:
    """Free-text field as a stripped string, ``None`` when blank."""

    if value is None:
        return None
    text = str(value).strip()
    return text or None


def clean_warehouse_name(value: object) -> str | None:
    """Drop region/path prefixes: ``"Region > Shop"`` becomes ``"Shop"``."""

    if value is None:
        return None
    text = str(value)
    if PATH_SEPARATOR in text:
        text = text.rsplit(PATH_SEPARATOR, 1)[-1]
    text = text.strip()
    return text or None


def split_transfer(
    record: TransferOperation,
    *,
    timestamp: datetime,
    quantity: float,
    actor: str | None = None,
) -> tuple[LedgerEntry, LedgerEntry]:
    """Return the outbound and inbound legs of a transfer.

    The outbound leg belongs to the source warehouse and names the
    destination as its counterpart; the inbound leg is the mirror image.
    """

    source = clean_warehouse_name(record.source_warehouse)
    target = clean_warehouse_name(record.target_warehouse)
    outbound = LedgerEntry(
        timestamp=timestamp,
        category=Category.TRANSFER_OUT,
        label=clean_text(record.label),
        actor=actor,
        counterpart_warehouse=target,
        quantity=quantity,
        delta=signed_delta(Category.TRANSFER_OUT, quantity),
        warehouse_id=None,
        description=clean_text(record.description),
        warehouse_name=source,
        source=SOURCE_MOVES,
    )
    inbound = LedgerEntry(
        timestamp=timestamp,
        category=Category.TRANSFER_IN,
        label=clean_text(record.label),
        actor=actor,
        counterpart_warehouse=source,
        quantity=quantity,
        delta=signed_delta(Category.TRANSFER_IN, quantity),
        warehouse_id=None,
        description=clean_text(record.description),
        warehouse_name=target,
        source=SOURCE_MOVES,
    )
    return outbound, inbound


def orient_transfer_legs(
    entries: Iterable[LedgerEntry],
    warehouse_name: str | None,
    *,
    scoped: bool | None = None,
    matcher: WarehouseMatcher | None = None,
) -> List[LedgerEntry]:
    """Keep only the transfer legs that pertain to the requested warehouse.

    Non-transfer entries pass through untouched.  Without a warehouse scope
    both legs stay, so a transfer shows as two lines that net to zero.  A
    scope given only by id cannot attribute a leg and drops it.
    """

    items: Sequence[LedgerEntry] = list(entries)
    if scoped is None:
        scoped = warehouse_name is not None
    if not scoped:
        return list(items)
    resolved = matcher or SubstringWarehouseMatcher()
    oriented: List[LedgerEntry] = []
    for entry in items:
        if not entry.is_transfer_leg:
            oriented.append(entry)
            continue
        if warehouse_name is not None and resolved.matches(entry.warehouse_name, warehouse_name):
            oriented.append(entry)
    return oriented


__all__ = ["PATH_SEPARATOR", "clean_text", "clean_warehouse_name", "orient_transfer_legs", "split_transfer"]
