"""Shared helpers for the per-source record adapters."""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping, Sequence

from ledger.types import RawOperation

LOGGER = logging.getLogger(__name__)

QUANTITY_FIELDS = ("amount", "quantity")
ACTOR_FIELDS = ("created_by_name", "employee_name")


def first_present(record: Mapping[str, Any], fields: Sequence[str]) -> Any:
    """Return the first value among *fields* that is present and not ``None``."""

    for name in fields:
        value = record.get(name)
        if value is not None:
            return value
    return None


def nested(record: Mapping[str, Any], *path: str) -> Any:
    value: Any = record
    for key in path:
        if not isinstance(value, Mapping):
            return None
        value = value.get(key)
    return value


class RecordAdapter:
    """Rename one source's API fields into :class:`RawOperation` instances.

    Subclasses implement :meth:`convert`; parsing and validation belong to
    the normalizer, so adapters never reject a mapping.
    """

    source: str = ""

    def to_operations(self, records: Iterable[Any]) -> List[RawOperation]:
        operations: List[RawOperation] = []
        skipped = 0
        for record in records or ():
            if not isinstance(record, Mapping):
                skipped += 1
                continue
            operations.append(self.convert(record))
        if skipped:
            LOGGER.warning("Skipped %d non-mapping %s records", skipped, self.source)
        return operations

    def convert(self, record: Mapping[str, Any]) -> RawOperation:  # pragma: no cover - interface
        raise NotImplementedError


__all__ = ["ACTOR_FIELDS", "QUANTITY_FIELDS", "RecordAdapter", "first_present", "nested"]
