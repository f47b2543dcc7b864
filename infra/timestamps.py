"""Shared timestamp coercion utility.

Source feeds deliver operation times in several shapes: ISO strings, epoch
seconds or milliseconds, and analytics-style ``{"value": ...}`` wrappers.
Every normalizer goes through :func:`coerce_timestamp` so that the epoch and
timezone rules stay identical across sources.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Mapping

UTC = timezone.utc

# Threshold: values above this are assumed to be epoch milliseconds when
# epoch_unit="auto".  1e12 ms ≈ 2001-09-09, so any modern epoch-ms value
# exceeds it while epoch-seconds values stay below.
_MS_THRESHOLD = 1e12


def unwrap_timestamp(value: Any) -> Any:
    """Return the payload of a ``{"value": ...}`` wrapper, or *value* itself."""

    if isinstance(value, Mapping):
        return value.get("value")
    return value


def coerce_timestamp(
    value: Any,
    *,
    epoch_unit: str = "auto",
    index: int | None = None,
) -> datetime:
    """Convert *value* to a timezone-aware UTC datetime.

    Parameters
    ----------
    value:
        The value to convert.  Accepted types:

        * ``{"value": ...}`` mappings – unwrapped first.
        * ``datetime`` – returned as-is (made tz-aware if naive).
        * ``date`` – interpreted as midnight UTC.
        * ``int | float`` – interpreted as an epoch timestamp; the
          *epoch_unit* parameter controls the unit.
        * ``str`` – parsed via ``datetime.fromisoformat`` with ``Z``-suffix
          handling.  A bare ``YYYY-MM-DD`` string is treated as midnight UTC
          and a string of digits as an epoch value.

    epoch_unit:
        How to interpret numeric values: ``"auto"`` (default), ``"s"`` or
        ``"ms"``.

    index:
        Optional positional index for richer error messages when processing
        sequences of records.

    Raises
    ------
    TypeError | ValueError
        If *value* is missing or cannot be interpreted as a timestamp.
    """
    value = unwrap_timestamp(value)
    if value is None:
        _raise(ValueError, "timestamp is missing", index)

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=UTC)

    if isinstance(value, bool):
        _raise(TypeError, "boolean is not a timestamp", index)

    if isinstance(value, (int, float)):
        seconds = _epoch_to_seconds(float(value), epoch_unit)
        try:
            return datetime.fromtimestamp(seconds, tz=UTC)
        except (OverflowError, OSError, ValueError):
            _raise(ValueError, f"Epoch value {value!r} is out of range", index)

    if isinstance(value, str):
        text = value.strip()
        if not text:
            _raise(ValueError, "timestamp string cannot be empty", index)
        if text.isdigit():
            return coerce_timestamp(int(text), epoch_unit=epoch_unit, index=index)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            # Bare YYYY-MM-DD (10 chars) → midnight UTC
            if len(text) == 10:
                try:
                    parsed = datetime.fromisoformat(text + "T00:00:00+00:00")
                except ValueError:
                    _raise(ValueError, f"Invalid timestamp '{value}'", index)
            else:
                _raise(ValueError, f"Invalid timestamp '{value}'", index)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        return parsed.astimezone(UTC)

    _raise(TypeError, f"Unsupported timestamp type {type(value)}", index)


def _epoch_to_seconds(value: float, epoch_unit: str) -> float:
    if epoch_unit == "s":
        return value
    if epoch_unit == "ms":
        return value / 1000
    if epoch_unit == "auto":
        return value / 1000 if value > _MS_THRESHOLD else value
    raise ValueError(f"Unknown epoch_unit '{epoch_unit}'; expected 'auto', 's', or 'ms'")


def _raise(
    exc_type: type[Exception],
    message: str,
    index: int | None,
):
    position = f" at index {index}" if index is not None else ""
    raise exc_type(f"{message}{position}")


__all__ = ["UTC", "coerce_timestamp", "unwrap_timestamp"]
