from __future__ import annotations

import logging
import math
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any, TypeVar

T = TypeVar("T")

# --- Module Constants ---
_META_KEY = "Meta Data"
_VENDOR_NOTICE_KEYS = ("Error Message", "Note", "Information")


def to_float(value: Any) -> float:
  """Parses a vendor number, yielding NaN when it is missing or unparsable."""
  if value is None:
    return math.nan
  try:
    return float(value)
  except (TypeError, ValueError):
    return math.nan


def parse_date(text: str) -> datetime:
  """Parses a series key such as '2024-01-02' or '2024-01-02 16:00:00'."""
  return datetime.fromisoformat(text.strip())


def select_series(payload: Any, key: str | None = None) -> Any:
  """Picks the keyed data block out of a vendor response envelope.

  Without an explicit key the first top-level entry other than the
  "Meta Data" header is used. When the vendor answers with a notice instead
  of data (invalid symbol, call frequency note, ...) the notice is logged and
  an empty block is returned.
  """
  if not isinstance(payload, Mapping):
    return payload

  if key is not None and key in payload:
    return payload[key]

  for notice_key in _VENDOR_NOTICE_KEYS:
    if notice_key in payload:
      logging.warning(f"Vendor returned no data. {notice_key}: {payload[notice_key]}")
      return {}

  if key is not None:
    logging.warning(f"Response is missing expected key '{key}'")
    return {}

  for name, block in payload.items():
    if name != _META_KEY:
      return block
  return {}


def flatten(
  keyed: Mapping[str, Any] | None,
  record_factory: Callable[[str, Any], T],
  sort_key: Callable[[T], Any] = lambda record: record.date,
) -> list[T]:
  """Builds one record per series key, ordered ascending by date.

  Vendor key order is not guaranteed to be chronological, so every key is
  mapped independently and the result is sorted afterwards. `sorted` is
  stable, ties keep their input order.
  """
  if not keyed:
    return []
  records = [record_factory(key, fields) for key, fields in keyed.items()]
  return sorted(records, key=sort_key)
