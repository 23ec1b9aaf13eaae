import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import pandas as pd

OUTPUT_DIR = Path("csv")
_LEADING_COLUMNS = ("symbol", "date")


def _as_row(record: Any) -> Mapping[str, Any]:
  if isinstance(record, Mapping):
    return record
  return record.to_row()


def save_to_csv(
  records: Iterable[Any], filename: str, output_dir: Path = OUTPUT_DIR
) -> Path | None:
  """Writes records to `output_dir/filename` and returns the written path.

  A record is either a mapping or a model exposing `to_row()` (quotes,
  indicator values). Symbol and date columns come first when present.
  Nothing is written for an empty input, and file system errors are logged
  rather than raised; both cases return None.
  """
  rows = [_as_row(record) for record in records]
  if not rows:
    logging.warning("No data provided to write to CSV.")
    return None

  df = pd.DataFrame(rows)
  leading = [column for column in _LEADING_COLUMNS if column in df.columns]
  df = df[leading + [column for column in df.columns if column not in leading]]

  output_path = Path(output_dir) / filename
  try:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(output_path, index=False, encoding="utf-8")
  except OSError as e:
    logging.error(f"Could not write {len(df)} rows to {output_path}: {e}")
    return None

  logging.info(f"Wrote {len(df)} rows to {output_path}")
  return output_path
