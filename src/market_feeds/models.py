from __future__ import annotations

import datetime as dt
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field


class QuotePrice(BaseModel):
  """Price fields of a quote.

  None means the endpoint never supplies the field; NaN means the vendor
  left out a field it normally sends.
  """

  model_config = ConfigDict(frozen=True)

  open: float | None = None
  high: float | None = None
  low: float | None = None
  close: float | None = None
  last: float | None = None
  volume: float | None = None
  adjusted_close: float | None = None


class QuoteMeta(BaseModel):
  """Extra per-bar values, kept the way the vendor typed them."""

  model_config = ConfigDict(frozen=True)

  dividend_amount: Any = None
  split_coefficient: Any = None
  previous_close: Any = None
  change: Any = None
  change_percent: Any = None


class Quote(BaseModel):
  """A single priced bar or latest quote for a symbol."""

  model_config = ConfigDict(frozen=True)

  symbol: str
  date: dt.datetime
  source: str
  price: QuotePrice
  meta: QuoteMeta | None = None
  original: dict[str, Any] = Field(default_factory=dict)

  def to_row(self) -> dict[str, Any]:
    row = {"symbol": self.symbol, "date": self.date, "source": self.source}
    row.update(self.price.model_dump())
    if self.meta is not None:
      row.update(self.meta.model_dump())
    return row


class TradingHours(BaseModel):
  """Trading calendar entry of an exchange for one date.

  `open`/`close` may be set while `is_open` is False (extended sessions
  without a regular one), so neither implies the other.
  """

  model_config = ConfigDict(frozen=True, populate_by_name=True)

  is_open: bool
  date: dt.date
  open: dt.datetime | None = Field(default=None, alias="opens_at")
  close: dt.datetime | None = Field(default=None, alias="closes_at")
  extended_open: dt.datetime | None = Field(default=None, alias="extended_opens_at")
  extended_close: dt.datetime | None = Field(default=None, alias="extended_closes_at")
  next_trading_day: str | None = Field(default=None, alias="next_open_hours")
  previous_trading_day: str | None = Field(default=None, alias="previous_open_hours")


class Market(BaseModel):
  """An exchange, identified by its ISO 10383 market identifier code."""

  model_config = ConfigDict(frozen=True)

  mic: str
  name: str | None = None
  acronym: str | None = None
  city: str | None = None
  country: str | None = None
  timezone: str | None = None
  website: str | None = None
  url: str | None = None
  hours: TradingHours | None = None

  def __eq__(self, other: object) -> bool:
    if not isinstance(other, Market):
      return NotImplemented
    return self.mic == other.mic

  def __hash__(self) -> int:
    return hash(self.mic)

  @property
  def zone(self) -> ZoneInfo | None:
    if not self.timezone:
      return None
    try:
      return ZoneInfo(self.timezone)
    except (ZoneInfoNotFoundError, ValueError):
      return None

  @property
  def is_open_today(self) -> bool:
    return bool(self.hours and self.hours.is_open)

  def is_open_now(self, now: dt.datetime | None = None) -> bool:
    if self.hours is None:
      return False
    return _within(now, self.hours.open, self.hours.close)

  def is_extended_open_now(self, now: dt.datetime | None = None) -> bool:
    if self.hours is None:
      return False
    return _within(now, self.hours.extended_open, self.hours.extended_close)


class IndicatorRecord(BaseModel):
  """One bar of a technical indicator series, fields copied verbatim."""

  model_config = ConfigDict(frozen=True)

  date: dt.datetime
  values: dict[str, Any] = Field(default_factory=dict)

  def __getitem__(self, key: str) -> Any:
    return self.values[key]

  def to_row(self) -> dict[str, Any]:
    return {"date": self.date, **self.values}


class Match(BaseModel):
  """A symbol search hit."""

  model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

  symbol: str | None = Field(default=None, alias="1. symbol")
  name: str | None = Field(default=None, alias="2. name")
  type: str | None = Field(default=None, alias="3. type")
  region: str | None = Field(default=None, alias="4. region")
  market_open: str | None = Field(default=None, alias="5. marketOpen")
  market_close: str | None = Field(default=None, alias="6. marketClose")
  timezone: str | None = Field(default=None, alias="7. timezone")
  currency: str | None = Field(default=None, alias="8. currency")
  match_score: str | None = Field(default=None, alias="9. matchScore")


def as_aware(instant: dt.datetime) -> dt.datetime:
  """Naive datetimes are read as local time."""
  return instant if instant.tzinfo is not None else instant.astimezone()


def _within(
  now: dt.datetime | None, start: dt.datetime | None, end: dt.datetime | None
) -> bool:
  if start is None or end is None:
    return False
  current = as_aware(now) if now is not None else dt.datetime.now(dt.timezone.utc)
  return as_aware(start) < current < as_aware(end)
