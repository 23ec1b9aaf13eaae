from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Callable
from enum import Enum

from market_feeds.models import TradingHours, as_aware
from market_feeds.results import Failure, FailureKind, MarketDataError

# --- Module Constants ---
DEFAULT_MAX_LOOKAHEAD_DAYS = 30


class SessionEdge(str, Enum):
  OPEN = "open"
  CLOSE = "close"


def _edge_of(hours: TradingHours, edge: SessionEdge) -> dt.datetime | None:
  return hours.open if edge is SessionEdge.OPEN else hours.close


def find_next_session(
  edge: SessionEdge,
  reference: dt.datetime,
  fetch_hours_for_date: Callable[[dt.date], TradingHours],
  todays_hours: TradingHours | None = None,
  today: dt.date | None = None,
  max_days: int = DEFAULT_MAX_LOOKAHEAD_DAYS,
) -> dt.datetime:
  """Finds the next instant a market opens or closes.

  Walks forward one calendar day at a time, asking `fetch_hours_for_date` for
  each candidate, and returns the requested edge of the first day flagged
  open. When `reference` is already past today's recorded edge the search
  starts tomorrow. Candidates are fetched strictly one after another since
  the first open day is the answer.

  Args:
    edge: Which end of the regular session to return.
    reference: The instant to search from.
    fetch_hours_for_date: Returns the hours of one date, raising
      MarketDataError when the lookup fails. Failures are not skipped.
    todays_hours: Today's hours as already known to the caller, used only to
      pick the starting day. Ignored when dated other than the start day.
    today: The exchange-local date of `reference`, defaults to
      `reference.date()`.
    max_days: Number of candidate days examined before giving up.

  Returns:
    The open or close instant of the first open day.

  Raises:
    MarketDataError: `lookahead-exhausted` when no open day was found within
      `max_days`, or whatever failure the fetch function raised.
  """
  if max_days < 1:
    raise ValueError(f"max_days must be positive, got {max_days}")

  edge = SessionEdge(edge)
  start_day = today or reference.date()

  offset = 0
  todays_edge = None
  # Hours fetched on an earlier day say nothing about where today starts.
  if todays_hours is not None and todays_hours.date == start_day:
    todays_edge = _edge_of(todays_hours, edge)
  if todays_edge is not None and as_aware(reference) > as_aware(todays_edge):
    offset = 1

  for step in range(max_days):
    candidate = start_day + dt.timedelta(days=offset + step)
    hours = fetch_hours_for_date(candidate)
    instant = _edge_of(hours, edge)
    if hours.is_open and instant is not None:
      logging.debug(f"Next session {edge.value} found on {candidate}: {instant}")
      return instant
    logging.debug(f"No regular session on {candidate}, looking further ahead")

  raise MarketDataError(
    Failure(
      FailureKind.LOOKAHEAD_EXHAUSTED,
      f"no open session within {max_days} days of {start_day + dt.timedelta(days=offset)}",
    )
  )
