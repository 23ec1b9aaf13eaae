from __future__ import annotations

import datetime as dt
import functools
import logging
from typing import Any

from market_feeds.classifier import ResponseClassifier
from market_feeds.interfaces import MarketFetcher, NextSessionFetcher
from market_feeds.lookahead import DEFAULT_MAX_LOOKAHEAD_DAYS, SessionEdge, find_next_session
from market_feeds.models import Market, TradingHours
from market_feeds.transport import HttpTransport

# --- Module Constants ---
_ROBINHOOD_URL = "https://api.robinhood.com"


def _todays_hours_url(market: Any) -> str | None:
  if isinstance(market, dict):
    return market.get("todays_hours")
  return None


class RobinhoodMarkets:
  """Exchange lookups and trading calendar queries against Robinhood.

  The market endpoints are public, no session is attached to requests.
  """

  def __init__(self, transport: HttpTransport | None = None, url: str = _ROBINHOOD_URL):
    self._url = url.rstrip("/")
    self._classifier = ResponseClassifier(transport or HttpTransport())

  # --- Markets ---

  def get_by_mic(self, code: str) -> Market:
    """Returns the exchange for an ISO 10383 Market Identifier Code, e.g. 'XNAS'."""
    if not isinstance(code, str) or not code:
      raise ValueError("Market identifier code must be a non-empty string.")
    return self.get_by_url(f"{self._url}/markets/{code}/")

  def get_by_url(self, url: str) -> Market:
    """Returns the exchange at `url`, with today's hours already resolved."""
    if not isinstance(url, str) or not url:
      raise ValueError("Market URL must be a non-empty string.")
    return self._classifier.request(
      url, continuation=_todays_hours_url, transform=Market.model_validate
    ).unwrap()

  # --- Trading Hours ---

  def get_hours_on(self, mic: str, day: dt.date) -> TradingHours:
    url = f"{self._url}/markets/{mic}/hours/{day:%Y-%m-%d}/"
    return self._classifier.request(url, transform=TradingHours.model_validate).unwrap()

  def is_open_on(self, mic: str, day: dt.date) -> bool:
    return self.get_hours_on(mic, day).is_open

  def get_next_trading_hours(self, hours: TradingHours) -> TradingHours:
    return self._follow(hours.next_trading_day, "next")

  def get_previous_trading_hours(self, hours: TradingHours) -> TradingHours:
    return self._follow(hours.previous_trading_day, "previous")

  def _follow(self, reference: str | None, direction: str) -> TradingHours:
    if not reference:
      raise ValueError(f"Trading hours carry no reference to the {direction} trading day.")
    return self._classifier.request(
      reference, transform=TradingHours.model_validate
    ).unwrap()

  # --- Lookahead ---

  def get_next_session(
    self,
    market: Market,
    edge: SessionEdge,
    now: dt.datetime | None = None,
    max_days: int = DEFAULT_MAX_LOOKAHEAD_DAYS,
  ) -> dt.datetime:
    reference = now or dt.datetime.now(dt.timezone.utc)
    zone = market.zone
    if zone is not None and reference.tzinfo is not None:
      today = reference.astimezone(zone).date()
    else:
      today = reference.date()

    logging.info(f"Searching next {SessionEdge(edge).value} of {market.mic} from {today}")
    return find_next_session(
      edge,
      reference,
      functools.partial(self.get_hours_on, market.mic),
      todays_hours=market.hours,
      today=today,
      max_days=max_days,
    )

  def get_next_open(
    self,
    market: Market,
    now: dt.datetime | None = None,
    max_days: int = DEFAULT_MAX_LOOKAHEAD_DAYS,
  ) -> dt.datetime:
    return self.get_next_session(market, SessionEdge.OPEN, now, max_days)

  def get_next_close(
    self,
    market: Market,
    now: dt.datetime | None = None,
    max_days: int = DEFAULT_MAX_LOOKAHEAD_DAYS,
  ) -> dt.datetime:
    return self.get_next_session(market, SessionEdge.CLOSE, now, max_days)


# --- Private Fetcher Implementations ---


def _get_market_impl(client: RobinhoodMarkets, **kwargs: Any) -> Market:
  if kwargs.get("url"):
    return client.get_by_url(kwargs["url"])
  return client.get_by_mic(kwargs["mic"])


def _get_next_session_impl(client: RobinhoodMarkets, **kwargs: Any) -> dt.datetime:
  """Finds the next open or close of an exchange.

  Expects 'mic'; 'edge' ('open' or 'close'), 'now' and 'max_days' are optional.
  """
  market = client.get_by_mic(kwargs["mic"])
  return client.get_next_session(
    market,
    SessionEdge(kwargs.get("edge", SessionEdge.OPEN)),
    now=kwargs.get("now"),
    max_days=kwargs.get("max_days", DEFAULT_MAX_LOOKAHEAD_DAYS),
  )


# --- Public Provider Class ---


class RobinhoodProvider:
  def __init__(self, transport: HttpTransport | None = None):
    client = RobinhoodMarkets(transport=transport)

    self._capabilities = {
      MarketFetcher: functools.partial(_get_market_impl, client=client),
      NextSessionFetcher: functools.partial(_get_next_session_impl, client=client),
    }

  def supports(self, interface_class: type) -> bool:
    return interface_class in self._capabilities

  def get_fetcher(self, interface_class: type):
    if not self.supports(interface_class):
      raise TypeError(f"This provider does not support {interface_class.__name__}")
    return self._capabilities[interface_class]
