"""Alpha Vantage client. Endpoint reference: https://www.alphavantage.co/documentation/"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from typing import Any

from market_feeds.classifier import ResponseClassifier
from market_feeds.indicators import (
  INDICATOR_OPTIONS,
  BbandsOptions,
  IndicatorOptions,
  IndicatorRequestBuilder,
  MamaOptions,
  StochFastOptions,
  StochOptions,
  legacy_slow_period_value,
  macd_options,
  macdext_options,
)
from market_feeds.interfaces import (
  IndicatorFetcher,
  LatestQuoteFetcher,
  QuotesFetcher,
  SearchFetcher,
  SectorFetcher,
)
from market_feeds.models import IndicatorRecord, Match, Quote, QuoteMeta, QuotePrice
from market_feeds.timeseries import flatten, parse_date, select_series, to_float
from market_feeds.transport import HttpTransport

# --- Module Constants ---
_ALPHA_VANTAGE_URL = "https://www.alphavantage.co/query"
_SOURCE = "Alpha Vantage"
_DAILY_INTERVALS = ("daily", "weekly", "monthly")

# --- Bar Mapping ---


def _map_bar_to_quote(symbol: str, adjusted: bool) -> Callable[[str, dict], Quote]:
  """Returns a record factory turning one time series bar into a Quote."""

  def _to_quote(date_str: str, bar: dict[str, Any]) -> Quote:
    if adjusted:
      price = QuotePrice(
        open=to_float(bar.get("1. open")),
        high=to_float(bar.get("2. high")),
        low=to_float(bar.get("3. low")),
        close=to_float(bar.get("4. close")),
        adjusted_close=to_float(bar.get("5. adjusted close")),
        volume=to_float(bar.get("6. volume")),
      )
      meta = QuoteMeta(
        dividend_amount=bar.get("7. dividend amount"),
        split_coefficient=bar.get("8. split coefficient"),
      )
    else:
      price = QuotePrice(
        open=to_float(bar.get("1. open")),
        high=to_float(bar.get("2. high")),
        low=to_float(bar.get("3. low")),
        close=to_float(bar.get("4. close")),
        volume=to_float(bar.get("5. volume")),
      )
      meta = None
    return Quote(
      symbol=symbol,
      date=parse_date(date_str),
      source=_SOURCE,
      price=price,
      meta=meta,
      original=dict(bar),
    )

  return _to_quote


def _map_global_quote(res: dict[str, Any]) -> Quote:
  return Quote(
    symbol=res["01. symbol"],
    date=parse_date(res["07. latest trading day"]),
    source=_SOURCE,
    price=QuotePrice(
      open=to_float(res.get("02. open")),
      high=to_float(res.get("03. high")),
      low=to_float(res.get("04. low")),
      last=to_float(res.get("05. price")),
      volume=to_float(res.get("06. volume")),
    ),
    meta=QuoteMeta(
      previous_close=to_float(res.get("08. previous close")),
      change=to_float(res.get("09. change")),
      change_percent=res.get("10. change percent"),
    ),
    original=dict(res),
  )


# --- Client ---


class AlphaVantageClient:
  """Maps Alpha Vantage endpoints onto Quote, Match and IndicatorRecord objects.

  Every method raises MarketDataError when the call is classified as a
  failure.
  """

  def __init__(
    self,
    api_key: str,
    transport: HttpTransport | None = None,
    url: str = _ALPHA_VANTAGE_URL,
  ):
    if not api_key:
      raise ValueError("Alpha Vantage client requires an API key.")

    self._url = url
    self._auth_params = {"apikey": api_key, "datatype": "json"}
    self._classifier = ResponseClassifier(transport or HttpTransport())
    self.indicators = IndicatorRequestBuilder(self._classifier, url, self._auth_params)

  def _request(self, query: dict[str, Any]) -> Any:
    return self._classifier.request(self._url, {**query, **self._auth_params}).unwrap()

  def _time_series(self, query: dict[str, Any], adjusted: bool) -> list[Quote]:
    payload = self._request(query)
    return flatten(select_series(payload), _map_bar_to_quote(query["symbol"], adjusted))

  # --- Prices ---

  def time_series_intraday(self, symbol: str, interval: str) -> list[Quote]:
    """Intraday bars; interval is one of 1min, 5min, 15min, 30min, 60min."""
    query = {"function": "TIME_SERIES_INTRADAY", "symbol": symbol, "interval": interval}
    return self._time_series(query, adjusted=False)

  def time_series_daily(
    self, symbol: str, compact: bool = True, adjusted: bool = False
  ) -> list[Quote]:
    """Daily bars; compact returns the latest 100, otherwise up to 20 years."""
    query = {
      "function": "TIME_SERIES_DAILY_ADJUSTED" if adjusted else "TIME_SERIES_DAILY",
      "symbol": symbol,
      "outputsize": "compact" if compact else "full",
    }
    return self._time_series(query, adjusted)

  def time_series_weekly(self, symbol: str, adjusted: bool = False) -> list[Quote]:
    query = {
      "function": "TIME_SERIES_WEEKLY_ADJUSTED" if adjusted else "TIME_SERIES_WEEKLY",
      "symbol": symbol,
    }
    return self._time_series(query, adjusted)

  def time_series_monthly(self, symbol: str, adjusted: bool = False) -> list[Quote]:
    query = {
      "function": "TIME_SERIES_MONTHLY_ADJUSTED" if adjusted else "TIME_SERIES_MONTHLY",
      "symbol": symbol,
    }
    return self._time_series(query, adjusted)

  def quote(self, symbol: str) -> Quote:
    payload = self._request({"function": "GLOBAL_QUOTE", "symbol": symbol})
    res = select_series(payload, "Global Quote")
    if not res:
      raise ValueError(f"No quote returned for '{symbol}'.")
    return _map_global_quote(res)

  def search(self, keywords: str) -> list[Match]:
    payload = self._request({"function": "SYMBOL_SEARCH", "keywords": keywords})
    return [Match.model_validate(hit) for hit in select_series(payload, "bestMatches") or []]

  def sector_performance(self) -> dict[str, Any]:
    """Real time and historical S&P sector performance, returned as sent."""
    return self._request({"function": "SECTOR"})

  # --- Technical Indicators ---

  def indicator(
    self,
    indicator: str,
    symbol: str,
    interval: str,
    time_period: int | None = None,
    series_type: str | None = None,
    options: IndicatorOptions | None = None,
  ) -> list[IndicatorRecord]:
    return self.indicators.build_and_fetch(
      indicator, symbol, interval, time_period, series_type, options
    )

  def sma(self, symbol, interval, time_period, series_type):
    return self.indicator("SMA", symbol, interval, time_period, series_type)

  def ema(self, symbol, interval, time_period, series_type):
    return self.indicator("EMA", symbol, interval, time_period, series_type)

  def wma(self, symbol, interval, time_period, series_type):
    return self.indicator("WMA", symbol, interval, time_period, series_type)

  def dema(self, symbol, interval, time_period, series_type):
    return self.indicator("DEMA", symbol, interval, time_period, series_type)

  def tema(self, symbol, interval, time_period, series_type):
    return self.indicator("TEMA", symbol, interval, time_period, series_type)

  def trima(self, symbol, interval, time_period, series_type):
    return self.indicator("TRIMA", symbol, interval, time_period, series_type)

  def kama(self, symbol, interval, time_period, series_type):
    return self.indicator("KAMA", symbol, interval, time_period, series_type)

  def t3(self, symbol, interval, time_period, series_type):
    return self.indicator("T3", symbol, interval, time_period, series_type)

  def rsi(self, symbol, interval, time_period, series_type):
    return self.indicator("RSI", symbol, interval, time_period, series_type)

  def mama(
    self, symbol, interval, time_period, series_type, fast_limit=None, slow_limit=None
  ):
    options = MamaOptions(fastlimit=fast_limit, slowlimit=slow_limit)
    return self.indicator("MAMA", symbol, interval, time_period, series_type, options)

  def macd(
    self,
    symbol,
    interval,
    time_period,
    series_type,
    fast_period=None,
    slow_period=None,
    signal_period=None,
    legacy_slow_period=False,
  ):
    options = macd_options(fast_period, slow_period, signal_period, legacy_slow_period)
    return self.indicator("MACD", symbol, interval, time_period, series_type, options)

  def macdext(
    self,
    symbol,
    interval,
    time_period,
    series_type,
    fast_period=None,
    slow_period=None,
    signal_period=None,
    fast_ma_type=None,
    slow_ma_type=None,
    signal_ma_type=None,
    legacy_slow_period=False,
  ):
    """MACD with a selectable moving average type for each of its three averages."""
    options = macdext_options(
      fast_period,
      slow_period,
      signal_period,
      fast_ma_type,
      slow_ma_type,
      signal_ma_type,
      legacy_slow_period,
    )
    return self.indicator("MACDEXT", symbol, interval, time_period, series_type, options)

  def stoch(
    self,
    symbol,
    interval,
    time_period,
    series_type,
    fast_k_period=None,
    slow_k_period=None,
    slow_d_period=None,
    slow_k_ma_type=None,
    slow_d_ma_type=None,
  ):
    options = StochOptions(
      fastkperiod=fast_k_period,
      slowkperiod=slow_k_period,
      slowdperiod=slow_d_period,
      slowkmatype=slow_k_ma_type,
      slowdmatype=slow_d_ma_type,
    )
    return self.indicator("STOCH", symbol, interval, time_period, series_type, options)

  def stochf(
    self,
    symbol,
    interval,
    time_period,
    series_type,
    fast_k_period=None,
    fast_d_period=None,
    fast_d_ma_type=None,
  ):
    options = StochFastOptions(
      fastkperiod=fast_k_period, fastdperiod=fast_d_period, fastdmatype=fast_d_ma_type
    )
    return self.indicator("STOCHF", symbol, interval, time_period, series_type, options)

  def stochrsi(
    self,
    symbol,
    interval,
    time_period,
    series_type,
    fast_k_period=None,
    fast_d_period=None,
    fast_d_ma_type=None,
  ):
    options = StochFastOptions(
      fastkperiod=fast_k_period, fastdperiod=fast_d_period, fastdmatype=fast_d_ma_type
    )
    return self.indicator("STOCHRSI", symbol, interval, time_period, series_type, options)

  def bbands(
    self, symbol, interval, time_period, series_type, nbdevup=None, nbdevdn=None, matype=None
  ):
    options = BbandsOptions(nbdevup=nbdevup, nbdevdn=nbdevdn, matype=matype)
    return self.indicator("BBANDS", symbol, interval, time_period, series_type, options)

  def minus_di(self, symbol, interval, time_period):
    return self.indicator("MINUS_DI", symbol, interval, time_period)

  def plus_di(self, symbol, interval, time_period):
    return self.indicator("PLUS_DI", symbol, interval, time_period)

  def adx(self, symbol, interval, time_period):
    return self.indicator("ADX", symbol, interval, time_period)


# --- Private Fetcher Implementations ---


def _get_quotes_impl(client: AlphaVantageClient, **kwargs: Any) -> list[Quote]:
  """Fetches a price series, dispatching on the requested interval."""
  ticker = kwargs["ticker"]
  interval = kwargs.get("interval", "daily")
  adjusted = kwargs.get("adjusted", False)

  if interval not in _DAILY_INTERVALS:
    return client.time_series_intraday(ticker, interval)
  if interval == "daily":
    compact = kwargs.get("outputsize", "compact") == "compact"
    return client.time_series_daily(ticker, compact=compact, adjusted=adjusted)
  if interval == "weekly":
    return client.time_series_weekly(ticker, adjusted=adjusted)
  return client.time_series_monthly(ticker, adjusted=adjusted)


def _get_quote_impl(client: AlphaVantageClient, **kwargs: Any) -> Quote:
  return client.quote(kwargs["ticker"])


def _search_impl(client: AlphaVantageClient, **kwargs: Any) -> list[Match]:
  return client.search(kwargs["keywords"])


def _get_sectors_impl(client: AlphaVantageClient, **kwargs: Any) -> dict[str, Any]:
  return client.sector_performance()


def _get_indicator_impl(client: AlphaVantageClient, **kwargs: Any) -> list[IndicatorRecord]:
  """Fetches any supported indicator from raw option values.

  Expects 'indicator', 'ticker' and 'interval'; 'time_period', 'series_type'
  and 'options' (a dict of vendor parameter names) are optional.
  """
  indicator = kwargs["indicator"].upper()
  options_class = INDICATOR_OPTIONS.get(indicator)
  if options_class is None:
    raise ValueError(f"Indicator '{indicator}' is not supported.")

  raw_options = dict(kwargs.get("options") or {})
  if indicator in ("MACD", "MACDEXT") and kwargs.get("legacy_slow_period"):
    logging.info("Using legacy slow period substitution for MACD")
    raw_options["slowperiod"] = legacy_slow_period_value(
      raw_options.get("fastperiod"), raw_options.get("slowperiod")
    )

  return client.indicator(
    indicator,
    kwargs["ticker"],
    kwargs["interval"],
    kwargs.get("time_period"),
    kwargs.get("series_type"),
    options_class(**raw_options),
  )


# --- Public Provider Class ---


class AlphaVantageProvider:
  def __init__(self, api_key: str, transport: HttpTransport | None = None):
    if not api_key:
      raise ValueError("Alpha Vantage provider requires an API key.")

    client = AlphaVantageClient(api_key, transport=transport)

    self._capabilities = {
      QuotesFetcher: functools.partial(_get_quotes_impl, client=client),
      LatestQuoteFetcher: functools.partial(_get_quote_impl, client=client),
      SearchFetcher: functools.partial(_search_impl, client=client),
      IndicatorFetcher: functools.partial(_get_indicator_impl, client=client),
      SectorFetcher: functools.partial(_get_sectors_impl, client=client),
    }

  def supports(self, interface_class: type) -> bool:
    return interface_class in self._capabilities

  def get_fetcher(self, interface_class: type):
    if not self.supports(interface_class):
      raise TypeError(f"This provider does not support {interface_class.__name__}")
    return self._capabilities[interface_class]
