from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator

from market_feeds.classifier import ResponseClassifier
from market_feeds.models import IndicatorRecord
from market_feeds.timeseries import flatten, parse_date, select_series

# --- Module Constants ---
_DEFAULT_FAST_PERIOD = 12
_DEFAULT_SLOW_PERIOD = 26
_DEFAULT_SIGNAL_PERIOD = 9

# --- Indicator Options ---


class IndicatorOptions(BaseModel):
  """Base class for the optional query parameters of an indicator.

  Each subclass enumerates the parameters the vendor recognizes for that
  indicator. Passing None for a parameter yields its documented default, so
  every recognized parameter is always sent.
  """

  model_config = ConfigDict(frozen=True, extra="forbid")

  @field_validator("*", mode="before")
  @classmethod
  def _default_when_none(cls, value: Any, info: ValidationInfo) -> Any:
    if value is None:
      return cls.model_fields[info.field_name].default
    return value

  def to_params(self) -> dict[str, Any]:
    return self.model_dump()


class NoOptions(IndicatorOptions):
  pass


class MamaOptions(IndicatorOptions):
  fastlimit: float = 0.01
  slowlimit: float = 0.01


class MacdOptions(IndicatorOptions):
  fastperiod: int = _DEFAULT_FAST_PERIOD
  slowperiod: int = _DEFAULT_SLOW_PERIOD
  signalperiod: int = _DEFAULT_SIGNAL_PERIOD


class MacdExtOptions(MacdOptions):
  """Moving average types: 0 SMA, 1 EMA, 2 WMA, 3 DEMA, 4 TEMA, 5 TRIMA, 6 T3, 7 KAMA, 8 MAMA."""

  fastmatype: int = 0
  slowmatype: int = 0
  signalmatype: int = 0


class StochOptions(IndicatorOptions):
  fastkperiod: int = 5
  slowkperiod: int = 3
  slowdperiod: int = 3
  slowkmatype: int = 0
  slowdmatype: int = 0


class StochFastOptions(IndicatorOptions):
  fastkperiod: int = 5
  fastdperiod: int = 3
  fastdmatype: int = 0


class BbandsOptions(IndicatorOptions):
  nbdevup: int = 2
  nbdevdn: int = 2
  matype: int = 0


INDICATOR_OPTIONS: dict[str, type[IndicatorOptions]] = {
  "SMA": NoOptions,
  "EMA": NoOptions,
  "WMA": NoOptions,
  "DEMA": NoOptions,
  "TEMA": NoOptions,
  "TRIMA": NoOptions,
  "KAMA": NoOptions,
  "MAMA": MamaOptions,
  "T3": NoOptions,
  "MACD": MacdOptions,
  "MACDEXT": MacdExtOptions,
  "STOCH": StochOptions,
  "STOCHF": StochFastOptions,
  "RSI": NoOptions,
  "STOCHRSI": StochFastOptions,
  "BBANDS": BbandsOptions,
  "MINUS_DI": NoOptions,
  "PLUS_DI": NoOptions,
  "ADX": NoOptions,
}


def legacy_slow_period_value(fast_period: int | None, slow_period: int | None) -> int | None:
  # Older releases sent the fast period whenever a slow period was supplied
  # and only fell back to 26 when it was omitted.
  return fast_period if slow_period is not None else None


def macd_options(
  fast_period: int | None = None,
  slow_period: int | None = None,
  signal_period: int | None = None,
  legacy_slow_period: bool = False,
) -> MacdOptions:
  if legacy_slow_period:
    slow_period = legacy_slow_period_value(fast_period, slow_period)
  return MacdOptions(
    fastperiod=fast_period, slowperiod=slow_period, signalperiod=signal_period
  )


def macdext_options(
  fast_period: int | None = None,
  slow_period: int | None = None,
  signal_period: int | None = None,
  fast_ma_type: int | None = None,
  slow_ma_type: int | None = None,
  signal_ma_type: int | None = None,
  legacy_slow_period: bool = False,
) -> MacdExtOptions:
  if legacy_slow_period:
    slow_period = legacy_slow_period_value(fast_period, slow_period)
  return MacdExtOptions(
    fastperiod=fast_period,
    slowperiod=slow_period,
    signalperiod=signal_period,
    fastmatype=fast_ma_type,
    slowmatype=slow_ma_type,
    signalmatype=signal_ma_type,
  )


def _to_indicator_record(date_str: str, fields: dict[str, Any]) -> IndicatorRecord:
  return IndicatorRecord(date=parse_date(date_str), values=dict(fields))


# --- Request Builder ---


class IndicatorRequestBuilder:
  """Builds technical indicator queries and runs them through the classifier."""

  def __init__(
    self,
    classifier: ResponseClassifier,
    url: str,
    auth_params: dict[str, Any] | None = None,
  ):
    self._classifier = classifier
    self._url = url
    self._auth_params = dict(auth_params or {})

  def build_query(
    self,
    indicator: str,
    symbol: str,
    interval: str,
    time_period: int | None = None,
    series_type: str | None = None,
    options: IndicatorOptions | None = None,
  ) -> dict[str, Any]:
    indicator = indicator.upper()
    options_class = INDICATOR_OPTIONS.get(indicator)
    if options_class is None:
      raise ValueError(f"Indicator '{indicator}' is not supported.")

    if options is None:
      options = options_class()
    elif not isinstance(options, options_class):
      raise TypeError(
        f"{indicator} expects {options_class.__name__}, got {type(options).__name__}"
      )

    base = {
      "function": indicator,
      "symbol": symbol,
      "interval": interval,
      "time_period": time_period,
      "series_type": series_type,
    }
    query = {key: value for key, value in base.items() if value is not None}
    query.update(options.to_params())
    query.update(self._auth_params)
    return query

  def build_and_fetch(
    self,
    indicator: str,
    symbol: str,
    interval: str,
    time_period: int | None = None,
    series_type: str | None = None,
    options: IndicatorOptions | None = None,
  ) -> list[IndicatorRecord]:
    query = self.build_query(
      indicator, symbol, interval, time_period, series_type, options
    )
    logging.info(f"Fetching {query['function']} for {symbol} ({interval})")
    payload = self._classifier.request(self._url, query).unwrap()
    return flatten(select_series(payload), _to_indicator_record)
