from datetime import datetime

import pytest

from conftest import FakeTransport, ok
from market_feeds.classifier import ResponseClassifier
from market_feeds.indicators import (
  BbandsOptions,
  IndicatorRequestBuilder,
  MacdExtOptions,
  MacdOptions,
  MamaOptions,
  NoOptions,
  StochFastOptions,
  StochOptions,
  macd_options,
  macdext_options,
)
from market_feeds.results import FailureKind, MarketDataError
from market_feeds.transport import HttpResult

URL = "https://www.alphavantage.co/query"
AUTH = {"apikey": "TEST", "datatype": "json"}


@pytest.fixture
def builder(fake_transport):
  return IndicatorRequestBuilder(ResponseClassifier(fake_transport), URL, AUTH)


@pytest.mark.parametrize(
  "options_class, expected",
  [
    (BbandsOptions, {"nbdevup": 2, "nbdevdn": 2, "matype": 0}),
    (MacdOptions, {"fastperiod": 12, "slowperiod": 26, "signalperiod": 9}),
    (
      MacdExtOptions,
      {
        "fastperiod": 12,
        "slowperiod": 26,
        "signalperiod": 9,
        "fastmatype": 0,
        "slowmatype": 0,
        "signalmatype": 0,
      },
    ),
    (
      StochOptions,
      {"fastkperiod": 5, "slowkperiod": 3, "slowdperiod": 3, "slowkmatype": 0, "slowdmatype": 0},
    ),
    (StochFastOptions, {"fastkperiod": 5, "fastdperiod": 3, "fastdmatype": 0}),
    (MamaOptions, {"fastlimit": 0.01, "slowlimit": 0.01}),
    (NoOptions, {}),
  ],
)
def test_none_values_become_documented_defaults(options_class, expected):
  """Every parameter passed as None is replaced by its default, none are dropped"""
  explicit_nones = {name: None for name in expected}

  assert options_class(**explicit_nones).to_params() == expected
  assert options_class().to_params() == expected


def test_supplied_values_are_kept():
  options = BbandsOptions(nbdevup=3, nbdevdn=None, matype=1)

  assert options.to_params() == {"nbdevup": 3, "nbdevdn": 2, "matype": 1}


def test_unknown_option_is_rejected():
  with pytest.raises(ValueError):
    BbandsOptions(nbdev=3)


def test_build_query_composes_base_options_and_auth(builder):
  query = builder.build_query(
    "bbands", "IBM", "daily", 20, "close", BbandsOptions(nbdevup=None, nbdevdn=None, matype=None)
  )

  assert query == {
    "function": "BBANDS",
    "symbol": "IBM",
    "interval": "daily",
    "time_period": 20,
    "series_type": "close",
    "nbdevup": 2,
    "nbdevdn": 2,
    "matype": 0,
    "apikey": "TEST",
    "datatype": "json",
  }


def test_build_query_substitutes_defaults_when_options_omitted(builder):
  query = builder.build_query("MACD", "IBM", "daily", 10, "close")

  assert (query["fastperiod"], query["slowperiod"], query["signalperiod"]) == (12, 26, 9)


def test_build_query_leaves_out_absent_base_values(builder):
  """ADX and the directional indicators take no series type"""
  query = builder.build_query("ADX", "IBM", "daily", 14)

  assert "series_type" not in query
  assert query["time_period"] == 14


def test_build_query_rejects_unknown_indicator(builder):
  with pytest.raises(ValueError):
    builder.build_query("FOO", "IBM", "daily", 10, "close")


def test_build_query_rejects_mismatched_options(builder):
  with pytest.raises(TypeError):
    builder.build_query("BBANDS", "IBM", "daily", 10, "close", MacdOptions())


def test_macd_slow_period_default_in_corrected_mode():
  """Slow period omitted with a custom fast period: 26 is sent"""
  options = macd_options(fast_period=10, slow_period=None)

  assert options.slowperiod == 26
  assert options.fastperiod == 10


def test_macd_slow_period_default_in_legacy_mode():
  """Legacy mode only differs once a slow period is supplied"""
  options = macd_options(fast_period=10, slow_period=None, legacy_slow_period=True)

  assert options.slowperiod == 26


def test_macd_supplied_slow_period_corrected_mode():
  assert macd_options(fast_period=10, slow_period=30).slowperiod == 30


def test_macd_supplied_slow_period_legacy_mode_reuses_fast_period():
  """Deviates from the corrected mode: the fast period is sent as slow period"""
  options = macd_options(fast_period=10, slow_period=30, legacy_slow_period=True)

  assert options.slowperiod == 10


def test_macdext_legacy_mode_matches_macd():
  corrected = macdext_options(fast_period=8, slow_period=21, slow_ma_type=1)
  legacy = macdext_options(fast_period=8, slow_period=21, slow_ma_type=1, legacy_slow_period=True)

  assert corrected.slowperiod == 21
  assert legacy.slowperiod == 8
  assert legacy.slowmatype == corrected.slowmatype == 1


def test_build_and_fetch_flattens_sorted_records(fake_transport, builder):
  fake_transport.routes[URL] = ok(
    {
      "Meta Data": {"2: Indicator": "Simple Moving Average (SMA)"},
      "Technical Analysis: SMA": {
        "2024-01-03": {"SMA": "101.0"},
        "2024-01-01": {"SMA": "99.0"},
        "2024-01-02": {"SMA": "100.5"},
      },
    }
  )

  records = builder.build_and_fetch("SMA", "IBM", "daily", 10, "close")

  assert [r.date for r in records] == [datetime(2024, 1, day) for day in (1, 2, 3)]
  assert [r["SMA"] for r in records] == ["99.0", "100.5", "101.0"]
  _, params = fake_transport.calls[0]
  assert params["function"] == "SMA"
  assert params["apikey"] == "TEST"


def test_build_and_fetch_copies_every_field_verbatim(fake_transport, builder):
  bar = {"Real Upper Band": "110.1", "Real Middle Band": "100.0", "Real Lower Band": "89.9"}
  fake_transport.routes[URL] = ok(
    {"Meta Data": {}, "Technical Analysis: BBANDS": {"2024-01-02": bar}}
  )

  records = builder.build_and_fetch("BBANDS", "IBM", "daily", 20, "close")

  assert records[0].values == bar


def test_build_and_fetch_raises_on_failure(fake_transport, builder):
  fake_transport.routes[URL] = HttpResult(200, "<html>application-error.html</html>")

  with pytest.raises(MarketDataError) as exc:
    builder.build_and_fetch("RSI", "IBM", "daily", 14, "close")

  assert exc.value.kind is FailureKind.SERVER_OVERLOADED
