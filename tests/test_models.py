from datetime import date, datetime, timezone

import pytest
from pydantic import ValidationError

from market_feeds.models import Market, Match, TradingHours


def test_trading_hours_parse_vendor_payload(hours_payload):
  hours = TradingHours.model_validate(hours_payload("2024-03-04"))

  assert hours.is_open
  assert hours.date == date(2024, 3, 4)
  assert hours.open == datetime(2024, 3, 4, 14, 30, tzinfo=timezone.utc)
  assert hours.close == datetime(2024, 3, 4, 21, 0, tzinfo=timezone.utc)
  assert hours.next_trading_day.endswith("/next/")


def test_closed_day_may_still_carry_extended_hours():
  """is_open only speaks about the regular session"""
  hours = TradingHours.model_validate(
    {
      "date": "2024-11-29",
      "is_open": False,
      "opens_at": None,
      "closes_at": None,
      "extended_opens_at": "2024-11-29T13:00:00Z",
      "extended_closes_at": "2024-11-29T22:00:00Z",
    }
  )

  assert not hours.is_open
  assert hours.open is None
  assert hours.extended_open is not None


def test_trading_hours_are_immutable(hours_payload):
  hours = TradingHours.model_validate(hours_payload("2024-03-04"))

  with pytest.raises(ValidationError):
    hours.is_open = False


def test_markets_are_identified_by_mic(market_payload):
  first = Market.model_validate(market_payload)
  second = Market.model_validate({**market_payload, "name": "Nasdaq"})
  other = Market.model_validate({**market_payload, "mic": "XNYS"})

  assert first == second
  assert hash(first) == hash(second)
  assert first != other
  assert len({first, second, other}) == 2


def test_market_session_helpers(market_payload, hours_payload):
  market = Market.model_validate({**market_payload, "hours": hours_payload("2024-03-04")})

  assert market.is_open_today
  assert market.is_open_now(datetime(2024, 3, 4, 15, 0, tzinfo=timezone.utc))
  assert not market.is_open_now(datetime(2024, 3, 4, 13, 30, tzinfo=timezone.utc))
  assert market.is_extended_open_now(datetime(2024, 3, 4, 13, 30, tzinfo=timezone.utc))
  assert market.zone.key == "US/Eastern"


def test_market_without_hours_is_never_open(market_payload):
  market = Market.model_validate(market_payload)

  assert not market.is_open_today
  assert not market.is_open_now(datetime(2024, 3, 4, 15, 0, tzinfo=timezone.utc))


def test_match_maps_numbered_keys_and_keeps_extras():
  match = Match.model_validate(
    {
      "1. symbol": "MSFT",
      "2. name": "Microsoft Corporation",
      "3. type": "Equity",
      "4. region": "United States",
      "9. matchScore": "1.0000",
      "10. extra": "kept",
    }
  )

  assert match.symbol == "MSFT"
  assert match.name == "Microsoft Corporation"
  assert match.match_score == "1.0000"
  assert match.model_extra == {"10. extra": "kept"}
