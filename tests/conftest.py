import json

import pytest

from market_feeds.transport import HttpResult, TransportError


def ok(payload, status=200):
  """Canned HTTP result carrying `payload` as a JSON body."""
  return HttpResult(status_code=status, raw_body=json.dumps(payload))


class FakeTransport:
  """Replays canned outcomes per URI and records every call.

  A list value is consumed one outcome per call; a callable is invoked with
  the params of the call.
  """

  def __init__(self, routes=None):
    self.routes = dict(routes or {})
    self.calls = []

  def fetch(self, uri, params=None):
    self.calls.append((uri, dict(params) if params else None))
    if uri not in self.routes:
      return TransportError(cause=ConnectionError(f"no route for {uri}"))
    outcome = self.routes[uri]
    if isinstance(outcome, list):
      return outcome.pop(0)
    if callable(outcome):
      return outcome(params)
    return outcome


@pytest.fixture
def fake_transport():
  return FakeTransport()


@pytest.fixture
def hours_payload():
  """Builds a Robinhood hours payload for a date."""

  def _build(day, is_open=True, opens="14:30:00", closes="21:00:00"):
    base = "https://api.robinhood.com/markets/XNAS/hours"
    return {
      "date": day,
      "is_open": is_open,
      "opens_at": f"{day}T{opens}Z" if is_open else None,
      "closes_at": f"{day}T{closes}Z" if is_open else None,
      "extended_opens_at": f"{day}T13:00:00Z" if is_open else None,
      "extended_closes_at": f"{day}T23:59:00Z" if is_open else None,
      "next_open_hours": f"{base}/next/",
      "previous_open_hours": f"{base}/previous/",
    }

  return _build


@pytest.fixture
def market_payload():
  return {
    "url": "https://api.robinhood.com/markets/XNAS/",
    "todays_hours": "https://api.robinhood.com/markets/XNAS/hours/2024-03-04/",
    "mic": "XNAS",
    "operating_mic": "XNAS",
    "acronym": "NASDAQ",
    "name": "NASDAQ - All Markets",
    "city": "New York",
    "country": "US - United States of America",
    "timezone": "US/Eastern",
    "website": "www.nasdaq.com",
  }
