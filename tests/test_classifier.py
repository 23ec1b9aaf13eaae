import pytest

from conftest import FakeTransport, ok
from market_feeds.classifier import ResponseClassifier
from market_feeds.results import Failure, FailureKind, MarketDataError, Success
from market_feeds.transport import HttpResult, TransportError

MARKET_URL = "https://api.robinhood.com/markets/XNAS/"
HOURS_URL = "https://api.robinhood.com/markets/XNAS/hours/2024-03-04/"


def _todays_hours(payload):
  return payload.get("todays_hours")


def test_transport_error_is_a_transport_failure():
  """A transport error never reaches the success path"""
  cause = ConnectionError("reset by peer")
  transform_calls = []
  result = ResponseClassifier(FakeTransport()).classify(
    TransportError(cause), transform=transform_calls.append
  )

  assert result == Failure(FailureKind.TRANSPORT, cause)
  assert not result.ok
  assert transform_calls == []


@pytest.mark.parametrize("status", [200, 503])
def test_overload_marker_wins_over_status_code(status):
  """The vendor's overload page is classified before the status code is looked at"""
  outcome = HttpResult(status, "<html>application-error.html...</html>")
  result = ResponseClassifier(FakeTransport()).classify(outcome)

  assert result == Failure(FailureKind.SERVER_OVERLOADED, "try again")


def test_non_200_status_surfaces_body_verbatim():
  outcome = HttpResult(404, '{"detail": "Not found."}')
  result = ResponseClassifier(FakeTransport()).classify(outcome)

  assert result.kind is FailureKind.NON_200_STATUS
  assert result.detail == '{"detail": "Not found."}'


def test_invalid_json_is_malformed_body_not_empty_success():
  result = ResponseClassifier(FakeTransport()).classify(HttpResult(200, "<html>oops"))

  assert isinstance(result, Failure)
  assert result.kind is FailureKind.MALFORMED_BODY


def test_success_applies_transform():
  result = ResponseClassifier(FakeTransport()).classify(
    ok({"a": 1}), transform=lambda payload: payload["a"] + 1
  )

  assert result == Success(2)
  assert result.unwrap() == 2


def test_failure_unwrap_raises_with_kind_and_detail():
  with pytest.raises(MarketDataError) as exc:
    Failure(FailureKind.NON_200_STATUS, "bad request").unwrap()

  assert exc.value.kind is FailureKind.NON_200_STATUS
  assert exc.value.detail == "bad request"
  assert "non-200-status" in str(exc.value)


def test_continuation_is_followed_and_merged(market_payload, hours_payload):
  """The follow-up payload lands under the merge field of the first payload"""
  transport = FakeTransport(
    {MARKET_URL: ok(market_payload), HOURS_URL: ok(hours_payload("2024-03-04"))}
  )
  result = ResponseClassifier(transport).request(MARKET_URL, continuation=_todays_hours)

  payload = result.unwrap()
  assert payload["mic"] == "XNAS"
  assert payload["hours"]["date"] == "2024-03-04"
  assert [uri for uri, _ in transport.calls] == [MARKET_URL, HOURS_URL]
  # The original payload is left untouched.
  assert "hours" not in market_payload


def test_continuation_without_reference_returns_original_payload(market_payload):
  """No reference in the payload means no second fetch and an unmerged payload"""
  market_payload.pop("todays_hours")
  transport = FakeTransport({MARKET_URL: ok(market_payload)})
  result = ResponseClassifier(transport).request(MARKET_URL, continuation=_todays_hours)

  assert result.unwrap() == market_payload
  assert len(transport.calls) == 1


def test_continuation_failure_fails_the_whole_call(market_payload):
  transport = FakeTransport(
    {MARKET_URL: ok(market_payload), HOURS_URL: HttpResult(500, "Internal Server Error")}
  )
  transform_calls = []
  result = ResponseClassifier(transport).request(
    MARKET_URL, continuation=_todays_hours, transform=transform_calls.append
  )

  assert result == Failure(FailureKind.NON_200_STATUS, "Internal Server Error")
  assert transform_calls == []


def test_only_one_continuation_level_is_followed(market_payload):
  """A reference inside the continuation payload is not followed"""
  nested = {"todays_hours": "https://example.invalid/deeper/", "is_open": True}
  transport = FakeTransport({MARKET_URL: ok(market_payload), HOURS_URL: ok(nested)})
  result = ResponseClassifier(transport).request(MARKET_URL, continuation=_todays_hours)

  assert result.unwrap()["hours"] == nested
  assert len(transport.calls) == 2


def test_continuation_not_attempted_when_first_call_fails():
  transport = FakeTransport({MARKET_URL: HttpResult(200, "not json")})
  selector_calls = []

  def selector(payload):
    selector_calls.append(payload)
    return HOURS_URL

  result = ResponseClassifier(transport).request(MARKET_URL, continuation=selector)

  assert result.kind is FailureKind.MALFORMED_BODY
  assert selector_calls == []
  assert len(transport.calls) == 1


def test_custom_merge_field(market_payload, hours_payload):
  transport = FakeTransport(
    {MARKET_URL: ok(market_payload), HOURS_URL: ok(hours_payload("2024-03-04"))}
  )
  result = ResponseClassifier(transport).request(
    MARKET_URL, continuation=_todays_hours, merge_field="today"
  )

  assert "today" in result.unwrap()
  assert "hours" not in result.unwrap()


def test_unknown_outcome_type_is_rejected():
  with pytest.raises(TypeError):
    ResponseClassifier(FakeTransport()).classify(object())


def test_continuation_on_a_list_payload_is_a_malformed_body():
  transport = FakeTransport({MARKET_URL: ok([{"next": HOURS_URL}])})

  result = ResponseClassifier(transport).request(
    MARKET_URL, continuation=lambda payload: payload[0]["next"]
  )

  assert not result.ok
  assert result.kind is FailureKind.MALFORMED_BODY
  assert [uri for uri, _ in transport.calls] == [MARKET_URL]
