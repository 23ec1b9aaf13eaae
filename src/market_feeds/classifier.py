from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from typing import Any

from market_feeds.results import ClassifiedResult, Failure, FailureKind, Success
from market_feeds.transport import HttpResult, HttpTransport, TransportError, TransportOutcome

# --- Module Constants ---
# Alpha Vantage serves this error page with a 200 status when it is overloaded.
OVERLOAD_MARKER = "application-error.html"
CONTINUATION_FIELD = "hours"

Continuation = Callable[[Any], str | None]


def _classify_once(outcome: TransportOutcome) -> ClassifiedResult:
  """Applies the single-response rules: transport, overload, status, JSON."""
  if isinstance(outcome, TransportError):
    return Failure(FailureKind.TRANSPORT, outcome.cause)

  if not isinstance(outcome, HttpResult):
    raise TypeError(f"Unsupported transport outcome: {type(outcome).__name__}")

  # The marker check must come first, the overload page has a 200 status.
  if OVERLOAD_MARKER in outcome.raw_body:
    return Failure(FailureKind.SERVER_OVERLOADED, "try again")

  if outcome.status_code != 200:
    return Failure(FailureKind.NON_200_STATUS, outcome.raw_body)

  try:
    return Success(json.loads(outcome.raw_body))
  except json.JSONDecodeError as e:
    return Failure(FailureKind.MALFORMED_BODY, str(e))


class ResponseClassifier:
  """Turns transport outcomes into a domain payload or a categorized failure.

  A continuation selector may point at one follow-up resource inside the
  first payload (e.g. a market's `todays_hours` URL). That resource is fetched
  once, classified with the same rules and merged into the first payload;
  chains are never followed past that single extra call. Only an object
  payload can take a continuation, anything else is a malformed body.
  """

  def __init__(self, transport: HttpTransport):
    self._transport = transport

  def request(
    self,
    uri: str,
    params: dict[str, Any] | None = None,
    continuation: Continuation | None = None,
    transform: Callable[[Any], Any] | None = None,
    merge_field: str = CONTINUATION_FIELD,
  ) -> ClassifiedResult:
    outcome = self._transport.fetch(uri, params)
    return self.classify(
      outcome, continuation=continuation, transform=transform, merge_field=merge_field
    )

  def classify(
    self,
    outcome: TransportOutcome,
    continuation: Continuation | None = None,
    transform: Callable[[Any], Any] | None = None,
    merge_field: str = CONTINUATION_FIELD,
  ) -> ClassifiedResult:
    result = _classify_once(outcome)
    if isinstance(result, Failure):
      logging.warning(f"Request failed ({result.kind.value}): {_truncate(result.detail)}")
      return result

    payload = result.payload
    reference = continuation(payload) if continuation is not None else None
    if reference and not isinstance(payload, Mapping):
      detail = f"cannot merge continuation into a {type(payload).__name__} payload"
      logging.warning(f"Request failed (malformed-body): {detail}")
      return Failure(FailureKind.MALFORMED_BODY, detail)
    if reference:
      logging.debug(f"Following continuation to {reference}")
      follow_up = _classify_once(self._transport.fetch(reference, None))
      if isinstance(follow_up, Failure):
        logging.warning(
          f"Continuation request to {reference} failed ({follow_up.kind.value}): "
          f"{_truncate(follow_up.detail)}"
        )
        return follow_up
      payload = {**payload, merge_field: follow_up.payload}

    if transform is None:
      return Success(payload)
    return Success(transform(payload))


def _truncate(detail: Any, limit: int = 200) -> str:
  text = str(detail)
  return text if len(text) <= limit else f"{text[:limit]}..."
