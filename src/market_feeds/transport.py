from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import requests

# --- Module Constants ---
_DEFAULT_TIMEOUT_SECONDS = 30
_HEADERS = {"Accept": "application/json"}


@dataclass(frozen=True)
class TransportError:
  """The request never produced an HTTP response."""

  cause: Exception


@dataclass(frozen=True)
class HttpResult:
  """Status code and undecoded body of a completed HTTP exchange."""

  status_code: int
  raw_body: str


TransportOutcome = TransportError | HttpResult


class HttpTransport:
  """Performs plain GET requests and reports the outcome without raising.

  Authorization is the caller's concern: anything the vendor needs (API key,
  token) must already be part of `params` or the session headers.
  """

  def __init__(
    self,
    session: requests.Session | None = None,
    timeout: float = _DEFAULT_TIMEOUT_SECONDS,
  ):
    self._session = session or requests.Session()
    self._session.headers.update(_HEADERS)
    self._timeout = timeout

  def fetch(self, uri: str, params: dict[str, Any] | None = None) -> TransportOutcome:
    logging.debug(f"GET {uri} params={_redact(params)}")
    try:
      response = self._session.get(uri, params=params, timeout=self._timeout)
    except requests.exceptions.RequestException as e:
      logging.warning(f"Transport error requesting {uri}: {e}")
      return TransportError(cause=e)
    return HttpResult(status_code=response.status_code, raw_body=response.text)


def _redact(params: dict[str, Any] | None) -> dict[str, Any] | None:
  if not params or "apikey" not in params:
    return params
  return {**params, "apikey": "***"}
