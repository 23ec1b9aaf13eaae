from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, NoReturn


class FailureKind(str, Enum):
  TRANSPORT = "transport"
  SERVER_OVERLOADED = "server-overloaded"
  NON_200_STATUS = "non-200-status"
  MALFORMED_BODY = "malformed-body"
  LOOKAHEAD_EXHAUSTED = "lookahead-exhausted"


class MarketDataError(Exception):
  """Raised when a vendor call ends in a classified failure.

  Carries the failure kind and the original diagnostic payload (exception,
  response body, ...) so callers can render their own message.
  """

  def __init__(self, failure: Failure):
    self.failure = failure
    super().__init__(f"{failure.kind.value}: {failure.detail}")

  @property
  def kind(self) -> FailureKind:
    return self.failure.kind

  @property
  def detail(self) -> Any:
    return self.failure.detail


@dataclass(frozen=True)
class Success:
  payload: Any

  @property
  def ok(self) -> bool:
    return True

  def unwrap(self) -> Any:
    return self.payload


@dataclass(frozen=True)
class Failure:
  kind: FailureKind
  detail: Any = None

  @property
  def ok(self) -> bool:
    return False

  def unwrap(self) -> NoReturn:
    raise MarketDataError(self)


ClassifiedResult = Success | Failure
