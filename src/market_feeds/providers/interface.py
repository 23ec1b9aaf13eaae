from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class DataProvider(Protocol):
  """What the factory hands out for a vendor.

  Capabilities are keyed by the fetcher classes of `market_feeds.interfaces`;
  `get_fetcher` returns a plain callable taking keyword arguments and raises
  TypeError for a capability the vendor does not offer.
  """

  def supports(self, interface_class: type) -> bool: ...

  def get_fetcher(self, interface_class: type) -> Callable[..., Any]: ...
