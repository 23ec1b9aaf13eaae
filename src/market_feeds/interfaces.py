import datetime as dt
from abc import ABC, abstractmethod
from typing import Any

from market_feeds.models import IndicatorRecord, Market, Match, Quote


class QuotesFetcher(ABC):
  """Abstract base class for price time series fetching functionality."""

  @abstractmethod
  def get_quotes(self, **kwargs: Any) -> list[Quote]:
    """Fetches a price series for a symbol.

    Args:
      **kwargs: Provider-specific arguments (e.g., ticker, interval, adjusted)

    Returns:
      List of Quote objects sorted by date
    """
    pass


class LatestQuoteFetcher(ABC):
  """Abstract base class for latest quote fetching functionality."""

  @abstractmethod
  def get_quote(self, **kwargs: Any) -> Quote:
    """Fetches the latest quote for a symbol."""
    pass


class SearchFetcher(ABC):
  """Abstract base class for symbol search functionality."""

  @abstractmethod
  def search(self, **kwargs: Any) -> list[Match]:
    """Searches symbols by keyword.

    Args:
      **kwargs: Provider-specific arguments (e.g., keywords)

    Returns:
      List of Match objects
    """
    pass


class IndicatorFetcher(ABC):
  """Abstract base class for technical indicator fetching functionality."""

  @abstractmethod
  def get_indicator(self, **kwargs: Any) -> list[IndicatorRecord]:
    """Fetches a technical indicator series.

    Args:
      **kwargs: Provider-specific arguments (e.g., indicator, ticker, interval,
        time_period, series_type, options)

    Returns:
      List of IndicatorRecord objects sorted by date
    """
    pass


class MarketFetcher(ABC):
  """Abstract base class for exchange lookup functionality."""

  @abstractmethod
  def get_market(self, **kwargs: Any) -> Market:
    """Fetches an exchange together with today's trading hours."""
    pass


class NextSessionFetcher(ABC):
  """Abstract base class for trading calendar lookahead functionality."""

  @abstractmethod
  def get_next_session(self, **kwargs: Any) -> dt.datetime:
    """Finds the next open or close instant of an exchange.

    Args:
      **kwargs: Provider-specific arguments (e.g., mic, edge, max_days)

    Returns:
      The instant the next regular session opens or closes
    """
    pass


class SectorFetcher(ABC):
  """Abstract base class for sector performance fetching functionality."""

  @abstractmethod
  def get_sector_performance(self, **kwargs: Any) -> dict[str, Any]:
    """Fetches sector performance, keyed by ranking window then sector."""
    pass
