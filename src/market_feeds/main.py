from __future__ import annotations

import functools
import logging
import sys
from collections.abc import Callable
from typing import Any

import click
from dotenv import load_dotenv

from market_feeds.factory import ProviderFactory, available_providers
from market_feeds.interfaces import (
  IndicatorFetcher,
  LatestQuoteFetcher,
  MarketFetcher,
  NextSessionFetcher,
  QuotesFetcher,
  SearchFetcher,
  SectorFetcher,
)
from market_feeds.lookahead import DEFAULT_MAX_LOOKAHEAD_DAYS
from market_feeds.providers.interface import DataProvider
from market_feeds.results import MarketDataError
from market_feeds.utils.savers import save_to_csv

# --- Setup ---
logging.basicConfig(
  level=logging.INFO,
  format="%(asctime)s - %(levelname)s - %(message)s",
  stream=sys.stdout,
)

# --- Error Handling Decorator ---


def cli_error_handler(func):
  """Decorator to handle common CLI errors, log them, and exit."""

  @functools.wraps(func)
  def wrapper(*args, **kwargs):
    try:
      return func(*args, **kwargs)
    except MarketDataError as e:
      logging.error(f"Request failed [{e.kind.value}]: {e.detail}")
      sys.exit(1)
    except (ValueError, TypeError) as e:
      logging.error(f"Error: {e}")
      sys.exit(1)
    except Exception as e:
      logging.error(f"An unexpected error occurred: {e}", exc_info=True)
      sys.exit(1)

  return wrapper


# --- Private Helpers ---


def _get_fetcher(provider_name: str, interface_class: type) -> Callable[..., Any]:
  """Helper to create a provider and get a specific fetcher component."""
  data_provider: DataProvider = ProviderFactory().create(provider_name)

  if not data_provider.supports(interface_class):
    capability_name = interface_class.__name__.replace("Fetcher", "")
    raise TypeError(f"Provider '{provider_name}' does not support {capability_name}.")

  return data_provider.get_fetcher(interface_class)


def _parse_options(pairs: tuple[str, ...]) -> dict[str, str]:
  options = {}
  for pair in pairs:
    key, sep, value = pair.partition("=")
    if not sep or not key.strip():
      raise ValueError(f"Indicator option '{pair}' must look like KEY=VALUE.")
    options[key.strip().lower()] = value.strip()
  return options



def _sector_rows(payload: dict[str, Any]) -> list[dict[str, Any]]:
  rows = []
  for rank, sectors in payload.items():
    if rank == "Meta Data" or not isinstance(sectors, dict):
      continue
    rows.extend(
      {"rank": rank, "sector": name, "change": change} for name, change in sectors.items()
    )
  return rows


_provider_option = click.option(
  "--provider",
  default="alpha_vantage",
  show_default=True,
  type=click.Choice(available_providers()),
  help="The data provider to use.",
)

# --- CLI Commands ---


@click.group()
def cli():
  """A CLI for fetching quotes, indicators and exchange calendars."""
  load_dotenv()


@cli.command()
@_provider_option
@click.option("--ticker", required=True, help="The stock ticker symbol (e.g., IBM).")
@click.option(
  "--interval",
  default="daily",
  show_default=True,
  help="daily, weekly, monthly or an intraday interval (1min ... 60min).",
)
@click.option("--adjusted", is_flag=True, help="Adjust prices for splits and dividends.")
@click.option("--full", is_flag=True, help="Fetch the full daily history.")
@cli_error_handler
def fetch_quotes(provider, ticker, interval, adjusted, full):
  """Fetch a price time series for a ticker."""
  logging.info(f"Executing 'fetch-quotes' for {ticker} on provider: {provider}")

  get_quotes_func = _get_fetcher(provider, QuotesFetcher)
  quotes = get_quotes_func(
    ticker=ticker,
    interval=interval,
    adjusted=adjusted,
    outputsize="full" if full else "compact",
  )

  if not quotes:
    logging.warning("No quotes were fetched.")
    return

  filename = f"{provider}_{ticker}_{interval}{'_adjusted' if adjusted else ''}.csv"
  logging.info(f"Saving {len(quotes)} quotes to {filename}...")
  save_to_csv(quotes, filename)


@cli.command()
@_provider_option
@click.option("--ticker", required=True, help="The stock ticker symbol (e.g., IBM).")
@cli_error_handler
def fetch_quote(provider, ticker):
  """Show the latest quote for a ticker."""
  quote = _get_fetcher(provider, LatestQuoteFetcher)(ticker=ticker)
  price = quote.price
  logging.info(
    f"{quote.symbol} {quote.date:%Y-%m-%d}: last={price.last} open={price.open} "
    f"high={price.high} low={price.low} volume={price.volume}"
  )


@cli.command()
@_provider_option
@click.option("--keywords", required=True, help="Search keywords (e.g., Microsoft).")
@cli_error_handler
def search(provider, keywords):
  """Search for symbols matching keywords."""
  matches = _get_fetcher(provider, SearchFetcher)(keywords=keywords)

  if not matches:
    logging.warning(f"No matches for '{keywords}'.")
    return

  for match in matches:
    logging.info(f"{match.symbol}\t{match.name}\t{match.region}\t{match.match_score}")


@cli.command()
@_provider_option
@cli_error_handler
def fetch_sectors(provider):
  """Fetch real time and historical sector performance."""
  payload = _get_fetcher(provider, SectorFetcher)()
  rows = _sector_rows(payload)

  if not rows:
    logging.warning("No sector performance was returned.")
    return

  filename = f"{provider}_sectors.csv"
  logging.info(f"Saving {len(rows)} sector values to {filename}...")
  save_to_csv(rows, filename)


@cli.command()
@_provider_option
@click.option("--indicator", required=True, help="Indicator function (e.g., SMA, BBANDS).")
@click.option("--ticker", required=True, help="The stock ticker symbol.")
@click.option("--interval", default="daily", show_default=True, help="Bar interval.")
@click.option("--time-period", type=int, default=None, help="Bars per indicator value.")
@click.option("--series-type", default=None, help="close, open, high or low.")
@click.option(
  "--option",
  "options",
  multiple=True,
  help="Indicator specific parameter as KEY=VALUE (e.g., nbdevup=3).",
)
@click.option(
  "--legacy-slow-period",
  is_flag=True,
  help="Send MACD slow periods the way older releases did.",
)
@cli_error_handler
def fetch_indicator(
  provider, indicator, ticker, interval, time_period, series_type, options, legacy_slow_period
):
  """Fetch a technical indicator series for a ticker."""
  logging.info(f"Executing 'fetch-indicator' {indicator} for {ticker} on provider: {provider}")

  get_indicator_func = _get_fetcher(provider, IndicatorFetcher)
  records = get_indicator_func(
    indicator=indicator,
    ticker=ticker,
    interval=interval,
    time_period=time_period,
    series_type=series_type,
    options=_parse_options(options),
    legacy_slow_period=legacy_slow_period,
  )

  if not records:
    logging.warning("No indicator values were fetched.")
    return

  filename = f"{provider}_{ticker}_{indicator.lower()}_{interval}.csv"
  logging.info(f"Saving {len(records)} indicator values to {filename}...")
  save_to_csv(records, filename)


@cli.command()
@click.option("--provider", default="robinhood", show_default=True, help="The broker to use.")
@click.option("--mic", required=True, help="Market identifier code (e.g., XNAS).")
@cli_error_handler
def fetch_market(provider, mic):
  """Show an exchange and today's trading hours."""
  market = _get_fetcher(provider, MarketFetcher)(mic=mic)
  logging.info(f"{market.mic} {market.name} ({market.acronym}), {market.city}, {market.timezone}")

  hours = market.hours
  if hours is None:
    logging.warning("No trading hours were returned for today.")
    return
  logging.info(
    f"{hours.date}: open={hours.is_open} regular={hours.open} - {hours.close} "
    f"extended={hours.extended_open} - {hours.extended_close}"
  )


@cli.command()
@click.option("--provider", default="robinhood", show_default=True, help="The broker to use.")
@click.option("--mic", required=True, help="Market identifier code (e.g., XNAS).")
@click.option(
  "--edge", type=click.Choice(["open", "close"]), default="open", show_default=True
)
@click.option(
  "--max-days",
  type=int,
  default=DEFAULT_MAX_LOOKAHEAD_DAYS,
  show_default=True,
  help="Give up after looking this many days ahead.",
)
@cli_error_handler
def next_session(provider, mic, edge, max_days):
  """Find when an exchange next opens or closes."""
  instant = _get_fetcher(provider, NextSessionFetcher)(mic=mic, edge=edge, max_days=max_days)
  logging.info(f"{mic} next {edge}: {instant.isoformat()}")


if __name__ == "__main__":
  cli()
