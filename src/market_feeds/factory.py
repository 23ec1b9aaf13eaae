from __future__ import annotations

import importlib
import os
from dataclasses import dataclass
from typing import Any

from market_feeds.providers.interface import DataProvider


@dataclass
class ProviderMetadata:
  class_path: str
  api_key_env_var: str | None = None


_PROVIDERS = {
  "alpha_vantage": ProviderMetadata(
    class_path="market_feeds.providers.alpha_vantage.AlphaVantageProvider",
    api_key_env_var="ALPHA_VANTAGE_API_KEY",
  ),
  # Market and calendar endpoints are public, no key required.
  "robinhood": ProviderMetadata(class_path="market_feeds.providers.robinhood.RobinhoodProvider"),
}


def available_providers() -> list[str]:
  return sorted(_PROVIDERS)


def _resolve_api_key(metadata: ProviderMetadata) -> str:
  api_key = os.getenv(metadata.api_key_env_var)
  if not api_key:
    raise ValueError(f"Missing required env var '{metadata.api_key_env_var}'")
  return api_key


class ProviderFactory:
  @staticmethod
  def _import_from_string(path: str) -> type:
    """Helper to dynamically import a class from a string path."""
    module_name, class_name = path.rsplit(".", 1)
    module = importlib.import_module(module_name)
    return getattr(module, class_name)

  def create(self, provider_name: str, **overrides: Any) -> DataProvider:
    """Creates a provider instance based on its registered name.

    `overrides` are passed to the provider constructor as is (e.g. a shared
    `transport`); an explicit `api_key` skips the environment lookup.
    """
    metadata = _PROVIDERS.get(provider_name)
    if not metadata:
      raise ValueError(
        f"Provider '{provider_name}' not found. Available: {', '.join(available_providers())}"
      )

    provider_class = self._import_from_string(metadata.class_path)

    constructor_kwargs = dict(overrides)
    if metadata.api_key_env_var and not constructor_kwargs.get("api_key"):
      constructor_kwargs["api_key"] = _resolve_api_key(metadata)

    provider = provider_class(**constructor_kwargs)
    if not isinstance(provider, DataProvider):
      raise TypeError(f"{metadata.class_path} does not implement the DataProvider protocol")
    return provider
