"""Provider registry and multi-provider search aggregation."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from foodfinder.core.config import ConfigError, Settings
from foodfinder.core.models import DataSource, Restaurant, SearchParams, SearchResult, completeness_score
from foodfinder.vendors.base import SearchProvider
from foodfinder.vendors.google_places import GooglePlacesProvider
from foodfinder.vendors.serpapi_maps import SerpApiMapsProvider
from foodfinder.vendors.yelp_fusion import YelpFusionProvider

logger = logging.getLogger(__name__)

ProviderName = Union[str, DataSource]


class UnknownProviderError(LookupError):
    """Raised when a search names a provider that is not registered."""


class SearchAggregator:
    """Runs searches against registered providers and merges their results.

    Instances are cheap and hold no per-request state, so one aggregator can
    be shared by concurrent requests.
    """

    def __init__(self, providers: Iterable[SearchProvider] = (), max_workers: int = 1) -> None:
        self._providers: Dict[DataSource, SearchProvider] = {}
        self.max_workers = max(1, max_workers)
        for provider in providers:
            self.register(provider)

    def register(self, provider: SearchProvider) -> None:
        self._providers[provider.source] = provider
        logger.info("Registered %s search provider", provider.name)

    def get_tool(self, name: ProviderName) -> Optional[SearchProvider]:
        value = name.value if isinstance(name, DataSource) else str(name).strip().lower()
        try:
            source = DataSource(value)
        except ValueError:
            return None
        return self._providers.get(source)

    def available_tools(self) -> List[str]:
        return [source.value for source in self._providers]

    def test_all_connections(self) -> Dict[str, bool]:
        results: Dict[str, bool] = {}
        for source, provider in self._providers.items():
            try:
                results[source.value] = provider.test_connection()
            except Exception as exc:  # noqa: BLE001
                logger.error("Tool %s connection test failed: %s", source.value, exc)
                results[source.value] = False
            logger.info("Tool %s connection test: %s", source.value, "SUCCESS" if results[source.value] else "FAILED")
        return results

    def search_with_tool(self, name: ProviderName, params: SearchParams) -> SearchResult:
        provider = self.get_tool(name)
        if provider is None:
            raise UnknownProviderError(
                f"Tool '{getattr(name, 'value', name)}' not found. "
                f"Available tools: {', '.join(self.available_tools())}"
            )
        return provider.search_restaurants(params)

    def search_with_multiple_tools(self, names: Sequence[ProviderName], params: SearchParams) -> SearchResult:
        """Search every named provider; failed providers contribute no results."""
        start = time.perf_counter()
        names = list(names)

        if self.max_workers > 1 and len(names) > 1:
            with ThreadPoolExecutor(max_workers=min(self.max_workers, len(names))) as executor:
                futures = [executor.submit(self._search_safely, name, params) for name in names]
                # Merge in the requested order so duplicate tie-breaks never depend on timing.
                outcomes = [future.result() for future in futures]
        else:
            outcomes = [self._search_safely(name, params) for name in names]

        restaurants = combine_and_deduplicate(result for result in outcomes if result is not None)
        elapsed = int(round((time.perf_counter() - start) * 1000))
        logger.info("Combined search returned %d restaurants in %dms", len(restaurants), elapsed)
        return SearchResult(
            restaurants=tuple(restaurants),
            total_results=len(restaurants),
            search_params=params,
            search_time_ms=elapsed,
        )

    def search_all(self, params: SearchParams) -> SearchResult:
        return self.search_with_multiple_tools(self.available_tools(), params)

    def _search_safely(self, name: ProviderName, params: SearchParams) -> Optional[SearchResult]:
        label = getattr(name, "value", name)
        try:
            result = self.search_with_tool(name, params)
        except Exception as exc:  # noqa: BLE001
            logger.error("Tool %s search failed: %s", label, exc)
            return None
        logger.info("Tool %s returned %d results", label, len(result.restaurants))
        return result


def dedup_key(restaurant: Restaurant) -> Tuple[str, str]:
    return restaurant.name.lower(), restaurant.address.lower()


def combine_and_deduplicate(results: Iterable[SearchResult]) -> List[Restaurant]:
    """Merge result sets, keeping the most complete record per name and address."""
    merged: Dict[Tuple[str, str], Restaurant] = {}
    for result in results:
        for restaurant in result.restaurants:
            key = dedup_key(restaurant)
            existing = merged.get(key)
            if existing is None or completeness_score(restaurant) > completeness_score(existing):
                merged[key] = restaurant
    return list(merged.values())


def build_aggregator(settings: Settings) -> SearchAggregator:
    """Register a provider for every configured API key."""
    aggregator = SearchAggregator(max_workers=settings.search_max_workers)
    timeout = settings.provider_timeout
    if settings.yelp_api_key:
        aggregator.register(YelpFusionProvider(settings.yelp_api_key, timeout=timeout))
    if settings.google_api_key:
        aggregator.register(
            GooglePlacesProvider(settings.google_api_key, timeout=timeout, fetch_details=settings.google_fetch_details)
        )
    if settings.serpapi_api_key:
        aggregator.register(SerpApiMapsProvider(settings.serpapi_api_key, timeout=timeout))

    if not aggregator.available_tools():
        raise ConfigError("No search providers configured; set GOOGLE_API_KEY, YELP_API_KEY or SERPAPI_API_KEY.")
    return aggregator
