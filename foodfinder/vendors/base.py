"""Shared contract for restaurant search providers."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Iterable, List, Optional

from foodfinder.core.models import DataSource, Restaurant, SearchParams, SearchResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
PROBE_PARAMS = SearchParams(query="restaurant", location="San Francisco, CA", max_results=1)


class ProviderError(RuntimeError):
    """Raised when a provider call fails (network, HTTP status or payload shape)."""

    def __init__(self, provider: DataSource, message: str) -> None:
        super().__init__(f"{provider.value} search failed: {message}")
        self.provider = provider


class SearchProvider(ABC):
    """A single external restaurant search source.

    Subclasses supply the raw request (``fetch``), how to find result items in
    the payload (``iter_items``) and how to turn one item into a
    :class:`Restaurant` (``parse_item``). Everything else, including timing,
    logging and error wrapping, lives here so every provider behaves the same
    towards the aggregator.
    """

    source: DataSource

    def __init__(self, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.timeout = timeout

    @property
    def name(self) -> str:
        return self.source.value

    @abstractmethod
    def fetch(self, params: SearchParams) -> Any:
        """Perform the provider request and return the decoded payload."""

    @abstractmethod
    def iter_items(self, payload: Any) -> Iterable[Any]:
        """Yield the raw result items contained in a payload."""

    @abstractmethod
    def parse_item(self, item: Any, params: SearchParams) -> Optional[Restaurant]:
        """Convert one raw item; return None to drop it silently."""

    def search_restaurants(self, params: SearchParams) -> SearchResult:
        start = time.perf_counter()
        logger.debug("Searching %s for query=%r location=%r", self.name, params.query, params.location)
        try:
            payload = self.fetch(params)
            restaurants = self.parse_results(payload, params)
        except ProviderError as exc:
            logger.error("%s search failed after %dms: %s", self.name, _elapsed_ms(start), exc)
            raise
        except Exception as exc:  # noqa: BLE001
            logger.error("%s search failed after %dms: %s", self.name, _elapsed_ms(start), exc)
            raise ProviderError(self.source, str(exc)) from exc

        if params.max_results is not None and params.max_results > 0:
            restaurants = restaurants[: params.max_results]

        elapsed = _elapsed_ms(start)
        logger.info("%s search completed in %dms with %d results", self.name, elapsed, len(restaurants))
        return SearchResult(
            restaurants=tuple(restaurants),
            total_results=len(restaurants),
            search_params=params,
            search_time_ms=elapsed,
        )

    def parse_results(self, payload: Any, params: SearchParams) -> List[Restaurant]:
        items = list(self.iter_items(payload) or [])
        if not items:
            logger.warning("No search results returned from %s", self.name)
            return []

        restaurants: List[Restaurant] = []
        for item in items:
            try:
                restaurant = self.parse_item(item, params)
            except (ArithmeticError, AttributeError, KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping malformed %s result: %s", self.name, exc)
                continue
            if restaurant is not None:
                restaurants.append(restaurant)

        logger.debug("Parsed %d restaurants from %d %s results", len(restaurants), len(items), self.name)
        return restaurants

    def test_connection(self) -> bool:
        try:
            self.fetch(PROBE_PARAMS)
        except Exception as exc:  # noqa: BLE001
            logger.error("%s connection test failed: %s", self.name, exc)
            return False
        return True


def _elapsed_ms(start: float) -> int:
    return int(round((time.perf_counter() - start) * 1000))
