"""SerpAPI Google Maps search provider."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from serpapi import GoogleSearch

from foodfinder.core.models import DataSource, Restaurant, SearchParams
from foodfinder.etl.transform import serpapi_result_to_restaurant
from foodfinder.vendors.base import DEFAULT_TIMEOUT, ProviderError, SearchProvider

logger = logging.getLogger(__name__)


class SerpApiError(ProviderError):
    """Raised when SerpAPI returns an empty or error payload."""

    def __init__(self, message: str) -> None:
        super().__init__(DataSource.SERPAPI, message)


def build_serpapi_params(params: SearchParams, api_key: str) -> Dict[str, Any]:
    """Construct SerpAPI request parameters for the Google Maps engine."""
    query = (params.query or "restaurant").strip()
    if params.cuisine:
        extra = [c for c in params.cuisine if c.lower() not in query.lower()]
        query = " ".join([*extra, query])
    if params.location:
        query = f"{query} in {params.location.strip()}"
    return {
        "engine": "google_maps",
        "q": query,
        "api_key": api_key,
        "type": "search",
    }


def fetch_from_serpapi(search_params: Dict[str, Any], timeout: float = DEFAULT_TIMEOUT) -> Dict[str, Any]:
    """Call SerpAPI Google Maps and return the raw JSON response."""
    logger.debug("Calling SerpAPI for q=%s", search_params.get("q"))
    search = GoogleSearch(search_params)
    search.timeout = timeout
    data = search.get_dict()
    if not data:
        raise SerpApiError("SerpAPI returned an empty payload.")
    if "error" in data:
        message = data.get("error") or data
        raise SerpApiError(f"SerpAPI returned an error response: {message}")
    return data


def extract_items(data: Dict[str, Any]) -> List[Any]:
    """SerpAPI sometimes returns local_results as a list or nested dict."""
    local_results = data.get("local_results")
    if isinstance(local_results, list):
        return local_results
    if isinstance(local_results, dict):
        logger.debug("local_results is dict with keys: %s", list(local_results.keys())[:10])
        for maybe in (local_results.get("places"), local_results.get("results"), local_results.get("local_results")):
            if isinstance(maybe, list):
                return maybe

    place_results = data.get("place_results")
    if isinstance(place_results, list):
        return place_results
    if isinstance(place_results, dict):
        return [place_results]
    return []


class SerpApiMapsProvider(SearchProvider):
    source = DataSource.SERPAPI

    def __init__(self, api_key: str, timeout: float = DEFAULT_TIMEOUT) -> None:
        super().__init__(timeout=timeout)
        if not api_key:
            raise ValueError("SerpAPI requires an API key")
        self.api_key = api_key

    def fetch(self, params: SearchParams) -> Dict[str, Any]:
        return fetch_from_serpapi(build_serpapi_params(params, self.api_key), timeout=self.timeout)

    def iter_items(self, payload: Dict[str, Any]) -> Iterable[Any]:
        return extract_items(payload)

    def parse_item(self, item: Any, params: SearchParams) -> Optional[Restaurant]:
        if not isinstance(item, dict):
            raise TypeError(f"expected an object, got {type(item).__name__}")
        return serpapi_result_to_restaurant(item, params)
