"""Client utilities and search provider for the Yelp Fusion API."""

import logging
from typing import Any, Dict, Iterable, Optional

import requests

from foodfinder.core.models import DataSource, Restaurant, SearchParams
from foodfinder.etl.transform import cuisines_to_yelp_categories, yelp_business_to_restaurant
from foodfinder.vendors.base import DEFAULT_TIMEOUT, ProviderError, SearchProvider

logger = logging.getLogger(__name__)
_SESSION = requests.Session()
_SEARCH_URL = "https://api.yelp.com/v3/businesses/search"

METERS_PER_MILE = 1609.34
MAX_RADIUS_METERS = 40000
DEFAULT_LIMIT = 20
MAX_LIMIT = 50


class YelpError(ProviderError):
    """Raised when the Yelp API call fails or returns a non-2xx response."""

    def __init__(self, message: str) -> None:
        super().__init__(DataSource.YELP, message)


def build_search_params(params: SearchParams) -> Dict[str, Any]:
    limit = params.max_results if params.max_results and params.max_results > 0 else DEFAULT_LIMIT
    query: Dict[str, Any] = {
        "term": params.query or "restaurant",
        "limit": min(limit, MAX_LIMIT),
        "sort_by": "best_match",
    }
    if params.location:
        query["location"] = params.location
    if params.radius:
        query["radius"] = min(int(round(params.radius * METERS_PER_MILE)), MAX_RADIUS_METERS)
    if params.open_now is not None:
        query["open_now"] = "true" if params.open_now else "false"
    if params.cuisine:
        query["categories"] = ",".join(cuisines_to_yelp_categories(params.cuisine))
    if params.price_range:
        query["price"] = ",".join(str(rank) for rank in sorted({tier.rank for tier in params.price_range}))
    if params.rating:
        # Yelp has no rating filter; ranking takes care of quality ordering.
        logger.debug("Rating filter %.1f is not supported by Yelp search", params.rating)
    return query


def business_search(query: Dict[str, Any], api_key: str, timeout: float = DEFAULT_TIMEOUT) -> Dict[str, Any]:
    headers = {"Authorization": f"Bearer {api_key}", "Accept": "application/json"}
    try:
        response = _SESSION.get(_SEARCH_URL, params=query, headers=headers, timeout=timeout)
    except requests.RequestException as exc:
        raise YelpError(f"request failed - {exc}") from exc

    if not 200 <= response.status_code < 300:
        raise YelpError(f"{response.status_code} - {_error_description(response)}")
    try:
        return response.json()
    except ValueError as exc:
        raise YelpError(f"invalid JSON payload: {exc}") from exc


def _error_description(response: Any) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return error.get("description") or error.get("code") or "unknown error"
    return str(body)[:200]


class YelpFusionProvider(SearchProvider):
    source = DataSource.YELP

    def __init__(self, api_key: str, timeout: float = DEFAULT_TIMEOUT) -> None:
        super().__init__(timeout=timeout)
        if not api_key:
            raise ValueError("Yelp Fusion requires an API key")
        self.api_key = api_key

    def fetch(self, params: SearchParams) -> Dict[str, Any]:
        return business_search(build_search_params(params), self.api_key, timeout=self.timeout)

    def iter_items(self, payload: Dict[str, Any]) -> Iterable[Dict[str, Any]]:
        return payload.get("businesses") or []

    def parse_item(self, item: Dict[str, Any], params: SearchParams) -> Optional[Restaurant]:
        return yelp_business_to_restaurant(item, params)
