"""Client utilities and search provider for the Google Places API."""

import logging
from typing import Any, Dict, Iterable, Optional

import requests

from foodfinder.core.models import DataSource, PriceRange, Restaurant, SearchParams
from foodfinder.etl.transform import google_place_to_restaurant
from foodfinder.vendors.base import DEFAULT_TIMEOUT, ProviderError, SearchProvider

logger = logging.getLogger(__name__)
_SESSION = requests.Session()
_BASE_URL = "https://maps.googleapis.com/maps/api/place"
_OK_STATUSES = {"OK", "ZERO_RESULTS"}

METERS_PER_MILE = 1609.34
MAX_RADIUS_METERS = 50000
DETAIL_FIELDS = (
    "place_id,name,formatted_address,formatted_phone_number,geometry,website,rating,"
    "user_ratings_total,price_level,types,address_components,opening_hours,photos,"
    "dine_in,takeout,delivery,reservable,wheelchair_accessible_entrance,serves_vegetarian_food"
)


class GooglePlacesError(ProviderError):
    """Raised when the Places API returns a non-successful response."""

    def __init__(self, message: str) -> None:
        super().__init__(DataSource.GOOGLE, message)


def _get(endpoint: str, params: Dict[str, Any], timeout: float) -> Dict[str, Any]:
    try:
        response = _SESSION.get(f"{_BASE_URL}/{endpoint}/json", params=params, timeout=timeout)
        response.raise_for_status()
        payload = response.json()
    except requests.RequestException as exc:
        raise GooglePlacesError(str(exc)) from exc
    except ValueError as exc:
        raise GooglePlacesError(f"invalid JSON payload: {exc}") from exc

    status = payload.get("status")
    if status not in _OK_STATUSES:
        logger.error("%s failed: status=%s, error_message=%s", endpoint, status, payload.get("error_message"))
        raise GooglePlacesError(payload.get("error_message") or status or "missing status")
    return payload


def text_search(
    query: str,
    api_key: str,
    *,
    radius: Optional[int] = None,
    min_price: Optional[int] = None,
    max_price: Optional[int] = None,
    open_now: bool = False,
    timeout: float = DEFAULT_TIMEOUT,
) -> Dict[str, Any]:
    params: Dict[str, Any] = {"query": query, "key": api_key, "type": "restaurant"}
    if radius:
        params["radius"] = radius
    if min_price is not None:
        params["minprice"] = min_price
    if max_price is not None:
        params["maxprice"] = max_price
    if open_now:
        params["opennow"] = "true"
    return _get("textsearch", params, timeout)


def place_details(place_id: str, api_key: str, timeout: float = DEFAULT_TIMEOUT) -> Dict[str, Any]:
    params = {"place_id": place_id, "key": api_key, "fields": DETAIL_FIELDS}
    return _get("details", params, timeout).get("result") or {}


def build_text_query(params: SearchParams) -> str:
    query = params.query or ""
    parts = [query] if "restaurant" in query.lower() else [query, "restaurant"]
    if params.location:
        parts.append(params.location)
    if params.cuisine:
        parts.extend(c for c in params.cuisine if c.lower() not in (params.query or "").lower())
    return " ".join(p.strip() for p in parts if p and p.strip())


def price_bounds(price_range: Optional[Iterable[PriceRange]]):
    """Google price levels run 0-4; our tiers map to levels 1-4."""
    ranks = [tier.rank for tier in price_range or []]
    if not ranks:
        return None, None
    return min(ranks), max(ranks)


class GooglePlacesProvider(SearchProvider):
    source = DataSource.GOOGLE

    def __init__(self, api_key: str, timeout: float = DEFAULT_TIMEOUT, fetch_details: bool = False) -> None:
        super().__init__(timeout=timeout)
        if not api_key:
            raise ValueError("Google Places requires an API key")
        self.api_key = api_key
        self.fetch_details = fetch_details

    def fetch(self, params: SearchParams) -> Dict[str, Any]:
        min_price, max_price = price_bounds(params.price_range)
        radius = None
        if params.radius:
            radius = min(int(round(params.radius * METERS_PER_MILE)), MAX_RADIUS_METERS)
        return text_search(
            build_text_query(params),
            self.api_key,
            radius=radius,
            min_price=min_price,
            max_price=max_price,
            open_now=bool(params.open_now),
            timeout=self.timeout,
        )

    def iter_items(self, payload: Dict[str, Any]) -> Iterable[Dict[str, Any]]:
        return payload.get("results", [])

    def parse_item(self, item: Dict[str, Any], params: SearchParams) -> Optional[Restaurant]:
        if self.fetch_details and item.get("place_id"):
            item = self._with_details(item)
        return google_place_to_restaurant(item, params)

    def _with_details(self, item: Dict[str, Any]) -> Dict[str, Any]:
        try:
            details = place_details(item["place_id"], self.api_key, timeout=self.timeout)
        except (GooglePlacesError, AttributeError, ValueError) as exc:
            logger.warning("Failed to fetch details for %s: %s", item["place_id"], exc)
            return item
        if not isinstance(details, dict):
            logger.warning("Empty details payload for %s", item["place_id"])
            return item
        return {**item, **details}
