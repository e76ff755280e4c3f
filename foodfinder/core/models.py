"""Core data models shared by the search providers, aggregator and ranking engine."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Tuple, Union

DEFAULT_CUISINE: Tuple[str, ...] = ("american",)
DEFAULT_RATING = 4.0
DEFAULT_REVIEW_COUNT = 50
MIN_RATING = 1.0
MAX_RATING = 5.0
MAX_COMPLETENESS_SCORE = 6

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


class PriceRange(str, enum.Enum):
    BUDGET = "$"
    MODERATE = "$$"
    EXPENSIVE = "$$$"
    VERY_EXPENSIVE = "$$$$"

    @property
    def rank(self) -> int:
        return len(self.value)

    @classmethod
    def parse(cls, value: Any) -> Optional["PriceRange"]:
        """Map a symbol, tier name or numeric level to a price tier.

        Returns None when the value carries no usable price information.
        """
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, cls):
            return value
        if isinstance(value, (int, float)):
            level = int(value)
            if 0 <= level <= 4:
                return _LEVELS[max(level, 1)]
            return None

        text = str(value).strip().lower()
        if not text:
            return None
        if set(text) == {"$"} and len(text) <= 4:
            return cls(text)
        if text.isdigit():
            return cls.parse(int(text))
        return _NAMES.get(text.replace("-", "_").replace(" ", "_"))


_LEVELS = {
    1: PriceRange.BUDGET,
    2: PriceRange.MODERATE,
    3: PriceRange.EXPENSIVE,
    4: PriceRange.VERY_EXPENSIVE,
}

_NAMES = {
    "budget": PriceRange.BUDGET,
    "cheap": PriceRange.BUDGET,
    "inexpensive": PriceRange.BUDGET,
    "moderate": PriceRange.MODERATE,
    "expensive": PriceRange.EXPENSIVE,
    "upscale": PriceRange.EXPENSIVE,
    "very_expensive": PriceRange.VERY_EXPENSIVE,
    "luxury": PriceRange.VERY_EXPENSIVE,
}


class DataSource(str, enum.Enum):
    GOOGLE = "google"
    YELP = "yelp"
    SERPAPI = "serpapi"


class FeatureCategory(str, enum.Enum):
    DINING = "dining"
    ACCESSIBILITY = "accessibility"
    PAYMENT = "payment"
    SPECIAL = "special"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class Coordinates:
    latitude: float
    longitude: float


@dataclass(frozen=True, slots=True)
class DayHours:
    open: str
    close: str
    is_closed: bool = False


BusinessHours = Mapping[str, DayHours]


@dataclass(frozen=True, slots=True)
class RestaurantFeature:
    name: str
    value: Union[str, bool] = True
    category: FeatureCategory = FeatureCategory.OTHER


@dataclass(frozen=True, slots=True)
class Restaurant:
    """Normalized restaurant record produced by every search provider."""

    id: str
    name: str
    source: DataSource
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    phone: Optional[str] = None
    website: Optional[str] = None
    cuisine: Tuple[str, ...] = DEFAULT_CUISINE
    price_range: PriceRange = PriceRange.MODERATE
    rating: float = DEFAULT_RATING
    review_count: int = DEFAULT_REVIEW_COUNT
    coordinates: Optional[Coordinates] = None
    hours: Optional[BusinessHours] = None
    features: Tuple[RestaurantFeature, ...] = ()
    images: Tuple[str, ...] = ()
    source_id: Optional[str] = None
    last_updated: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("Restaurant name must not be empty")
        object.__setattr__(self, "rating", clamp_rating(self.rating))
        object.__setattr__(self, "review_count", max(0, int(self.review_count)))
        object.__setattr__(self, "cuisine", tuple(self.cuisine or ()) or DEFAULT_CUISINE)
        object.__setattr__(self, "features", tuple(self.features or ()))
        object.__setattr__(self, "images", tuple(self.images or ()))
        if not isinstance(self.price_range, PriceRange):
            object.__setattr__(self, "price_range", PriceRange.parse(self.price_range) or PriceRange.MODERATE)


@dataclass(frozen=True, slots=True)
class SearchParams:
    query: str = ""
    location: str = ""
    radius: Optional[float] = None  # miles
    cuisine: Optional[Tuple[str, ...]] = None
    price_range: Optional[Tuple[PriceRange, ...]] = None
    rating: Optional[float] = None
    open_now: Optional[bool] = None
    max_results: Optional[int] = None


@dataclass(frozen=True, slots=True)
class SearchResult:
    restaurants: Tuple[Restaurant, ...]
    total_results: int
    search_params: SearchParams
    search_time_ms: int


@dataclass(frozen=True, slots=True)
class RankingFactor:
    name: str
    weight: float
    score: float
    description: str


@dataclass(frozen=True, slots=True)
class RestaurantRanking:
    restaurant: Restaurant
    score: float
    factors: Tuple[RankingFactor, ...]


def clamp_rating(value: Any) -> float:
    try:
        rating = float(value)
    except (TypeError, ValueError):
        return DEFAULT_RATING
    if rating != rating:  # NaN
        return DEFAULT_RATING
    return min(max(rating, MIN_RATING), MAX_RATING)


def completeness_score(restaurant: Restaurant) -> int:
    """Count how many optional fields carry data (0-6)."""
    score = 0
    if restaurant.phone:
        score += 1
    if restaurant.website:
        score += 1
    if restaurant.coordinates is not None:
        score += 1
    if restaurant.hours:
        score += 1
    if restaurant.features:
        score += 1
    if restaurant.images:
        score += 1
    return score


def to_dict(value: Any) -> Any:
    """Convert models into JSON-ready structures."""
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_dict(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(key): to_dict(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_dict(item) for item in value]
    return value


def result_to_dict(result: SearchResult) -> Dict[str, Any]:
    return {
        "restaurants": to_dict(result.restaurants),
        "total_results": result.total_results,
        "search_params": to_dict(result.search_params),
        "search_time_ms": result.search_time_ms,
    }
