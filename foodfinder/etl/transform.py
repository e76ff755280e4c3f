"""Utilities for transforming provider responses into Restaurant records."""

import hashlib
import logging
import math
import re
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from foodfinder.core.models import (
    DEFAULT_CUISINE,
    DEFAULT_RATING,
    DEFAULT_REVIEW_COUNT,
    WEEKDAYS,
    Coordinates,
    DataSource,
    DayHours,
    FeatureCategory,
    PriceRange,
    Restaurant,
    RestaurantFeature,
    SearchParams,
)

logger = logging.getLogger(__name__)

GOOGLE_PHOTO_URL = "https://maps.googleapis.com/maps/api/place/photo"

# Google counts weekdays from Sunday, Yelp from Monday.
_GOOGLE_DAYS = ("sunday",) + WEEKDAYS[:-1]

_COUNTRY_SUFFIXES = {"usa", "us", "united states", "united states of america"}
_STATE_ZIP_RE = re.compile(r"^([A-Za-z]{2})(?:\s+(\d{5}(?:-\d{4})?))?$")
_ZIP_RE = re.compile(r"\d{5}(?:-\d{4})?")
_TIME_RE = re.compile(r"(\d{1,2})(?::(\d{2}))?\s*([ap]\.?\s?m\.?)?", re.IGNORECASE)

CUISINE_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "italian": ("italian", "pizza", "pasta", "ristorante", "trattoria"),
    "chinese": ("chinese", "mandarin", "cantonese", "szechuan", "dim sum"),
    "mexican": ("mexican", "taco", "burrito", "taqueria"),
    "japanese": ("japanese", "sushi", "ramen", "izakaya"),
    "indian": ("indian", "tandoori", "curry house"),
    "thai": ("thai",),
    "french": ("french", "brasserie", "bistro", "patisserie"),
    "mediterranean": ("mediterranean", "greek", "lebanese", "turkish", "falafel"),
    "american": ("american", "burger", "diner", "steakhouse", "bbq", "barbeque"),
    "seafood": ("seafood", "oyster", "fish"),
    "vegetarian": ("vegetarian", "vegan"),
}

# Yelp category aliases for the cuisines above.
YELP_CATEGORIES: Dict[str, str] = {
    "italian": "italian",
    "chinese": "chinese",
    "japanese": "japanese",
    "mexican": "mexican",
    "indian": "indpak",
    "thai": "thai",
    "french": "french",
    "mediterranean": "mediterranean",
    "american": "newamerican",
    "pizza": "pizza",
    "burger": "burgers",
    "seafood": "seafood",
    "steakhouse": "steak",
    "sushi": "sushi",
    "bbq": "bbq",
    "vegetarian": "vegetarian",
    "vegan": "vegan",
}

_GOOGLE_ATTRIBUTE_FEATURES: Tuple[Tuple[str, str, FeatureCategory], ...] = (
    ("dine_in", "Dine In", FeatureCategory.DINING),
    ("takeout", "Takeout", FeatureCategory.DINING),
    ("delivery", "Delivery", FeatureCategory.DINING),
    ("reservable", "Reservations", FeatureCategory.DINING),
    ("wheelchair_accessible_entrance", "Wheelchair Accessible", FeatureCategory.ACCESSIBILITY),
    ("serves_vegetarian_food", "Vegetarian Options", FeatureCategory.SPECIAL),
)

_GOOGLE_TYPE_FEATURES = {
    "meal_delivery": ("Delivery", FeatureCategory.DINING),
    "meal_takeaway": ("Takeout", FeatureCategory.DINING),
}

_YELP_TRANSACTIONS = {
    "delivery": "Delivery",
    "pickup": "Takeout",
    "restaurant_reservation": "Reservations",
}


def make_restaurant_id(source: DataSource, *parts: Optional[str]) -> str:
    """Derive a stable identifier from provider identity, name and address."""
    raw = "|".join((part or "").strip().lower() for part in parts)
    digest = hashlib.sha1(raw.encode("utf-8")).hexdigest()[:16]
    return f"{source.value}_{digest}"


def parse_address_components(
    address_components: Iterable[Dict[str, Any]],
) -> Tuple[Optional[str], Optional[str], Optional[str], Optional[str]]:
    """Return (street, city, state, zip) from Google address components."""
    street_number = None
    route = None
    city = None
    state = None
    zip_code = None
    for component in address_components or []:
        types = set(component.get("types", []))
        if "street_number" in types:
            street_number = component.get("long_name")
        if "route" in types:
            route = component.get("short_name") or component.get("long_name")
        if "locality" in types or ("administrative_area_level_2" in types and not city):
            city = component.get("long_name")
        if "administrative_area_level_1" in types:
            state = component.get("short_name")
        if "postal_code" in types:
            zip_code = component.get("long_name")
    street = " ".join(filter(None, [street_number, route])) or None
    return street, city, state, zip_code


def split_address(address: Optional[str]) -> Tuple[str, str, str, str]:
    """Best-effort split of "street, city, ST 12345[, country]"."""
    parts = [part.strip() for part in (address or "").split(",") if part.strip()]
    if parts and parts[-1].lower() in _COUNTRY_SUFFIXES:
        parts = parts[:-1]
    if not parts:
        return "", "", "", ""

    state = ""
    zip_code = ""
    match = _STATE_ZIP_RE.match(parts[-1]) if len(parts) > 1 else None
    if match:
        state = match.group(1).upper()
        zip_code = match.group(2) or ""
        parts = parts[:-1]
    else:
        zip_match = _ZIP_RE.search(parts[-1])
        zip_code = zip_match.group(0) if zip_match else ""

    street = parts[0]
    city = parts[-1] if len(parts) > 1 else ""
    return street, city, state, zip_code


def city_from_location(location: Optional[str]) -> str:
    return (location or "").split(",")[0].strip()


def infer_cuisines(*texts: Optional[str]) -> Tuple[str, ...]:
    text = " ".join(t for t in texts if t).lower().replace("_", " ")
    found = [cuisine for cuisine, terms in CUISINE_KEYWORDS.items() if any(term in text for term in terms)]
    return tuple(found) or DEFAULT_CUISINE


def cuisines_to_yelp_categories(cuisines: Sequence[str]) -> List[str]:
    categories: List[str] = []
    for cuisine in cuisines:
        lower = cuisine.strip().lower()
        match = next((alias for key, alias in YELP_CATEGORIES.items() if key in lower), "restaurants")
        if match not in categories:
            categories.append(match)
    return categories


def parse_rating(value: Any) -> float:
    rating = _safe_float(value)
    if rating is None or rating <= 0:
        return DEFAULT_RATING
    return rating


def parse_review_count(value: Any) -> int:
    count = _safe_int(value)
    if count is None:
        return DEFAULT_REVIEW_COUNT
    return max(count, 0)


def parse_price(value: Any) -> PriceRange:
    if isinstance(value, str) and value.strip().startswith("$"):
        # SerpAPI sometimes reports a spend band ("$10–20"); only pure symbols count.
        symbols = value.strip()
        if set(symbols) == {"$"}:
            return PriceRange.parse(symbols) or PriceRange.MODERATE
        return PriceRange.MODERATE
    return PriceRange.parse(value) or PriceRange.MODERATE


def format_hhmm(value: Optional[str]) -> Optional[str]:
    """Convert a compact "1130" clock value into "11:30"."""
    if not value or len(value) != 4 or not value.isdigit():
        return None
    return f"{value[:2]}:{value[2:]}"


def parse_hours_text(text: Optional[str]) -> Optional[DayHours]:
    """Parse a human-readable range such as "11 AM–10 PM"."""
    if not text:
        return None
    normalized = str(text).strip().lower().replace("\u202f", " ").replace("\u2009", " ")
    if not normalized:
        return None
    if "closed" in normalized:
        return DayHours(open="00:00", close="00:00", is_closed=True)
    if "24 hours" in normalized:
        return DayHours(open="00:00", close="23:59")

    matches = _TIME_RE.findall(normalized)
    if len(matches) < 2:
        return None
    (open_h, open_m, open_mer), (close_h, close_m, close_mer) = matches[0], matches[-1]
    open_mer = _meridiem(open_mer)
    close_mer = _meridiem(close_mer)
    if not open_mer and close_mer:
        open_mer = close_mer
        if close_mer == "pm" and int(open_h) % 12 > int(close_h) % 12:
            open_mer = "am"
    if not close_mer and open_mer:
        close_mer = open_mer
    try:
        return DayHours(
            open=_clock(int(open_h), int(open_m or 0), open_mer),
            close=_clock(int(close_h), int(close_m or 0), close_mer),
        )
    except ValueError:
        return None


def google_hours(opening_hours: Optional[Dict[str, Any]]) -> Optional[Dict[str, DayHours]]:
    periods = (opening_hours or {}).get("periods") or []
    hours: Dict[str, DayHours] = {}
    for period in periods:
        opened = period.get("open") or {}
        closed = period.get("close") or {}
        day = opened.get("day")
        if not isinstance(day, int) or not 0 <= day <= 6:
            continue
        open_time = format_hhmm(opened.get("time"))
        if open_time is None:
            continue
        # A period without a close is open around the clock.
        close_time = format_hhmm(closed.get("time")) if closed else "23:59"
        hours.setdefault(_GOOGLE_DAYS[day], DayHours(open=open_time, close=close_time or "23:59"))
    return _with_closed_days(hours)


def yelp_hours(business_hours: Optional[List[Dict[str, Any]]]) -> Optional[Dict[str, DayHours]]:
    if not business_hours:
        return None
    hours: Dict[str, DayHours] = {}
    for slot in business_hours[0].get("open") or []:
        day = slot.get("day")
        start = format_hhmm(slot.get("start"))
        end = format_hhmm(slot.get("end"))
        if not isinstance(day, int) or not 0 <= day <= 6 or not start or not end:
            continue
        hours.setdefault(WEEKDAYS[day], DayHours(open=start, close=end))
    return _with_closed_days(hours)


def serpapi_hours(operating_hours: Optional[Dict[str, Any]]) -> Optional[Dict[str, DayHours]]:
    if not isinstance(operating_hours, dict):
        return None
    hours: Dict[str, DayHours] = {}
    for day, text in operating_hours.items():
        key = str(day).strip().lower()
        if key not in WEEKDAYS:
            continue
        parsed = parse_hours_text(text)
        if parsed is not None:
            hours[key] = parsed
    return hours or None


def google_place_to_restaurant(place: Dict[str, Any], params: SearchParams) -> Optional[Restaurant]:
    name = (place.get("name") or "").strip()
    if not name:
        logger.debug("Skipping Google result without name: %s", place.get("place_id"))
        return None

    formatted_address = place.get("formatted_address") or place.get("vicinity") or ""
    street, city, state, zip_code = split_address(formatted_address)
    c_street, c_city, c_state, c_zip = parse_address_components(place.get("address_components", []))
    street = c_street or street or "Address not available"
    city = c_city or city or city_from_location(params.location)

    location = (place.get("geometry") or {}).get("location") or {}
    types = place.get("types") or []

    return Restaurant(
        id=make_restaurant_id(DataSource.GOOGLE, place.get("place_id"), name, street),
        name=name,
        address=street,
        city=city,
        state=c_state or state,
        zip_code=c_zip or zip_code,
        phone=_strip_or_none(place.get("formatted_phone_number") or place.get("international_phone_number")),
        website=_strip_or_none(place.get("website")),
        cuisine=infer_cuisines(name, " ".join(types), (place.get("editorial_summary") or {}).get("overview")),
        price_range=parse_price(place.get("price_level")),
        rating=parse_rating(place.get("rating")),
        review_count=parse_review_count(place.get("user_ratings_total")),
        coordinates=_coordinates(location.get("lat"), location.get("lng")),
        hours=google_hours(place.get("opening_hours")),
        features=tuple(_google_features(place, types)),
        images=tuple(_google_images(place.get("photos"))),
        source=DataSource.GOOGLE,
        source_id=place.get("place_id"),
    )


def yelp_business_to_restaurant(business: Dict[str, Any], params: SearchParams) -> Optional[Restaurant]:
    name = (business.get("name") or "").strip()
    if not name:
        return None

    location = business.get("location") or {}
    categories = business.get("categories") or []
    category_text = " ".join(f"{c.get('alias', '')} {c.get('title', '')}" for c in categories)
    street = location.get("address1") or "Address not available"
    coords = business.get("coordinates") or {}

    return Restaurant(
        id=make_restaurant_id(DataSource.YELP, business.get("id"), name, street),
        name=name,
        address=street,
        city=location.get("city") or city_from_location(params.location),
        state=location.get("state") or "",
        zip_code=location.get("zip_code") or "",
        phone=_strip_or_none(business.get("display_phone") or business.get("phone")),
        website=_strip_or_none(business.get("url")),
        cuisine=infer_cuisines(category_text),
        price_range=parse_price(business.get("price")),
        rating=parse_rating(business.get("rating")),
        review_count=parse_review_count(business.get("review_count")),
        coordinates=_coordinates(coords.get("latitude"), coords.get("longitude")),
        hours=yelp_hours(business.get("business_hours")),
        features=tuple(_yelp_features(business.get("transactions") or [], category_text)),
        images=tuple(filter(None, [_strip_or_none(business.get("image_url"))])),
        source=DataSource.YELP,
        source_id=business.get("id"),
    )


def serpapi_result_to_restaurant(raw: Dict[str, Any], params: SearchParams) -> Optional[Restaurant]:
    name = (raw.get("title") or raw.get("name") or "").strip()
    if not name:
        return None

    street, city, state, zip_code = split_address(raw.get("address"))
    street = street or "Address not available"
    gps = raw.get("gps_coordinates") or {}
    types = raw.get("types") or ([raw["type"]] if raw.get("type") else [])
    identity = raw.get("place_id") or raw.get("data_id")

    return Restaurant(
        id=make_restaurant_id(DataSource.SERPAPI, identity, name, street),
        name=name,
        address=street,
        city=city or city_from_location(params.location),
        state=state,
        zip_code=zip_code,
        phone=_strip_or_none(raw.get("phone")),
        website=_strip_or_none(raw.get("website")),
        cuisine=infer_cuisines(" ".join(types), name),
        price_range=parse_price(raw.get("price")),
        rating=parse_rating(raw.get("rating")),
        review_count=parse_review_count(raw.get("reviews_count") or raw.get("reviews")),
        coordinates=_coordinates(gps.get("latitude"), gps.get("longitude")),
        hours=serpapi_hours(raw.get("operating_hours")),
        features=tuple(_serpapi_features(raw.get("service_options"))),
        images=tuple(filter(None, [_strip_or_none(raw.get("thumbnail"))])),
        source=DataSource.SERPAPI,
        source_id=identity,
    )


def _google_features(place: Dict[str, Any], types: Iterable[str]) -> List[RestaurantFeature]:
    features: List[RestaurantFeature] = []
    seen = set()
    for key, label, category in _GOOGLE_ATTRIBUTE_FEATURES:
        if isinstance(place.get(key), bool):
            features.append(RestaurantFeature(name=label, value=place[key], category=category))
            seen.add(label)
    for type_name in types:
        mapped = _GOOGLE_TYPE_FEATURES.get(type_name)
        if mapped and mapped[0] not in seen:
            features.append(RestaurantFeature(name=mapped[0], value=True, category=mapped[1]))
            seen.add(mapped[0])
    return features


def _google_images(photos: Optional[List[Dict[str, Any]]]) -> List[str]:
    # The API key is appended by whoever renders the photo.
    images = []
    for photo in photos or []:
        reference = photo.get("photo_reference")
        if reference:
            images.append(f"{GOOGLE_PHOTO_URL}?maxwidth=400&photo_reference={reference}")
    return images


def _yelp_features(transactions: Iterable[str], category_text: str) -> List[RestaurantFeature]:
    features = [
        RestaurantFeature(name=_YELP_TRANSACTIONS[t], value=True, category=FeatureCategory.DINING)
        for t in transactions
        if t in _YELP_TRANSACTIONS
    ]
    lowered = category_text.lower()
    if "vegan" in lowered or "vegetarian" in lowered:
        features.append(RestaurantFeature(name="Vegetarian Options", value=True, category=FeatureCategory.SPECIAL))
    if "gluten" in lowered:
        features.append(RestaurantFeature(name="Gluten Free Options", value=True, category=FeatureCategory.SPECIAL))
    return features


def _serpapi_features(service_options: Optional[Dict[str, Any]]) -> List[RestaurantFeature]:
    if not isinstance(service_options, dict):
        return []
    return [
        RestaurantFeature(name=key.replace("_", " ").title(), value=value, category=FeatureCategory.DINING)
        for key, value in service_options.items()
        if isinstance(value, bool)
    ]


def _with_closed_days(hours: Dict[str, DayHours]) -> Optional[Dict[str, DayHours]]:
    if not hours:
        return None
    return {day: hours.get(day, DayHours(open="00:00", close="00:00", is_closed=True)) for day in WEEKDAYS}


def _meridiem(value: str) -> str:
    return value.replace(".", "").replace(" ", "").lower()


def _clock(hour: int, minute: int, meridiem: str) -> str:
    if meridiem == "pm" and hour < 12:
        hour += 12
    elif meridiem == "am" and hour == 12:
        hour = 0
    if not 0 <= hour <= 24 or not 0 <= minute <= 59:
        raise ValueError(f"invalid time {hour}:{minute}")
    if hour == 24:
        hour, minute = 23, 59
    return f"{hour:02d}:{minute:02d}"


def _coordinates(lat: Any, lng: Any) -> Optional[Coordinates]:
    latitude = _safe_float(lat)
    longitude = _safe_float(lng)
    if latitude is None or longitude is None:
        return None
    return Coordinates(latitude=latitude, longitude=longitude)


def _strip_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    value_str = str(value).strip()
    return value_str or None


def _safe_float(value: Any) -> Optional[float]:
    try:
        if value is None:
            return None
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _safe_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, int):
        return value

    if isinstance(value, str):
        digits = "".join(ch for ch in value if ch.isdigit())
        if digits:
            return int(digits)
    return None
