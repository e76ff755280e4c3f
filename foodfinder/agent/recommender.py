"""Conversational front end: free text in, ranked recommendations and a narrative out."""

from __future__ import annotations

import json
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from openai import OpenAI

from foodfinder.core.aggregator import SearchAggregator
from foodfinder.core.config import Settings
from foodfinder.core.models import PriceRange, RestaurantRanking, SearchParams
from foodfinder.core.ranking import rank_restaurants

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_LOCATION = "San Francisco, CA"
ALTERNATIVES_COUNT = 3

KNOWN_CUISINES = (
    "italian",
    "chinese",
    "mexican",
    "japanese",
    "indian",
    "american",
    "mediterranean",
    "thai",
    "french",
)

RELATED_CUISINES: Dict[str, Tuple[str, ...]] = {
    "italian": ("mediterranean", "french", "spanish"),
    "chinese": ("japanese", "korean", "vietnamese", "thai"),
    "mexican": ("spanish", "caribbean", "latin american"),
    "indian": ("pakistani", "bangladeshi", "sri lankan"),
    "american": ("bbq", "soul food", "southern"),
    "mediterranean": ("greek", "lebanese", "turkish", "italian"),
    "french": ("italian", "mediterranean", "european"),
}

_PRICE_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("budget", ("cheap", "budget", "affordable")),
    ("moderate", ("moderate", "casual")),
    ("expensive", ("expensive", "upscale", "fine dining")),
    ("very_expensive", ("luxury", "high end", "high-end")),
)

_LOCATION_RE = re.compile(r"\b(?:in|at|near|around)\s+([^,.!?]+(?:,\s*[A-Za-z]{2}\b)?)", re.IGNORECASE)
_JSON_RE = re.compile(r"\{[\s\S]*\}")

PARSE_PROMPT = """You are a restaurant recommendation expert. Analyze this user request and return a JSON response:

User request: {user_input}

Return JSON with this structure:
{{
  "preferences": {{
    "cuisine": ["array", "of", "cuisines"],
    "priceRange": ["budget", "moderate", "expensive", "very_expensive"],
    "dietaryRestrictions": ["vegetarian", "gluten-free"],
    "preferredFeatures": ["outdoor seating", "delivery"],
    "ratingThreshold": 4.0,
    "maxDistance": 10
  }},
  "context": {{
    "location": "city, state",
    "occasion": "dinner, lunch, date",
    "groupSize": 2,
    "timeOfDay": "evening, afternoon",
    "urgency": "low, medium, high"
  }},
  "constraints": {{
    "maxResults": 5,
    "mustBeOpen": true,
    "includeDelivery": false,
    "includeTakeout": true,
    "excludeChains": false
  }}
}}

Only return valid JSON. If information is missing, use reasonable defaults."""

REASONING_PROMPT = """You are a restaurant recommendation expert. Explain why these restaurants are recommended based on the user's preferences.

User request: {user_input}

User preferences:
- Cuisine: {cuisine}
- Price range: {price_range}
- Rating threshold: {rating}
- Max distance: {distance} miles

Top recommendations:
{recommendations}

Please explain why these restaurants are recommended for this user. Be conversational and helpful."""


@dataclass(frozen=True)
class UserPreferences:
    cuisine: Tuple[str, ...] = ("american",)
    price_range: Tuple[str, ...] = ("budget", "moderate")
    dietary_restrictions: Tuple[str, ...] = ()
    preferred_features: Tuple[str, ...] = ()
    rating_threshold: float = 4.0
    max_distance: float = 10


@dataclass(frozen=True)
class SearchContext:
    location: str = DEFAULT_LOCATION
    occasion: str = "dinner"
    group_size: int = 2
    time_of_day: str = "evening"
    urgency: str = "medium"


@dataclass(frozen=True)
class RecommendationConstraints:
    max_results: int = 5
    must_be_open: bool = True
    include_delivery: bool = False
    include_takeout: bool = True
    exclude_chains: bool = False


@dataclass(frozen=True)
class ParsedRequest:
    preferences: UserPreferences = field(default_factory=UserPreferences)
    context: SearchContext = field(default_factory=SearchContext)
    constraints: RecommendationConstraints = field(default_factory=RecommendationConstraints)


@dataclass(frozen=True)
class RecommendationResult:
    recommendations: Tuple[RestaurantRanking, ...]
    reasoning: str
    confidence: float
    alternatives: Tuple[RestaurantRanking, ...]
    next_steps: Tuple[str, ...]
    search_params: SearchParams


class RecommendationAgent:
    """Turns a conversational request into a search and explains the ranking.

    The language model is optional. Without a client, or whenever a model call
    fails, keyword parsing and a templated explanation are used instead.
    """

    def __init__(
        self,
        aggregator: SearchAggregator,
        client: Optional[Any] = None,
        model: str = DEFAULT_MODEL,
        default_location: str = DEFAULT_LOCATION,
    ) -> None:
        self.aggregator = aggregator
        self.client = client
        self.model = model
        self.default_location = default_location

    @classmethod
    def from_settings(cls, aggregator: SearchAggregator, settings: Settings) -> "RecommendationAgent":
        client = None
        if settings.openai_api_key:
            client = OpenAI(api_key=settings.openai_api_key, timeout=settings.provider_timeout * 3)
        return cls(aggregator, client=client, model=settings.openai_model, default_location=settings.default_location)

    def get_recommendations(self, user_input: str, max_results: int = 5) -> RecommendationResult:
        start = time.perf_counter()
        logger.info("Processing recommendation request: %r", user_input)

        parsed = self.parse_user_input(user_input)
        params = self.build_search_params(parsed)
        search_result = self.aggregator.search_all(params)
        rankings = rank_restaurants(search_result.restaurants)

        top = rankings[:max_results]
        reasoning = self.generate_reasoning(user_input, parsed.preferences, top)
        result = RecommendationResult(
            recommendations=tuple(top),
            reasoning=reasoning,
            confidence=calculate_confidence(top, parsed.preferences),
            alternatives=tuple(rankings[max_results : max_results + ALTERNATIVES_COUNT]),
            next_steps=tuple(generate_next_steps(parsed.preferences)),
            search_params=params,
        )
        logger.info(
            "Recommendations generated in %dms with %d results",
            int((time.perf_counter() - start) * 1000),
            len(top),
        )
        return result

    def parse_user_input(self, user_input: str) -> ParsedRequest:
        if self.client is None:
            return parse_user_input_fallback(user_input, self.default_location)
        try:
            content = self._complete(PARSE_PROMPT.format(user_input=user_input), json_mode=True)
            return parsed_request_from_payload(_extract_json(content), self.default_location)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to parse user input with the language model, using keywords: %s", exc)
            return parse_user_input_fallback(user_input, self.default_location)

    def build_search_params(self, parsed: ParsedRequest) -> SearchParams:
        preferences = parsed.preferences
        tiers = tuple(dict.fromkeys(t for t in (PriceRange.parse(p) for p in preferences.price_range) if t))
        return SearchParams(
            query=f"{' '.join(preferences.cuisine)} restaurant".strip(),
            location=parsed.context.location,
            radius=preferences.max_distance,
            cuisine=preferences.cuisine,
            price_range=tiers or None,
            rating=preferences.rating_threshold,
            open_now=parsed.constraints.must_be_open,
            max_results=parsed.constraints.max_results,
        )

    def generate_reasoning(
        self,
        user_input: str,
        preferences: UserPreferences,
        recommendations: Sequence[RestaurantRanking],
    ) -> str:
        if self.client is None or not recommendations:
            return generate_reasoning_fallback(preferences, recommendations)
        lines = "\n".join(
            f"{i}. {r.restaurant.name} - {', '.join(r.restaurant.cuisine)} - "
            f"{r.restaurant.price_range.value} - {r.restaurant.rating:g}/5 stars"
            for i, r in enumerate(recommendations, start=1)
        )
        prompt = REASONING_PROMPT.format(
            user_input=user_input,
            cuisine=", ".join(preferences.cuisine),
            price_range=", ".join(preferences.price_range),
            rating=preferences.rating_threshold,
            distance=preferences.max_distance,
            recommendations=lines,
        )
        try:
            return self._complete(prompt)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to generate reasoning with the language model, using template: %s", exc)
            return generate_reasoning_fallback(preferences, recommendations)

    def test_connection(self) -> bool:
        if self.client is None:
            logger.warning("Language model client is not configured")
            return False
        try:
            self._complete("Hello, this is a test message.")
        except Exception as exc:  # noqa: BLE001
            logger.error("Language model connection test failed: %s", exc)
            return False
        return True

    def _complete(self, prompt: str, json_mode: bool = False) -> str:
        kwargs: Dict[str, Any] = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=0.7,
            max_tokens=1000,
            **kwargs,
        )
        content = response.choices[0].message.content
        if not content:
            raise ValueError("empty completion")
        return content


def _extract_json(content: str) -> Dict[str, Any]:
    try:
        return json.loads(content)
    except json.JSONDecodeError:
        match = _JSON_RE.search(content)
        if not match:
            raise ValueError("no JSON object in model response") from None
        return json.loads(match.group(0))


def _strings(value: Any) -> Tuple[str, ...]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(str(item).strip() for item in value if str(item).strip())


def parsed_request_from_payload(payload: Dict[str, Any], default_location: str = DEFAULT_LOCATION) -> ParsedRequest:
    preferences = payload.get("preferences") or {}
    context = payload.get("context") or {}
    constraints = payload.get("constraints") or {}
    defaults = RecommendationConstraints()

    def flag(name: str, default: bool) -> bool:
        value = constraints.get(name)
        return default if value is None else bool(value)

    return ParsedRequest(
        preferences=UserPreferences(
            cuisine=tuple(c.lower() for c in _strings(preferences.get("cuisine"))) or ("american",),
            price_range=_strings(preferences.get("priceRange")) or ("budget", "moderate"),
            dietary_restrictions=_strings(preferences.get("dietaryRestrictions")),
            preferred_features=_strings(preferences.get("preferredFeatures")),
            rating_threshold=float(preferences.get("ratingThreshold") or 4.0),
            max_distance=float(preferences.get("maxDistance") or 10),
        ),
        context=SearchContext(
            location=str(context.get("location") or default_location),
            occasion=str(context.get("occasion") or "dinner"),
            group_size=int(context.get("groupSize") or 2),
            time_of_day=str(context.get("timeOfDay") or "evening"),
            urgency=str(context.get("urgency") or "medium"),
        ),
        constraints=RecommendationConstraints(
            max_results=int(constraints.get("maxResults") or defaults.max_results),
            must_be_open=flag("mustBeOpen", defaults.must_be_open),
            include_delivery=flag("includeDelivery", defaults.include_delivery),
            include_takeout=flag("includeTakeout", defaults.include_takeout),
            exclude_chains=flag("excludeChains", defaults.exclude_chains),
        ),
    )


def parse_user_input_fallback(user_input: str, default_location: str = DEFAULT_LOCATION) -> ParsedRequest:
    """Keyword-based parsing used when no language model is available."""
    text = user_input.lower()
    cuisines = tuple(c for c in KNOWN_CUISINES if c in text)
    prices = tuple(tier for tier, words in _PRICE_KEYWORDS if any(word in text for word in words))

    location = default_location
    match = _LOCATION_RE.search(user_input)
    if match:
        location = match.group(1).strip()

    return ParsedRequest(
        preferences=UserPreferences(
            cuisine=cuisines or ("american",),
            price_range=prices or ("budget", "moderate"),
        ),
        context=SearchContext(location=location),
    )


def generate_reasoning_fallback(preferences: UserPreferences, recommendations: Sequence[RestaurantRanking]) -> str:
    if not recommendations:
        return "No restaurants found that match your request. Try widening the area or relaxing the filters."
    parts = [
        f"Based on your preferences for {', '.join(preferences.cuisine)} cuisine and "
        f"{', '.join(preferences.price_range)} price range, here are my top recommendations:\n"
    ]
    for i, ranking in enumerate(recommendations, start=1):
        restaurant = ranking.restaurant
        location = ", ".join(p for p in (restaurant.city, restaurant.state) if p)
        parts.append(
            f"{i}. **{restaurant.name}** - This {', '.join(restaurant.cuisine)} restaurant has a "
            f"{restaurant.rating:g}/5 star rating with {restaurant.review_count} reviews. "
            f"It's priced in the {restaurant.price_range.value} range"
            + (f" and located in {location}." if location else ".")
        )
    parts.append(
        "\nThese restaurants were selected based on their high ratings, good review counts, "
        "and alignment with your cuisine and price preferences."
    )
    return "\n".join(parts)


def generate_next_steps(preferences: UserPreferences) -> List[str]:
    steps: List[str] = []
    if len(preferences.cuisine) == 1:
        related = RELATED_CUISINES.get(preferences.cuisine[0].lower())
        if related:
            steps.append(f"Try exploring {', '.join(related)} restaurants for variety")
    steps.append("Check restaurant hours and make reservations if needed")
    steps.append("Read recent reviews for the latest information")
    return steps


def calculate_confidence(recommendations: Sequence[RestaurantRanking], preferences: UserPreferences) -> float:
    """Share of cuisine, price and rating matches across the recommendations."""
    if not recommendations:
        return 0.0
    wanted_tiers = {t for t in (PriceRange.parse(p) for p in preferences.price_range) if t}
    wanted_cuisines = [c.lower() for c in preferences.cuisine]

    total = 0.0
    for ranking in recommendations:
        restaurant = ranking.restaurant
        cuisine_match = any(want in have.lower() for want in wanted_cuisines for have in restaurant.cuisine)
        price_match = restaurant.price_range in wanted_tiers
        rating_match = restaurant.rating >= preferences.rating_threshold
        total += (cuisine_match + price_match + rating_match) / 3
    return total / len(recommendations)
