"""Weighted multi-factor ranking of restaurant records."""

from typing import Dict, Iterable, List

from foodfinder.core.models import (
    MAX_COMPLETENESS_SCORE,
    MAX_RATING,
    DataSource,
    PriceRange,
    RankingFactor,
    Restaurant,
    RestaurantRanking,
    completeness_score,
)

RATING_WEIGHT = 0.30
REVIEW_WEIGHT = 0.20
PRICE_WEIGHT = 0.15
COMPLETENESS_WEIGHT = 0.20
SOURCE_WEIGHT = 0.15

REVIEW_COUNT_CAP = 100

PRICE_SCORES: Dict[PriceRange, float] = {
    PriceRange.BUDGET: 1.0,
    PriceRange.MODERATE: 0.8,
    PriceRange.EXPENSIVE: 0.6,
    PriceRange.VERY_EXPENSIVE: 0.4,
}
UNKNOWN_PRICE_SCORE = 0.5

# Yelp listings are curated by the provider; the others are scraped or inferred.
SOURCE_RELIABILITY: Dict[DataSource, float] = {
    DataSource.YELP: 1.0,
    DataSource.GOOGLE: 0.8,
    DataSource.SERPAPI: 0.8,
}
DEFAULT_SOURCE_RELIABILITY = 0.8


def _unit(value: float) -> float:
    return min(max(value, 0.0), 1.0)


def score_restaurant(restaurant: Restaurant) -> RestaurantRanking:
    """Score one restaurant and keep the per-factor breakdown."""
    completeness = completeness_score(restaurant)
    factors = (
        RankingFactor(
            name="Rating",
            weight=RATING_WEIGHT,
            score=_unit(restaurant.rating / MAX_RATING),
            description=f"Rating: {restaurant.rating:g}/5",
        ),
        RankingFactor(
            name="Review Count",
            weight=REVIEW_WEIGHT,
            score=_unit(restaurant.review_count / REVIEW_COUNT_CAP),
            description=f"{restaurant.review_count} reviews",
        ),
        RankingFactor(
            name="Price Range",
            weight=PRICE_WEIGHT,
            score=PRICE_SCORES.get(restaurant.price_range, UNKNOWN_PRICE_SCORE),
            description=f"Price: {getattr(restaurant.price_range, 'value', restaurant.price_range)}",
        ),
        RankingFactor(
            name="Information Completeness",
            weight=COMPLETENESS_WEIGHT,
            score=completeness / MAX_COMPLETENESS_SCORE,
            description=f"Data quality: {completeness}/{MAX_COMPLETENESS_SCORE} fields",
        ),
        RankingFactor(
            name="Data Source",
            weight=SOURCE_WEIGHT,
            score=SOURCE_RELIABILITY.get(restaurant.source, DEFAULT_SOURCE_RELIABILITY),
            description=f"Source: {restaurant.source.value}",
        ),
    )
    total = sum(factor.weight * factor.score for factor in factors)
    return RestaurantRanking(restaurant=restaurant, score=_unit(total), factors=factors)


def rank_restaurants(restaurants: Iterable[Restaurant]) -> List[RestaurantRanking]:
    """Return rankings ordered from highest to lowest score."""
    rankings = [score_restaurant(restaurant) for restaurant in restaurants]
    return sorted(rankings, key=lambda ranking: ranking.score, reverse=True)
