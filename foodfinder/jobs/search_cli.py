"""Command line entrypoint for restaurant search, ranking and recommendations."""

import argparse
import logging
from typing import List, Optional, Sequence

from foodfinder.agent.recommender import RecommendationAgent, RecommendationResult
from foodfinder.core.aggregator import SearchAggregator, UnknownProviderError, build_aggregator
from foodfinder.core.config import ConfigError, configure_logging, get_settings
from foodfinder.core.models import PriceRange, Restaurant, RestaurantRanking, SearchParams, SearchResult
from foodfinder.core.ranking import rank_restaurants

logger = logging.getLogger(__name__)

PRICE_CHOICES = ("budget", "moderate", "expensive", "luxury")


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}") from None
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value}")
    return number


def parse_price_tiers(values: Optional[Sequence[str]]) -> Optional[tuple]:
    tiers = tuple(dict.fromkeys(t for t in (PriceRange.parse(v) for v in values or []) if t))
    return tiers or None


def build_search_params(args: argparse.Namespace) -> SearchParams:
    query = " ".join(filter(None, [args.query, *(args.cuisine or [])])).strip()
    return SearchParams(
        query=query or "restaurant",
        location=args.location,
        radius=args.radius,
        cuisine=tuple(args.cuisine) if args.cuisine else None,
        price_range=parse_price_tiers(args.price),
        rating=args.min_rating,
        open_now=True if args.open_now else None,
        max_results=args.max_results,
    )


def run_search(aggregator: SearchAggregator, args: argparse.Namespace) -> int:
    params = build_search_params(args)
    if args.provider and len(args.provider) == 1:
        result = aggregator.search_with_tool(args.provider[0], params)
    else:
        result = aggregator.search_with_multiple_tools(args.provider or aggregator.available_tools(), params)

    if args.rank:
        print_rankings(rank_restaurants(result.restaurants), result)
    else:
        print_results(result)
    return 0


def run_recommend(agent: RecommendationAgent, args: argparse.Namespace) -> int:
    result = agent.get_recommendations(args.message, max_results=args.max_results)
    print_recommendations(result)
    return 0


def run_status(aggregator: SearchAggregator, agent: RecommendationAgent) -> int:
    print(f"Available tools: {', '.join(aggregator.available_tools())}")
    statuses = aggregator.test_all_connections()
    for name, ok in statuses.items():
        print(f"  {name}: {'ok' if ok else 'unreachable'}")
    print(f"Language model: {'ok' if agent.test_connection() else 'unavailable'}")
    return 0 if any(statuses.values()) else 1


def _format_restaurant(index: int, restaurant: Restaurant) -> List[str]:
    lines = [
        f"{index}. {restaurant.name}",
        f"   {restaurant.address}" + (f", {restaurant.city}" if restaurant.city else ""),
        f"   {restaurant.rating:g}/5 ({restaurant.review_count} reviews)  {restaurant.price_range.value}",
        f"   {', '.join(restaurant.cuisine)}  [{restaurant.source.value}]",
    ]
    if restaurant.phone:
        lines.append(f"   {restaurant.phone}")
    if restaurant.website:
        lines.append(f"   {restaurant.website}")
    return lines


def print_results(result: SearchResult) -> None:
    if not result.restaurants:
        print("No restaurants found.")
        return
    print(f"Found {result.total_results} restaurants in {result.search_time_ms}ms:\n")
    for index, restaurant in enumerate(result.restaurants, start=1):
        print("\n".join(_format_restaurant(index, restaurant)))
        print()


def print_rankings(rankings: Sequence[RestaurantRanking], result: SearchResult) -> None:
    if not rankings:
        print("No restaurants found.")
        return
    print(f"Ranked {len(rankings)} restaurants (search took {result.search_time_ms}ms):\n")
    for index, ranking in enumerate(rankings, start=1):
        lines = _format_restaurant(index, ranking.restaurant)
        lines[0] += f"  score={ranking.score:.3f}"
        print("\n".join(lines))
        for factor in ranking.factors:
            print(f"     - {factor.name} ({factor.weight:.2f} x {factor.score:.2f}): {factor.description}")
        print()


def print_recommendations(result: RecommendationResult) -> None:
    if not result.recommendations:
        print("No restaurants found.")
    for index, ranking in enumerate(result.recommendations, start=1):
        lines = _format_restaurant(index, ranking.restaurant)
        lines[0] += f"  score={ranking.score:.3f}"
        print("\n".join(lines))
    print(f"\n{result.reasoning}\n")
    print(f"Confidence: {result.confidence:.0%}")
    if result.alternatives:
        print("Alternatives: " + ", ".join(r.restaurant.name for r in result.alternatives))
    for step in result.next_steps:
        print(f"- {step}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Find and rank restaurants across search providers")
    subparsers = parser.add_subparsers(dest="command", required=True)

    search = subparsers.add_parser("search", help="Search restaurants")
    search.add_argument("--query", dest="query", default="", help="What to look for, e.g. 'pizza'")
    search.add_argument("--location", dest="location", required=True, help="City or area, e.g. 'Austin, TX'")
    search.add_argument(
        "--provider",
        dest="provider",
        action="append",
        help="Provider to query (google, yelp, serpapi); repeat for several, default all",
    )
    search.add_argument("--cuisine", dest="cuisine", action="append", help="Cuisine filter; repeatable")
    search.add_argument("--price", dest="price", action="append", choices=PRICE_CHOICES, help="Price tier; repeatable")
    search.add_argument("--radius", dest="radius", type=float, help="Search radius in miles")
    search.add_argument("--min-rating", dest="min_rating", type=float, help="Minimum rating (1-5)")
    search.add_argument("--open-now", dest="open_now", action="store_true", help="Only places open now")
    search.add_argument("--max-results", dest="max_results", type=positive_int, default=10, help="Maximum results per provider")
    search.add_argument("--rank", dest="rank", action="store_true", help="Rank results and show the score breakdown")

    recommend = subparsers.add_parser("recommend", help="Ask for recommendations in plain language")
    recommend.add_argument("message", help="e.g. 'cheap italian dinner in Boston, MA'")
    recommend.add_argument("--max-results", dest="max_results", type=positive_int, default=5)

    subparsers.add_parser("status", help="Check provider connections")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level)

    try:
        aggregator = build_aggregator(settings)
        if args.command == "search":
            return run_search(aggregator, args)
        agent = RecommendationAgent.from_settings(aggregator, settings)
        if args.command == "recommend":
            return run_recommend(agent, args)
        return run_status(aggregator, agent)
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        raise SystemExit(2) from exc
    except UnknownProviderError as exc:
        logger.error("%s", exc)
        raise SystemExit(2) from exc
    except Exception as exc:  # noqa: BLE001
        logger.error("Search failed: %s", exc, exc_info=True)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    raise SystemExit(main())
