"""HTTP entrypoint exposing restaurant search and recommendations."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from flask import Flask, jsonify, request

from foodfinder.agent.recommender import RecommendationAgent, RecommendationResult
from foodfinder.core.aggregator import SearchAggregator, UnknownProviderError, build_aggregator
from foodfinder.core.config import configure_logging, get_settings
from foodfinder.core.models import PriceRange, SearchParams, result_to_dict, to_dict
from foodfinder.core.ranking import rank_restaurants

logger = logging.getLogger(__name__)

NO_RESULTS_MESSAGE = "No restaurants found"


class PayloadError(ValueError):
    """Raised when a request body fails validation."""


def create_app(aggregator: SearchAggregator, agent: Optional[RecommendationAgent] = None) -> Flask:
    app = Flask(__name__)

    # ---------- Routes ----------

    @app.get("/healthz")
    def healthcheck() -> Any:
        return jsonify({"status": "ok", "providers": aggregator.available_tools()}), 200

    @app.get("/providers/status")
    def provider_status() -> Any:
        """Probe every registered provider with a minimal search."""
        statuses = aggregator.test_all_connections()
        return jsonify({"data": statuses}), 200

    @app.post("/search")
    def search() -> Any:
        """
        Run a restaurant search.
        Required JSON fields: location
        Optional: query, cuisine (list), price_range (list), radius, rating,
        open_now, max_results, provider, rank (bool)
        """
        payload: Dict[str, Any] = request.get_json(silent=True) or {}
        try:
            params = search_params_from_payload(payload)
        except PayloadError as exc:
            return jsonify({"error": str(exc)}), 400

        provider = payload.get("provider")
        try:
            if provider:
                result = aggregator.search_with_tool(str(provider), params)
            else:
                result = aggregator.search_all(params)
        except UnknownProviderError as exc:
            return jsonify({"error": str(exc)}), 400
        except Exception as exc:  # noqa: BLE001
            logger.exception("Search failed: %s", exc)
            return jsonify({"error": "search failed"}), 502

        data = result_to_dict(result)
        if payload.get("rank"):
            data["rankings"] = to_dict(rank_restaurants(result.restaurants))
        if not result.restaurants:
            data["message"] = NO_RESULTS_MESSAGE
        return jsonify({"data": data}), 200

    @app.post("/recommendations")
    def recommendations() -> Any:
        if agent is None:
            return jsonify({"error": "recommendations are not available"}), 503

        payload: Dict[str, Any] = request.get_json(silent=True) or {}
        message = str(payload.get("message") or "").strip()
        if not message:
            return jsonify({"error": "message is required"}), 400
        try:
            max_results = _positive_int(payload.get("max_results"), "max_results") or 5
        except PayloadError as exc:
            return jsonify({"error": str(exc)}), 400

        try:
            result = agent.get_recommendations(message, max_results=max_results)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Recommendation failed: %s", exc)
            return jsonify({"error": "recommendation failed"}), 502
        return jsonify({"data": recommendation_to_dict(result)}), 200

    return app


# ---------- Internals ----------


def search_params_from_payload(payload: Dict[str, Any]) -> SearchParams:
    location = str(payload.get("location") or "").strip()
    if not location:
        raise PayloadError("missing fields: location")

    cuisine = _string_list(payload.get("cuisine"), "cuisine")
    prices = _string_list(payload.get("price_range"), "price_range")
    tiers = []
    for value in prices or ():
        tier = PriceRange.parse(value)
        if tier is None:
            raise PayloadError(f"unknown price_range value: {value}")
        if tier not in tiers:
            tiers.append(tier)

    rating = _number(payload.get("rating"), "rating")
    if rating is not None and not 1 <= rating <= 5:
        raise PayloadError("rating must be between 1 and 5")

    radius = _number(payload.get("radius"), "radius")
    if radius is not None and radius <= 0:
        raise PayloadError("radius must be positive")

    open_now = payload.get("open_now")
    if open_now is not None and not isinstance(open_now, bool):
        raise PayloadError("open_now must be a boolean")

    return SearchParams(
        query=str(payload.get("query") or "restaurant").strip(),
        location=location,
        radius=radius,
        cuisine=cuisine,
        price_range=tuple(tiers) or None,
        rating=rating,
        open_now=open_now,
        max_results=_positive_int(payload.get("max_results"), "max_results"),
    )


def recommendation_to_dict(result: RecommendationResult) -> Dict[str, Any]:
    data = to_dict(result)
    if not result.recommendations:
        data["message"] = NO_RESULTS_MESSAGE
    return data


def _string_list(value: Any, name: str) -> Optional[Tuple[str, ...]]:
    if value is None:
        return None
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise PayloadError(f"{name} must be a list of strings")
    items = tuple(item.strip() for item in value if item.strip())
    return items or None


def _number(value: Any, name: str) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise PayloadError(f"{name} must be numeric")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise PayloadError(f"{name} must be numeric") from None


def _positive_int(value: Any, name: str) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise PayloadError(f"{name} must be numeric")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise PayloadError(f"{name} must be numeric") from None
    if number <= 0:
        raise PayloadError(f"{name} must be positive")
    return number


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)

    aggregator = build_aggregator(settings)
    agent = RecommendationAgent.from_settings(aggregator, settings)
    app = create_app(aggregator, agent)

    logger.info("[BOOT] Binding on 0.0.0.0:%d", settings.port)
    app.run(host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
