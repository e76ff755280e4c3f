from unittest.mock import patch

import pytest

from foodfinder.core.config import ConfigError, Settings
from foodfinder.core.models import DataSource, PriceRange, Restaurant, SearchResult
from foodfinder.jobs import search_cli

TONYS = Restaurant(
    id="yelp_tonys",
    name="Tony's Pizza",
    address="123 Main St",
    city="Springfield",
    phone="555-0100",
    source=DataSource.YELP,
)


class FakeAggregator:
    def __init__(self, restaurants=(TONYS,)):
        self.restaurants = tuple(restaurants)
        self.calls = []

    def available_tools(self):
        return ["yelp", "google"]

    def test_all_connections(self):
        return {"yelp": True, "google": False}

    def search_with_tool(self, name, params):
        self.calls.append(("one", name, params))
        return SearchResult(self.restaurants, len(self.restaurants), params, 3)

    def search_with_multiple_tools(self, names, params):
        self.calls.append(("many", list(names), params))
        return SearchResult(self.restaurants, len(self.restaurants), params, 9)

    def search_all(self, params):
        return self.search_with_multiple_tools(self.available_tools(), params)


@pytest.fixture
def fake_aggregator(monkeypatch):
    aggregator = FakeAggregator()
    monkeypatch.setattr(search_cli, "get_settings", lambda: Settings(yelp_api_key="y"))
    monkeypatch.setattr(search_cli, "configure_logging", lambda level: None)
    monkeypatch.setattr(search_cli, "build_aggregator", lambda settings: aggregator)
    return aggregator


def test_build_parser_search_arguments():
    args = search_cli.build_parser().parse_args(
        [
            "search",
            "--location",
            "Austin, TX",
            "--query",
            "tacos",
            "--cuisine",
            "mexican",
            "--price",
            "budget",
            "--price",
            "moderate",
            "--min-rating",
            "4",
            "--open-now",
        ]
    )
    params = search_cli.build_search_params(args)

    assert params.query == "tacos mexican"
    assert params.location == "Austin, TX"
    assert params.cuisine == ("mexican",)
    assert params.price_range == (PriceRange.BUDGET, PriceRange.MODERATE)
    assert params.rating == 4.0
    assert params.open_now is True
    assert params.max_results == 10


def test_search_queries_all_providers(fake_aggregator, capsys):
    assert search_cli.main(["search", "--location", "Springfield, IL"]) == 0

    kind, names, params = fake_aggregator.calls[0]
    assert kind == "many"
    assert names == ["yelp", "google"]
    assert params.query == "restaurant"
    out = capsys.readouterr().out
    assert "1. Tony's Pizza" in out
    assert "555-0100" in out


def test_search_single_provider_ranked(fake_aggregator, capsys):
    assert search_cli.main(["search", "--location", "Springfield, IL", "--provider", "yelp", "--rank"]) == 0

    assert fake_aggregator.calls[0][:2] == ("one", "yelp")
    out = capsys.readouterr().out
    assert "score=" in out
    assert "Data quality: 1/6 fields" in out


def test_search_without_results(fake_aggregator, capsys):
    fake_aggregator.restaurants = ()
    assert search_cli.main(["search", "--location", "Nowhere"]) == 0
    assert "No restaurants found." in capsys.readouterr().out


def test_recommend_prints_reasoning(fake_aggregator, capsys):
    assert search_cli.main(["recommend", "cheap pizza in Springfield, IL"]) == 0

    out = capsys.readouterr().out
    assert "Tony's Pizza" in out
    assert "Confidence:" in out


def test_status_reports_connections(fake_aggregator, capsys):
    assert search_cli.main(["status"]) == 0

    out = capsys.readouterr().out
    assert "yelp: ok" in out
    assert "google: unreachable" in out
    assert "Language model: unavailable" in out


def test_missing_configuration_exits_with_code_two(monkeypatch):
    monkeypatch.setattr(search_cli, "get_settings", lambda: Settings())
    monkeypatch.setattr(search_cli, "configure_logging", lambda level: None)

    def fail(settings):
        raise ConfigError("No search providers configured")

    monkeypatch.setattr(search_cli, "build_aggregator", fail)

    with pytest.raises(SystemExit) as excinfo:
        search_cli.main(["status"])
    assert excinfo.value.code == 2


def test_unexpected_failure_exits_with_code_one(fake_aggregator):
    with patch.object(fake_aggregator, "search_with_multiple_tools", side_effect=RuntimeError("kaboom")) as mock_search:
        with pytest.raises(SystemExit) as excinfo:
            search_cli.main(["search", "--location", "Springfield, IL"])

    mock_search.assert_called_once()
    assert excinfo.value.code == 1


@pytest.mark.parametrize("value", ["0", "-1", "many"])
def test_max_results_must_be_positive(value, capsys):
    with pytest.raises(SystemExit) as excinfo:
        search_cli.build_parser().parse_args(["search", "--location", "Austin, TX", "--max-results", value])
    assert excinfo.value.code == 2
    assert "--max-results" in capsys.readouterr().err
