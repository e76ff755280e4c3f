import pytest

from foodfinder.agent.recommender import RecommendationAgent
from foodfinder.core.aggregator import SearchAggregator, UnknownProviderError
from foodfinder.core.models import DataSource, PriceRange, Restaurant, SearchResult
from foodfinder.jobs import search_server


class FakeAggregator(SearchAggregator):
    def __init__(self, restaurants=()):
        super().__init__()
        self.restaurants = tuple(restaurants)
        self.calls = []

    def available_tools(self):
        return ["yelp", "google"]

    def test_all_connections(self):
        return {"yelp": True, "google": False}

    def search_all(self, params):
        self.calls.append(("all", params))
        return SearchResult(self.restaurants, len(self.restaurants), params, 7)

    def search_with_tool(self, name, params):
        if name not in self.available_tools():
            raise UnknownProviderError(f"Tool '{name}' not found. Available tools: yelp, google")
        self.calls.append((name, params))
        return SearchResult(self.restaurants, len(self.restaurants), params, 3)


TONYS = Restaurant(id="yelp_tonys", name="Tony's Pizza", address="123 Main St", source=DataSource.YELP)


@pytest.fixture
def aggregator():
    return FakeAggregator([TONYS])


@pytest.fixture
def client(aggregator):
    return search_server.create_app(aggregator, RecommendationAgent(aggregator)).test_client()


def test_health_endpoint(client):
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.get_json() == {"status": "ok", "providers": ["yelp", "google"]}


def test_provider_status(client):
    response = client.get("/providers/status")
    assert response.get_json()["data"] == {"yelp": True, "google": False}


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"query": "pizza"},
        {"location": "Austin, TX", "rating": "great"},
        {"location": "Austin, TX", "rating": 9},
        {"location": "Austin, TX", "max_results": 0},
        {"location": "Austin, TX", "max_results": "many"},
        {"location": "Austin, TX", "price_range": ["$$$$$$"]},
        {"location": "Austin, TX", "cuisine": [1, 2]},
        {"location": "Austin, TX", "open_now": "yes"},
        {"location": "Austin, TX", "radius": -1},
    ],
)
def test_search_validates_payload(client, payload):
    response = client.post("/search", json=payload)
    assert response.status_code == 400
    assert "error" in response.get_json()


def test_search_builds_params(client, aggregator):
    payload = {
        "query": "pizza",
        "location": "Austin, TX",
        "cuisine": ["italian"],
        "price_range": ["$", "moderate", "budget"],
        "rating": 4,
        "open_now": True,
        "max_results": 5,
    }
    response = client.post("/search", json=payload)

    assert response.status_code == 200
    data = response.get_json()["data"]
    assert data["total_results"] == 1
    assert data["restaurants"][0]["name"] == "Tony's Pizza"
    assert "rankings" not in data

    scope, params = aggregator.calls[0]
    assert scope == "all"
    assert params.query == "pizza"
    assert params.cuisine == ("italian",)
    assert params.price_range == (PriceRange.BUDGET, PriceRange.MODERATE)
    assert params.rating == 4.0
    assert params.open_now is True
    assert params.max_results == 5


def test_search_single_provider_with_ranking(client, aggregator):
    response = client.post("/search", json={"location": "Austin, TX", "provider": "yelp", "rank": True})

    data = response.get_json()["data"]
    assert aggregator.calls[0][0] == "yelp"
    assert data["rankings"][0]["restaurant"]["id"] == "yelp_tonys"
    assert len(data["rankings"][0]["factors"]) == 5


def test_search_unknown_provider(client):
    response = client.post("/search", json={"location": "Austin, TX", "provider": "tripadvisor"})
    assert response.status_code == 400
    assert "not found" in response.get_json()["error"]


def test_search_without_results_reports_message():
    app = search_server.create_app(FakeAggregator())
    response = app.test_client().post("/search", json={"location": "Nowhere"})

    assert response.status_code == 200
    data = response.get_json()["data"]
    assert data["restaurants"] == []
    assert data["message"] == "No restaurants found"


def test_recommendations_require_agent():
    app = search_server.create_app(FakeAggregator())
    response = app.test_client().post("/recommendations", json={"message": "pizza"})
    assert response.status_code == 503


def test_recommendations_validate_message(client):
    assert client.post("/recommendations", json={}).status_code == 400
    assert client.post("/recommendations", json={"message": "pizza", "max_results": -1}).status_code == 400


def test_recommendations(client):
    response = client.post("/recommendations", json={"message": "cheap pizza in Austin, TX", "max_results": 1})

    assert response.status_code == 200
    data = response.get_json()["data"]
    assert data["recommendations"][0]["restaurant"]["name"] == "Tony's Pizza"
    assert data["search_params"]["location"] == "Austin, TX"
    assert data["reasoning"]
    assert data["next_steps"]
