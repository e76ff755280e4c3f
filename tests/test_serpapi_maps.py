import pytest

from foodfinder.core.models import SearchParams
from foodfinder.vendors import serpapi_maps


class DummySearch:
    payload = {}
    instances = []

    def __init__(self, params):
        self.params = params
        self.timeout = None
        DummySearch.instances.append(self)

    def get_dict(self):
        return self.payload


@pytest.fixture(autouse=True)
def patch_search(monkeypatch):
    DummySearch.payload = {}
    DummySearch.instances = []
    monkeypatch.setattr(serpapi_maps, "GoogleSearch", DummySearch)
    return DummySearch


RESULT = {
    "title": "Sushi Zen",
    "place_id": "serp-1",
    "address": "9 Elm St, Springfield, IL 62702",
    "rating": 4.7,
    "reviews": 312,
}


def test_build_serpapi_params():
    params = SearchParams(query="restaurant", location="Springfield, IL", cuisine=("sushi",))
    built = serpapi_maps.build_serpapi_params(params, "key")

    assert built == {
        "engine": "google_maps",
        "q": "sushi restaurant in Springfield, IL",
        "api_key": "key",
        "type": "search",
    }


def test_fetch_sets_timeout_and_returns_payload(patch_search):
    patch_search.payload = {"local_results": [RESULT]}
    data = serpapi_maps.fetch_from_serpapi({"q": "sushi"}, timeout=7)

    assert data["local_results"][0]["title"] == "Sushi Zen"
    assert patch_search.instances[0].timeout == 7


@pytest.mark.parametrize("payload", [{}, {"error": "Invalid API key."}])
def test_fetch_rejects_empty_or_error_payloads(patch_search, payload):
    patch_search.payload = payload
    with pytest.raises(serpapi_maps.SerpApiError):
        serpapi_maps.fetch_from_serpapi({"q": "sushi"})


def test_extract_items_handles_shapes():
    assert serpapi_maps.extract_items({"local_results": [RESULT]}) == [RESULT]
    assert serpapi_maps.extract_items({"local_results": {"places": [RESULT]}}) == [RESULT]
    assert serpapi_maps.extract_items({"place_results": RESULT}) == [RESULT]
    assert serpapi_maps.extract_items({"search_metadata": {}}) == []


def test_provider_skips_malformed_items(patch_search, caplog):
    patch_search.payload = {"local_results": [RESULT, "oops", {"rating": 5}]}
    provider = serpapi_maps.SerpApiMapsProvider("key")

    with caplog.at_level("WARNING"):
        result = provider.search_restaurants(SearchParams(query="sushi", location="Springfield, IL"))

    assert [r.name for r in result.restaurants] == ["Sushi Zen"]
    assert "Skipping malformed serpapi result" in " ".join(caplog.messages)


def test_provider_error_payload_raises(patch_search):
    patch_search.payload = {"error": "Invalid API key."}
    provider = serpapi_maps.SerpApiMapsProvider("key")

    with pytest.raises(serpapi_maps.SerpApiError, match="serpapi search failed"):
        provider.search_restaurants(SearchParams(query="sushi", location="Springfield, IL"))


def test_provider_search_logs_one_info_line(patch_search, caplog):
    patch_search.payload = {"local_results": [RESULT]}
    provider = serpapi_maps.SerpApiMapsProvider("key")

    with caplog.at_level("INFO", logger="foodfinder.vendors"):
        provider.search_restaurants(SearchParams(query="sushi", location="Springfield, IL"))

    info = [r for r in caplog.records if r.levelname == "INFO" and r.name.startswith("foodfinder.vendors")]
    assert [r.name for r in info] == ["foodfinder.vendors.base"]
