import logging

from foodfinder.core import config

ENV_KEYS = (
    "GOOGLE_API_KEY",
    "YELP_API_KEY",
    "SERPAPI_API_KEY",
    "OPENAI_API_KEY",
    "OPENAI_MODEL",
    "PROVIDER_TIMEOUT",
    "GOOGLE_FETCH_DETAILS",
    "SEARCH_MAX_WORKERS",
    "DEFAULT_LOCATION",
    "LOG_LEVEL",
    "PORT",
)


def setup_function(function):
    config.get_settings.cache_clear()


def teardown_function(function):
    config.get_settings.cache_clear()


def _clear_env(monkeypatch):
    monkeypatch.setattr(config, "load_dotenv", lambda: False)
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_get_settings_reads_env(monkeypatch):
    _clear_env(monkeypatch)
    monkeypatch.setenv("GOOGLE_API_KEY", "g-key")
    monkeypatch.setenv("YELP_API_KEY", "y-key")
    monkeypatch.setenv("SERPAPI_API_KEY", "s-key")
    monkeypatch.setenv("OPENAI_API_KEY", "o-key")
    monkeypatch.setenv("OPENAI_MODEL", "gpt-test")
    monkeypatch.setenv("PROVIDER_TIMEOUT", "4.5")
    monkeypatch.setenv("GOOGLE_FETCH_DETAILS", "true")
    monkeypatch.setenv("SEARCH_MAX_WORKERS", "3")
    monkeypatch.setenv("DEFAULT_LOCATION", "Austin, TX")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("PORT", "9100")

    settings = config.get_settings()

    assert settings.google_api_key == "g-key"
    assert settings.yelp_api_key == "y-key"
    assert settings.serpapi_api_key == "s-key"
    assert settings.openai_api_key == "o-key"
    assert settings.openai_model == "gpt-test"
    assert settings.provider_timeout == 4.5
    assert settings.google_fetch_details is True
    assert settings.search_max_workers == 3
    assert settings.default_location == "Austin, TX"
    assert settings.log_level == "DEBUG"
    assert settings.port == 9100


def test_get_settings_warns_when_missing(monkeypatch, caplog):
    _clear_env(monkeypatch)

    with caplog.at_level("WARNING"):
        settings = config.get_settings()

    messages = " ".join(caplog.messages)
    assert "GOOGLE_API_KEY is not configured" in messages
    assert "YELP_API_KEY is not configured" in messages
    assert "SERPAPI_API_KEY is not configured" in messages
    assert "OPENAI_API_KEY is not configured" in messages
    assert settings.provider_timeout == 10.0
    assert settings.search_max_workers == 1
    assert settings.google_fetch_details is False
    assert settings.default_location == "San Francisco, CA"
    assert settings.port == 8080


def test_get_settings_is_cached(monkeypatch):
    _clear_env(monkeypatch)
    monkeypatch.setenv("YELP_API_KEY", "first")
    first = config.get_settings()
    monkeypatch.setenv("YELP_API_KEY", "second")

    assert config.get_settings() is first
    assert config.get_settings().yelp_api_key == "first"


def test_search_max_workers_has_floor_of_one(monkeypatch):
    _clear_env(monkeypatch)
    monkeypatch.setenv("SEARCH_MAX_WORKERS", "0")
    assert config.get_settings().search_max_workers == 1


def test_configure_logging_accepts_unknown_level(monkeypatch):
    calls = {}
    monkeypatch.setattr(config.logging, "basicConfig", lambda **kwargs: calls.update(kwargs))

    config.configure_logging("nonsense")

    assert calls["level"] == logging.INFO
    assert calls["format"] == config.LOG_FORMAT
