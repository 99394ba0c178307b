"""
Shared pytest fixtures for the country snapshot tests.

Upstream HTTP is never hit: refresh tests inject a fake ``fetch`` callable,
fetcher tests drive a fake aiohttp-like session.
"""
from datetime import datetime, timezone

import aiohttp
import pytest

from countries.exceptions import UpstreamUnavailable


# ============================================================================
# Environment Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def image_path(tmp_path, settings):
    """Keep the rendered summary image out of the project tree."""
    path = tmp_path / "cache" / "summary.png"
    settings.SUMMARY_IMAGE_PATH = str(path)
    return path


@pytest.fixture
def refreshed_at():
    return datetime(2025, 10, 22, 12, 30, 0, tzinfo=timezone.utc)


# ============================================================================
# Data Fixtures
# ============================================================================

@pytest.fixture
def sample_countries():
    return [
        {
            "name": "Nigeria",
            "capital": "Abuja",
            "region": "Africa",
            "population": 206139589,
            "flag": "https://flagcdn.com/ng.svg",
            "currencies": [{"code": "NGN", "name": "Nigerian naira", "symbol": "₦"}],
        },
        {
            "name": "Ghana",
            "capital": "Accra",
            "region": "Africa",
            "population": 31072945,
            "flag": "https://flagcdn.com/gh.svg",
            "currencies": [{"code": "GHS", "name": "Ghanaian cedi", "symbol": "₵"}],
        },
        {
            "name": "France",
            "capital": "Paris",
            "region": "Europe",
            "population": 67391582,
            "flag": "https://flagcdn.com/fr.svg",
            "currencies": [{"code": "EUR", "name": "Euro", "symbol": "€"}],
        },
        {
            "name": "Antarctica",
            "region": "Polar",
            "population": 1000,
            "flag": "https://flagcdn.com/aq.svg",
        },
    ]


@pytest.fixture
def sample_rates():
    return {"NGN": 1600.23, "GHS": 15.34, "EUR": 0.92, "USD": 1.0}


@pytest.fixture
def make_fetch():
    """Build a ``fetch`` callable returning a fixed upstream snapshot."""
    def _make(countries, rates):
        def fetch():
            return countries, rates
        return fetch
    return _make


@pytest.fixture
def failing_fetch():
    def fetch():
        raise UpstreamUnavailable("countries", "https://restcountries.test/all", "HTTP 502")
    return fetch


# ============================================================================
# Fake aiohttp session
# ============================================================================

class FakeResponse:
    def __init__(self, status=200, payload=None, error=None):
        self.status = status
        self._payload = payload
        self._error = error

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def json(self, content_type="application/json"):
        if self._error is not None:
            raise self._error
        return self._payload


class FakeSession:
    """Maps URL -> FakeResponse, or -> exception raised by ``get``."""

    def __init__(self, routes, **kwargs):
        self.routes = routes
        self.kwargs = kwargs
        self.requested = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    def get(self, url, **kwargs):
        self.requested.append(url)
        route = self.routes[url]
        if isinstance(route, BaseException):
            raise route
        return route


@pytest.fixture
def upstream_urls(settings):
    settings.COUNTRIES_API_URL = "https://restcountries.test/v2/all"
    settings.EXCHANGE_RATES_API_URL = "https://rates.test/v6/latest/USD"
    return settings.COUNTRIES_API_URL, settings.EXCHANGE_RATES_API_URL


@pytest.fixture
def fake_session_factory(monkeypatch):
    """Route ``aiohttp.ClientSession(...)`` to a FakeSession over ``routes``."""
    created = []

    def install(routes):
        def factory(**kwargs):
            session = FakeSession(routes, **kwargs)
            created.append(session)
            return session
        monkeypatch.setattr(aiohttp, "ClientSession", factory)
        return created

    return install


@pytest.fixture
def fake_response():
    return FakeResponse


@pytest.fixture
def fake_session():
    return FakeSession
