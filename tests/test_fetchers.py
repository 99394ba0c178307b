"""Tests for the upstream fetchers in countries.services."""
import asyncio

import aiohttp
import pytest

from countries import services
from countries.exceptions import UpstreamUnavailable


def test_fetch_countries_returns_list(upstream_urls, fake_session, fake_response, sample_countries):
    countries_url, _ = upstream_urls
    session_routes = {countries_url: fake_response(payload=sample_countries)}
    data = asyncio.run(services.fetch_countries(fake_session(session_routes)))

    assert data == sample_countries


@pytest.mark.parametrize(
    "route",
    [
        "non_2xx",
        "malformed_json",
        "wrong_shape",
        "connection_error",
        "timeout",
    ],
)
def test_fetch_countries_failures_name_the_source(route, upstream_urls, fake_session, fake_response):
    countries_url, _ = upstream_urls
    routes = {
        "non_2xx": fake_response(status=502, payload={"message": "bad gateway"}),
        "malformed_json": fake_response(error=ValueError("Expecting value")),
        "wrong_shape": fake_response(payload={"status": 404, "message": "Not Found"}),
        "connection_error": aiohttp.ClientConnectionError("connection refused"),
        "timeout": asyncio.TimeoutError(),
    }

    with pytest.raises(UpstreamUnavailable) as excinfo:
        asyncio.run(services.fetch_countries(fake_session({countries_url: routes[route]})))

    assert excinfo.value.source == services.COUNTRIES_SOURCE
    assert excinfo.value.url == countries_url


def test_fetch_exchange_rates_keeps_numeric_rates(upstream_urls, fake_session, fake_response):
    _, rates_url = upstream_urls
    payload = {
        "result": "success",
        "base_code": "USD",
        "rates": {"USD": 1, "NGN": 1600.23, "EUR": 0.92, "BAD": "n/a", "FLAG": True},
    }

    rates = asyncio.run(services.fetch_exchange_rates(fake_session({rates_url: fake_response(payload=payload)})))

    assert rates == {"USD": 1.0, "NGN": 1600.23, "EUR": 0.92}


def test_fetch_exchange_rates_requires_rates_object(upstream_urls, fake_session, fake_response):
    _, rates_url = upstream_urls
    session = fake_session({rates_url: fake_response(payload={"result": "error", "error-type": "quota"})})

    with pytest.raises(UpstreamUnavailable) as excinfo:
        asyncio.run(services.fetch_exchange_rates(session))

    assert excinfo.value.source == services.EXCHANGE_RATES_SOURCE


def test_fetch_data_concurrently_requests_both_sources(
    upstream_urls, fake_session_factory, fake_response, sample_countries, settings
):
    countries_url, rates_url = upstream_urls
    settings.EXTERNAL_TIMEOUT = 7
    sessions = fake_session_factory({
        countries_url: fake_response(payload=sample_countries),
        rates_url: fake_response(payload={"rates": {"NGN": 1600.23}}),
    })

    countries, rates = services.fetch_upstream()

    assert countries == sample_countries
    assert rates == {"NGN": 1600.23}
    assert len(sessions) == 1
    assert sorted(sessions[0].requested) == sorted([countries_url, rates_url])
    assert sessions[0].kwargs["timeout"].total == 7


def test_fetch_data_concurrently_fails_when_rates_fail(
    upstream_urls, fake_session_factory, fake_response, sample_countries
):
    countries_url, rates_url = upstream_urls
    fake_session_factory({
        countries_url: fake_response(payload=sample_countries),
        rates_url: fake_response(status=500),
    })

    with pytest.raises(UpstreamUnavailable) as excinfo:
        services.fetch_upstream()

    assert excinfo.value.source == services.EXCHANGE_RATES_SOURCE


def test_fetch_data_concurrently_reports_countries_when_both_fail(
    upstream_urls, fake_session_factory, fake_response
):
    countries_url, rates_url = upstream_urls
    fake_session_factory({
        countries_url: aiohttp.ClientConnectionError("down"),
        rates_url: fake_response(status=503),
    })

    with pytest.raises(UpstreamUnavailable) as excinfo:
        services.fetch_upstream()

    assert excinfo.value.source == services.COUNTRIES_SOURCE
