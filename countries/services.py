import asyncio
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

import aiohttp
from django.conf import settings
from django.db import DEFAULT_DB_ALIAS, DatabaseError, transaction
from django.utils import timezone

from . import metadata
from .exceptions import StorageError, UpstreamUnavailable
from .gdp import estimate_gdp
from .image_utils import generate_summary_image
from .models import Country, normalize_name
from .serializers import UpstreamCountrySerializer

logger = logging.getLogger(__name__)

COUNTRIES_SOURCE = "countries"
EXCHANGE_RATES_SOURCE = "exchange_rates"


@dataclass
class RefreshResult:
    created: int
    updated: int
    skipped: int
    total: int
    last_refreshed_at: datetime
    countries: list = field(default_factory=list)
    image_path: Optional[str] = None


# --- Async Fetchers --- #
async def fetch_json(session, url, source):
    """GET ``url`` and decode its JSON body; any failure names ``source``."""
    try:
        async with session.get(url) as response:
            if not 200 <= response.status < 300:
                raise UpstreamUnavailable(source, url, f"HTTP {response.status}")
            return await response.json(content_type=None)
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
        raise UpstreamUnavailable(source, url, str(e) or e.__class__.__name__) from e


async def fetch_countries(session):
    url = settings.COUNTRIES_API_URL
    data = await fetch_json(session, url, COUNTRIES_SOURCE)
    if not isinstance(data, list):
        raise UpstreamUnavailable(COUNTRIES_SOURCE, url, "expected a JSON array")
    return data


async def fetch_exchange_rates(session):
    """Returns currency code -> units per USD."""
    url = settings.EXCHANGE_RATES_API_URL
    data = await fetch_json(session, url, EXCHANGE_RATES_SOURCE)
    rates = data.get("rates") if isinstance(data, dict) else None
    if not isinstance(rates, dict):
        raise UpstreamUnavailable(EXCHANGE_RATES_SOURCE, url, "missing 'rates' object")
    return {
        code: float(rate)
        for code, rate in rates.items()
        if isinstance(rate, (int, float)) and not isinstance(rate, bool)
    }


async def fetch_data_concurrently():
    """Fetch the countries feed and the exchange rates concurrently."""
    timeout = aiohttp.ClientTimeout(total=settings.EXTERNAL_TIMEOUT)
    async with aiohttp.ClientSession(timeout=timeout) as session:
        results = await asyncio.gather(
            fetch_countries(session),
            fetch_exchange_rates(session),
            return_exceptions=True,
        )
    # countries failure wins when both sources are down
    for result in results:
        if isinstance(result, BaseException):
            raise result
    countries_data, exchange_rates = results
    return countries_data, exchange_rates


def fetch_upstream():
    return asyncio.run(fetch_data_concurrently())


# --- Single-flight guard --- #
_refresh_locks = {}
_refresh_locks_guard = threading.Lock()


def refresh_lock(alias=DEFAULT_DB_ALIAS):
    """One lock per database alias; a refresh cycle holds it end to end."""
    with _refresh_locks_guard:
        return _refresh_locks.setdefault(alias, threading.Lock())


# --- Reconciliation --- #
def resolve_currency_code(currencies):
    """Only the first listed currency is used, even for multi-currency countries."""
    if not isinstance(currencies, list) or not currencies:
        return None
    first = currencies[0]
    if not isinstance(first, dict):
        return None
    return first.get("code") or None


def resolve_exchange_rate(currency_code, exchange_rates):
    if not currency_code:
        return None
    rate = exchange_rates.get(currency_code)
    if rate is None or rate <= 0:
        return None
    return rate


def upsert_country(data, exchange_rates, refreshed_at, rng=None):
    """Insert or overwrite one country keyed by case-insensitive name."""
    currency_code = resolve_currency_code(data.get("currencies"))
    exchange_rate = resolve_exchange_rate(currency_code, exchange_rates)
    population = data["population"]
    estimated_gdp = estimate_gdp(population, exchange_rate, rng=rng)
    capital = data.get("capital") or None
    region = data.get("region") or None
    flag_url = data.get("flag") or None

    country = Country.objects.filter(name_key=normalize_name(data["name"])).first()
    if country is None:
        country = Country.objects.create(
            name=data["name"],
            capital=capital,
            region=region,
            population=population,
            currency_code=currency_code,
            exchange_rate=exchange_rate,
            estimated_gdp=estimated_gdp,
            flag_url=flag_url,
            last_refreshed_at=refreshed_at,
        )
        return country, True

    country.capital = capital
    country.region = region
    country.population = population
    country.currency_code = currency_code
    country.exchange_rate = exchange_rate
    country.estimated_gdp = estimated_gdp
    country.flag_url = flag_url
    country.last_refreshed_at = refreshed_at
    country.save(update_fields=[
        "capital",
        "region",
        "population",
        "currency_code",
        "exchange_rate",
        "estimated_gdp",
        "flag_url",
        "last_refreshed_at",
    ])
    return country, False


def _record_label(raw):
    if isinstance(raw, dict):
        return raw.get("name")
    return raw


# --- Core Refresh Function --- #
def refresh_country_data(*, fetch=None, rng=None, now=None):
    """
    Runs one reconciliation cycle.

    Both upstream sources are fetched before anything is written; if either
    fails, ``UpstreamUnavailable`` propagates and storage is untouched.
    Country upserts and the last-refreshed timestamp commit together. The
    summary image is rendered after commit and its failure is only logged.
    """
    fetch = fetch or fetch_upstream

    with refresh_lock():
        logger.info("Starting country refresh")
        try:
            countries_data, exchange_rates = fetch()
        except UpstreamUnavailable as e:
            logger.warning("Refresh aborted, upstream %s unavailable: %s", e.source, e)
            raise
        logger.info(
            "Fetched %d countries and %d exchange rates",
            len(countries_data), len(exchange_rates),
        )

        refreshed_at = now or timezone.now()
        reconciled = {}
        created = updated = skipped = 0

        try:
            with transaction.atomic():
                for raw in countries_data:
                    serializer = UpstreamCountrySerializer(data=raw)
                    if not serializer.is_valid():
                        skipped += 1
                        logger.debug("Skipping country %r: %s", _record_label(raw), serializer.errors)
                        continue

                    country, was_created = upsert_country(
                        serializer.validated_data, exchange_rates, refreshed_at, rng=rng
                    )
                    if was_created:
                        created += 1
                    else:
                        updated += 1
                    reconciled[country.name_key] = country

                metadata.set_last_refreshed(refreshed_at)
                total = Country.objects.count()
        except DatabaseError as e:
            logger.error("Refresh rolled back, storage failure: %s", e)
            raise StorageError(f"Could not persist refreshed countries: {e}") from e

        logger.info(
            "Refresh committed: %d created, %d updated, %d skipped, %d total",
            created, updated, skipped, total,
        )

        countries = list(reconciled.values())
        try:
            image_path = generate_summary_image(countries, refreshed_at)
        except Exception:
            # the refresh already committed; the image is a side effect
            logger.exception("Could not write summary image")
            image_path = None

    return RefreshResult(
        created=created,
        updated=updated,
        skipped=skipped,
        total=total,
        last_refreshed_at=refreshed_at,
        countries=countries,
        image_path=image_path,
    )
