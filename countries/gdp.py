import random

MULTIPLIER_MIN = 1000
MULTIPLIER_MAX = 2000

# Shared, unseeded: every refresh re-samples the estimate.
_rng = random.Random()


def estimate_gdp(population, exchange_rate, rng=None):
    """
    estimated_gdp = population * random[1000, 2000) / exchange_rate

    Returns None when there is no usable exchange rate. The multiplier is
    drawn per call, so two estimates for the same inputs differ; assert on
    the [population*1000/rate, population*2000/rate] range, not on values.
    """
    if not exchange_rate:
        return None
    rng = rng or _rng
    multiplier = MULTIPLIER_MIN + rng.random() * (MULTIPLIER_MAX - MULTIPLIER_MIN)
    return (population * multiplier) / exchange_rate
