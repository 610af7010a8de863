"""hot-streak strategy: favour numbers drawn most often in a recent window.

Sampling is without replacement, so relative weights stay current after
each pick.
"""

from ticketgen.core.models import (
    MAX_NUMBER,
    MIN_NUMBER,
    StrategyName,
    StrategyResult,
)
from ticketgen.core.sampling import (
    rng_for,
    weighted_sample_without_replacement,
)
from ticketgen.strategies.base import (
    StrategyContext,
    normalize_seed,
    resolve_k,
)
from ticketgen.strategies.metadata import build_metadata
from ticketgen.strategies.stats import DrawStats

HOT_STREAK_DEFAULT_WINDOW = 120
MIN_FREQUENCY_WEIGHT = 0.0001


def hot_streak_strategy(
    context: StrategyContext, stats: DrawStats
) -> StrategyResult:
    seed = normalize_seed(context.seed)
    k = resolve_k(context.k, context.limits)
    window = context.window or HOT_STREAK_DEFAULT_WINDOW

    frequencies = stats.frequencies(window)
    pool = list(range(MIN_NUMBER, MAX_NUMBER + 1))
    weights = [
        float(frequencies.get(n, 0)) or MIN_FREQUENCY_WEIGHT for n in pool
    ]
    numbers = sorted(
        weighted_sample_without_replacement(
            pool, weights, k, rng_for(f"{seed}:hot")
        )
    )

    average_frequency = sum(frequencies.get(n, 0) for n in numbers) / len(
        numbers
    )
    top_hits = [
        {"number": n, "frequency": frequencies.get(n, 0)}
        for n in sorted(numbers, key=lambda n: -frequencies.get(n, 0))[:3]
    ]
    return StrategyResult(
        numbers=numbers,
        metadata=build_metadata(
            StrategyName.HOT_STREAK,
            seed,
            numbers,
            {
                "window": window,
                "averageFrequency": average_frequency,
                "topHits": top_hits,
            },
            average_frequency,
        ),
    )
