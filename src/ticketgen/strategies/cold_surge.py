"""cold-surge strategy: favour numbers that have been absent the longest."""

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

# Numbers never seen in the history get a large fixed reward.
NULL_RECENCY_REWARD = 50
MIN_RECENCY_WEIGHT = 1


def _recency_weight(contests_since_last: int | None) -> int:
    if contests_since_last is None:
        return NULL_RECENCY_REWARD
    return max(contests_since_last, MIN_RECENCY_WEIGHT)


def cold_surge_strategy(
    context: StrategyContext, stats: DrawStats
) -> StrategyResult:
    seed = normalize_seed(context.seed)
    k = resolve_k(context.k, context.limits)

    recency = stats.contests_since_last()
    pool = list(range(MIN_NUMBER, MAX_NUMBER + 1))
    weights = [float(_recency_weight(recency.get(n))) for n in pool]
    numbers = sorted(
        weighted_sample_without_replacement(
            pool, weights, k, rng_for(f"{seed}:cold")
        )
    )

    recency_sample = [
        {
            "number": n,
            "contestsSinceLast": recency.get(n),
            "weight": _recency_weight(recency.get(n)),
        }
        for n in numbers
    ]
    average_delay = sum(
        NULL_RECENCY_REWARD if recency.get(n) is None else recency[n]
        for n in numbers
    ) / len(numbers)
    return StrategyResult(
        numbers=numbers,
        metadata=build_metadata(
            StrategyName.COLD_SURGE,
            seed,
            numbers,
            {"averageDelay": average_delay, "recencySample": recency_sample},
            average_delay,
        ),
    )
