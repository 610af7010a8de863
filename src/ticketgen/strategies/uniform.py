from ticketgen.core.models import (
    MAX_NUMBER,
    MIN_NUMBER,
    StrategyName,
    StrategyResult,
)
from ticketgen.core.sampling import rng_for, sample_unique_numbers
from ticketgen.strategies.base import (
    StrategyContext,
    normalize_seed,
    resolve_k,
)
from ticketgen.strategies.metadata import build_metadata


def uniform_strategy(context: StrategyContext) -> StrategyResult:
    seed = normalize_seed(context.seed)
    k = resolve_k(context.k, context.limits)
    numbers = sample_unique_numbers(
        rng_for(seed), (MIN_NUMBER, MAX_NUMBER), k
    )
    return StrategyResult(
        numbers=numbers,
        metadata=build_metadata(
            StrategyName.UNIFORM, seed, numbers, {"source": "uniform"}
        ),
    )
