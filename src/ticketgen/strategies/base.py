from collections.abc import Callable
from dataclasses import dataclass, field

from ticketgen.core.models import BettingLimits, StrategyResult
from ticketgen.pricing.limits import DEFAULT_BETTING_LIMITS


@dataclass(frozen=True)
class StrategyContext:
    seed: str
    k: int | None = None
    window: int | None = None
    limits: BettingLimits = field(default=DEFAULT_BETTING_LIMITS)


StrategyHandler = Callable[[StrategyContext], StrategyResult]


def normalize_seed(seed: str) -> str:
    normalized = seed.strip() if isinstance(seed, str) else ""
    if not normalized:
        raise ValueError("seed must be a non-empty string")
    return normalized


def resolve_k(k: int | None, limits: BettingLimits) -> int:
    if k is None:
        return limits.default_dezena_count
    if (
        isinstance(k, bool)
        or not isinstance(k, int)
        or not limits.min_dezena_count <= k <= limits.max_dezena_count
    ):
        raise ValueError(
            f"k={k!r} outside [{limits.min_dezena_count}, "
            f"{limits.max_dezena_count}]"
        )
    return k
