from collections.abc import Sequence

from ticketgen.core.models import StrategyName, StrategyRequest
from ticketgen.core.sampling import rng_for

DEFAULT_STRATEGIES: tuple[StrategyRequest, ...] = (
    StrategyRequest(name=StrategyName.BALANCED, weight=2),
    StrategyRequest(name=StrategyName.UNIFORM, weight=1),
)


def normalize_strategies(
    requests: Sequence[StrategyRequest] | None,
) -> list[StrategyRequest]:
    """Merge duplicate names and drop entries without positive weight.

    Weights of repeated names are summed; a later ``window`` or
    ``k_override`` replaces an earlier one. First-seen order is kept.
    An empty or missing list selects the default mix.
    """
    source = list(requests) if requests else list(DEFAULT_STRATEGIES)
    merged: dict[StrategyName, StrategyRequest] = {}
    for entry in source:
        existing = merged.get(entry.name)
        if existing is None:
            merged[entry.name] = entry.model_copy()
            continue
        existing.weight += entry.weight
        if entry.window is not None:
            existing.window = entry.window
        if entry.k_override is not None:
            existing.k_override = entry.k_override
    return [entry for entry in merged.values() if entry.weight > 0]


def pick_strategy(
    strategies: Sequence[StrategyRequest], roll: float
) -> StrategyRequest:
    if not strategies:
        raise ValueError("strategies must contain at least one entry")
    threshold = roll * sum(entry.weight for entry in strategies)
    for entry in strategies:
        threshold -= entry.weight
        if threshold <= 0:
            return entry
    return strategies[-1]


class StrategySelector:
    """Weighted roulette over normalized strategies, seeded per batch."""

    def __init__(self, strategies: Sequence[StrategyRequest], seed: str):
        if not strategies:
            raise ValueError("strategies must contain at least one entry")
        for entry in strategies:
            if entry.weight <= 0:
                raise ValueError(
                    f"strategy '{entry.name.value}' has non-positive weight"
                )
        self.strategies = list(strategies)
        self._rng = rng_for(f"{seed}:batch")

    def next(self) -> StrategyRequest:
        return pick_strategy(self.strategies, self._rng.random())
