"""Maps every StrategyName to its handler."""

from collections.abc import Mapping
from functools import partial

from ticketgen.core.models import StrategyName
from ticketgen.strategies.balanced import balanced_strategy
from ticketgen.strategies.base import StrategyHandler
from ticketgen.strategies.cold_surge import cold_surge_strategy
from ticketgen.strategies.hot_streak import hot_streak_strategy
from ticketgen.strategies.stats import DrawHistory, DrawStats
from ticketgen.strategies.uniform import uniform_strategy

STRATEGY_LABELS: dict[StrategyName, str] = {
    StrategyName.UNIFORM: "Uniform",
    StrategyName.BALANCED: "Balanced",
    StrategyName.HOT_STREAK: "Hot streak",
    StrategyName.COLD_SURGE: "Cold surge",
}


def get_strategy_label(name: StrategyName | str) -> str:
    try:
        return STRATEGY_LABELS[StrategyName(name)]
    except ValueError:
        return str(name)


class StrategyRegistry:
    """Closed handler table; construction fails if any strategy is missing."""

    def __init__(self, handlers: Mapping[StrategyName, StrategyHandler]):
        missing = [name.value for name in StrategyName if name not in handlers]
        if missing:
            raise ValueError(
                f"No handler registered for strategies: {', '.join(missing)}"
            )
        self._handlers = {StrategyName(k): v for k, v in handlers.items()}

    def get(self, name: StrategyName) -> StrategyHandler:
        return self._handlers[name]

    def names(self) -> list[StrategyName]:
        return list(self._handlers)


def build_registry(
    stats: DrawStats | None = None,
    overrides: Mapping[StrategyName, StrategyHandler] | None = None,
) -> StrategyRegistry:
    source: DrawStats = stats if stats is not None else DrawHistory()
    handlers: dict[StrategyName, StrategyHandler] = {
        StrategyName.UNIFORM: uniform_strategy,
        StrategyName.BALANCED: partial(balanced_strategy, stats=source),
        StrategyName.HOT_STREAK: partial(hot_streak_strategy, stats=source),
        StrategyName.COLD_SURGE: partial(cold_surge_strategy, stats=source),
    }
    handlers.update(overrides or {})
    return StrategyRegistry(handlers)
