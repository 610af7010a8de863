"""Number-selection strategies and their registry."""

from ticketgen.strategies.balanced import balanced_strategy
from ticketgen.strategies.base import StrategyContext, StrategyHandler
from ticketgen.strategies.cold_surge import cold_surge_strategy
from ticketgen.strategies.hot_streak import hot_streak_strategy
from ticketgen.strategies.registry import (
    StrategyRegistry,
    build_registry,
    get_strategy_label,
)
from ticketgen.strategies.stats import DrawHistory, DrawStats
from ticketgen.strategies.uniform import uniform_strategy

__all__ = [
    "DrawHistory",
    "DrawStats",
    "StrategyContext",
    "StrategyHandler",
    "StrategyRegistry",
    "balanced_strategy",
    "build_registry",
    "cold_surge_strategy",
    "get_strategy_label",
    "hot_streak_strategy",
    "uniform_strategy",
]
