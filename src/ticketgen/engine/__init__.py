"""Batch planning, generation and payload assembly."""

from ticketgen.engine.affordability import (
    AffordabilityResolver,
    AffordableSize,
)
from ticketgen.engine.generate import (
    MAX_ATTEMPTS_PER_TICKET,
    LoggingMetricsSink,
    MetricsSink,
    generate_batch,
    generate_ticket,
)
from ticketgen.engine.metrics import MetricsAccumulator
from ticketgen.engine.payload import (
    assemble_result,
    build_ticket_payload,
    summarize_ticket_breakdown,
)
from ticketgen.engine.planner import BudgetPlan, plan_budget
from ticketgen.engine.selector import (
    DEFAULT_STRATEGIES,
    StrategySelector,
    normalize_strategies,
    pick_strategy,
)

__all__ = [
    "DEFAULT_STRATEGIES",
    "MAX_ATTEMPTS_PER_TICKET",
    "AffordabilityResolver",
    "AffordableSize",
    "BudgetPlan",
    "LoggingMetricsSink",
    "MetricsAccumulator",
    "MetricsSink",
    "StrategySelector",
    "assemble_result",
    "build_ticket_payload",
    "generate_batch",
    "generate_ticket",
    "normalize_strategies",
    "pick_strategy",
    "plan_budget",
    "summarize_ticket_breakdown",
]
