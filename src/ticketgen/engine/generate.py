"""Batch generation: fill planned slots with unique, affordable tickets."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from ticketgen.core.errors import (
    BatchGenerationError,
    PricingError,
    reason_code,
)
from ticketgen.core.models import (
    MAX_NUMBER,
    MIN_NUMBER,
    BatchGenerationResult,
    BettingLimits,
    GenerateBatchRequest,
    PayloadConfig,
    StrategyExecutionSummary,
    StrategyName,
    StrategyRequest,
    StrategyTicket,
    TicketSlot,
    ticket_key,
)
from ticketgen.engine.affordability import (
    AffordabilityResolver,
    AffordableSize,
)
from ticketgen.engine.metrics import MetricsAccumulator
from ticketgen.engine.payload import assemble_result
from ticketgen.engine.planner import BudgetPlan, plan_budget
from ticketgen.engine.selector import StrategySelector, normalize_strategies
from ticketgen.pricing.gateway import PricingGateway, TicketCostCache
from ticketgen.pricing.limits import (
    DEFAULT_BETTING_LIMITS,
    LimitsProvider,
    assert_budget_in_range,
    assert_k_in_range,
)
from ticketgen.strategies.base import StrategyContext
from ticketgen.strategies.registry import StrategyRegistry

logger = logging.getLogger(__name__)

MAX_ATTEMPTS_PER_TICKET = 100
DEFAULT_TIMEOUT_MS = 3_000

Clock = Callable[[], float]


class MetricsSink(Protocol):
    def report(self, name: str, fields: dict[str, Any]) -> None: ...


class LoggingMetricsSink:
    def report(self, name: str, fields: dict[str, Any]) -> None:
        logger.debug("metric %s %s", name, fields)


def report_metric(
    sink: MetricsSink | None, name: str, fields: dict[str, Any]
) -> None:
    """Forward a metric; sink failures are logged and never propagate."""
    if sink is None:
        return
    try:
        sink.report(name, fields)
    except Exception:
        logger.warning("Metric sink failed for %s", name, exc_info=True)


class AttemptStatus(str, Enum):
    SUCCESS = "success"
    DUPLICATE = "duplicate"
    FAILED = "failed"


@dataclass(frozen=True)
class AttemptOutcome:
    status: AttemptStatus
    ticket: StrategyTicket | None = None
    error: str | None = None


def build_strategy_summaries(
    strategies: list[StrategyRequest],
) -> dict[StrategyName, StrategyExecutionSummary]:
    summaries = {
        entry.name: StrategyExecutionSummary(
            name=entry.name, weight=entry.weight
        )
        for entry in strategies
    }
    if StrategyName.UNIFORM not in summaries:
        summaries[StrategyName.UNIFORM] = StrategyExecutionSummary(
            name=StrategyName.UNIFORM, weight=0
        )
    return summaries


@dataclass
class BatchState:
    """Everything one batch accumulates; owned by a single GenerationLoop."""

    budget_cents: int
    min_ticket_cost_cents: int
    summaries: dict[StrategyName, StrategyExecutionSummary]
    tickets: list[StrategyTicket] = field(default_factory=list)
    seen_keys: set[str] = field(default_factory=set)
    metrics: MetricsAccumulator = field(default_factory=MetricsAccumulator)
    warnings: dict[str, None] = field(default_factory=dict)
    budget_consumed_cents: int = 0

    @property
    def budget_remaining_cents(self) -> int:
        return self.budget_cents - self.budget_consumed_cents

    def warn(self, message: str) -> None:
        self.warnings.setdefault(message, None)


class GenerationLoop:
    def __init__(
        self,
        *,
        request: GenerateBatchRequest,
        strategies: list[StrategyRequest],
        default_k: int,
        timeout_ms: int,
        limits: BettingLimits,
        plan: BudgetPlan,
        costs: TicketCostCache,
        registry: StrategyRegistry,
        clock: Clock,
        deadline: float,
    ) -> None:
        self.request = request
        self.strategies = strategies
        self.default_k = default_k
        self.timeout_ms = timeout_ms
        self.limits = limits
        self.plan = plan
        self.costs = costs
        self.registry = registry
        self.clock = clock
        self.deadline = deadline
        self.selector = StrategySelector(strategies, request.seed)
        self.resolver = AffordabilityResolver(costs)
        self.state = BatchState(
            budget_cents=request.budget_cents,
            min_ticket_cost_cents=min(s.cost_cents for s in plan.slots),
            summaries=build_strategy_summaries(strategies),
        )
        uniform = next(
            (s for s in strategies if s.name is StrategyName.UNIFORM), None
        )
        self.uniform_window = (
            uniform.window if uniform and uniform.window else request.window
        )

    def run(self) -> BatchGenerationResult:
        state = self.state
        for slot in self.plan.slots:
            if self.clock() > self.deadline:
                logger.error(
                    "Deadline of %d ms exceeded at slot %d with %d tickets",
                    self.timeout_ms,
                    slot.index,
                    len(state.tickets),
                )
                raise BatchGenerationError(
                    "GENERATION_TIMEOUT",
                    f"deadline of {self.timeout_ms} ms exceeded after "
                    f"{len(state.tickets)} tickets",
                    partial=self.assemble(),
                )
            if state.budget_remaining_cents < state.min_ticket_cost_cents:
                state.warn(
                    f"Remaining budget of {state.budget_remaining_cents} "
                    "cents cannot cover another ticket (minimum "
                    f"{state.min_ticket_cost_cents} cents)"
                )
                break
            self.fill_slot(slot)
        return self.assemble()

    def assemble(self) -> BatchGenerationResult:
        config = PayloadConfig(
            strategies=[entry.model_copy() for entry in self.strategies],
            k=self.default_k,
            window=self.request.window,
            timeout_ms=self.timeout_ms,
            spread_budget=self.request.spread_budget,
        )
        return assemble_result(
            seed=self.request.seed,
            budget_cents=self.request.budget_cents,
            tickets=self.state.tickets,
            plan=self.plan,
            summaries=list(self.state.summaries.values()),
            metrics=self.state.metrics.build(),
            config=config,
            warnings=list(self.state.warnings),
            costs=self.costs,
        )

    def fill_slot(self, slot: TicketSlot) -> StrategyTicket | None:
        state = self.state
        for attempt in range(MAX_ATTEMPTS_PER_TICKET):
            entry = self.selector.next()
            size = self.resolver.resolve(
                entry.k_override,
                slot.k,
                self.default_k,
                state.budget_remaining_cents,
            )
            if size is None:
                logger.warning(
                    "Slot %d skipped: no affordable size with %d cents left",
                    slot.index,
                    state.budget_remaining_cents,
                )
                state.warn(
                    f"No affordable ticket size for slot {slot.index} with "
                    f"{state.budget_remaining_cents} cents remaining"
                )
                return None
            if size.warning:
                state.warn(size.warning)

            summary = state.summaries[entry.name]
            summary.attempts += 1
            seed = (
                f"{self.request.seed}:{slot.index}:"
                f"{entry.name.value}:{attempt}"
            )
            outcome = self.attempt(
                entry.name, seed, size, entry.window or self.request.window
            )
            if outcome.ticket is not None:
                self.accept(slot, outcome.ticket, summary)
                return outcome.ticket
            if outcome.status is AttemptStatus.DUPLICATE:
                logger.debug("Duplicate ticket from %s (%s)", entry.name, seed)
                continue

            summary.failures += 1
            logger.warning(
                "Strategy %s failed for slot %d attempt %d: %s",
                entry.name.value,
                slot.index,
                attempt,
                outcome.error,
            )
            if entry.name is not StrategyName.UNIFORM:
                state.warn(
                    f"Strategy {entry.name.value} failed; "
                    "applying uniform fallback"
                )
                ticket = self.run_fallback(slot, size, attempt)
                if ticket is not None:
                    return ticket

        logger.warning(
            "Slot %d abandoned after %d attempts",
            slot.index,
            MAX_ATTEMPTS_PER_TICKET,
        )
        state.warn(
            "Could not generate a unique ticket after "
            f"{MAX_ATTEMPTS_PER_TICKET} attempts"
        )
        return None

    def run_fallback(
        self, slot: TicketSlot, size: AffordableSize, attempt: int
    ) -> StrategyTicket | None:
        summary = self.state.summaries[StrategyName.UNIFORM]
        for fallback_attempt in range(MAX_ATTEMPTS_PER_TICKET):
            seed = (
                f"{self.request.seed}:{slot.index}:uniform:fallback:"
                f"{attempt}:{fallback_attempt}"
            )
            summary.attempts += 1
            outcome = self.attempt(
                StrategyName.UNIFORM, seed, size, self.uniform_window
            )
            if outcome.ticket is not None:
                logger.debug("Slot %d filled by uniform fallback", slot.index)
                self.accept(slot, outcome.ticket, summary)
                return outcome.ticket
            if outcome.status is AttemptStatus.FAILED:
                summary.failures += 1
                logger.warning(
                    "Uniform fallback failed for slot %d: %s",
                    slot.index,
                    outcome.error,
                )
                return None
        return None

    def attempt(
        self,
        name: StrategyName,
        seed: str,
        size: AffordableSize,
        window: int | None,
    ) -> AttemptOutcome:
        handler = self.registry.get(name)
        context = StrategyContext(
            seed=seed, k=size.k, window=window, limits=self.limits
        )
        try:
            result = handler(context)
        except Exception as exc:
            return AttemptOutcome(
                AttemptStatus.FAILED, error=f"{type(exc).__name__}: {exc}"
            )

        numbers = sorted(result.numbers)
        if (
            len(numbers) != size.k
            or result.metadata.k != size.k
            or len(set(numbers)) != len(numbers)
            or numbers[0] < MIN_NUMBER
            or numbers[-1] > MAX_NUMBER
        ):
            return AttemptOutcome(
                AttemptStatus.FAILED,
                error=f"invalid numbers for k={size.k}: {result.numbers}",
            )
        if ticket_key(numbers) in self.state.seen_keys:
            return AttemptOutcome(AttemptStatus.DUPLICATE)
        return AttemptOutcome(
            AttemptStatus.SUCCESS,
            ticket=StrategyTicket(
                strategy=name,
                numbers=numbers,
                metadata=result.metadata,
                cost_cents=size.cost_cents,
                seed=seed,
            ),
        )

    def accept(
        self,
        slot: TicketSlot,
        ticket: StrategyTicket,
        summary: StrategyExecutionSummary,
    ) -> None:
        state = self.state
        slot.k = ticket.k
        slot.cost_cents = ticket.cost_cents
        state.tickets.append(ticket)
        state.seen_keys.add(ticket.key)
        state.metrics.add(ticket.metadata)
        state.budget_consumed_cents += ticket.cost_cents
        state.min_ticket_cost_cents = min(
            state.min_ticket_cost_cents, ticket.cost_cents
        )
        summary.generated += 1


def _check_overrides(
    strategies: list[StrategyRequest],
    budget_cents: int,
    limits: BettingLimits,
    costs: TicketCostCache,
) -> None:
    for entry in strategies:
        if entry.k_override is None:
            continue
        assert_k_in_range(entry.k_override, limits)
        cost = costs.cost(entry.k_override)
        if cost > budget_cents:
            raise PricingError(
                "BUDGET_BELOW_MIN",
                f"k_override={entry.k_override} for {entry.name.value} "
                f"costs {cost} cents, above the budget of {budget_cents}",
            )


def generate_batch(
    request: GenerateBatchRequest,
    *,
    pricing: PricingGateway,
    limits_provider: LimitsProvider,
    registry: StrategyRegistry,
    metrics_sink: MetricsSink | None = None,
    clock: Clock = time.monotonic,
    default_timeout_ms: int = DEFAULT_TIMEOUT_MS,
) -> BatchGenerationResult:
    """Generate a reproducible batch of unique tickets within the budget.

    Raises PricingError or BatchGenerationError(NO_STRATEGY_AVAILABLE)
    before any ticket is generated, and
    BatchGenerationError(GENERATION_TIMEOUT) carrying ``partial`` when
    the deadline passes mid-batch. Strategy failures never escape.
    """
    started = clock()
    limits = limits_provider.get_betting_limits()

    strategies = normalize_strategies(request.strategies)
    if not strategies:
        raise BatchGenerationError(
            "NO_STRATEGY_AVAILABLE", "no strategy has a positive weight"
        )

    k = request.k if request.k is not None else limits.default_dezena_count
    assert_k_in_range(k, limits)
    assert_budget_in_range(request.budget_cents, limits)
    timeout_ms = request.timeout_ms or default_timeout_ms

    costs = TicketCostCache(pricing)
    _check_overrides(strategies, request.budget_cents, limits, costs)

    logger.info(
        "Generating batch seed=%s budget=%d k=%d strategies=%s spread=%s",
        request.seed,
        request.budget_cents,
        k,
        [entry.name.value for entry in strategies],
        request.spread_budget,
    )
    plan = plan_budget(
        request.budget_cents,
        k,
        spread_budget=request.spread_budget,
        limits=limits,
        pricing=pricing,
        costs=costs,
    )

    loop = GenerationLoop(
        request=request,
        strategies=strategies,
        default_k=k,
        timeout_ms=timeout_ms,
        limits=limits,
        plan=plan,
        costs=costs,
        registry=registry,
        clock=clock,
        deadline=started + timeout_ms / 1000,
    )
    try:
        result = loop.run()
    except BatchGenerationError as err:
        report_metric(
            metrics_sink,
            "batch.timeout",
            {
                "seed": request.seed,
                "reasonCode": reason_code(err),
                "ticketsGenerated": len(loop.state.tickets),
                "plannedTickets": plan.planned_tickets,
            },
        )
        raise

    duration_ms = (clock() - started) * 1000
    logger.info(
        "Batch seed=%s generated %d/%d tickets, cost=%d leftover=%d "
        "in %.1f ms",
        request.seed,
        len(result.tickets),
        plan.planned_tickets,
        result.total_cost_cents,
        result.leftover_cents,
        duration_ms,
    )
    report_metric(
        metrics_sink,
        "batch.generated",
        {
            "seed": request.seed,
            "ticketsGenerated": len(result.tickets),
            "plannedTickets": plan.planned_tickets,
            "totalCostCents": result.total_cost_cents,
            "leftoverCents": result.leftover_cents,
            "warnings": len(result.warnings),
            "durationMs": duration_ms,
        },
    )
    return result


def generate_ticket(
    strategy: StrategyRequest,
    *,
    seed: str,
    registry: StrategyRegistry,
    k: int | None = None,
    window: int | None = None,
    limits: BettingLimits | None = None,
) -> StrategyTicket:
    """Run a single strategy once, outside any batch (cost is 0)."""
    if not seed.strip():
        raise ValueError("seed must not be blank")
    context = StrategyContext(
        seed=seed,
        k=k if k is not None else strategy.k_override,
        window=strategy.window or window,
        limits=limits or DEFAULT_BETTING_LIMITS,
    )
    result = registry.get(strategy.name)(context)
    return StrategyTicket(
        strategy=strategy.name,
        numbers=sorted(result.numbers),
        metadata=result.metadata,
        cost_cents=0,
        seed=seed,
    )
