import logging

import pytest
from helpers import (
    ExplodingSink,
    FakeClock,
    RecordingSink,
    failing_handler,
    scripted_handler,
)
from pydantic import ValidationError

from ticketgen.core.errors import BatchGenerationError, PricingError
from ticketgen.core.models import (
    BatchGenerationResult,
    GenerateBatchRequest,
    StrategyName,
    StrategyRequest,
    StrategyResult,
)
from ticketgen.core.validate import Severity, validate_batch_result
from ticketgen.engine.generate import (
    MAX_ATTEMPTS_PER_TICKET,
    LoggingMetricsSink,
    generate_batch,
    generate_ticket,
)
from ticketgen.pricing.gateway import TablePricingGateway
from ticketgen.pricing.limits import StaticLimitsProvider
from ticketgen.strategies.base import StrategyContext
from ticketgen.strategies.registry import StrategyRegistry, build_registry
from ticketgen.strategies.uniform import uniform_strategy

UNIFORM = StrategyName.UNIFORM
BALANCED = StrategyName.BALANCED


def _run(
    registry: StrategyRegistry | None = None,
    clock: FakeClock | None = None,
    **request_fields,
) -> BatchGenerationResult:
    request_fields.setdefault("seed", "s")
    return generate_batch(
        GenerateBatchRequest(**request_fields),
        pricing=TablePricingGateway(),
        limits_provider=StaticLimitsProvider(),
        registry=registry or build_registry(),
        clock=clock or FakeClock(),
    )


def _errors(result: BatchGenerationResult) -> list[str]:
    return [
        f"{issue.code}: {issue.message}"
        for issue in validate_batch_result(result)
        if issue.severity == Severity.ERROR
    ]


def _summary(result: BatchGenerationResult, name: StrategyName):
    return next(s for s in result.payload.strategies if s.name == name)


def _failing_registry() -> StrategyRegistry:
    return build_registry(
        overrides={name: failing_handler() for name in StrategyName}
    )


class TestBudgetAccounting:
    def test_minimum_budget_single_ticket(self) -> None:
        result = _run(budget_cents=600)
        assert len(result.tickets) == 1
        assert result.tickets[0].k == 6
        assert result.total_cost_cents == 600
        assert result.leftover_cents == 0
        assert result.ticket_cost_cents == 600
        assert result.average_ticket_cost_cents == 600
        assert result.warnings == []
        assert result.payload.version == "1.0"
        assert result.payload.tickets_generated == 1
        assert [e.model_dump() for e in result.ticket_cost_breakdown] == [
            {"k": 6, "cost_cents": 600, "planned": 1, "emitted": 1}
        ]
        assert _errors(result) == []

    def test_two_tickets_are_distinct(self) -> None:
        result = _run(budget_cents=1_200)
        assert len(result.tickets) == 2
        assert result.tickets[0].key != result.tickets[1].key
        assert result.leftover_cents == 0

    def test_leftover_below_ticket_price(self) -> None:
        result = _run(budget_cents=1_500)
        assert len(result.tickets) == 2
        assert result.leftover_cents == 300
        assert result.payload.requested_budget_cents == 1_500

    def test_spread_budget_mixes_sizes(self) -> None:
        result = _run(budget_cents=5_000, spread_budget=True)
        assert [t.k for t in result.tickets] == [7, 6]
        assert [t.cost_cents for t in result.tickets] == [4_200, 600]
        assert result.total_cost_cents == 4_800
        assert result.leftover_cents == 200
        assert result.average_ticket_cost_cents == 2_400
        assert result.ticket_cost_cents == 600
        assert result.payload.config.spread_budget is True
        assert [
            (e.k, e.planned, e.emitted) for e in result.ticket_cost_breakdown
        ] == [(6, 1, 1), (7, 1, 1)]
        assert _errors(result) == []

    def test_override_downgrades_when_budget_runs_short(self) -> None:
        result = _run(
            budget_cents=5_000,
            strategies=[StrategyRequest(name=UNIFORM, k_override=7)],
        )
        assert [t.k for t in result.tickets] == [7, 6]
        assert result.total_cost_cents == 4_800
        assert result.leftover_cents == 200
        assert any("k_override=7" in w for w in result.warnings)
        assert any("cannot cover another ticket" in w for w in result.warnings)
        assert result.warnings[-1] == "Batch generated 2 of 8 planned tickets"
        assert [
            (e.k, e.cost_cents, e.planned, e.emitted)
            for e in result.ticket_cost_breakdown
        ] == [(6, 600, 8, 1), (7, 4_200, 0, 1)]
        assert _errors(result) == []

    def test_total_never_exceeds_budget(self) -> None:
        result = _run(budget_cents=50_000, spread_budget=True, k=7)
        assert result.total_cost_cents <= 50_000
        assert result.leftover_cents == 50_000 - result.total_cost_cents
        assert len({t.key for t in result.tickets}) == len(result.tickets)
        assert _errors(result) == []


class TestStrategyExecution:
    def test_failed_strategy_falls_back_to_uniform(self) -> None:
        registry = build_registry(overrides={BALANCED: failing_handler()})
        result = _run(
            registry,
            budget_cents=1_200,
            strategies=[StrategyRequest(name=BALANCED)],
        )
        assert [t.strategy for t in result.tickets] == [UNIFORM, UNIFORM]
        assert result.tickets[0].seed == "s:0:uniform:fallback:0:0"
        balanced = _summary(result, BALANCED)
        assert (balanced.attempts, balanced.failures, balanced.generated) == (
            2,
            2,
            0,
        )
        uniform = _summary(result, UNIFORM)
        assert uniform.weight == 0
        assert uniform.generated == 2
        assert (
            "Strategy balanced failed; applying uniform fallback"
            in result.warnings
        )
        assert _errors(result) == []

    def test_all_strategies_failing_yields_empty_batch(self) -> None:
        result = _run(
            _failing_registry(),
            budget_cents=1_200,
            strategies=[StrategyRequest(name=UNIFORM)],
        )
        assert result.tickets == []
        assert result.total_cost_cents == 0
        assert result.leftover_cents == 1_200
        assert result.average_ticket_cost_cents == 600
        uniform = _summary(result, UNIFORM)
        assert uniform.attempts == 2 * MAX_ATTEMPTS_PER_TICKET
        assert uniform.failures == 2 * MAX_ATTEMPTS_PER_TICKET
        assert result.warnings[-1] == "Batch generated 0 of 2 planned tickets"
        assert result.payload.metrics.average_sum == 0
        assert _errors(result) == []

    def test_failing_fallback_does_not_raise(self) -> None:
        result = _run(
            _failing_registry(),
            budget_cents=600,
            strategies=[StrategyRequest(name=BALANCED)],
        )
        assert result.tickets == []
        balanced = _summary(result, BALANCED)
        assert balanced.failures == MAX_ATTEMPTS_PER_TICKET

    def test_duplicates_are_retried(self) -> None:
        handler = scripted_handler(
            UNIFORM,
            [[1, 2, 3, 4, 5, 6], [1, 2, 3, 4, 5, 6], [7, 8, 9, 10, 11, 12]],
        )
        result = _run(
            build_registry(overrides={UNIFORM: handler}),
            budget_cents=1_200,
            strategies=[StrategyRequest(name=UNIFORM)],
        )
        assert [t.numbers for t in result.tickets] == [
            [1, 2, 3, 4, 5, 6],
            [7, 8, 9, 10, 11, 12],
        ]
        uniform = _summary(result, UNIFORM)
        assert (uniform.attempts, uniform.failures) == (3, 0)
        assert result.warnings == []

    def test_exhausted_slot_is_skipped(self) -> None:
        handler = scripted_handler(UNIFORM, [[1, 2, 3, 4, 5, 6]])
        result = _run(
            build_registry(overrides={UNIFORM: handler}),
            budget_cents=1_200,
            strategies=[StrategyRequest(name=UNIFORM)],
        )
        assert len(result.tickets) == 1
        assert _summary(result, UNIFORM).attempts == (
            1 + MAX_ATTEMPTS_PER_TICKET
        )
        assert (
            f"Could not generate a unique ticket after "
            f"{MAX_ATTEMPTS_PER_TICKET} attempts" in result.warnings
        )

    def test_wrong_size_output_counts_as_failure(self) -> None:
        handler = scripted_handler(UNIFORM, [[1, 2, 3, 4, 5]])
        result = _run(
            build_registry(overrides={UNIFORM: handler}),
            budget_cents=600,
            strategies=[StrategyRequest(name=UNIFORM)],
        )
        assert result.tickets == []
        assert _summary(result, UNIFORM).failures == MAX_ATTEMPTS_PER_TICKET

    def test_metadata_size_mismatch_counts_as_failure(self) -> None:
        def mislabeled(context: StrategyContext) -> StrategyResult:
            result = uniform_strategy(context)
            metadata = result.metadata.model_copy(update={"k": context.k + 1})
            return StrategyResult(numbers=result.numbers, metadata=metadata)

        result = _run(
            build_registry(overrides={UNIFORM: mislabeled}),
            budget_cents=600,
            strategies=[StrategyRequest(name=UNIFORM)],
        )
        assert result.tickets == []
        assert _summary(result, UNIFORM).failures == MAX_ATTEMPTS_PER_TICKET

    def test_numbers_are_sorted_on_the_ticket(self) -> None:
        handler = scripted_handler(UNIFORM, [[6, 5, 4, 3, 2, 1]])
        result = _run(
            build_registry(overrides={UNIFORM: handler}),
            budget_cents=600,
            strategies=[StrategyRequest(name=UNIFORM)],
        )
        assert result.tickets[0].numbers == [1, 2, 3, 4, 5, 6]

    def test_strategy_window_overrides_request_window(self) -> None:
        seen: list[StrategyContext] = []

        def capture(context: StrategyContext) -> StrategyResult:
            seen.append(context)
            return uniform_strategy(context)

        registry = build_registry(
            overrides={StrategyName.HOT_STREAK: capture, UNIFORM: capture}
        )
        _run(
            registry,
            budget_cents=600,
            window=50,
            strategies=[
                StrategyRequest(name=StrategyName.HOT_STREAK, window=30)
            ],
        )
        _run(
            registry,
            budget_cents=600,
            window=50,
            strategies=[StrategyRequest(name=UNIFORM)],
        )
        assert [context.window for context in seen] == [30, 50]
        assert seen[0].seed == "s:0:hot-streak:0"

    def test_summaries_track_every_requested_strategy(self) -> None:
        result = _run(
            budget_cents=6_000,
            strategies=[
                StrategyRequest(name=UNIFORM, weight=1),
                StrategyRequest(name=StrategyName.COLD_SURGE, weight=1),
            ],
        )
        names = [s.name for s in result.payload.strategies]
        assert names == [UNIFORM, StrategyName.COLD_SURGE]
        generated = sum(s.generated for s in result.payload.strategies)
        assert generated == len(result.tickets) == 10


class TestDeterminism:
    def test_same_request_same_payload(self) -> None:
        first = _run(budget_cents=6_000, seed="repeat", spread_budget=True)
        second = _run(budget_cents=6_000, seed="repeat", spread_budget=True)
        assert first.to_wire() == second.to_wire()

    def test_different_seed_different_tickets(self) -> None:
        first = _run(budget_cents=6_000, seed="one")
        second = _run(budget_cents=6_000, seed="two")
        assert [t.numbers for t in first.tickets] != [
            t.numbers for t in second.tickets
        ]


class TestRejections:
    def test_no_positive_weight(self) -> None:
        with pytest.raises(BatchGenerationError) as exc_info:
            _run(
                budget_cents=600,
                strategies=[StrategyRequest(name=UNIFORM, weight=0)],
            )
        assert exc_info.value.code == "NO_STRATEGY_AVAILABLE"
        assert exc_info.value.partial is None

    @pytest.mark.parametrize(
        ("fields", "code"),
        [
            ({"budget_cents": 599}, "BUDGET_BELOW_MIN"),
            ({"budget_cents": 50_001}, "BUDGET_ABOVE_MAX"),
            ({"budget_cents": 600, "k": 16}, "K_OUT_OF_RANGE"),
            ({"budget_cents": 600, "k": 7}, "BUDGET_BELOW_MIN"),
        ],
    )
    def test_pricing_errors(self, fields: dict, code: str) -> None:
        with pytest.raises(PricingError) as exc_info:
            _run(**fields)
        assert exc_info.value.code == code

    @pytest.mark.parametrize(
        ("k_override", "code"),
        [(8, "BUDGET_BELOW_MIN"), (20, "K_OUT_OF_RANGE")],
    )
    def test_override_checked_before_generation(
        self, k_override: int, code: str
    ) -> None:
        with pytest.raises(PricingError) as exc_info:
            _run(
                budget_cents=5_000,
                strategies=[
                    StrategyRequest(name=UNIFORM, k_override=k_override)
                ],
            )
        assert exc_info.value.code == code

    @pytest.mark.parametrize(
        "fields",
        [
            {"budget_cents": 0, "seed": "s"},
            {"budget_cents": 600, "seed": "   "},
            {"budget_cents": 600, "seed": ""},
        ],
    )
    def test_invalid_request(self, fields: dict) -> None:
        with pytest.raises(ValidationError):
            GenerateBatchRequest(**fields)

    def test_negative_weight_rejected(self) -> None:
        with pytest.raises(ValidationError):
            StrategyRequest(name=UNIFORM, weight=-1)


class TestDeadline:
    def _slow_registry(self, clock: FakeClock) -> StrategyRegistry:
        def slow(context: StrategyContext) -> StrategyResult:
            clock.advance(5)
            return uniform_strategy(context)

        return build_registry(overrides={UNIFORM: slow})

    def test_timeout_returns_partial(self, clock: FakeClock) -> None:
        sink = RecordingSink()
        with pytest.raises(BatchGenerationError) as exc_info:
            generate_batch(
                GenerateBatchRequest(
                    budget_cents=1_800,
                    seed="late",
                    strategies=[StrategyRequest(name=UNIFORM)],
                    timeout_ms=1_000,
                ),
                pricing=TablePricingGateway(),
                limits_provider=StaticLimitsProvider(),
                registry=self._slow_registry(clock),
                metrics_sink=sink,
                clock=clock,
            )
        err = exc_info.value
        assert err.code == "GENERATION_TIMEOUT"
        assert err.partial is not None
        assert len(err.partial.tickets) == 1
        assert err.partial.payload.tickets_generated == 1
        assert err.partial.payload.config.timeout_ms == 1_000
        assert (
            "Batch generated 1 of 3 planned tickets" in err.partial.warnings
        )
        assert _errors(err.partial) == []
        name, fields = sink.events[-1]
        assert name == "batch.timeout"
        assert fields["reasonCode"] == "GENERATION_TIMEOUT"

    def test_default_timeout_applies(self, clock: FakeClock) -> None:
        with pytest.raises(BatchGenerationError) as exc_info:
            generate_batch(
                GenerateBatchRequest(
                    budget_cents=1_800,
                    seed="late",
                    strategies=[StrategyRequest(name=UNIFORM)],
                ),
                pricing=TablePricingGateway(),
                limits_provider=StaticLimitsProvider(),
                registry=self._slow_registry(clock),
                clock=clock,
                default_timeout_ms=4_000,
            )
        partial = exc_info.value.partial
        assert partial is not None
        assert partial.payload.config.timeout_ms == 4_000
        assert len(partial.tickets) == 1

    def test_fast_batch_within_deadline(self, clock: FakeClock) -> None:
        result = _run(clock=clock, budget_cents=1_800, timeout_ms=10)
        assert len(result.tickets) == 3
        assert result.payload.config.timeout_ms == 10


class TestMetricsSink:
    def test_reports_generated_batch(self) -> None:
        sink = RecordingSink()
        result = generate_batch(
            GenerateBatchRequest(budget_cents=1_200, seed="m"),
            pricing=TablePricingGateway(),
            limits_provider=StaticLimitsProvider(),
            registry=build_registry(),
            metrics_sink=sink,
            clock=FakeClock(),
        )
        name, fields = sink.events[-1]
        assert name == "batch.generated"
        assert fields["ticketsGenerated"] == len(result.tickets) == 2
        assert fields["leftoverCents"] == 0

    def test_logging_sink(self, caplog: pytest.LogCaptureFixture) -> None:
        logger_name = "ticketgen.engine.generate"
        with caplog.at_level(logging.DEBUG, logger=logger_name):
            generate_batch(
                GenerateBatchRequest(budget_cents=600, seed="m"),
                pricing=TablePricingGateway(),
                limits_provider=StaticLimitsProvider(),
                registry=build_registry(),
                metrics_sink=LoggingMetricsSink(),
                clock=FakeClock(),
            )
        assert "metric batch.generated" in caplog.text

    def test_sink_failure_is_ignored(self) -> None:
        result = generate_batch(
            GenerateBatchRequest(budget_cents=600, seed="m"),
            pricing=TablePricingGateway(),
            limits_provider=StaticLimitsProvider(),
            registry=build_registry(),
            metrics_sink=ExplodingSink(),
            clock=FakeClock(),
        )
        assert len(result.tickets) == 1


class TestGenerateTicket:
    def test_single_ticket_costs_nothing(
        self, registry: StrategyRegistry
    ) -> None:
        ticket = generate_ticket(
            StrategyRequest(name=UNIFORM), seed="one", registry=registry, k=7
        )
        assert ticket.k == 7
        assert ticket.cost_cents == 0
        assert ticket.seed == "one"

    def test_uses_strategy_override_size(
        self, registry: StrategyRegistry
    ) -> None:
        ticket = generate_ticket(
            StrategyRequest(name=BALANCED, k_override=9),
            seed="one",
            registry=registry,
        )
        assert ticket.k == 9
        assert ticket.strategy == BALANCED

    def test_blank_seed(self, registry: StrategyRegistry) -> None:
        with pytest.raises(ValueError, match="seed"):
            generate_ticket(
                StrategyRequest(name=UNIFORM), seed=" ", registry=registry
            )


@pytest.mark.slow
def test_strategy_mix_follows_weights_across_batches() -> None:
    attempts = {BALANCED: 0, UNIFORM: 0}
    for i in range(40):
        result = _run(budget_cents=50_000, seed=f"fair-{i}")
        for summary in result.payload.strategies:
            attempts[summary.name] += summary.attempts
    ratio = attempts[BALANCED] / attempts[UNIFORM]
    assert 1.65 < ratio < 2.35
