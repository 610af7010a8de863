import logging
import random
from pathlib import Path
from typing import Annotated

import srsly
import typer
from pydantic import ValidationError

from ticketgen.config import GeneratorConfig, load_config
from ticketgen.core.errors import (
    BatchGenerationError,
    TicketgenError,
)
from ticketgen.core.models import (
    BatchGenerationResult,
    GenerateBatchRequest,
    StrategyName,
    StrategyRequest,
)
from ticketgen.core.validate import Severity, validate_batch_result
from ticketgen.engine.generate import LoggingMetricsSink, generate_batch
from ticketgen.engine.payload import summarize_ticket_breakdown
from ticketgen.engine.planner import plan_budget
from ticketgen.engine.selector import DEFAULT_STRATEGIES
from ticketgen.pricing.gateway import TicketCostCache
from ticketgen.pricing.limits import assert_budget_in_range, assert_k_in_range
from ticketgen.strategies.registry import build_registry, get_strategy_label
from ticketgen.strategies.stats import DrawHistory

app = typer.Typer(help="Generate reproducible lottery ticket batches.")

_STRATEGY_CHOICES = ", ".join(name.value for name in StrategyName)


@app.callback()
def main(
    log_level: Annotated[
        str,
        typer.Option(
            "--log-level", help="debug, info, warning or error"
        ),
    ] = "warning",
) -> None:
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        typer.echo(f"Error: unknown log level '{log_level}'", err=True)
        raise typer.Exit(1)
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
        force=True,
    )


def _parse_strategy(
    value: str, k_override: int | None = None
) -> StrategyRequest:
    """Parse 'name[:weight]'. Raises typer.BadParameter on invalid input."""
    name, _, raw_weight = value.partition(":")
    try:
        strategy = StrategyName(name.strip())
    except ValueError as err:
        raise typer.BadParameter(
            f"Unknown strategy '{name}'. Valid: {_STRATEGY_CHOICES}"
        ) from err
    weight = 1.0
    if raw_weight:
        try:
            weight = float(raw_weight)
        except ValueError as err:
            raise typer.BadParameter(
                f"Invalid weight in '{value}': expected 'NAME:WEIGHT'"
            ) from err
    try:
        return StrategyRequest(
            name=strategy, weight=weight, k_override=k_override
        )
    except ValidationError as err:
        raise typer.BadParameter(f"Invalid strategy '{value}': {err}") from err


def _load_config_or_exit(config_file: Path | None) -> GeneratorConfig:
    try:
        return load_config(config_file)
    except (ValidationError, ValueError) as err:
        typer.echo(f"Error: invalid config {config_file}: {err}", err=True)
        raise typer.Exit(1) from err


def _echo_result(result: BatchGenerationResult) -> None:
    for ticket in result.tickets:
        numbers = " ".join(f"{n:02d}" for n in ticket.numbers)
        typer.echo(
            f"  [{get_strategy_label(ticket.strategy)}] {numbers} "
            f"({ticket.cost_cents} cents)"
        )
    typer.echo(
        f"Tickets: {len(result.tickets)}, cost: {result.total_cost_cents} "
        f"cents, leftover: {result.leftover_cents} cents"
        f"{summarize_ticket_breakdown(result.ticket_cost_breakdown)}"
    )
    for entry in result.ticket_cost_breakdown:
        typer.echo(
            f"  k={entry.k}: {entry.emitted}/{entry.planned} emitted "
            f"at {entry.cost_cents} cents"
        )
    for warning in result.warnings:
        typer.echo(f"Warning: {warning}", err=True)


@app.command()
def generate(
    budget_cents: Annotated[
        int, typer.Option("--budget-cents", "-b", help="Budget in cents")
    ],
    seed: Annotated[
        str | None,
        typer.Option("--seed", "-s", help="Batch seed (random when omitted)"),
    ] = None,
    strategies: Annotated[
        list[str] | None,
        typer.Option(
            "--strategy",
            help=f"NAME[:WEIGHT], repeatable. Names: {_STRATEGY_CHOICES}",
        ),
    ] = None,
    k: Annotated[
        int | None, typer.Option("--k", help="Numbers per ticket")
    ] = None,
    k_override: Annotated[
        int | None,
        typer.Option(
            "--k-override",
            help="Ticket size forced on every strategy, default mix included",
        ),
    ] = None,
    window: Annotated[
        int | None,
        typer.Option("--window", help="Draws considered by statistics"),
    ] = None,
    timeout_ms: Annotated[
        int | None, typer.Option("--timeout-ms", help="Batch deadline")
    ] = None,
    spread_budget: Annotated[
        bool,
        typer.Option(
            "--spread-budget", help="Mix ticket sizes around --k"
        ),
    ] = False,
    draws: Annotated[
        Path | None,
        typer.Option("--draws", help="Draw history JSONL, oldest first"),
    ] = None,
    config_file: Annotated[
        Path | None, typer.Option("--config", help="Config JSON file")
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write the result as JSON"),
    ] = None,
    as_json: Annotated[
        bool, typer.Option("--json", help="Print the payload as JSON")
    ] = False,
) -> None:
    """Generate a batch of tickets within a budget."""
    config = _load_config_or_exit(config_file)
    if seed is None:
        seed = f"{random.getrandbits(32):08x}"

    try:
        requested = [
            _parse_strategy(value, k_override) for value in strategies or []
        ]
    except typer.BadParameter as err:
        typer.echo(f"Error: {err}", err=True)
        raise typer.Exit(1) from err
    if not requested and k_override is not None:
        requested = [
            entry.model_copy(update={"k_override": k_override})
            for entry in DEFAULT_STRATEGIES
        ]

    try:
        history = DrawHistory.from_jsonl(draws) if draws else DrawHistory()
    except (OSError, ValueError) as err:
        typer.echo(f"Error: cannot read draws from {draws}: {err}", err=True)
        raise typer.Exit(1) from err

    try:
        request = GenerateBatchRequest(
            budget_cents=budget_cents,
            seed=seed,
            strategies=requested or None,
            k=k,
            window=window,
            timeout_ms=timeout_ms,
            spread_budget=spread_budget,
        )
    except ValidationError as err:
        typer.echo(f"Error: invalid request: {err}", err=True)
        raise typer.Exit(1) from err

    try:
        result = generate_batch(
            request,
            pricing=config.pricing_gateway(),
            limits_provider=config.limits_provider(),
            registry=build_registry(history),
            metrics_sink=LoggingMetricsSink(),
            default_timeout_ms=config.default_timeout_ms,
        )
    except BatchGenerationError as err:
        typer.echo(f"Error: {err}", err=True)
        if err.partial is not None:
            typer.echo(
                f"Partial batch: {len(err.partial.tickets)} tickets", err=True
            )
            if output is not None:
                srsly.write_json(output, err.partial.to_wire())
        raise typer.Exit(1) from err
    except TicketgenError as err:
        typer.echo(f"Error: {err}", err=True)
        raise typer.Exit(1) from err

    if output is not None:
        srsly.write_json(output, result.to_wire())
    if as_json:
        typer.echo(srsly.json_dumps(result.payload.to_wire(), indent=2))
        return
    typer.echo(f"Seed: {seed}")
    _echo_result(result)


@app.command()
def plan(
    budget_cents: Annotated[
        int, typer.Option("--budget-cents", "-b", help="Budget in cents")
    ],
    k: Annotated[
        int | None, typer.Option("--k", help="Numbers per ticket")
    ] = None,
    spread_budget: Annotated[
        bool, typer.Option("--spread-budget", help="Mix ticket sizes")
    ] = False,
    config_file: Annotated[
        Path | None, typer.Option("--config", help="Config JSON file")
    ] = None,
) -> None:
    """Show the ticket slots a budget would be split into."""
    config = _load_config_or_exit(config_file)
    pricing = config.pricing_gateway()
    size = k if k is not None else config.limits.default_dezena_count
    try:
        assert_k_in_range(size, config.limits)
        assert_budget_in_range(budget_cents, config.limits)
        budget_plan = plan_budget(
            budget_cents,
            size,
            spread_budget=spread_budget,
            limits=config.limits,
            pricing=pricing,
            costs=TicketCostCache(pricing),
        )
    except TicketgenError as err:
        typer.echo(f"Error: {err}", err=True)
        raise typer.Exit(1) from err

    typer.echo(
        f"Slots: {budget_plan.planned_tickets}, cost: "
        f"{budget_plan.planned_cost_cents} cents, leftover: "
        f"{budget_plan.planned_leftover_cents} cents"
    )
    for slot_k, count in budget_plan.planned_by_k.items():
        typer.echo(f"  k={slot_k}: {count}")


@app.command()
def validate(
    input_file: Annotated[Path, typer.Argument(help="Saved result JSON")],
) -> None:
    """Check a saved result against the payload schema and its totals."""
    try:
        data = srsly.read_json(input_file)
    except (OSError, ValueError) as err:
        typer.echo(f"Error: cannot read {input_file}: {err}", err=True)
        raise typer.Exit(1) from err

    issues = validate_batch_result(data)
    for issue in issues:
        typer.echo(
            f"{issue.severity.value.upper()} {issue.code} "
            f"at {issue.location}: {issue.message}"
        )
    errors = [i for i in issues if i.severity == Severity.ERROR]
    if errors:
        typer.echo(f"{input_file}: {len(errors)} errors", err=True)
        raise typer.Exit(1)
    typer.echo(f"{input_file}: OK")


@app.command()
def limits(
    config_file: Annotated[
        Path | None, typer.Option("--config", help="Config JSON file")
    ] = None,
) -> None:
    """Print the effective betting limits."""
    config = _load_config_or_exit(config_file)
    current = config.limits
    typer.echo(
        f"k: {current.min_dezena_count}..{current.max_dezena_count} "
        f"(default {current.default_dezena_count})"
    )
    typer.echo(
        f"budget: {current.min_budget_cents}..{current.max_budget_cents} "
        "cents"
    )
    typer.echo(f"max tickets per batch: {current.max_tickets_per_batch}")
    typer.echo(f"base price: {config.base_price_cents} cents")


if __name__ == "__main__":
    app()
