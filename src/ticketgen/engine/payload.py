"""Budget accounting and the versioned audit payload."""

import logging
from collections import Counter
from collections.abc import Sequence

from ticketgen.core.errors import PayloadSchemaError
from ticketgen.core.models import (
    BatchGenerationResult,
    BatchMetrics,
    PayloadConfig,
    StrategyExecutionSummary,
    StrategyPayload,
    StrategyTicket,
    TicketAudit,
    TicketCostBreakdownEntry,
)
from ticketgen.core.schema import payload_schema_errors
from ticketgen.engine.planner import BudgetPlan
from ticketgen.pricing.gateway import TicketCostCache

logger = logging.getLogger(__name__)


def assert_payload_schema(payload: StrategyPayload) -> None:
    errors = payload_schema_errors(payload.to_wire())
    if not errors:
        return
    logger.error("Strategy payload failed schema validation: %s", errors)
    raise PayloadSchemaError("; ".join(errors), errors)


def build_cost_breakdown(
    plan: BudgetPlan,
    tickets: Sequence[StrategyTicket],
    costs: TicketCostCache,
) -> list[TicketCostBreakdownEntry]:
    emitted = Counter(ticket.k for ticket in tickets)
    sizes = sorted(set(plan.planned_by_k) | set(emitted))
    return [
        TicketCostBreakdownEntry(
            k=size,
            cost_cents=costs.cost(size),
            planned=plan.planned_by_k.get(size, 0),
            emitted=emitted.get(size, 0),
        )
        for size in sizes
    ]


def assemble_result(
    *,
    seed: str,
    budget_cents: int,
    tickets: Sequence[StrategyTicket],
    plan: BudgetPlan,
    summaries: Sequence[StrategyExecutionSummary],
    metrics: BatchMetrics,
    config: PayloadConfig,
    warnings: Sequence[str],
    costs: TicketCostCache,
) -> BatchGenerationResult:
    total_cost = sum(ticket.cost_cents for ticket in tickets)
    leftover = max(0, budget_cents - total_cost)
    if tickets:
        average_cost = round(total_cost / len(tickets))
    else:
        average_cost = plan.base_ticket_cost_cents
    breakdown = build_cost_breakdown(plan, tickets, costs)

    all_warnings = list(dict.fromkeys(warnings))
    if len(tickets) < plan.planned_tickets:
        all_warnings.append(
            f"Batch generated {len(tickets)} of {plan.planned_tickets} "
            "planned tickets"
        )

    payload = StrategyPayload(
        seed=seed,
        requested_budget_cents=budget_cents,
        ticket_cost_cents=plan.base_ticket_cost_cents,
        average_ticket_cost_cents=average_cost,
        ticket_cost_breakdown=breakdown,
        total_cost_cents=total_cost,
        leftover_cents=leftover,
        tickets_generated=len(tickets),
        strategies=[summary.model_copy() for summary in summaries],
        metrics=metrics,
        config=config,
        warnings=all_warnings,
    )
    assert_payload_schema(payload)

    return BatchGenerationResult(
        tickets=list(tickets),
        ticket_cost_cents=plan.base_ticket_cost_cents,
        average_ticket_cost_cents=average_cost,
        ticket_cost_breakdown=breakdown,
        total_cost_cents=total_cost,
        budget_cents=budget_cents,
        leftover_cents=leftover,
        payload=payload,
        warnings=list(all_warnings),
    )


def build_ticket_payload(
    payload: StrategyPayload, ticket: StrategyTicket
) -> StrategyPayload:
    """Copy of the batch payload carrying one ticket's audit record."""
    ticket_payload = payload.model_copy(
        update={
            "ticket": TicketAudit(
                strategy=ticket.strategy,
                metadata=ticket.metadata,
                seed=ticket.seed,
                cost_cents=ticket.cost_cents,
            )
        }
    )
    assert_payload_schema(ticket_payload)
    return ticket_payload


def summarize_ticket_breakdown(
    breakdown: Sequence[TicketCostBreakdownEntry],
) -> str:
    parts = [
        f"{entry.emitted}x{entry.k}" for entry in breakdown if entry.emitted
    ]
    if not parts:
        return ""
    return f" · mix {'+'.join(parts)}"
