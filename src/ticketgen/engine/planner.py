"""Budget planning: turn a budget into an ordered list of ticket slots.

Spread planning is a greedy heuristic, not an optimal packing. Each pass
walks the candidate sizes from most to least expensive and allocates one
slot of every size that still fits; planning stops when the remaining
budget is below the cheapest candidate, the batch limit is reached, or a
pass allocates nothing.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field

from ticketgen.core.errors import PricingError
from ticketgen.core.models import BettingLimits, TicketSlot
from ticketgen.pricing.gateway import PricingGateway, TicketCostCache

logger = logging.getLogger(__name__)

SPREAD_OFFSETS = (-1, 0, 1, 2)


@dataclass
class BudgetPlan:
    slots: list[TicketSlot]
    planned_leftover_cents: int
    base_ticket_cost_cents: int
    planned_by_k: dict[int, int] = field(default_factory=dict)

    @property
    def planned_tickets(self) -> int:
        return sum(self.planned_by_k.values())

    @property
    def planned_cost_cents(self) -> int:
        return sum(slot.cost_cents for slot in self.slots)


def spread_candidates(k: int, limits: BettingLimits) -> list[int]:
    return sorted(
        {
            k + offset
            for offset in SPREAD_OFFSETS
            if limits.min_dezena_count
            <= k + offset
            <= limits.max_dezena_count
        }
    )


def _plan_spread(
    budget_cents: int,
    k: int,
    limits: BettingLimits,
    costs: TicketCostCache,
) -> list[TicketSlot]:
    candidates = spread_candidates(k, limits)
    priced = [(costs.cost(size), size) for size in candidates]
    if not priced:
        return []
    ordered = sorted(priced, key=lambda item: (-item[0], -item[1]))
    cheapest = min(cost for cost, _ in priced)

    slots: list[TicketSlot] = []
    remaining = budget_cents
    while (
        remaining >= cheapest and len(slots) < limits.max_tickets_per_batch
    ):
        allocated = False
        for cost, size in ordered:
            if len(slots) >= limits.max_tickets_per_batch:
                break
            if cost <= remaining:
                slots.append(
                    TicketSlot(index=len(slots), k=size, cost_cents=cost)
                )
                remaining -= cost
                allocated = True
        if not allocated:
            break
    return slots


def plan_budget(
    budget_cents: int,
    k: int,
    *,
    spread_budget: bool,
    limits: BettingLimits,
    pricing: PricingGateway,
    costs: TicketCostCache,
) -> BudgetPlan:
    base_cost = costs.cost(k)
    slots: list[TicketSlot] = []
    if spread_budget:
        slots = _plan_spread(budget_cents, k, limits, costs)
        if not slots:
            logger.info(
                "Spread planning produced no slots for %d cents; "
                "falling back to k=%d",
                budget_cents,
                k,
            )

    if not slots:
        allocation = pricing.calculate_budget_allocation(budget_cents, k)
        slots = [
            TicketSlot(index=i, k=k, cost_cents=allocation.ticket_cost_cents)
            for i in range(allocation.max_tickets)
        ]

    if not slots:
        raise PricingError(
            "BUDGET_BELOW_MIN",
            f"budget of {budget_cents} cents does not cover any ticket",
        )

    plan = BudgetPlan(
        slots=slots,
        planned_leftover_cents=budget_cents
        - sum(slot.cost_cents for slot in slots),
        base_ticket_cost_cents=base_cost,
        planned_by_k=dict(sorted(Counter(slot.k for slot in slots).items())),
    )
    logger.debug(
        "Planned %d slots (%s) leaving %d cents",
        plan.planned_tickets,
        ", ".join(f"{n}x{size}" for size, n in plan.planned_by_k.items()),
        plan.planned_leftover_cents,
    )
    return plan
